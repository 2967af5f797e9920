from studyvault.models.flashcard import (
    BatchResult,
    Flashcard,
    FlashcardCreate,
    FlashcardList,
    FlashcardUpdate,
    QualityLevel,
    QualityRequest,
    ReviewEntry,
    ReviewHistoryPage,
    ReviewOutcome,
    ReviewResult,
    ReviewSessionRequest,
    ReviewSessionResult,
    ReviewStatus,
    ReviewSubmission,
    SpacedRepetitionState,
)
from studyvault.models.stats import (
    DeckBreakdown,
    MasteryDistribution,
    StudyDashboard,
    StudyStats,
    UpcomingDay,
)

__all__ = [
    "BatchResult",
    "DeckBreakdown",
    "Flashcard",
    "FlashcardCreate",
    "FlashcardList",
    "FlashcardUpdate",
    "MasteryDistribution",
    "QualityLevel",
    "QualityRequest",
    "ReviewEntry",
    "ReviewHistoryPage",
    "ReviewOutcome",
    "ReviewResult",
    "ReviewSessionRequest",
    "ReviewSessionResult",
    "ReviewStatus",
    "ReviewSubmission",
    "SpacedRepetitionState",
    "StudyDashboard",
    "StudyStats",
    "UpcomingDay",
]
