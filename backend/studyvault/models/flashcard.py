from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReviewEntry(CamelModel):
    quality: int
    reviewed_at: datetime


class SpacedRepetitionState(CamelModel):
    easiness_factor: float = 2.5
    repetition_count: int = 0
    interval_days: int = 0
    next_review_date: datetime
    last_review_date: datetime | None = None
    review_history: list[ReviewEntry] = Field(default_factory=list)


class ReviewResult(CamelModel):
    next_review_date: datetime
    interval_days: int
    easiness_factor: float
    repetition_count: int


class Flashcard(CamelModel):
    id: str
    deck_id: str
    front: str
    back: str
    source_item_id: str | None = None
    tags: list[str] = Field(default_factory=list)
    next_review_date: datetime | None  # None = never scheduled, due immediately
    interval: int                      # days until next review
    ease_factor: float                 # SM-2 easiness factor, >= 1.3
    repetitions: int                   # consecutive successful recalls
    last_review_date: datetime | None = None
    review_count: int = 0              # rows in the review log
    # Not loaded by storage reads; the log is served paginated by /reviews
    review_history: list[ReviewEntry] = Field(default_factory=list, exclude=True)
    created_at: str
    updated_at: str

    @property
    def state(self) -> SpacedRepetitionState | None:
        """The embedded scheduling state, or None for a card never scheduled."""
        if self.next_review_date is None:
            return None
        return SpacedRepetitionState(
            easiness_factor=self.ease_factor,
            repetition_count=self.repetitions,
            interval_days=self.interval,
            next_review_date=self.next_review_date,
            last_review_date=self.last_review_date,
            review_history=list(self.review_history),
        )


class FlashcardList(CamelModel):
    items: list[Flashcard]
    total: int
    offset: int = 0
    limit: int | None = None


class FlashcardCreate(CamelModel):
    front: str = Field(min_length=1)
    back: str = Field(min_length=1)
    source_item_id: str | None = None
    tags: list[str] = Field(default_factory=list)


class FlashcardUpdate(CamelModel):
    front: str | None = None
    back: str | None = None
    tags: list[str] | None = None


class ReviewHistoryPage(CamelModel):
    items: list[ReviewEntry]
    total: int
    offset: int
    limit: int


# --- Review submission ---


class QualityRequest(CamelModel):
    # Any JSON value; the scheduling engine rejects everything but an int in 0..5
    quality: Any


class ReviewSubmission(CamelModel):
    flashcard_id: str
    quality: Any  # checked per entry, so one bad value never rejects the session


class ReviewSessionRequest(CamelModel):
    reviews: list[ReviewSubmission]


class ReviewStatus(str, Enum):
    UPDATED = "updated"
    NOT_FOUND = "not_found"
    INVALID_QUALITY = "invalid_quality"
    PERSISTENCE_ERROR = "persistence_error"


class ReviewOutcome(CamelModel):
    flashcard_id: str
    status: ReviewStatus
    result: ReviewResult | None = None
    error: str | None = None


class BatchResult(CamelModel):
    outcomes: list[ReviewOutcome] = Field(default_factory=list)

    @property
    def updated(self) -> int:
        return sum(1 for o in self.outcomes if o.status is ReviewStatus.UPDATED)

    @property
    def next_review_dates(self) -> dict[str, datetime]:
        return {
            o.flashcard_id: o.result.next_review_date
            for o in self.outcomes
            if o.status is ReviewStatus.UPDATED and o.result is not None
        }

    @property
    def failures(self) -> list[ReviewOutcome]:
        return [o for o in self.outcomes if o.status is not ReviewStatus.UPDATED]


class ReviewSessionResult(CamelModel):
    updated: int
    next_review_dates: dict[str, datetime]
    failures: list[ReviewOutcome] = Field(default_factory=list)


class QualityLevel(CamelModel):
    quality: int
    label: str
    description: str
