from __future__ import annotations

from datetime import date

from studyvault.models.flashcard import CamelModel


class StudyStats(CamelModel):
    total_cards: int
    due_count: int
    due_today: int
    due_tomorrow: int
    total_reviews: int
    average_easiness_factor: float  # rounded to 2 places for display


class MasteryDistribution(CamelModel):
    learning: int = 0   # repetitions == 0
    young: int = 0      # interval < 21 days
    mature: int = 0     # interval < 100 days
    mastered: int = 0


class UpcomingDay(CamelModel):
    day: date
    count: int


class DeckBreakdown(CamelModel):
    deck_id: str
    total: int
    due: int


class StudyDashboard(CamelModel):
    stats: StudyStats
    retention_rate: float
    mastery: MasteryDistribution
    upcoming: list[UpcomingDay]
    average_interval: int
    reviews_per_card: float
    estimated_review_minutes: int
    per_deck: list[DeckBreakdown]
