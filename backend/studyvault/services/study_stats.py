from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from studyvault.models.flashcard import Flashcard
from studyvault.models.stats import (
    DeckBreakdown,
    MasteryDistribution,
    StudyDashboard,
    StudyStats,
    UpcomingDay,
)
from studyvault.services.due_selector import (
    is_due,
    select_due,
    select_due_today,
    select_due_tomorrow,
    upcoming_reviews,
)
from studyvault.services.scheduling import DEFAULT_EASINESS_FACTOR

YOUNG_INTERVAL_DAYS = 21
MATURE_INTERVAL_DAYS = 100
SECONDS_PER_REVIEW = 30


def _easiness(card: Flashcard) -> float:
    return card.ease_factor if card.state is not None else DEFAULT_EASINESS_FACTOR


def compute_stats(cards: Sequence[Flashcard], now: datetime) -> StudyStats:
    """Aggregate dashboard metrics. Pure; safe to call repeatedly."""
    total = len(cards)
    average = (
        sum(_easiness(card) for card in cards) / total
        if total
        else DEFAULT_EASINESS_FACTOR
    )
    return StudyStats(
        total_cards=total,
        due_count=len(select_due(cards, now)),
        due_today=len(select_due_today(cards, now)),
        due_tomorrow=len(select_due_tomorrow(cards, now)),
        total_reviews=sum(card.review_count for card in cards),
        average_easiness_factor=round(average, 2),
    )


def retention_rate(stats: StudyStats) -> float:
    if stats.total_cards == 0:
        return 0.0
    return (stats.total_cards - stats.due_count) / stats.total_cards


def reviews_per_card(stats: StudyStats) -> float:
    if stats.total_cards == 0:
        return 0.0
    return round(stats.total_reviews / stats.total_cards, 1)


def estimated_review_minutes(stats: StudyStats) -> int:
    return round(stats.total_reviews * SECONDS_PER_REVIEW / 60)


def mastery_distribution(cards: Sequence[Flashcard]) -> MasteryDistribution:
    dist = MasteryDistribution()
    for card in cards:
        if card.repetitions == 0:
            dist.learning += 1
        elif card.interval < YOUNG_INTERVAL_DAYS:
            dist.young += 1
        elif card.interval < MATURE_INTERVAL_DAYS:
            dist.mature += 1
        else:
            dist.mastered += 1
    return dist


def average_interval(cards: Sequence[Flashcard]) -> int:
    if not cards:
        return 0
    return round(sum(card.interval for card in cards) / len(cards))


def per_deck_breakdown(cards: Sequence[Flashcard], now: datetime) -> list[DeckBreakdown]:
    decks: dict[str, DeckBreakdown] = {}
    for card in cards:
        entry = decks.setdefault(card.deck_id, DeckBreakdown(deck_id=card.deck_id, total=0, due=0))
        entry.total += 1
        if is_due(card.next_review_date, now):
            entry.due += 1
    return [decks[deck_id] for deck_id in sorted(decks)]


def build_dashboard(
    cards: Sequence[Flashcard], now: datetime, upcoming_days: int = 7
) -> StudyDashboard:
    stats = compute_stats(cards, now)
    upcoming: list[UpcomingDay] = upcoming_reviews(cards, now, days=upcoming_days)
    return StudyDashboard(
        stats=stats,
        retention_rate=retention_rate(stats),
        mastery=mastery_distribution(cards),
        upcoming=upcoming,
        average_interval=average_interval(cards),
        reviews_per_card=reviews_per_card(stats),
        estimated_review_minutes=estimated_review_minutes(stats),
        per_deck=per_deck_breakdown(cards, now),
    )
