"""
Due-set selection over an in-memory flashcard collection.

A card with no scheduling state (`next_review_date is None`) has never been
studied and is always due. Input order is preserved by every selector.
"""
from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta

from studyvault.models.flashcard import Flashcard
from studyvault.models.stats import UpcomingDay
from studyvault.services.clock import as_aware, calendar_day


def is_due(next_review_date: datetime | None, now: datetime) -> bool:
    if next_review_date is None:
        return True
    return as_aware(next_review_date) <= as_aware(now)


def select_due(cards: Iterable[Flashcard], now: datetime) -> list[Flashcard]:
    return [card for card in cards if is_due(card.next_review_date, now)]


def select_due_today(cards: Iterable[Flashcard], now: datetime) -> list[Flashcard]:
    """Due cards whose review date falls on the same calendar day as `now`."""
    today = calendar_day(now, now)
    return [
        card
        for card in cards
        if card.next_review_date is None
        or (
            calendar_day(card.next_review_date, now) == today
            and is_due(card.next_review_date, now)
        )
    ]


def select_due_tomorrow(cards: Iterable[Flashcard], now: datetime) -> list[Flashcard]:
    tomorrow = calendar_day(now + timedelta(days=1), now)
    return [
        card
        for card in cards
        if card.next_review_date is not None
        and calendar_day(card.next_review_date, now) == tomorrow
    ]


def select_cram(cards: Iterable[Flashcard]) -> list[Flashcard]:
    """Cram mode: every card, regardless of schedule."""
    return list(cards)


def upcoming_reviews(
    cards: Iterable[Flashcard], now: datetime, days: int = 7
) -> list[UpcomingDay]:
    """Number of cards scheduled on each of the next `days` calendar days, today first."""
    counts: dict[date, int] = {}
    for card in cards:
        if card.next_review_date is None:
            continue
        day = calendar_day(card.next_review_date, now)
        counts[day] = counts.get(day, 0) + 1

    result: list[UpcomingDay] = []
    for offset in range(days):
        day = calendar_day(now + timedelta(days=offset), now)
        result.append(UpcomingDay(day=day, count=counts.get(day, 0)))
    return result
