"""
SM-2 scheduling engine.

Given a card's current spaced-repetition state and a 0-5 recall quality,
compute the next interval, easiness factor and review date:

  EF' = max(1.3, EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)))
  q < 3   -> repetitions = 0, interval = 0 (re-study now)
  q >= 3  -> repetitions += 1, interval = 1, 6, then round(interval * EF')

Everything here is pure: `now` is always passed in and the review history
is never modified by `calculate_next_review`.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta

from studyvault.models.flashcard import (
    QualityLevel,
    ReviewEntry,
    ReviewResult,
    SpacedRepetitionState,
)

DEFAULT_EASINESS_FACTOR = 2.5
MIN_EASINESS_FACTOR = 1.3

MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3

FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6

QUALITY_SCALE: tuple[tuple[str, str], ...] = (
    ("Complete Blackout", "Complete failure to recall the information"),
    ("Incorrect, Familiar", "Incorrect response, but the information feels familiar"),
    (
        "Incorrect, Easy Recall",
        "Incorrect response, but correct answer seems easy to recall now",
    ),
    ("Correct, Difficult", "Correct response, but required significant effort"),
    ("Correct, Hesitation", "Correct response, but with slight hesitation"),
    ("Perfect Response", "Perfect response with immediate and confident recall"),
)


class InvalidQualityError(ValueError):
    """Raised when a recall quality is not an integer in 0..5."""

    def __init__(self, quality: object) -> None:
        self.quality = quality
        super().__init__(
            f"quality must be an integer between {MIN_QUALITY} and {MAX_QUALITY}, "
            f"got {quality!r}"
        )


def validate_quality(quality: object) -> int:
    # bool is an int subclass; True must not pass as quality 1
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQualityError(quality)
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise InvalidQualityError(quality)
    return quality


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def update_easiness_factor(easiness_factor: float, quality: int) -> float:
    miss = MAX_QUALITY - quality
    updated = easiness_factor + (0.1 - miss * (0.08 + miss * 0.02))
    return max(MIN_EASINESS_FACTOR, updated)


def next_interval(repetition_count: int, previous_interval: int, easiness_factor: float) -> int:
    """Interval for a success, where `repetition_count` already includes it."""
    if repetition_count == 1:
        return FIRST_INTERVAL_DAYS
    if repetition_count == 2:
        return SECOND_INTERVAL_DAYS
    return _round_half_up(previous_interval * easiness_factor)


def calculate_next_review(
    state: SpacedRepetitionState,
    quality: int,
    now: datetime,
) -> ReviewResult:
    quality = validate_quality(quality)

    # EF tracks recall difficulty even on a lapse
    easiness_factor = update_easiness_factor(state.easiness_factor, quality)

    if quality < PASSING_QUALITY:
        repetition_count = 0
        interval_days = 0
    else:
        repetition_count = state.repetition_count + 1
        interval_days = next_interval(
            repetition_count, state.interval_days, easiness_factor
        )

    return ReviewResult(
        next_review_date=now + timedelta(days=interval_days),
        interval_days=interval_days,
        easiness_factor=easiness_factor,
        repetition_count=repetition_count,
    )


def apply_review(
    state: SpacedRepetitionState,
    quality: int,
    now: datetime,
) -> SpacedRepetitionState:
    """Return the state after one review, with the review recorded in history."""
    result = calculate_next_review(state, quality, now)
    return SpacedRepetitionState(
        easiness_factor=result.easiness_factor,
        repetition_count=result.repetition_count,
        interval_days=result.interval_days,
        next_review_date=result.next_review_date,
        last_review_date=now,
        review_history=[
            *state.review_history,
            ReviewEntry(quality=quality, reviewed_at=now),
        ],
    )


def initial_state(now: datetime, interval_days: int = 0) -> SpacedRepetitionState:
    """State for a freshly created card: due immediately, never reviewed."""
    return SpacedRepetitionState(
        easiness_factor=DEFAULT_EASINESS_FACTOR,
        repetition_count=0,
        interval_days=interval_days,
        next_review_date=now,
        last_review_date=None,
        review_history=[],
    )


def quality_label(quality: int) -> str:
    return QUALITY_SCALE[validate_quality(quality)][0]


def quality_description(quality: int) -> str:
    return QUALITY_SCALE[validate_quality(quality)][1]


def quality_levels() -> list[QualityLevel]:
    return [
        QualityLevel(quality=q, label=label, description=description)
        for q, (label, description) in enumerate(QUALITY_SCALE)
    ]
