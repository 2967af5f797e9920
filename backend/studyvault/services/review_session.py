"""
Review-session coordination.

Applies review submissions to flashcards: runs the scheduling engine, merges
the result into the card, appends the review to its history and persists
both through the injected repository in one write. Batch submissions are
isolated per entry so one bad card never blocks the rest of a session.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from studyvault.models.flashcard import (
    BatchResult,
    Flashcard,
    ReviewEntry,
    ReviewOutcome,
    ReviewResult,
    ReviewStatus,
    ReviewSubmission,
    SpacedRepetitionState,
)
from studyvault.services.clock import Clock, utc_now
from studyvault.services.due_selector import select_cram, select_due
from studyvault.services.scheduling import (
    InvalidQualityError,
    calculate_next_review,
    validate_quality,
)

logger = logging.getLogger(__name__)


class FlashcardRepository(Protocol):
    async def get(self, card_id: str) -> Flashcard | None: ...

    async def get_all(self, deck_id: str | None = None) -> list[Flashcard]: ...

    async def save_review(self, card: Flashcard, entry: ReviewEntry) -> Flashcard | None:
        """Persist the card's schedule fields and append `entry` atomically.

        Returns None when the card no longer exists.
        """
        ...


class FlashcardNotFoundError(LookupError):
    def __init__(self, card_id: str) -> None:
        self.card_id = card_id
        super().__init__(f"Flashcard not found: {card_id}")


class ReviewPersistenceError(RuntimeError):
    """The review was computed but could not be written.

    `result` and `card` hold the computed outcome so the caller can retry
    the write without recomputing.
    """

    def __init__(self, card: Flashcard, result: ReviewResult) -> None:
        self.card = card
        self.result = result
        super().__init__(f"Failed to persist review for flashcard {card.id}")


def _state_for(card: Flashcard, now: datetime) -> SpacedRepetitionState:
    state = card.state
    if state is not None:
        return state
    # Unscheduled card: schedule from now
    return SpacedRepetitionState(
        easiness_factor=card.ease_factor,
        repetition_count=card.repetitions,
        interval_days=card.interval,
        next_review_date=now,
        last_review_date=card.last_review_date,
        review_history=list(card.review_history),
    )


class ReviewSessionCoordinator:
    def __init__(self, repository: FlashcardRepository, clock: Clock = utc_now) -> None:
        self._repository = repository
        self._clock = clock

    async def due_cards(self, deck_id: str | None = None, now: datetime | None = None) -> list[Flashcard]:
        cards = await self._repository.get_all(deck_id)
        return select_due(cards, now or self._clock())

    async def cram_cards(self, deck_id: str | None = None) -> list[Flashcard]:
        return select_cram(await self._repository.get_all(deck_id))

    async def submit_review(
        self,
        card: Flashcard,
        quality: int,
        now: datetime | None = None,
    ) -> tuple[Flashcard, ReviewResult]:
        now = now or self._clock()
        result = calculate_next_review(_state_for(card, now), quality, now)

        entry = ReviewEntry(quality=quality, reviewed_at=now)
        candidate = card.model_copy(
            update={
                "next_review_date": result.next_review_date,
                "interval": result.interval_days,
                "ease_factor": result.easiness_factor,
                "repetitions": result.repetition_count,
                "last_review_date": now,
                "review_count": card.review_count + 1,
                "review_history": [*card.review_history, entry],
            }
        )

        try:
            saved = await self._repository.save_review(candidate, entry)
        except Exception as exc:
            raise ReviewPersistenceError(candidate, result) from exc
        if saved is None:
            raise FlashcardNotFoundError(card.id)
        return saved, result

    async def submit_batch(
        self,
        reviews: Sequence[ReviewSubmission],
        now: datetime | None = None,
        deck_id: str | None = None,
    ) -> BatchResult:
        """Submit every review independently and report each outcome.

        All entries share one `now`. When `deck_id` is given, cards from
        other decks are reported as not found.
        """
        now = now or self._clock()
        batch = BatchResult()

        for review in reviews:
            outcome = await self._submit_one(review, now, deck_id)
            if outcome.status is not ReviewStatus.UPDATED:
                logger.warning(
                    "Review for flashcard %s failed (%s): %s",
                    review.flashcard_id,
                    outcome.status.value,
                    outcome.error,
                )
            batch.outcomes.append(outcome)

        logger.info(
            "Review batch applied: %d updated, %d failed",
            batch.updated,
            len(batch.failures),
        )
        return batch

    async def _submit_one(
        self, review: ReviewSubmission, now: datetime, deck_id: str | None
    ) -> ReviewOutcome:
        card_id = review.flashcard_id
        try:
            quality = validate_quality(review.quality)
        except InvalidQualityError as exc:
            return ReviewOutcome(
                flashcard_id=card_id, status=ReviewStatus.INVALID_QUALITY, error=str(exc)
            )

        try:
            card = await self._repository.get(card_id)
        except Exception as exc:
            return ReviewOutcome(
                flashcard_id=card_id, status=ReviewStatus.PERSISTENCE_ERROR, error=str(exc)
            )
        if card is None or (deck_id is not None and card.deck_id != deck_id):
            return ReviewOutcome(
                flashcard_id=card_id,
                status=ReviewStatus.NOT_FOUND,
                error=str(FlashcardNotFoundError(card_id)),
            )

        try:
            _, result = await self.submit_review(card, quality, now)
        except FlashcardNotFoundError as exc:
            return ReviewOutcome(
                flashcard_id=card_id, status=ReviewStatus.NOT_FOUND, error=str(exc)
            )
        except ReviewPersistenceError as exc:
            return ReviewOutcome(
                flashcard_id=card_id,
                status=ReviewStatus.PERSISTENCE_ERROR,
                result=exc.result,
                error=str(exc.__cause__ or exc),
            )
        return ReviewOutcome(flashcard_id=card_id, status=ReviewStatus.UPDATED, result=result)
