"""
Tests for ReviewSessionCoordinator.

Covers single submissions (merge, history append, persistence failure),
per-entry isolation in batches, the due / cram selectors and the
never-reviewed-card scenario end to end.
"""
from datetime import timedelta

import pytest

from studyvault.models.flashcard import ReviewStatus, ReviewSubmission
from studyvault.services.review_session import (
    FlashcardNotFoundError,
    ReviewPersistenceError,
    ReviewSessionCoordinator,
)
from studyvault.services.scheduling import InvalidQualityError


class TestSubmitReview:
    async def test_merges_result_and_appends_history(self, now, make_card, make_repository):
        card = make_card("c1", reviews=2, repetitions=1, interval=1)
        repo = make_repository([card])
        coordinator = ReviewSessionCoordinator(repo)

        updated, result = await coordinator.submit_review(card, 4, now)

        assert result.interval_days == 6
        assert result.repetition_count == 2
        assert updated.interval == 6
        assert updated.repetitions == 2
        assert updated.ease_factor == result.easiness_factor
        assert updated.next_review_date == now + timedelta(days=6)
        assert updated.last_review_date == now
        assert len(updated.review_history) == 3
        assert updated.review_history[-1].quality == 4
        assert updated.review_history[-1].reviewed_at == now
        assert updated.review_count == 3
        assert repo.cards["c1"] == updated
        # the caller's card object is left untouched
        assert len(card.review_history) == 2

    async def test_uses_clock_when_now_omitted(self, clock, make_card, make_repository):
        card = make_card("c1")
        coordinator = ReviewSessionCoordinator(make_repository([card]), clock=clock)
        clock.advance(hours=3)

        updated, _ = await coordinator.submit_review(card, 5)

        assert updated.last_review_date == clock.now

    async def test_schedules_unscheduled_card(self, now, make_card, make_repository):
        card = make_card("new", next_review_date=None)
        coordinator = ReviewSessionCoordinator(make_repository([card]))

        updated, result = await coordinator.submit_review(card, 2, now)

        assert updated.state is not None
        assert result.interval_days == 0
        assert updated.next_review_date == now

    async def test_invalid_quality_writes_nothing(self, now, make_card, make_repository):
        card = make_card("c1")
        repo = make_repository([card])
        coordinator = ReviewSessionCoordinator(repo)

        with pytest.raises(InvalidQualityError):
            await coordinator.submit_review(card, 6, now)
        assert repo.saved == []

    async def test_persistence_failure_keeps_previous_record(self, now, make_card, make_repository):
        card = make_card("c1")
        repo = make_repository([card])
        repo.failing_ids.add("c1")
        coordinator = ReviewSessionCoordinator(repo)

        with pytest.raises(ReviewPersistenceError) as exc_info:
            await coordinator.submit_review(card, 4, now)

        assert exc_info.value.result.interval_days == 1
        assert exc_info.value.card.repetitions == 1
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert repo.cards["c1"] == card

    async def test_missing_card_on_write(self, now, make_card, make_repository):
        coordinator = ReviewSessionCoordinator(make_repository())
        with pytest.raises(FlashcardNotFoundError):
            await coordinator.submit_review(make_card("gone"), 4, now)


class TestSubmitBatch:
    async def test_reports_each_entry_and_continues(self, now, make_card, make_repository):
        repo = make_repository(
            [
                make_card("broken"),
                make_card("ok-1"),
                make_card("ok-2"),
                make_card("other-deck", deck_id="deck-2"),
            ]
        )
        repo.failing_ids.add("broken")
        coordinator = ReviewSessionCoordinator(repo)

        batch = await coordinator.submit_batch(
            [
                ReviewSubmission(flashcard_id="broken", quality=4),
                ReviewSubmission(flashcard_id="missing", quality=4),
                ReviewSubmission(flashcard_id="ok-1", quality=9),
                ReviewSubmission(flashcard_id="ok-1", quality=3),
                ReviewSubmission(flashcard_id="other-deck", quality=5),
                ReviewSubmission(flashcard_id="ok-2", quality=5),
            ],
            now=now,
            deck_id="deck-1",
        )

        assert [o.status for o in batch.outcomes] == [
            ReviewStatus.PERSISTENCE_ERROR,
            ReviewStatus.NOT_FOUND,
            ReviewStatus.INVALID_QUALITY,
            ReviewStatus.UPDATED,
            ReviewStatus.NOT_FOUND,
            ReviewStatus.UPDATED,
        ]
        assert batch.updated == 2
        assert set(batch.next_review_dates) == {"ok-1", "ok-2"}
        assert batch.next_review_dates["ok-1"] == now + timedelta(days=1)
        assert len(batch.failures) == 4
        # the computed result survives a failed write
        assert batch.outcomes[0].result is not None
        assert repo.cards["other-deck"].repetitions == 0

    async def test_repeated_card_applies_in_order(self, now, make_card, make_repository):
        repo = make_repository([make_card("c1")])
        coordinator = ReviewSessionCoordinator(repo)

        batch = await coordinator.submit_batch(
            [
                ReviewSubmission(flashcard_id="c1", quality=5),
                ReviewSubmission(flashcard_id="c1", quality=5),
            ],
            now=now,
        )

        assert batch.updated == 2
        assert repo.cards["c1"].repetitions == 2
        assert repo.cards["c1"].interval == 6
        assert len(repo.cards["c1"].review_history) == 2

    async def test_whole_batch_shares_one_timestamp(self, clock, make_card, make_repository):
        repo = make_repository([make_card("a"), make_card("b")])
        coordinator = ReviewSessionCoordinator(repo, clock=clock)

        await coordinator.submit_batch(
            [
                ReviewSubmission(flashcard_id="a", quality=4),
                ReviewSubmission(flashcard_id="b", quality=4),
            ]
        )

        assert {entry.reviewed_at for _, entry in repo.saved} == {clock.now}

    async def test_empty_batch(self, make_repository):
        batch = await ReviewSessionCoordinator(make_repository()).submit_batch([])
        assert batch.updated == 0
        assert batch.next_review_dates == {}


class TestSessionCards:
    async def test_due_and_cram_are_distinct(self, now, make_card, make_repository):
        repo = make_repository(
            [
                make_card("due", next_review_date=now - timedelta(hours=1)),
                make_card("later", next_review_date=now + timedelta(days=3)),
                make_card("elsewhere", deck_id="deck-2"),
            ]
        )
        coordinator = ReviewSessionCoordinator(repo)

        due = await coordinator.due_cards("deck-1", now)
        cram = await coordinator.cram_cards("deck-1")

        assert [c.id for c in due] == ["due"]
        assert [c.id for c in cram] == ["due", "later"]

    async def test_nothing_due_is_not_cram(self, now, make_card, make_repository):
        repo = make_repository([make_card("later", next_review_date=now + timedelta(days=3))])
        coordinator = ReviewSessionCoordinator(repo)

        assert await coordinator.due_cards("deck-1", now) == []
        assert len(await coordinator.cram_cards("deck-1")) == 1


async def test_never_reviewed_card_lifecycle(clock, make_card, make_repository):
    card = make_card("fresh", next_review_date=clock.now)
    repo = make_repository([card])
    coordinator = ReviewSessionCoordinator(repo, clock=clock)

    assert [c.id for c in await coordinator.due_cards()] == ["fresh"]

    _, result = await coordinator.submit_review(card, 4)
    assert result.interval_days == 1
    assert await coordinator.due_cards() == []

    clock.advance(hours=23)
    assert await coordinator.due_cards() == []

    clock.advance(hours=1)
    assert [c.id for c in await coordinator.due_cards()] == ["fresh"]
