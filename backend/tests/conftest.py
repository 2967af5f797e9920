from datetime import datetime, timedelta, timezone

import aiosqlite
import pytest
from httpx import ASGITransport, AsyncClient

from studyvault import create_app
from studyvault.config import settings
from studyvault.db import init_all_databases
from studyvault.models.flashcard import Flashcard, ReviewEntry
from studyvault.routers.flashcards import get_clock

NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock returning a fixed instant that tests can move forward."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class InMemoryRepository:
    """FlashcardRepository backed by a dict, with injectable write failures."""

    def __init__(self, cards=()) -> None:
        self.cards = {card.id: card for card in cards}
        self.failing_ids: set[str] = set()
        self.saved: list[tuple[str, ReviewEntry]] = []

    async def get(self, card_id):
        return self.cards.get(card_id)

    async def get_all(self, deck_id=None):
        return [c for c in self.cards.values() if deck_id is None or c.deck_id == deck_id]

    async def save_review(self, card, entry):
        if card.id in self.failing_ids:
            raise ConnectionError("storage unavailable")
        if card.id not in self.cards:
            return None
        self.cards[card.id] = card
        self.saved.append((card.id, entry))
        return card


def _make_card(
    card_id: str = "card-1",
    deck_id: str = "deck-1",
    next_review_date: datetime | None = NOW,
    interval: int = 0,
    ease_factor: float = 2.5,
    repetitions: int = 0,
    reviews: int = 0,
    last_review_date: datetime | None = None,
) -> Flashcard:
    history = [
        ReviewEntry(quality=4, reviewed_at=NOW - timedelta(days=reviews - i))
        for i in range(reviews)
    ]
    return Flashcard(
        id=card_id,
        deck_id=deck_id,
        front=f"Question {card_id}",
        back=f"Answer {card_id}",
        next_review_date=next_review_date,
        interval=interval,
        ease_factor=ease_factor,
        repetitions=repetitions,
        last_review_date=last_review_date,
        review_count=reviews,
        review_history=history,
        created_at="2026-01-01T00:00:00+00:00",
        updated_at="2026-01-01T00:00:00+00:00",
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def make_card():
    return _make_card


@pytest.fixture
def make_repository():
    return InMemoryRepository


@pytest.fixture
async def db(tmp_path):
    await init_all_databases(tmp_path)
    async with aiosqlite.connect(tmp_path / settings.sqlite_filename) as conn:
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys=ON")
        yield conn


@pytest.fixture
async def app(tmp_path, clock):
    await init_all_databases(tmp_path)
    application = create_app()
    application.dependency_overrides[get_clock] = lambda: clock
    return application


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
