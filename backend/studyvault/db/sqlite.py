import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from studyvault.config import settings
from studyvault.models.flashcard import (
    Flashcard,
    FlashcardCreate,
    FlashcardUpdate,
    ReviewEntry,
)
from studyvault.services.clock import utc_now

logger = logging.getLogger(__name__)

_db_path: Path | None = None

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS flashcards (
    id               TEXT PRIMARY KEY,
    deck_id          TEXT NOT NULL,
    front            TEXT NOT NULL,
    back             TEXT NOT NULL,
    source_item_id   TEXT,
    tags             TEXT NOT NULL DEFAULT '[]',
    ease_factor      REAL NOT NULL DEFAULT 2.5,
    interval         INTEGER NOT NULL DEFAULT 0,
    repetitions      INTEGER NOT NULL DEFAULT 0,
    next_review_date TEXT,
    last_review_date TEXT,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_flashcards_deck ON flashcards(deck_id);
CREATE INDEX IF NOT EXISTS idx_flashcards_review ON flashcards(next_review_date);

CREATE TABLE IF NOT EXISTS flashcard_reviews (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    flashcard_id TEXT NOT NULL REFERENCES flashcards(id) ON DELETE CASCADE,
    quality      INTEGER NOT NULL CHECK (quality BETWEEN 0 AND 5),
    reviewed_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_reviews_card ON flashcard_reviews(flashcard_id, id);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);
"""


async def init_sqlite(data_dir: Path, filename: str | None = None) -> None:
    global _db_path
    _db_path = data_dir / (filename or settings.sqlite_filename)
    async with aiosqlite.connect(_db_path) as db:
        await db.executescript(SCHEMA_SQL)
        await db.commit()
    logger.info("SQLite ready at %s", _db_path)


async def get_db() -> AsyncIterator[aiosqlite.Connection]:
    assert _db_path is not None, "SQLite not initialized"
    async with aiosqlite.connect(_db_path) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys=ON")
        yield db


def _iso(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None


def _now() -> str:
    return utc_now().isoformat()


# --- Flashcards ---

# Card columns plus the size of its review log; the log itself is read
# through list_reviews only.
_CARD_SELECT = """
SELECT f.*, COALESCE(r.review_count, 0) AS review_count
FROM flashcards f
LEFT JOIN (
    SELECT flashcard_id, COUNT(*) AS review_count
    FROM flashcard_reviews
    GROUP BY flashcard_id
) r ON r.flashcard_id = f.id
"""


def _row_to_flashcard(row: aiosqlite.Row) -> Flashcard:
    d = dict(row)
    d["tags"] = json.loads(d["tags"] or "[]")
    return Flashcard(**d)


async def create_flashcard(
    db: aiosqlite.Connection,
    deck_id: str,
    card: FlashcardCreate,
    now: datetime,
    initial_interval: int = 0,
) -> Flashcard:
    card_id = str(uuid.uuid4())
    stamp = _now()
    await db.execute(
        """INSERT INTO flashcards
           (id, deck_id, front, back, source_item_id, tags,
            ease_factor, interval, repetitions, next_review_date,
            last_review_date, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, 2.5, ?, 0, ?, NULL, ?, ?)""",
        (
            card_id,
            deck_id,
            card.front,
            card.back,
            card.source_item_id,
            json.dumps(card.tags),
            initial_interval,
            _iso(now),
            stamp,
            stamp,
        ),
    )
    await db.commit()
    return await get_flashcard(db, card_id)  # type: ignore[return-value]


async def get_flashcard(
    db: aiosqlite.Connection, card_id: str, deck_id: str | None = None
) -> Flashcard | None:
    if deck_id is not None:
        cursor = await db.execute(
            _CARD_SELECT + "WHERE f.id = ? AND f.deck_id = ?", (card_id, deck_id)
        )
    else:
        cursor = await db.execute(_CARD_SELECT + "WHERE f.id = ?", (card_id,))
    row = await cursor.fetchone()
    return _row_to_flashcard(row) if row else None


async def get_all_flashcards(
    db: aiosqlite.Connection, deck_id: str | None = None
) -> list[Flashcard]:
    if deck_id is not None:
        cursor = await db.execute(
            _CARD_SELECT + "WHERE f.deck_id = ? ORDER BY f.created_at ASC, f.id ASC",
            (deck_id,),
        )
    else:
        cursor = await db.execute(_CARD_SELECT + "ORDER BY f.created_at ASC, f.id ASC")
    return [_row_to_flashcard(row) for row in await cursor.fetchall()]


async def list_flashcards(
    db: aiosqlite.Connection,
    deck_id: str,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Flashcard], int]:
    cursor = await db.execute(
        _CARD_SELECT + "WHERE f.deck_id = ? "
        "ORDER BY f.created_at ASC, f.id ASC LIMIT ? OFFSET ?",
        (deck_id, limit, offset),
    )
    rows = await cursor.fetchall()
    count_cursor = await db.execute(
        "SELECT COUNT(*) FROM flashcards WHERE deck_id = ?", (deck_id,)
    )
    count_row = await count_cursor.fetchone()
    total = count_row[0] if count_row else 0
    return [_row_to_flashcard(row) for row in rows], total


async def update_flashcard_content(
    db: aiosqlite.Connection,
    deck_id: str,
    card_id: str,
    update: FlashcardUpdate,
) -> Flashcard | None:
    card = await get_flashcard(db, card_id, deck_id)
    if not card:
        return None
    new_front = update.front if update.front is not None else card.front
    new_back = update.back if update.back is not None else card.back
    new_tags = update.tags if update.tags is not None else card.tags
    await db.execute(
        "UPDATE flashcards SET front = ?, back = ?, tags = ?, updated_at = ? WHERE id = ?",
        (new_front, new_back, json.dumps(new_tags), _now(), card_id),
    )
    await db.commit()
    return await get_flashcard(db, card_id)


async def delete_flashcard(db: aiosqlite.Connection, deck_id: str, card_id: str) -> bool:
    cursor = await db.execute(
        "DELETE FROM flashcards WHERE id = ? AND deck_id = ?", (card_id, deck_id)
    )
    await db.commit()
    return (cursor.rowcount or 0) > 0


# --- Reviews ---


async def save_review(
    db: aiosqlite.Connection, card: Flashcard, entry: ReviewEntry
) -> Flashcard | None:
    """Write the card's scheduling fields and append one review, atomically.

    Returns None (and writes nothing) if the card no longer exists.
    """
    try:
        cursor = await db.execute(
            """UPDATE flashcards
               SET ease_factor = ?, interval = ?, repetitions = ?,
                   next_review_date = ?, last_review_date = ?, updated_at = ?
               WHERE id = ?""",
            (
                card.ease_factor,
                card.interval,
                card.repetitions,
                _iso(card.next_review_date),
                _iso(card.last_review_date),
                _now(),
                card.id,
            ),
        )
        if (cursor.rowcount or 0) == 0:
            await db.rollback()
            return None
        await db.execute(
            "INSERT INTO flashcard_reviews (flashcard_id, quality, reviewed_at) VALUES (?, ?, ?)",
            (card.id, entry.quality, _iso(entry.reviewed_at)),
        )
        await db.commit()
    except aiosqlite.Error:
        await db.rollback()
        raise
    return await get_flashcard(db, card.id)


async def list_reviews(
    db: aiosqlite.Connection, card_id: str, offset: int = 0, limit: int = 50
) -> tuple[list[ReviewEntry], int]:
    count_cursor = await db.execute(
        "SELECT COUNT(*) FROM flashcard_reviews WHERE flashcard_id = ?", (card_id,)
    )
    count_row = await count_cursor.fetchone()
    total = count_row[0] if count_row else 0

    cursor = await db.execute(
        "SELECT quality, reviewed_at FROM flashcard_reviews WHERE flashcard_id = ? "
        "ORDER BY id ASC LIMIT ? OFFSET ?",
        (card_id, limit, offset),
    )
    rows = await cursor.fetchall()
    return [ReviewEntry(quality=r[0], reviewed_at=r[1]) for r in rows], total


class SqliteFlashcardRepository:
    """FlashcardRepository over one aiosqlite connection."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def get(self, card_id: str) -> Flashcard | None:
        return await get_flashcard(self._db, card_id)

    async def get_all(self, deck_id: str | None = None) -> list[Flashcard]:
        return await get_all_flashcards(self._db, deck_id)

    async def save_review(self, card: Flashcard, entry: ReviewEntry) -> Flashcard | None:
        return await save_review(self._db, card, entry)
