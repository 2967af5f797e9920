"""
Flashcard & spaced-repetition router.

Endpoints (prefix /knowledge/flashcards):
  GET    /quality-scale                       — labels for the 0–5 recall scale
  GET    /stats                               — dashboard across all decks
  POST   /{deck_id}/review                    — batch review submission
  GET    /{deck_id}/due                       — cards due now
  GET    /{deck_id}/cram                      — every card in the deck
  GET    /{deck_id}/stats                     — dashboard for one deck
  POST   /{deck_id}/cards                     — create card
  GET    /{deck_id}/cards                     — list cards
  GET    /{deck_id}/cards/{card_id}           — single card
  PATCH  /{deck_id}/cards/{card_id}           — edit front / back / tags
  DELETE /{deck_id}/cards/{card_id}           — delete card
  POST   /{deck_id}/cards/{card_id}/review    — single review
  GET    /{deck_id}/cards/{card_id}/reviews   — review history, oldest first
"""
from __future__ import annotations

import logging

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from studyvault.config import Settings
from studyvault.db.sqlite import (
    SqliteFlashcardRepository,
    create_flashcard,
    delete_flashcard,
    get_all_flashcards,
    get_db,
    get_flashcard,
    list_flashcards,
    list_reviews,
    update_flashcard_content,
)
from studyvault.models.flashcard import (
    Flashcard,
    FlashcardCreate,
    FlashcardList,
    FlashcardUpdate,
    QualityLevel,
    QualityRequest,
    ReviewHistoryPage,
    ReviewResult,
    ReviewSessionRequest,
    ReviewSessionResult,
)
from studyvault.models.stats import StudyDashboard
from studyvault.services.clock import Clock, utc_now
from studyvault.services.review_session import (
    FlashcardNotFoundError,
    ReviewPersistenceError,
    ReviewSessionCoordinator,
)
from studyvault.services.scheduling import InvalidQualityError, quality_levels
from studyvault.services.study_stats import build_dashboard

logger = logging.getLogger(__name__)
router = APIRouter()


def get_clock() -> Clock:
    return utc_now


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_coordinator(
    db: aiosqlite.Connection = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ReviewSessionCoordinator:
    return ReviewSessionCoordinator(SqliteFlashcardRepository(db), clock)


# --- Collection-wide ---


@router.get("/quality-scale", response_model=list[QualityLevel])
async def quality_scale() -> list[QualityLevel]:
    return quality_levels()


@router.get("/stats", response_model=StudyDashboard)
async def all_stats(
    db: aiosqlite.Connection = Depends(get_db),
    clock: Clock = Depends(get_clock),
    config: Settings = Depends(get_settings),
) -> StudyDashboard:
    cards = await get_all_flashcards(db)
    return build_dashboard(cards, clock(), upcoming_days=config.upcoming_days)


# --- Study session ---


@router.post("/{deck_id}/review", response_model=ReviewSessionResult)
async def review_session(
    deck_id: str,
    body: ReviewSessionRequest,
    coordinator: ReviewSessionCoordinator = Depends(get_coordinator),
) -> ReviewSessionResult:
    """Apply a study session's reviews. Failures are reported per entry."""
    batch = await coordinator.submit_batch(body.reviews, deck_id=deck_id)
    return ReviewSessionResult(
        updated=batch.updated,
        next_review_dates=batch.next_review_dates,
        failures=batch.failures,
    )


@router.get("/{deck_id}/due", response_model=FlashcardList)
async def due_cards(
    deck_id: str,
    coordinator: ReviewSessionCoordinator = Depends(get_coordinator),
) -> FlashcardList:
    items = await coordinator.due_cards(deck_id)
    return FlashcardList(items=items, total=len(items))


@router.get("/{deck_id}/cram", response_model=FlashcardList)
async def cram_cards(
    deck_id: str,
    coordinator: ReviewSessionCoordinator = Depends(get_coordinator),
) -> FlashcardList:
    items = await coordinator.cram_cards(deck_id)
    return FlashcardList(items=items, total=len(items))


@router.get("/{deck_id}/stats", response_model=StudyDashboard)
async def deck_stats(
    deck_id: str,
    db: aiosqlite.Connection = Depends(get_db),
    clock: Clock = Depends(get_clock),
    config: Settings = Depends(get_settings),
) -> StudyDashboard:
    cards = await get_all_flashcards(db, deck_id)
    return build_dashboard(cards, clock(), upcoming_days=config.upcoming_days)


# --- Cards ---


@router.post("/{deck_id}/cards", response_model=Flashcard, status_code=201)
async def create_card(
    deck_id: str,
    body: FlashcardCreate,
    db: aiosqlite.Connection = Depends(get_db),
    clock: Clock = Depends(get_clock),
    config: Settings = Depends(get_settings),
) -> Flashcard:
    card = await create_flashcard(
        db, deck_id, body, clock(), initial_interval=config.initial_interval_days
    )
    logger.info("Created flashcard %s in deck %s", card.id, deck_id)
    return card


@router.get("/{deck_id}/cards", response_model=FlashcardList)
async def list_cards(
    deck_id: str,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: aiosqlite.Connection = Depends(get_db),
) -> FlashcardList:
    items, total = await list_flashcards(db, deck_id, offset=offset, limit=limit)
    return FlashcardList(items=items, total=total, offset=offset, limit=limit)


@router.get("/{deck_id}/cards/{card_id}", response_model=Flashcard)
async def get_card(
    deck_id: str,
    card_id: str,
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    card = await get_flashcard(db, card_id, deck_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return card


@router.patch("/{deck_id}/cards/{card_id}", response_model=Flashcard)
async def edit_card(
    deck_id: str,
    card_id: str,
    body: FlashcardUpdate,
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    updated = await update_flashcard_content(db, deck_id, card_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return updated


@router.delete("/{deck_id}/cards/{card_id}", status_code=204)
async def remove_card(
    deck_id: str,
    card_id: str,
    db: aiosqlite.Connection = Depends(get_db),
) -> None:
    deleted = await delete_flashcard(db, deck_id, card_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Flashcard not found")


@router.post("/{deck_id}/cards/{card_id}/review", response_model=ReviewResult)
async def review_card(
    deck_id: str,
    card_id: str,
    body: QualityRequest,
    db: aiosqlite.Connection = Depends(get_db),
    coordinator: ReviewSessionCoordinator = Depends(get_coordinator),
) -> ReviewResult:
    card = await get_flashcard(db, card_id, deck_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")

    try:
        _, result = await coordinator.submit_review(card, body.quality)
    except InvalidQualityError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except FlashcardNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Flashcard not found") from exc
    except ReviewPersistenceError as exc:
        logger.warning("Review write failed for card %s: %s", card_id, exc.__cause__)
        raise HTTPException(
            status_code=503,
            detail={
                "message": str(exc),
                "result": exc.result.model_dump(mode="json", by_alias=True),
            },
        ) from exc
    return result


@router.get("/{deck_id}/cards/{card_id}/reviews", response_model=ReviewHistoryPage)
async def card_reviews(
    deck_id: str,
    card_id: str,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    db: aiosqlite.Connection = Depends(get_db),
) -> ReviewHistoryPage:
    card = await get_flashcard(db, card_id, deck_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    items, total = await list_reviews(db, card_id, offset=offset, limit=limit)
    return ReviewHistoryPage(items=items, total=total, offset=offset, limit=limit)
