"""
Async HTTP client for the flashcard review API.

Usage:
    async with StudyVaultClient("http://127.0.0.1:8000") as client:
        result = await client.submit_review_session(deck_id, reviews)

Transport errors (httpx.TransportError) propagate unchanged so callers can
apply their own retry policy; the server-side computation is idempotent per
request, so re-sending a failed session is safe.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from studyvault.models.flashcard import (
    Flashcard,
    FlashcardList,
    ReviewResult,
    ReviewSessionRequest,
    ReviewSessionResult,
    ReviewSubmission,
)
from studyvault.models.stats import StudyDashboard

logger = logging.getLogger(__name__)

API_PREFIX = "/knowledge/flashcards"


class ReviewApiError(Exception):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, status_code: int, detail: object) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"API error {status_code}: {detail}")


class StudyVaultClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout, transport=transport
        )

    async def __aenter__(self) -> StudyVaultClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        res = await self._client.request(method, f"{API_PREFIX}{path}", **kwargs)
        if res.is_error:
            try:
                detail = res.json().get("detail")
            except ValueError:
                detail = res.text
            logger.warning("%s %s -> %d", method, path, res.status_code)
            raise ReviewApiError(res.status_code, detail)
        return res

    async def submit_review_session(
        self, deck_id: str, reviews: Sequence[ReviewSubmission]
    ) -> ReviewSessionResult:
        body = ReviewSessionRequest(reviews=list(reviews))
        res = await self._request(
            "POST",
            f"/{deck_id}/review",
            json=body.model_dump(mode="json", by_alias=True),
        )
        return ReviewSessionResult.model_validate(res.json())

    async def review_card(self, deck_id: str, card_id: str, quality: int) -> ReviewResult:
        res = await self._request(
            "POST", f"/{deck_id}/cards/{card_id}/review", json={"quality": quality}
        )
        return ReviewResult.model_validate(res.json())

    async def due_cards(self, deck_id: str) -> list[Flashcard]:
        res = await self._request("GET", f"/{deck_id}/due")
        return FlashcardList.model_validate(res.json()).items

    async def stats(self, deck_id: str | None = None) -> StudyDashboard:
        path = f"/{deck_id}/stats" if deck_id else "/stats"
        res = await self._request("GET", path)
        return StudyDashboard.model_validate(res.json())
