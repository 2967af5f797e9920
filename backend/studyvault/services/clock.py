from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timezone

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(ts: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def calendar_day(ts: datetime, now: datetime) -> date:
    """The calendar day of `ts` as seen from the timezone of `now`."""
    return as_aware(ts).astimezone(as_aware(now).tzinfo).date()
