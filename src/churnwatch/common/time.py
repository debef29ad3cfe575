from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(ts: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def epoch_millis(ts: datetime) -> int:
    return int(as_utc(ts).timestamp() * 1000)
