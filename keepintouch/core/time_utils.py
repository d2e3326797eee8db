"""Time helpers shared by the calculators, the engine and the SQLite store.

Every timestamp handled by the engine is timezone-aware. Naive values coming
from callers are interpreted as UTC; storage keeps fixed-width UTC ISO-8601
strings so that SQL string comparison matches chronological order.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]

SECONDS_PER_DAY = 24 * 60 * 60


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware ones are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_db(value: datetime | None) -> str | None:
    """Serialize a datetime for storage (UTC, microsecond precision)."""
    if value is None:
        return None
    return ensure_aware(value).astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db(raw: str | None) -> datetime | None:
    """Parse a stored timestamp back into an aware datetime."""
    if not raw:
        return None
    return ensure_aware(datetime.fromisoformat(raw))


def days_between(later: datetime, earlier: datetime) -> float:
    """Fractional number of days from ``earlier`` to ``later``."""
    delta = ensure_aware(later) - ensure_aware(earlier)
    return delta.total_seconds() / SECONDS_PER_DAY
