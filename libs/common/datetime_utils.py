"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC (some drivers, e.g. SQLite,
    drop the offset on the way back).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string (accepting a trailing ``Z``) into aware UTC.

    Raises ValueError on malformed input.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def is_within_window(
    now: datetime, start: Optional[datetime], end: Optional[datetime]
) -> bool:
    """True when ``now`` falls inside the closed window [start, end]."""
    if start is None or end is None:
        return False
    return ensure_utc(start) <= ensure_utc(now) <= ensure_utc(end)


# Pydantic field type that always serializes as aware UTC
UTCDateTime = Annotated[datetime, AfterValidator(ensure_utc)]
