"""Duration and calendar helpers shared by the tracker, reports and store.

All functions are pure: the only notion of "now" comes from the caller or
from ``utc_now``.
"""

import math
from datetime import date, datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from worklog.core.errors import ValidationError


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Return ``dt`` with timezone information.

    Naive datetimes are interpreted in the local zone.
    """
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.astimezone()
    return dt


def to_utc(dt: datetime) -> datetime:
    """Normalize an instant to UTC."""
    return ensure_aware(dt).astimezone(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Accepts a trailing ``Z`` for UTC.

    Raises:
        ValueError: If the string is not a valid timestamp
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text))


def elapsed_seconds(
    started_at: datetime,
    ended_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> int:
    """Whole seconds between ``started_at`` and ``ended_at`` (or now).

    Args:
        started_at: Start instant
        ended_at: End instant, None for an open entry
        now: Reference instant for open entries. Defaults to the current time.

    Returns:
        Floor of the elapsed seconds, never negative
    """
    end = ended_at if ended_at is not None else (now or utc_now())
    delta = ensure_aware(end) - ensure_aware(started_at)
    return max(0, math.floor(delta.total_seconds()))


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Resolve a configured timezone name.

    Args:
        name: "local" (or empty) for the system zone, otherwise an IANA name

    Returns:
        A tzinfo, or None meaning the system local zone

    Raises:
        ValidationError: If the zone name is unknown
    """
    if not name or name.lower() == "local":
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {name}")


def local_date(ts: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date the instant falls on in ``tz`` (system local if None)."""
    return ensure_aware(ts).astimezone(tz).date()


def calendar_date_key(ts: datetime, tz: Optional[tzinfo] = None) -> str:
    """Day bucket key (YYYY-MM-DD) of an instant in the viewer's zone."""
    return local_date(ts, tz).isoformat()


# The exclusive end of a December is January of the next year, which must
# still be a valid datetime
MIN_YEAR = 1
MAX_YEAR = 9998


def month_bounds(
    year: int, month: int, tz: Optional[tzinfo] = None
) -> tuple[datetime, datetime]:
    """Half-open interval [first instant, first instant of next month).

    Both bounds are returned in UTC.

    Raises:
        ValidationError: If month is not within 1..12, or the year is
            outside MIN_YEAR..MAX_YEAR
    """
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}, got {year}")

    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    start = datetime(year, month, 1)
    end = datetime(next_year, next_month, 1)

    try:
        if tz is None:
            return to_utc(start.astimezone()), to_utc(end.astimezone())
        return to_utc(start.replace(tzinfo=tz)), to_utc(end.replace(tzinfo=tz))
    except (OverflowError, OSError, ValueError):
        raise ValidationError(f"Month {year:04d}-{month:02d} is outside the supported range")
