"""Trial date arithmetic.

Pure functions; naive datetimes are treated as UTC.
"""

import math
from datetime import UTC, date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def load_timezone(name: str) -> tzinfo:
    """Resolve a zone name strictly; unknown or malformed names raise."""
    if name.upper() == "UTC":
        return UTC
    return ZoneInfo(name)


def resolve_timezone(name: str | tzinfo | None) -> tzinfo:
    """Turn a zone name (or tzinfo) into a tzinfo. None and unknown names give UTC."""
    if name is None:
        return UTC
    if isinstance(name, tzinfo):
        return name
    try:
        return load_timezone(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        logger.warning("unknown_timezone_defaulted", timezone=name, fallback="UTC", error=str(e))
        return UTC


def trial_end_for(start: datetime, length_days: int) -> datetime:
    return as_utc(start) + timedelta(days=length_days)


def days_until(end: datetime, now: datetime) -> int:
    """Whole days from now until end, rounded up and never negative."""
    remaining = (as_utc(end) - as_utc(now)).total_seconds()
    return max(0, math.ceil(remaining / SECONDS_PER_DAY))


def calendar_date(value: datetime, tz: tzinfo) -> date:
    return as_utc(value).astimezone(tz).date()


def calendar_day_number(start: datetime, now: datetime, tz: tzinfo, length_days: int) -> int:
    """Day number of the trial (1-based) counted in calendar days in tz.

    Both instants are truncated to their date in tz first, so the number
    advances at local midnight rather than every 24 elapsed hours.
    Clamped to [1, length_days].
    """
    elapsed = (calendar_date(now, tz) - calendar_date(start, tz)).days
    return max(1, min(length_days, elapsed + 1))
