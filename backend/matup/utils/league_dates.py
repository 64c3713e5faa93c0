"""
League calendar helpers.

All datetimes are naive UTC, matching what SQLite hands back from the store.
Week N of a season starts 7*(N-1) days after the season start date at the
league's local start time (12:00 when unset or malformed).
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Tuple, Union

DEFAULT_START_TIME: Tuple[int, int] = (12, 0)
FIXTURE_DURATION = timedelta(hours=2)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_time_parts(start_time: Optional[str]) -> Tuple[int, int]:
    """Parse 'HH:MM' into (hours, minutes); anything invalid falls back to 12:00."""
    if not start_time:
        return DEFAULT_START_TIME
    parts = start_time.split(":")
    if len(parts) != 2:
        return DEFAULT_START_TIME
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return DEFAULT_START_TIME
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return DEFAULT_START_TIME
    return hours, minutes


def _coerce_date(value: Union[date, str, None]) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        return None


def week_start(
    start_date: Union[date, str, None],
    week_number: int,
    start_time: Optional[str] = None,
) -> Optional[datetime]:
    base = _coerce_date(start_date)
    if base is None:
        return None
    hours, minutes = parse_time_parts(start_time)
    day = base + timedelta(days=(week_number - 1) * 7)
    return datetime.combine(day, time(hours, minutes))


def week_end(starts_at: Optional[datetime]) -> Optional[datetime]:
    if starts_at is None:
        return None
    return starts_at + FIXTURE_DURATION


def to_datetime_or_none(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string into naive UTC; blank or invalid input gives None."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
