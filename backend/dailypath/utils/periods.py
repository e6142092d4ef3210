# dailypath/utils/periods.py
"""
Helpers for half-open time ranges exchanged as text: `[start,end)`.

Plan slots and time logs use datetime bounds (UTC). Memberships use
date bounds (`YYYY-MM-DD`) with an empty upper bound for open-ended ranges.
"""
import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple

SLOT_MINUTES = 15

# Shape check used by request schemas: "[<something>,<something>)"
PERIOD_PATTERN = r"^\[.+,\s*.+\)$"

# Accepts optional quotes around the bounds and either bracket style
_RANGE_RE = re.compile(r'[\[\(]\s*"?([^",]+)"?\s*,\s*"?([^"\)\]]*)"?\s*[\)\]]')


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (also Postgres style `2024-01-01 10:00:00+00`) as aware UTC."""
    text = value.strip().replace(" ", "T", 1)
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    # "+00" / "-05" offsets without minutes
    text = re.sub(r"([+-]\d{2})$", r"\1:00", text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format like JavaScript's toISOString: millisecond precision, `Z` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_period(period: str) -> Tuple[datetime, datetime]:
    """Split `[start,end)` into UTC datetimes. Raises ValueError on malformed input."""
    match = _RANGE_RE.search(period or "")
    if not match or not match.group(2).strip():
        raise ValueError(f"Invalid range format: {period}")
    try:
        start = parse_timestamp(match.group(1))
        end = parse_timestamp(match.group(2))
    except ValueError as e:
        raise ValueError(f"Invalid dates in range: {period}") from e
    return start, end


def format_period(start: datetime, end: datetime) -> str:
    return f"[{format_timestamp(start)},{format_timestamp(end)})"


def is_aligned(value: datetime, minutes: int = SLOT_MINUTES) -> bool:
    """True when the timestamp sits exactly on a `minutes` boundary."""
    return value.minute % minutes == 0 and value.second == 0 and value.microsecond == 0


def round_to_interval(value: datetime, minutes: int = SLOT_MINUTES) -> datetime:
    """Round to the nearest `minutes` boundary; a remainder of half the interval or more rounds up."""
    floored = value.replace(minute=value.minute - value.minute % minutes, second=0, microsecond=0)
    remainder = value - floored
    if remainder >= timedelta(minutes=minutes) / 2:
        return floored + timedelta(minutes=minutes)
    return floored


def ranges_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # Half-open ranges: touching bounds do not overlap
    return a_start < b_end and b_start < a_end


def duration_minutes(start: datetime, end: datetime) -> int:
    return max(0, round((end - start).total_seconds() / 60))


# --- Date ranges (memberships) ---

def format_date_period(lower: str, upper: Optional[str]) -> str:
    return f"[{lower},{upper or ''})"


def date_in_period(day: str, lower: Optional[str], upper: Optional[str]) -> bool:
    """Membership activity test on ISO dates (lexicographic compare is chronological)."""
    if not lower:
        return False
    return lower <= day and (upper is None or day < upper)


def today_iso(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.date().isoformat()


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """First and last instant (millisecond precision) of a UTC day."""
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1) - timedelta(milliseconds=1)
