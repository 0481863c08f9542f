from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Optional, Tuple

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Days represented by each insight timeframe (used for engagement-rate denominators).
TIMEFRAME_DAYS = {
    "week": 7,
    "month": 30,
    "all": 365,
}


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def safe_parse_datetime(value: Any) -> Optional[datetime]:
    """Robustly parse a datetime from various inputs (str, date, datetime, epoch seconds)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time(), tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        raw = value.strip()
        # JavaScript clients send a trailing "Z"
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return ensure_aware(datetime.fromisoformat(raw))
        except ValueError:
            try:
                d = datetime.strptime(raw, "%Y-%m-%d").date()
                return datetime.combine(d, datetime.min.time(), tzinfo=timezone.utc)
            except ValueError:
                pass
    return None


def local_date(dt: datetime, tz: tzinfo) -> date:
    """Calendar date of ``dt`` in the user's logical day boundary."""
    return ensure_aware(dt).astimezone(tz).date()


def day_key(dt: datetime, tz: tzinfo) -> str:
    return local_date(dt, tz).isoformat()


def iso_week_number(d: date) -> Tuple[int, int]:
    """Return ``(iso_year, week)`` for ``d``.

    Shift the date to the Thursday of its Monday-based week; that Thursday's
    year is the ISO year, and its day-of-year divided by 7 (rounded up) is
    the week number.
    """
    iso_weekday = d.weekday() + 1  # Monday=1 .. Sunday=7
    thursday = d + timedelta(days=4 - iso_weekday)
    day_of_year = thursday.timetuple().tm_yday
    return thursday.year, (day_of_year - 1) // 7 + 1


def sunday_index(d: date) -> int:
    """Index of ``d`` in a Sunday..Saturday week (Sunday=0)."""
    return (d.weekday() + 1) % 7


def lookback_start(days: int, now: datetime) -> datetime:
    """Start of a trailing window of ``days`` days ending at ``now``."""
    return ensure_aware(now) - timedelta(days=max(1, int(days)))


def timeframe_start(timeframe: Optional[str], now: datetime) -> datetime:
    """Parse an insight timeframe to the start of its window.

    - week: last 7 days
    - month: last 30 days
    - all: since the epoch
    Unknown values fall back to ``month``.
    """
    key = (timeframe or "month").lower()
    if key == "all":
        return EPOCH
    if key == "week":
        return lookback_start(7, now)
    return lookback_start(30, now)
