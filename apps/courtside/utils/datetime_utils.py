"""
Datetime utility functions.
Handles session date/time parsing, session instants, and match timestamps.
"""

import os
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

import pytz
from dotenv import load_dotenv

load_dotenv()

# Session dates and "HH:MM" times are interpreted in this timezone
SESSION_TIMEZONE = pytz.timezone(os.getenv("SESSION_TIMEZONE", "UTC"))


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def parse_session_date(date_input: Union[str, date]) -> date:
    """
    Parse a session date.

    Args:
        date_input: ISO date string ("2024-01-01") or date object

    Returns:
        date object

    Raises:
        ValueError: If the string is not an ISO date
    """
    if isinstance(date_input, datetime):
        return date_input.date()
    if isinstance(date_input, date):
        return date_input
    return datetime.strptime(date_input.strip(), "%Y-%m-%d").date()


def parse_session_time(time_input: str) -> time:
    """
    Parse an "HH:MM" session time.

    Raises:
        ValueError: If the string is not a valid 24h time
    """
    return datetime.strptime(time_input.strip(), "%H:%M").time()


def session_instant(session_date: date, session_time: str) -> datetime:
    """
    Combine a session date and "HH:MM" time into an aware UTC datetime.

    The pair is interpreted in SESSION_TIMEZONE.
    """
    local = SESSION_TIMEZONE.localize(
        datetime.combine(session_date, parse_session_time(session_time))
    )
    return local.astimezone(pytz.UTC)


def is_session_upcoming(
    session_date: date, end_time: str, now: Optional[datetime] = None
) -> bool:
    """A session is upcoming while its end instant is strictly after now."""
    now = now or utcnow()
    return session_instant(session_date, end_time) > ensure_utc(now)


def has_session_started(
    session_date: date, start_time: str, now: Optional[datetime] = None
) -> bool:
    """True once the start instant is at or before now."""
    now = now or utcnow()
    return session_instant(session_date, start_time) <= ensure_utc(now)


class MonotonicClock:
    """
    Issues strictly increasing UTC timestamps.

    Wall-clock readings that fail to move past the previous timestamp
    (same microsecond, or the system clock stepping backwards) are bumped
    to one microsecond after it.
    """

    def __init__(self):
        self._last: Optional[datetime] = None

    def now(self) -> datetime:
        current = utcnow()
        if self._last is not None and current <= self._last:
            current = self._last + timedelta(microseconds=1)
        self._last = current
        return current

    def reset(self) -> None:
        self._last = None


# Global singleton
_match_clock = MonotonicClock()


def get_match_clock() -> MonotonicClock:
    """Get the clock used to timestamp recorded matches."""
    return _match_clock
