"""
Timezone conversion and display formatting for reminder messages.
"""

from datetime import datetime

import pytz


def to_local(utc_dt: datetime, tz_name: str) -> datetime:
    """
    Convert a UTC datetime to the given timezone.

    Naive datetimes are treated as UTC; unknown timezones fall back to UTC.
    """
    if utc_dt.tzinfo is None:
        utc_dt = pytz.UTC.localize(utc_dt)

    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        tz = pytz.UTC

    return utc_dt.astimezone(tz)


def format_session_date(utc_dt: datetime, tz_name: str) -> str:
    """
    Format a session start as a long date.

    Returns:
        Formatted string like "Saturday, October 17, 2026"
    """
    local_dt = to_local(utc_dt, tz_name)
    return f"{local_dt.strftime('%A, %B')} {local_dt.day}, {local_dt.year}"


def format_session_time(utc_dt: datetime, tz_name: str) -> str:
    """
    Format a session start as a 12-hour clock time.

    Returns:
        Formatted string like "3:00 PM" (not "03:00 PM")
    """
    local_dt = to_local(utc_dt, tz_name)
    return local_dt.strftime("%I:%M %p").lstrip("0")
