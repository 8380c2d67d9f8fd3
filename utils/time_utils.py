"""
utils/time_utils.py

Purpose: Time and expiry helpers

- OTP expiry calculations
- Calendar month arithmetic for subscriptions
- Timestamp utilities
"""

import calendar
from datetime import datetime, date, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Naive UTC timestamp, the form Motor returns for stored datetimes.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def calculate_otp_expiry(otp_time: datetime, validity_minutes: int = 10) -> datetime:
    """
    Calculates OTP expiry timestamp.
    """
    return otp_time + timedelta(minutes=validity_minutes)


def is_expired(expires_at: Optional[datetime]) -> bool:
    """
    Checks if a stored expiry timestamp has passed.
    """
    if not expires_at:
        return True
    if expires_at.tzinfo is not None:
        expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
    return utc_now() > expires_at


def add_months(value: datetime, months: int) -> datetime:
    """
    Adds calendar months, clamping the day to the target month's length.

    add_months(2024-01-31, 1) -> 2024-02-29
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def parse_iso_date(value: str) -> Optional[datetime]:
    """
    Parses "YYYY-MM-DD" (or a full ISO timestamp) into a naive UTC midnight.

    Returns:
        datetime at 00:00 UTC, or None if the value is not a date
    """
    if not value:
        return None
    try:
        parsed = date.fromisoformat(value[:10])
    except ValueError:
        return None
    return datetime(parsed.year, parsed.month, parsed.day)


def start_of_today() -> datetime:
    now = utc_now()
    return datetime(now.year, now.month, now.day)


def format_timestamp(dt: Optional[datetime], format_str: str = "%Y-%m-%d %H:%M:%S") -> str:
    """
    Formats a datetime object to string.
    """
    if not dt:
        return "N/A"
    return dt.strftime(format_str)
