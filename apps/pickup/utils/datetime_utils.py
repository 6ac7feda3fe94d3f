"""
Datetime utility functions.
Provides UTC helpers and the display formats used for rooms.
"""

from datetime import datetime
from typing import Optional
import pytz

WEEKDAY_LABELS = ["월", "화", "수", "목", "금", "토", "일"]

DISPLAY_TIMEZONE = pytz.timezone("Asia/Seoul")


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to timezone-aware UTC.

    Naive values are interpreted as UTC (SQLite drops tzinfo on the way
    back out); aware values are converted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def to_display_time(value: datetime) -> datetime:
    """Convert a stored UTC timestamp to the local display timezone."""
    return ensure_utc(value).astimezone(DISPLAY_TIMEZONE)


def format_room_card_header(sport_icon: str, sport_name: str, play_date: datetime) -> str:
    """Card header text, e.g. "⚽ 축구 · 2/28(토) 19:00"."""
    local = to_display_time(play_date)
    weekday = WEEKDAY_LABELS[local.weekday()]
    return (
        f"{sport_icon} {sport_name} · {local.month}/{local.day}({weekday}) "
        f"{local.hour:02d}:{local.minute:02d}"
    )
