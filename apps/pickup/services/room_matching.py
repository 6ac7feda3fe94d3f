"""
Pure room filter predicates used by listing and search.

None of these touch the database; callers pass already-loaded rooms (ORM
objects or read models, anything with the room attributes).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from pickup.database.models import RoomStatus
from pickup.utils.datetime_utils import ensure_utc


@dataclass(frozen=True)
class RoomFilter:
    """Search criteria. Unset fields do not constrain the result."""

    sport_id: Optional[int] = None
    skill_level: Optional[int] = None
    text: Optional[str] = None


def matches_skill_level(room, level: int) -> bool:
    """True iff the room's inclusive skill range contains level."""
    return room.min_skill_level <= level <= room.max_skill_level


def is_upcoming_and_recruiting(room, now: datetime) -> bool:
    status = room.status.value if isinstance(room.status, RoomStatus) else room.status
    return status == RoomStatus.RECRUITING.value and ensure_utc(room.play_date) >= ensure_utc(now)


def matches_title(room, text: str) -> bool:
    """Case-insensitive substring match on the title. Blank text matches everything."""
    needle = text.strip().casefold()
    if not needle:
        return True
    return needle in (room.title or "").casefold()


def matches_filter(room, room_filter: RoomFilter, now: datetime) -> bool:
    if not is_upcoming_and_recruiting(room, now):
        return False
    if room_filter.sport_id is not None and room.sport_id != room_filter.sport_id:
        return False
    if room_filter.skill_level is not None and not matches_skill_level(
        room, room_filter.skill_level
    ):
        return False
    if room_filter.text is not None and not matches_title(room, room_filter.text):
        return False
    return True


def filter_rooms(rooms: Iterable, room_filter: RoomFilter, now: datetime) -> List:
    """Apply the combined filter and order the survivors by play_date ascending."""
    matched = [room for room in rooms if matches_filter(room, room_filter, now)]
    matched.sort(key=lambda room: ensure_utc(room.play_date))
    return matched
