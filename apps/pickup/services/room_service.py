"""
Room service: create rooms and read them back as RoomSummary / RoomDetail.

Every public operation returns an Outcome (see services.outcome). Read
models are composed here, in one place, from eagerly loaded base entities.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pickup.database.models import (
    ParticipantStatus,
    Room,
    RoomParticipant,
    RoomStatus,
    Sport,
)
from pickup.models.schemas import MyRoomsResponse, RoomCreate, RoomDetail, RoomSummary
from pickup.services.outcome import ErrorKind, ServiceError, service_operation
from pickup.services.realtime_service import ChangeEvent, ChangeSignal, queue_change
from pickup.services.room_matching import RoomFilter, filter_rooms
from pickup.utils import constants
from pickup.utils.datetime_utils import ensure_utc, utcnow
import logging

logger = logging.getLogger(__name__)


def _summary_query():
    return (
        select(Room)
        .options(selectinload(Room.sport), selectinload(Room.host))
        .execution_options(populate_existing=True)
    )


def _to_summaries(rooms) -> List[RoomSummary]:
    return [RoomSummary.model_validate(room) for room in rooms]


def validate_room_input(room_input: RoomCreate, now: Optional[datetime] = None) -> None:
    """
    Check the creation preconditions that do not need the database.

    Raises:
        ServiceError(ValidationFailure) naming the first violated rule
    """
    now = now or utcnow()

    def fail(message: str):
        raise ServiceError(ErrorKind.VALIDATION_FAILURE, message)

    if not (room_input.title or "").strip():
        fail("title is required")
    if not room_input.location_name:
        fail("location_name is required")
    if ensure_utc(room_input.play_date) <= now:
        fail("play_date must be in the future")
    if room_input.max_participants < constants.MIN_ROOM_CAPACITY:
        fail(f"max_participants must be at least {constants.MIN_ROOM_CAPACITY}")
    if room_input.cost_per_person < 0:
        fail("cost_per_person must not be negative")
    for name in ("min_skill_level", "max_skill_level"):
        level = getattr(room_input, name)
        if not constants.SKILL_LEVEL_MIN <= level <= constants.SKILL_LEVEL_MAX:
            fail(
                f"{name} must be between {constants.SKILL_LEVEL_MIN} "
                f"and {constants.SKILL_LEVEL_MAX}"
            )
    if room_input.min_skill_level > room_input.max_skill_level:
        fail("min_skill_level must not exceed max_skill_level")


@service_operation
async def create_room(session: AsyncSession, room_input: RoomCreate, host_id: str) -> RoomSummary:
    """
    Persist a new recruiting room with the host counted as its first member.

    Args:
        session: Database session
        room_input: Host submission
        host_id: User creating the room

    Returns:
        Outcome with the created RoomSummary, or ValidationFailure / PersistenceFailure
    """
    validate_room_input(room_input)

    result = await session.execute(select(Sport).where(Sport.id == room_input.sport_id))
    sport = result.scalar_one_or_none()
    if sport is None or not sport.is_active:
        raise ServiceError(ErrorKind.VALIDATION_FAILURE, "sport_id must reference an active sport")

    play_date = ensure_utc(room_input.play_date)

    room = Room(
        host_id=host_id,
        sport_id=sport.id,
        title=room_input.title.strip(),
        description=room_input.description,
        location_name=room_input.location_name,
        location_address=room_input.location_address,
        latitude=room_input.latitude,
        longitude=room_input.longitude,
        play_date=play_date,
        max_participants=room_input.max_participants,
        current_participants=1,
        cost_per_person=room_input.cost_per_person,
        min_skill_level=room_input.min_skill_level,
        max_skill_level=room_input.max_skill_level,
        status=RoomStatus.RECRUITING.value,
    )
    session.add(room)
    await session.flush()

    queue_change(
        session,
        ChangeSignal(
            table="rooms",
            event=ChangeEvent.INSERT,
            row_id=room.id,
            values={"id": room.id, "sport_id": room.sport_id, "host_id": host_id},
        ),
    )
    logger.info(f"Room {room.id} created by {host_id} for {room.play_date.isoformat()}")

    result = await session.execute(_summary_query().where(Room.id == room.id))
    return RoomSummary.model_validate(result.scalar_one())


@service_operation
async def get_rooms_by_sport(session: AsyncSession, sport_id: int) -> List[RoomSummary]:
    """Recruiting rooms of one sport that have not started yet, soonest first."""
    result = await session.execute(
        _summary_query()
        .where(
            Room.sport_id == sport_id,
            Room.status == RoomStatus.RECRUITING.value,
            Room.play_date >= utcnow(),
        )
        .order_by(Room.play_date.asc(), Room.id.asc())
    )
    return _to_summaries(result.scalars().all())


@service_operation
async def get_recruiting_rooms(
    session: AsyncSession, limit: int = constants.RECRUITING_FEED_LIMIT
) -> List[RoomSummary]:
    """Recruiting rooms of any sport for the home feed, soonest first."""
    result = await session.execute(
        _summary_query()
        .where(Room.status == RoomStatus.RECRUITING.value, Room.play_date >= utcnow())
        .order_by(Room.play_date.asc(), Room.id.asc())
        .limit(limit)
    )
    return _to_summaries(result.scalars().all())


@service_operation
async def search_rooms(session: AsyncSession, room_filter: RoomFilter) -> List[RoomSummary]:
    """
    Combined room search.

    Sport and title narrowing happen in SQL; the final decision, including
    skill-range containment, is made by room_matching.filter_rooms.
    """
    now = utcnow()
    query = _summary_query().where(
        Room.status == RoomStatus.RECRUITING.value, Room.play_date >= now
    )
    if room_filter.sport_id is not None:
        query = query.where(Room.sport_id == room_filter.sport_id)
    if room_filter.text and room_filter.text.strip():
        query = query.where(Room.title.ilike(f"%{room_filter.text.strip()}%"))
    if room_filter.skill_level is not None:
        query = query.where(
            Room.min_skill_level <= room_filter.skill_level,
            Room.max_skill_level >= room_filter.skill_level,
        )

    result = await session.execute(query.order_by(Room.play_date.asc(), Room.id.asc()))
    return _to_summaries(filter_rooms(result.scalars().all(), room_filter, now))


async def load_room_detail(session: AsyncSession, room_id: int) -> Optional[RoomDetail]:
    """Load a room with all participant rows. Plain helper, no Outcome."""
    result = await session.execute(
        _summary_query()
        .options(selectinload(Room.participants).selectinload(RoomParticipant.user))
        .where(Room.id == room_id)
    )
    room = result.scalar_one_or_none()
    if room is None:
        return None
    detail = RoomDetail.model_validate(room)
    detail.participants.sort(key=lambda p: (ensure_utc(p.joined_at) or utcnow(), p.id))
    return detail


@service_operation
async def get_room_detail(session: AsyncSession, room_id: int) -> RoomDetail:
    """Room with its sport, host and every participant row regardless of status."""
    detail = await load_room_detail(session, room_id)
    if detail is None:
        raise ServiceError(ErrorKind.NOT_FOUND, f"Room {room_id} not found")
    return detail


@service_operation
async def get_my_rooms(session: AsyncSession, user_id: str) -> MyRoomsResponse:
    """
    Rooms the user hosts and rooms the user holds an approved membership in.

    The participating list is resolved in two steps: approved room ids
    first, then the rooms themselves. Both lists are ordered by play_date.
    """
    hosted_result = await session.execute(
        _summary_query()
        .where(Room.host_id == user_id)
        .order_by(Room.play_date.asc(), Room.id.asc())
    )
    hosted = _to_summaries(hosted_result.scalars().all())

    ids_result = await session.execute(
        select(RoomParticipant.room_id).where(
            RoomParticipant.user_id == user_id,
            RoomParticipant.status == ParticipantStatus.APPROVED.value,
        )
    )
    room_ids = list(set(ids_result.scalars().all()))

    participating: List[RoomSummary] = []
    if room_ids:
        rooms_result = await session.execute(
            _summary_query()
            .where(Room.id.in_(room_ids))
            .order_by(Room.play_date.asc(), Room.id.asc())
        )
        participating = _to_summaries(rooms_result.scalars().all())

    return MyRoomsResponse(hosted=hosted, participating=participating)
