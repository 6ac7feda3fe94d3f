"""
Participation service: join and leave rooms.

Capacity admission is a single conditional UPDATE on rooms executed in the
same transaction as the participant INSERT, so concurrent joins can never
push current_participants past max_participants.
"""

from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pickup.database.models import (
    NotificationType,
    ParticipantStatus,
    Room,
    RoomParticipant,
    RoomStatus,
    User,
)
from pickup.models.schemas import ParticipantResponse
from pickup.services import notification_service
from pickup.services.outcome import ErrorKind, ServiceError, service_operation
from pickup.services.realtime_service import ChangeEvent, ChangeSignal, queue_change
from pickup.utils.datetime_utils import utcnow
import logging

logger = logging.getLogger(__name__)


async def _read_room(session: AsyncSession, room_id: int) -> Optional[Room]:
    """Fresh read of the room row, overwriting any copy held by the session."""
    result = await session.execute(
        select(Room).where(Room.id == room_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _admission_error(room: Optional[Room], room_id: int, user_id: str) -> Optional[ServiceError]:
    """Classify why a user may not join the room, or None if admission is allowed."""
    if room is None:
        return ServiceError(ErrorKind.NOT_FOUND, f"Room {room_id} not found")
    if room.host_id == user_id:
        return ServiceError(ErrorKind.ALREADY_HOST, "The host is already a member of this room")
    if room.status != RoomStatus.RECRUITING.value:
        return ServiceError(ErrorKind.NOT_RECRUITING, f"Room {room_id} is {room.status}")
    if room.current_participants >= room.max_participants:
        return ServiceError(ErrorKind.ROOM_FULL, f"Room {room_id} is full")
    return None


async def _approved_membership(
    session: AsyncSession, room_id: int, user_id: str
) -> Optional[RoomParticipant]:
    result = await session.execute(
        select(RoomParticipant).where(
            RoomParticipant.room_id == room_id,
            RoomParticipant.user_id == user_id,
            RoomParticipant.status == ParticipantStatus.APPROVED.value,
        )
    )
    return result.scalars().first()


def _participants_signal(room_id: int, event: ChangeEvent, row_id) -> ChangeSignal:
    return ChangeSignal(
        table="room_participants", event=event, row_id=row_id, values={"room_id": room_id}
    )


async def _notify_join(session: AsyncSession, room: Room, user_id: str) -> None:
    """Join notifications for host and joiner, plus room_full when the last seat went."""
    result = await session.execute(select(User.nickname).where(User.id == user_id))
    nickname = result.scalar_one_or_none() or "새 참가자"

    notifications = [
        {
            "user_id": room.host_id,
            "type": NotificationType.JOIN_REQUEST.value,
            "title": "새 참가자",
            "body": f"{nickname}님이 '{room.title}'에 참가했습니다.",
            "room_id": room.id,
        },
        {
            "user_id": user_id,
            "type": NotificationType.APPROVED.value,
            "title": "참가 확정",
            "body": f"'{room.title}' 참가가 확정되었습니다.",
            "room_id": room.id,
        },
    ]
    if room.current_participants >= room.max_participants:
        notifications.append(
            {
                "user_id": room.host_id,
                "type": NotificationType.ROOM_FULL.value,
                "title": "모집 완료",
                "body": f"'{room.title}' 인원이 모두 찼습니다.",
                "room_id": room.id,
            }
        )
    try:
        await notification_service.create_notifications_bulk(session, notifications)
    except ValueError as e:
        logger.warning(f"Skipping join notifications for room {room.id}: {e}")


@service_operation
async def join_room(session: AsyncSession, room_id: int, user_id: str) -> ParticipantResponse:
    """
    Admit a user into a recruiting room.

    Args:
        session: Database session
        room_id: Room to join
        user_id: Joining user

    Returns:
        Outcome with the approved ParticipantResponse, or one of NotFound,
        AlreadyHost, NotRecruiting, RoomFull, AlreadyJoined, PersistenceFailure
    """
    room = await _read_room(session, room_id)
    error = _admission_error(room, room_id, user_id)
    if error is not None:
        raise error
    if await _approved_membership(session, room_id, user_id) is not None:
        raise ServiceError(ErrorKind.ALREADY_JOINED, f"Already joined room {room_id}")

    participant = RoomParticipant(
        room_id=room_id,
        user_id=user_id,
        status=ParticipantStatus.APPROVED.value,
        joined_at=utcnow(),
    )
    try:
        # Seat and membership row commit or roll back together
        async with session.begin_nested():
            result = await session.execute(
                update(Room)
                .where(
                    Room.id == room_id,
                    Room.status == RoomStatus.RECRUITING.value,
                    Room.current_participants < Room.max_participants,
                )
                .values(current_participants=Room.current_participants + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # Lost the race for the last seat, or the host changed status meanwhile
                room = await _read_room(session, room_id)
                error = _admission_error(room, room_id, user_id)
                raise error or ServiceError(ErrorKind.ROOM_FULL, f"Room {room_id} is full")

            session.add(participant)
            await session.flush()
    except IntegrityError:
        # A concurrent join by the same user won the active-membership index
        logger.info(f"Duplicate join by {user_id} for room {room_id} rolled back")
        raise ServiceError(ErrorKind.ALREADY_JOINED, f"Already joined room {room_id}")

    room = await _read_room(session, room_id)
    await _notify_join(session, room, user_id)
    queue_change(session, _participants_signal(room_id, ChangeEvent.INSERT, participant.id))
    logger.info(
        f"User {user_id} joined room {room_id} "
        f"({room.current_participants}/{room.max_participants})"
    )

    result = await session.execute(
        select(RoomParticipant)
        .options(selectinload(RoomParticipant.user))
        .where(RoomParticipant.id == participant.id)
    )
    return ParticipantResponse.model_validate(result.scalar_one())


@service_operation
async def leave_room(session: AsyncSession, room_id: int, user_id: str) -> None:
    """
    Remove the caller's approved membership and release their seat.

    Leaving without an approved membership fails with NotParticipant and
    writes nothing, so repeated calls can never drive the counter down.
    The counter never drops below 1 (the host's seat).
    """
    room = await _read_room(session, room_id)
    if room is None:
        raise ServiceError(ErrorKind.NOT_FOUND, f"Room {room_id} not found")

    result = await session.execute(
        delete(RoomParticipant)
        .where(
            RoomParticipant.room_id == room_id,
            RoomParticipant.user_id == user_id,
            RoomParticipant.status == ParticipantStatus.APPROVED.value,
        )
        .execution_options(synchronize_session="evaluate")
    )
    removed = result.rowcount or 0
    if removed == 0:
        raise ServiceError(
            ErrorKind.NOT_PARTICIPANT, f"User {user_id} is not a participant of room {room_id}"
        )

    await session.execute(
        update(Room)
        .where(Room.id == room_id, Room.current_participants > 1)
        .values(current_participants=Room.current_participants - 1)
        .execution_options(synchronize_session=False)
    )

    queue_change(session, _participants_signal(room_id, ChangeEvent.DELETE, None))
    logger.info(f"User {user_id} left room {room_id}")
    return None
