"""
Room status transitions and deletion. Host-only.

    recruiting -> closed | cancelled
    closed     -> cancelled

completed and cancelled are terminal. No public operation moves a room
into completed.
"""

from typing import Dict, FrozenSet, List

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from pickup.database.models import (
    NotificationType,
    ParticipantStatus,
    Room,
    RoomParticipant,
    RoomStatus,
)
from pickup.services import notification_service
from pickup.services.outcome import ErrorKind, ServiceError, service_operation
from pickup.services.realtime_service import ChangeEvent, ChangeSignal, queue_change
import logging

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[RoomStatus, FrozenSet[RoomStatus]] = {
    RoomStatus.RECRUITING: frozenset({RoomStatus.CLOSED, RoomStatus.CANCELLED}),
    RoomStatus.CLOSED: frozenset({RoomStatus.CANCELLED}),
    RoomStatus.COMPLETED: frozenset(),
    RoomStatus.CANCELLED: frozenset(),
}


def can_transition(current: RoomStatus, new: RoomStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(RoomStatus(current), frozenset())


async def _get_hosted_room(session: AsyncSession, room_id: int, acting_user_id: str) -> Room:
    result = await session.execute(
        select(Room).where(Room.id == room_id).execution_options(populate_existing=True)
    )
    room = result.scalar_one_or_none()
    if room is None:
        raise ServiceError(ErrorKind.NOT_FOUND, f"Room {room_id} not found")
    if room.host_id != acting_user_id:
        raise ServiceError(ErrorKind.FORBIDDEN, "Only the host can manage this room")
    return room


async def _approved_user_ids(session: AsyncSession, room_id: int) -> List[str]:
    result = await session.execute(
        select(RoomParticipant.user_id).where(
            RoomParticipant.room_id == room_id,
            RoomParticipant.status == ParticipantStatus.APPROVED.value,
        )
    )
    return list(result.scalars().all())


async def _notify_cancelled(session: AsyncSession, room: Room) -> None:
    user_ids = await _approved_user_ids(session, room.id)
    if not user_ids:
        return
    try:
        await notification_service.create_notifications_bulk(
            session,
            [
                {
                    "user_id": user_id,
                    "type": NotificationType.ROOM_CANCELLED.value,
                    "title": "모임 취소",
                    "body": f"'{room.title}' 모임이 취소되었습니다.",
                    "room_id": room.id,
                }
                for user_id in user_ids
            ],
        )
    except ValueError as e:
        logger.warning(f"Skipping cancel notifications for room {room.id}: {e}")


@service_operation
async def update_room_status(
    session: AsyncSession, room_id: int, new_status: RoomStatus, acting_user_id: str
) -> RoomStatus:
    """
    Move a room to a new status.

    Args:
        session: Database session
        room_id: Room to update
        new_status: Target status
        acting_user_id: Caller; must be the room's host

    Returns:
        Outcome with the new status, or NotFound / Forbidden / InvalidTransition
    """
    try:
        new_status = RoomStatus(new_status)
    except ValueError:
        raise ServiceError(ErrorKind.VALIDATION_FAILURE, f"Unknown room status: {new_status}")

    room = await _get_hosted_room(session, room_id, acting_user_id)
    current = RoomStatus(room.status)
    if not can_transition(current, new_status):
        raise ServiceError(
            ErrorKind.INVALID_TRANSITION,
            f"Cannot change room {room_id} from {current.value} to {new_status.value}",
        )

    room.status = new_status.value
    await session.flush()

    if new_status == RoomStatus.CANCELLED:
        await _notify_cancelled(session, room)

    queue_change(
        session,
        ChangeSignal(
            table="rooms",
            event=ChangeEvent.UPDATE,
            row_id=room_id,
            values={"id": room_id, "sport_id": room.sport_id, "host_id": room.host_id},
        ),
    )
    logger.info(f"Room {room_id} status {current.value} -> {new_status.value}")
    return new_status


@service_operation
async def delete_room(session: AsyncSession, room_id: int, acting_user_id: str) -> None:
    """
    Delete a cancelled room together with its participant rows.

    Returns:
        Outcome with no data, or NotFound / Forbidden / InvalidTransition
        when the room is not cancelled
    """
    room = await _get_hosted_room(session, room_id, acting_user_id)
    if room.status != RoomStatus.CANCELLED.value:
        raise ServiceError(
            ErrorKind.INVALID_TRANSITION,
            f"Room {room_id} must be cancelled before it can be deleted",
        )

    await session.execute(
        delete(RoomParticipant)
        .where(RoomParticipant.room_id == room_id)
        .execution_options(synchronize_session="evaluate")
    )
    await session.execute(
        delete(Room).where(Room.id == room_id).execution_options(synchronize_session="evaluate")
    )
    await session.flush()

    queue_change(
        session,
        ChangeSignal(
            table="rooms",
            event=ChangeEvent.DELETE,
            row_id=room_id,
            values={"id": room_id, "host_id": acting_user_id},
        ),
    )
    logger.info(f"Room {room_id} deleted by host {acting_user_id}")
    return None
