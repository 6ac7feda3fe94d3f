"""
Notification service for managing user notifications.

Handles creation, retrieval, and read-status updates for in-app
notifications. Each new notification queues a realtime signal for its user.
"""

from typing import List, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from pickup.database.models import Notification
from pickup.services.realtime_service import ChangeEvent, ChangeSignal, queue_change
from pickup.utils import constants
import logging

logger = logging.getLogger(__name__)


def _notification_to_dict(notification: Notification) -> Dict:
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type,
        "title": notification.title,
        "body": notification.body,
        "room_id": notification.room_id,
        "is_read": notification.is_read,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


async def create_notification(
    session: AsyncSession,
    user_id: str,
    type: str,
    title: str,
    body: Optional[str] = None,
    room_id: Optional[int] = None,
) -> Dict:
    """
    Create a single notification for a user.

    Args:
        session: Database session
        user_id: ID of the user to notify
        type: Notification type (NotificationType enum value)
        title: Notification title
        body: Optional body text
        room_id: Optional room the notification refers to

    Returns:
        Dict containing the created notification data

    Raises:
        ValueError: If required fields are missing
    """
    if not user_id:
        raise ValueError("user_id is required")
    if not type:
        raise ValueError("type is required")
    if not title:
        raise ValueError("title is required")

    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        body=body,
        room_id=room_id,
        is_read=False,
    )
    session.add(notification)
    await session.flush()
    await session.refresh(notification)

    queue_change(
        session,
        ChangeSignal(
            table="notifications",
            event=ChangeEvent.INSERT,
            row_id=notification.id,
            values={"user_id": user_id},
        ),
    )
    return _notification_to_dict(notification)


async def create_notifications_bulk(
    session: AsyncSession, notifications_list: List[Dict]
) -> List[Dict]:
    """
    Create several notifications at once.

    Args:
        session: Database session
        notifications_list: Dicts with user_id, type, title and optional body/room_id

    Returns:
        List of created notification dicts
    """
    if not notifications_list:
        return []

    notification_objects = []
    for notif_data in notifications_list:
        if not notif_data.get("user_id"):
            raise ValueError("user_id is required for all notifications")
        if not notif_data.get("type"):
            raise ValueError("type is required for all notifications")
        if not notif_data.get("title"):
            raise ValueError("title is required for all notifications")
        notification_objects.append(
            Notification(
                user_id=notif_data["user_id"],
                type=notif_data["type"],
                title=notif_data["title"],
                body=notif_data.get("body"),
                room_id=notif_data.get("room_id"),
                is_read=False,
            )
        )

    session.add_all(notification_objects)
    await session.flush()
    for notif in notification_objects:
        await session.refresh(notif)
        queue_change(
            session,
            ChangeSignal(
                table="notifications",
                event=ChangeEvent.INSERT,
                row_id=notif.id,
                values={"user_id": notif.user_id},
            ),
        )

    return [_notification_to_dict(notif) for notif in notification_objects]


async def get_user_notifications(
    session: AsyncSession, user_id: str, limit: int = constants.NOTIFICATION_PAGE_LIMIT
) -> List[Dict]:
    """
    Fetch a user's most recent notifications, newest first.

    Args:
        session: Database session
        user_id: ID of the user
        limit: Maximum number of notifications to return (default: 50)
    """
    result = await session.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return [_notification_to_dict(n) for n in result.scalars().all()]


async def mark_as_read(session: AsyncSession, notification_id: int, user_id: str) -> Dict:
    """
    Mark a single notification as read.

    Raises:
        ValueError: If the notification does not exist or belongs to someone else
    """
    result = await session.execute(
        select(Notification).where(Notification.id == notification_id)
    )
    notification = result.scalar_one_or_none()
    if notification is None or notification.user_id != user_id:
        raise ValueError("Notification not found")

    if not notification.is_read:
        notification.is_read = True
        await session.flush()
    return _notification_to_dict(notification)


async def mark_all_as_read(session: AsyncSession, user_id: str) -> int:
    """Mark every unread notification of a user as read. Returns the number updated."""
    result = await session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
        .values(is_read=True)
        .execution_options(synchronize_session="evaluate")
    )
    await session.flush()
    return result.rowcount or 0


async def get_unread_count(session: AsyncSession, user_id: str) -> int:
    result = await session.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read == False,  # noqa: E712
        )
    )
    return result.scalar_one() or 0
