"""
User profile and sport preference service.

Users are created on first sign-in with the id issued by the auth provider.
Sport preferences are replaced wholesale on every save.
"""

from typing import Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pickup.database.models import ParticipantStatus, Room, RoomParticipant, Sport, User, UserSport
from pickup.models.schemas import UserSportSelection
import logging

logger = logging.getLogger(__name__)


async def get_user_by_id(session: AsyncSession, user_id: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def ensure_user(
    session: AsyncSession, user_id: str, nickname: str, region: Optional[str] = None
) -> User:
    """
    Return the user row, creating it on first sign-in.

    Args:
        session: Database session
        user_id: Id issued by the auth provider
        nickname: Already validated nickname used when the row is created
        region: Optional region text

    Returns:
        The existing or newly created User
    """
    user = await get_user_by_id(session, user_id)
    if user is not None:
        return user

    user = User(id=user_id, nickname=nickname, region=region)
    session.add(user)
    await session.flush()
    await session.refresh(user)
    logger.info(f"Created user {user_id}")
    return user


async def update_profile(
    session: AsyncSession,
    user_id: str,
    nickname: str,
    region: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> User:
    """
    Update nickname, region and (when given) avatar URL.

    Raises:
        ValueError: If the user does not exist
    """
    user = await get_user_by_id(session, user_id)
    if user is None:
        raise ValueError("User not found")

    user.nickname = nickname
    user.region = region
    if avatar_url is not None:
        user.avatar_url = avatar_url
    await session.flush()
    await session.refresh(user)
    return user


async def set_avatar_url(session: AsyncSession, user_id: str, avatar_url: str) -> Optional[str]:
    """
    Store a new avatar URL.

    Returns:
        The previous avatar URL (so the caller can delete the old object), or None

    Raises:
        ValueError: If the user does not exist
    """
    user = await get_user_by_id(session, user_id)
    if user is None:
        raise ValueError("User not found")
    previous = user.avatar_url
    user.avatar_url = avatar_url
    await session.flush()
    return previous


async def get_user_stats(session: AsyncSession, user_id: str) -> Dict[str, int]:
    """Number of rooms hosted and approved memberships."""
    hosted = await session.execute(select(func.count(Room.id)).where(Room.host_id == user_id))
    participated = await session.execute(
        select(func.count(RoomParticipant.id)).where(
            RoomParticipant.user_id == user_id,
            RoomParticipant.status == ParticipantStatus.APPROVED.value,
        )
    )
    return {
        "hosted_count": hosted.scalar_one() or 0,
        "participated_count": participated.scalar_one() or 0,
    }


# ============================================================================
# Sport preferences
# ============================================================================


async def get_user_sports(session: AsyncSession, user_id: str) -> List[UserSport]:
    result = await session.execute(
        select(UserSport)
        .options(selectinload(UserSport.sport))
        .where(UserSport.user_id == user_id)
        .order_by(UserSport.id)
    )
    return list(result.scalars().all())


async def save_user_sports(
    session: AsyncSession, user_id: str, selections: List[UserSportSelection]
) -> List[UserSport]:
    """
    Replace all of a user's sport preferences.

    Existing rows are deleted and the new selection inserted in the same
    transaction. An empty selection clears the preferences.

    Raises:
        ValueError: On duplicate sport ids or unknown sports
    """
    sport_ids = [s.sport_id for s in selections]
    if len(set(sport_ids)) != len(sport_ids):
        raise ValueError("Each sport can only be selected once")

    if sport_ids:
        result = await session.execute(select(Sport.id).where(Sport.id.in_(sport_ids)))
        known = set(result.scalars().all())
        missing = sorted(set(sport_ids) - known)
        if missing:
            raise ValueError(f"Unknown sport ids: {missing}")

    await session.execute(
        delete(UserSport)
        .where(UserSport.user_id == user_id)
        .execution_options(synchronize_session="evaluate")
    )
    session.add_all(
        [
            UserSport(user_id=user_id, sport_id=s.sport_id, skill_level=s.skill_level)
            for s in selections
        ]
    )
    await session.flush()
    logger.info(f"Saved {len(selections)} sport preferences for user {user_id}")
    return await get_user_sports(session, user_id)


async def remove_user_sport(session: AsyncSession, user_id: str, sport_id: int) -> bool:
    """Remove one sport preference. Returns False if the user did not have it."""
    result = await session.execute(
        delete(UserSport)
        .where(UserSport.user_id == user_id, UserSport.sport_id == sport_id)
        .execution_options(synchronize_session="evaluate")
    )
    await session.flush()
    return (result.rowcount or 0) > 0
