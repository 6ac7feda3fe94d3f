"""
Favourite places saved from place search.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pickup.database.models import FavoritePlace
from pickup.models.schemas import FavoritePlaceCreate
import logging

logger = logging.getLogger(__name__)


async def list_favorite_places(session: AsyncSession, user_id: str) -> List[FavoritePlace]:
    """Favourites of a user, newest first."""
    result = await session.execute(
        select(FavoritePlace)
        .where(FavoritePlace.user_id == user_id)
        .order_by(FavoritePlace.created_at.desc(), FavoritePlace.id.desc())
    )
    return list(result.scalars().all())


async def add_favorite_place(
    session: AsyncSession, user_id: str, place: FavoritePlaceCreate
) -> FavoritePlace:
    favorite = FavoritePlace(user_id=user_id, **place.model_dump())
    session.add(favorite)
    await session.flush()
    await session.refresh(favorite)
    logger.info(f"User {user_id} saved favourite place {favorite.id}")
    return favorite


async def remove_favorite_place(session: AsyncSession, user_id: str, favorite_id: int) -> None:
    """
    Delete a favourite owned by the user.

    Raises:
        ValueError: If it does not exist or belongs to another user
    """
    result = await session.execute(select(FavoritePlace).where(FavoritePlace.id == favorite_id))
    favorite = result.scalar_one_or_none()
    if favorite is None or favorite.user_id != user_id:
        raise ValueError("Favorite place not found")
    await session.delete(favorite)
    await session.flush()
