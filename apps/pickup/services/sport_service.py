"""
Sports catalog reads.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pickup.database.models import Sport


async def list_active_sports(session: AsyncSession) -> List[Sport]:
    result = await session.execute(
        select(Sport).where(Sport.is_active == True).order_by(Sport.name)  # noqa: E712
    )
    return list(result.scalars().all())


async def get_sport(session: AsyncSession, sport_id: int) -> Optional[Sport]:
    result = await session.execute(select(Sport).where(Sport.id == sport_id))
    return result.scalar_one_or_none()
