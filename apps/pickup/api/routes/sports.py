"""Sports catalog route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from pickup.database.db import get_db_session
from pickup.services import room_service, sport_service
from pickup.api.auth_dependencies import require_user
from pickup.api.routes import unwrap_outcome
from pickup.models.schemas import RoomSummary, SportResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/sports", response_model=List[SportResponse])
async def list_sports(session: AsyncSession = Depends(get_db_session)):
    """Active sports, ordered by name. Public."""
    try:
        return await sport_service.list_active_sports(session)
    except Exception as e:
        logger.error(f"Error listing sports: {e}")
        raise HTTPException(status_code=500, detail="Error listing sports")


@router.get("/api/sports/{sport_id}/rooms", response_model=List[RoomSummary])
async def list_sport_rooms(
    sport_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Upcoming recruiting rooms of one sport."""
    sport = await sport_service.get_sport(session, sport_id)
    if sport is None:
        raise HTTPException(status_code=404, detail="Sport not found")
    return unwrap_outcome(await room_service.get_rooms_by_sport(session, sport_id))
