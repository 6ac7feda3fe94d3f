"""Room lifecycle route handlers."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from pickup.database.db import get_db_session
from pickup.services import participation_service, room_service, room_status_service
from pickup.services.room_matching import RoomFilter
from pickup.api.auth_dependencies import require_user
from pickup.api.routes import limiter, unwrap_outcome
from pickup.models.schemas import (
    MyRoomsResponse,
    ParticipantResponse,
    RoomCreate,
    RoomDetail,
    RoomStatusUpdate,
    RoomSummary,
)
from pickup.utils import constants

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/rooms", response_model=List[RoomSummary])
async def list_recruiting_rooms(
    limit: int = Query(constants.RECRUITING_FEED_LIMIT, ge=1, le=100),
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Upcoming recruiting rooms of every sport, soonest first."""
    return unwrap_outcome(await room_service.get_recruiting_rooms(session, limit=limit))


@router.get("/api/rooms/search", response_model=List[RoomSummary])
async def search_rooms(
    sport_id: Optional[int] = None,
    skill_level: Optional[int] = Query(
        None, ge=constants.SKILL_LEVEL_MIN, le=constants.SKILL_LEVEL_MAX
    ),
    q: Optional[str] = None,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Search recruiting rooms by sport, skill level and title text."""
    room_filter = RoomFilter(sport_id=sport_id, skill_level=skill_level, text=q)
    return unwrap_outcome(await room_service.search_rooms(session, room_filter))


@router.post("/api/rooms", response_model=RoomSummary, status_code=201)
@limiter.limit("20/minute")
async def create_room(
    request: Request,
    payload: RoomCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a room hosted by the caller."""
    return unwrap_outcome(await room_service.create_room(session, payload, user["id"]))


@router.get("/api/rooms/mine", response_model=MyRoomsResponse)
async def get_my_rooms(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Rooms the caller hosts and rooms the caller has joined."""
    return unwrap_outcome(await room_service.get_my_rooms(session, user["id"]))


@router.get("/api/rooms/{room_id}", response_model=RoomDetail)
async def get_room(
    room_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Room detail with every participant row."""
    return unwrap_outcome(await room_service.get_room_detail(session, room_id))


@router.post("/api/rooms/{room_id}/join", response_model=ParticipantResponse, status_code=201)
@limiter.limit("30/minute")
async def join_room(
    request: Request,
    room_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Join a recruiting room."""
    return unwrap_outcome(await participation_service.join_room(session, room_id, user["id"]))


@router.delete("/api/rooms/{room_id}/participants/me", status_code=204)
async def leave_room(
    room_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Leave a room the caller has joined."""
    unwrap_outcome(await participation_service.leave_room(session, room_id, user["id"]))
    return Response(status_code=204)


@router.patch("/api/rooms/{room_id}/status", response_model=RoomStatusUpdate)
async def update_room_status(
    room_id: int,
    payload: RoomStatusUpdate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Host-only status change (close or cancel)."""
    new_status = unwrap_outcome(
        await room_status_service.update_room_status(
            session, room_id, payload.status, acting_user_id=user["id"]
        )
    )
    return RoomStatusUpdate(status=new_status)


@router.delete("/api/rooms/{room_id}", status_code=204)
async def delete_room(
    room_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a cancelled room. Host only."""
    unwrap_outcome(
        await room_status_service.delete_room(session, room_id, acting_user_id=user["id"])
    )
    return Response(status_code=204)
