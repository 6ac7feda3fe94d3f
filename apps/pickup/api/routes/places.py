"""Place search and favourite place route handlers."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from pickup.database.db import get_db_session
from pickup.services import favorite_place_service, places_service
from pickup.api.auth_dependencies import require_user
from pickup.models.schemas import (
    FavoritePlaceCreate,
    FavoritePlaceResponse,
    PlaceSearchResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/places/search", response_model=PlaceSearchResponse)
async def search_places(
    q: str = Query(..., min_length=1),
    x: Optional[float] = None,
    y: Optional[float] = None,
    radius: Optional[int] = Query(None, ge=0, le=20000),
    user: dict = Depends(require_user),
):
    """Keyword place search for the room location picker."""
    places, error = await places_service.search_places(q, x=x, y=y, radius=radius)
    return PlaceSearchResponse(places=places, error=error)


@router.get("/api/favorite-places", response_model=List[FavoritePlaceResponse])
async def list_favorite_places(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """The caller's saved places, newest first."""
    return await favorite_place_service.list_favorite_places(session, user["id"])


@router.post("/api/favorite-places", response_model=FavoritePlaceResponse, status_code=201)
async def add_favorite_place(
    payload: FavoritePlaceCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Save a place to the caller's favourites."""
    try:
        return await favorite_place_service.add_favorite_place(session, user["id"], payload)
    except Exception as e:
        logger.error(f"Error saving favorite place: {e}")
        raise HTTPException(status_code=500, detail="Error saving favorite place")


@router.delete("/api/favorite-places/{favorite_id}", status_code=204)
async def remove_favorite_place(
    favorite_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove one of the caller's favourites."""
    try:
        await favorite_place_service.remove_favorite_place(session, user["id"], favorite_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)
