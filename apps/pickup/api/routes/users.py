"""User profile, avatar and sport preference route handlers."""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from pickup.database.db import get_db_session
from pickup.services import avatar_service, storage_service, user_service
from pickup.api.auth_dependencies import get_token_user_id, require_user
from pickup.api.routes import limiter
from pickup.models.schemas import (
    ProfileUpdate,
    UserCreate,
    UserResponse,
    UserSportResponse,
    UserSportsUpdate,
    UserStatsResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/users/me", response_model=UserResponse)
async def create_current_user(
    payload: UserCreate,
    user_id: str = Depends(get_token_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create the caller's profile on first sign-in.
    Returns the existing profile unchanged if it already exists.
    """
    try:
        return await user_service.ensure_user(session, user_id, payload.nickname, payload.region)
    except Exception as e:
        logger.error(f"Error creating user profile: {e}")
        raise HTTPException(status_code=500, detail="Error creating user profile")


@router.get("/api/users/me", response_model=UserResponse)
async def get_current_user_profile(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's profile."""
    profile = await user_service.get_user_by_id(session, user["id"])
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    return profile


@router.put("/api/users/me", response_model=UserResponse)
async def update_current_user_profile(
    payload: ProfileUpdate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Update nickname, region and avatar URL."""
    try:
        return await user_service.update_profile(
            session,
            user["id"],
            nickname=payload.nickname,
            region=payload.region,
            avatar_url=payload.avatar_url,
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/api/users/me/stats", response_model=UserStatsResponse)
async def get_current_user_stats(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Hosted and joined room counts."""
    return await user_service.get_user_stats(session, user["id"])


@router.post("/api/users/me/avatar")
@limiter.limit("10/minute")
async def upload_avatar(
    request: Request,
    file: UploadFile = File(...),
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Upload or replace the caller's avatar image.

    Accepts JPEG, PNG, WebP, or HEIC images up to 5MB. The image is
    center-cropped to a 512x512 JPEG before upload.

    Returns:
        { "avatar_url": "<url>" }
    """
    file_bytes = await file.read()
    is_valid, error_msg = avatar_service.validate_avatar(file_bytes, file.content_type)
    if not is_valid:
        raise HTTPException(status_code=400, detail=error_msg)

    if not storage_service.is_configured():
        raise HTTPException(status_code=503, detail="Avatar storage is not configured")

    loop = asyncio.get_running_loop()
    try:
        processed_bytes = await loop.run_in_executor(
            None, avatar_service.process_avatar, file_bytes
        )
        new_url = await loop.run_in_executor(
            None, storage_service.upload_avatar, user["id"], processed_bytes
        )
    except Exception as e:
        logger.error(f"Error uploading avatar for user {user['id']}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error uploading avatar")

    try:
        old_url = await user_service.set_avatar_url(session, user["id"], new_url)
        await session.commit()
    except Exception as e:
        logger.error(f"Error saving avatar for user {user['id']}: {e}", exc_info=True)
        await session.rollback()
        await loop.run_in_executor(None, storage_service.delete_avatar, new_url)
        raise HTTPException(status_code=500, detail="Error saving avatar")

    # The previous object is only removed once the new URL is committed
    if old_url and old_url != new_url:
        await loop.run_in_executor(None, storage_service.delete_avatar, old_url)

    return {"avatar_url": new_url}


@router.get("/api/users/me/sports", response_model=List[UserSportResponse])
async def get_current_user_sports(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """The caller's sports with skill levels."""
    return await user_service.get_user_sports(session, user["id"])


@router.put("/api/users/me/sports", response_model=List[UserSportResponse])
async def save_current_user_sports(
    payload: UserSportsUpdate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Replace the caller's sports. An empty list clears them."""
    try:
        return await user_service.save_user_sports(session, user["id"], payload.selections)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/api/users/me/sports/{sport_id}", status_code=204)
async def remove_current_user_sport(
    sport_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove one sport from the caller's preferences."""
    removed = await user_service.remove_user_sport(session, user["id"], sport_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Sport not in your preferences")
    return Response(status_code=204)
