"""
Authentication dependencies for FastAPI routes.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from pickup.services import auth_service, user_service
from pickup.database.db import get_db_session

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    """
    Dependency returning the auth provider's user id from the bearer token.

    Does not require a users row, so it can be used for first sign-in.
    """
    payload = auth_service.verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid authentication token")
    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token payload")
    return str(user_id)


async def get_current_user(
    user_id: str = Depends(get_token_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    """
    Dependency to get the current authenticated user.

    Returns:
        User dictionary

    Raises:
        HTTPException: If token is invalid or the profile has not been created yet
    """
    user = await user_service.get_user_by_id(session, user_id)
    if user is None:
        raise _unauthorized("User not found")

    return {
        "id": user.id,
        "nickname": user.nickname,
        "avatar_url": user.avatar_url,
        "region": user.region,
    }


async def require_user(user: dict = Depends(get_current_user)) -> dict:
    """Require any authenticated user with a profile."""
    return user
