"""
Verification of access tokens issued by the external auth provider.
"""

import os
from typing import Optional, Dict, Any
import jwt
from dotenv import load_dotenv
import logging

load_dotenv()

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("AUTH_JWT_SECRET")
JWT_AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE", "authenticated")
JWT_ALGORITHM = "HS256"


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a bearer token.

    Args:
        token: Encoded JWT

    Returns:
        The token payload (with "sub" = user id), or None if invalid or expired
    """
    if not token or not JWT_SECRET:
        if not JWT_SECRET:
            logger.error("AUTH_JWT_SECRET not configured; rejecting token")
        return None
    try:
        payload = jwt.decode(
            token, JWT_SECRET, algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected invalid token: {e}")
        return None
    if not payload.get("sub"):
        return None
    return payload
