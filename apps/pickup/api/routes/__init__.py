"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, outcome to HTTP mapping) lives here; every
sub-router imports what it needs from this package.
"""

import os

from fastapi import APIRouter, HTTPException
from slowapi import Limiter
from slowapi.util import get_remote_address

from pickup.services.outcome import ErrorKind, Outcome

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)

# ---------------------------------------------------------------------------
# Outcome -> HTTP
# ---------------------------------------------------------------------------
ERROR_STATUS_CODES = {
    ErrorKind.VALIDATION_FAILURE: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NOT_PARTICIPANT: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.ALREADY_HOST: 409,
    ErrorKind.ALREADY_JOINED: 409,
    ErrorKind.NOT_RECRUITING: 409,
    ErrorKind.ROOM_FULL: 409,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.PERSISTENCE_FAILURE: 500,
}


class OutcomeHTTPException(HTTPException):
    """HTTPException carrying the ErrorKind of a failed service outcome."""

    def __init__(self, kind: ErrorKind, detail: str):
        super().__init__(status_code=ERROR_STATUS_CODES.get(kind, 500), detail=detail)
        self.kind = kind


def unwrap_outcome(outcome: Outcome):
    """Return the outcome's data or raise the matching OutcomeHTTPException."""
    if outcome.ok:
        return outcome.data
    detail = outcome.error.message
    if outcome.kind == ErrorKind.PERSISTENCE_FAILURE:
        # Store errors can include SQL; keep them in the logs only
        detail = "Database error"
    raise OutcomeHTTPException(outcome.kind, detail)


# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from pickup.api.routes.sports import router as sports_router  # noqa: E402
from pickup.api.routes.rooms import router as rooms_router  # noqa: E402
from pickup.api.routes.users import router as users_router  # noqa: E402
from pickup.api.routes.notifications import router as notifications_router  # noqa: E402
from pickup.api.routes.places import router as places_router  # noqa: E402
from pickup.api.routes.realtime import router as realtime_router  # noqa: E402

router = APIRouter()
router.include_router(sports_router)
router.include_router(rooms_router)
router.include_router(users_router)
router.include_router(notifications_router)
router.include_router(places_router)
router.include_router(realtime_router)
