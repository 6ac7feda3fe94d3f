"""
Explicit success/failure outcomes for the room lifecycle services.

Core operations never signal failure by raising alone: they return an
Outcome whose error carries an ErrorKind the caller can branch on.
Internally the services raise ServiceError; the service_operation decorator
turns it (and store errors and timeouts) into a failed Outcome.
"""

import asyncio
import enum
import functools
import logging
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from pickup.utils import constants

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Failure classification shared by every core operation."""

    VALIDATION_FAILURE = "ValidationFailure"
    ALREADY_HOST = "AlreadyHost"
    ALREADY_JOINED = "AlreadyJoined"
    NOT_RECRUITING = "NotRecruiting"
    ROOM_FULL = "RoomFull"
    INVALID_TRANSITION = "InvalidTransition"
    NOT_PARTICIPANT = "NotParticipant"
    FORBIDDEN = "Forbidden"
    PERSISTENCE_FAILURE = "PersistenceFailure"
    TIMEOUT = "Timeout"
    NOT_FOUND = "NotFound"

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.TIMEOUT


class ServiceError(Exception):
    """A classified failure raised inside a service operation."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"ServiceError({self.kind.value}, {self.message!r})"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a core operation: either data or a ServiceError."""

    data: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @classmethod
    def success(cls, data: Any = None) -> "Outcome":
        return cls(data=data)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Outcome":
        return cls(error=ServiceError(kind, message))

    def unwrap(self) -> T:
        """Return the data, or raise the carried ServiceError."""
        if self.error is not None:
            raise self.error
        return self.data


def service_operation(func):
    """
    Wrap an async service function so it always returns an Outcome.

    The wrapped function takes the AsyncSession as its first argument and
    returns plain data or raises ServiceError. Store errors are classified
    as PersistenceFailure and a call exceeding OPERATION_TIMEOUT_SECONDS as
    Timeout; in both cases the session is rolled back so no partial write
    can be committed by the caller.
    """

    @functools.wraps(func)
    async def wrapper(session, *args, **kwargs) -> Outcome:
        name = func.__name__
        try:
            data = await asyncio.wait_for(
                func(session, *args, **kwargs),
                timeout=constants.OPERATION_TIMEOUT_SECONDS,
            )
            return Outcome.success(data)
        except ServiceError as e:
            logger.info(f"{name} rejected: {e.kind.value} - {e.message}")
            return Outcome(error=e)
        except asyncio.TimeoutError:
            logger.warning(
                f"{name} timed out after {constants.OPERATION_TIMEOUT_SECONDS}s"
            )
            await _rollback_quietly(session)
            return Outcome.failure(
                ErrorKind.TIMEOUT,
                f"{name} did not complete within {constants.OPERATION_TIMEOUT_SECONDS} seconds",
            )
        except SQLAlchemyError as e:
            logger.error(f"{name} failed in the database: {e}", exc_info=True)
            await _rollback_quietly(session)
            return Outcome.failure(ErrorKind.PERSISTENCE_FAILURE, str(e))

    return wrapper


async def _rollback_quietly(session) -> None:
    try:
        await session.rollback()
    except Exception as e:
        logger.warning(f"Rollback after failed operation also failed: {e}")
