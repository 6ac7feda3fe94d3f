"""
Pydantic models for API request/response validation and service read models.
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from pickup.database.models import ParticipantStatus, RoomStatus
from pickup.utils import constants
from pickup.utils.datetime_utils import ensure_utc, format_room_card_header


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str


class ErrorResponse(BaseModel):
    """Body returned for a failed core operation."""

    detail: str
    kind: str


# ============================================================================
# Sports
# ============================================================================


class SportResponse(BaseModel):
    """Sport catalog entry."""

    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    icon: str
    min_players: int
    max_players: int
    is_active: bool


# ============================================================================
# Users
# ============================================================================


class UserSummary(BaseModel):
    """Public user fields embedded in room read models."""

    model_config = ConfigDict(from_attributes=True)
    id: str
    nickname: str
    avatar_url: Optional[str] = None
    manner_score: float = 0.0


class UserResponse(UserSummary):
    """Full user profile."""

    region: Optional[str] = None
    created_at: Optional[datetime] = None


def _clean_nickname(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("Nickname is required")
    if len(value) > constants.NICKNAME_MAX_LENGTH:
        raise ValueError(f"Nickname must be at most {constants.NICKNAME_MAX_LENGTH} characters")
    return value


class UserCreate(BaseModel):
    """First sign-in profile data."""

    nickname: str
    region: Optional[str] = None

    @field_validator("nickname")
    @classmethod
    def nickname_valid(cls, v):
        return _clean_nickname(v)


class ProfileUpdate(BaseModel):
    """Request to update the caller's profile."""

    nickname: str
    region: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("nickname")
    @classmethod
    def nickname_valid(cls, v):
        return _clean_nickname(v)

    @field_validator("region")
    @classmethod
    def region_blank_to_none(cls, v):
        if v is None or not v.strip():
            return None
        return v.strip()


class UserStatsResponse(BaseModel):
    """Room counts shown on the profile screen."""

    hosted_count: int
    participated_count: int


class UserSportSelection(BaseModel):
    """One sport a user plays and their skill in it."""

    sport_id: int
    skill_level: int = Field(..., ge=constants.SKILL_LEVEL_MIN, le=constants.SKILL_LEVEL_MAX)


class UserSportsUpdate(BaseModel):
    """Full replacement of a user's sport selections (may be empty)."""

    selections: List[UserSportSelection] = Field(default_factory=list)


class UserSportResponse(BaseModel):
    """Saved sport preference with its catalog entry."""

    model_config = ConfigDict(from_attributes=True)
    id: int
    sport_id: int
    skill_level: int
    sport: SportResponse


# ============================================================================
# Rooms
# ============================================================================


class RoomCreate(BaseModel):
    """
    Host submission for a new room.

    Only shapes are checked here; the business preconditions (future date,
    capacity, skill range, ...) are validated by the room service so that
    library callers get a ValidationFailure outcome rather than an exception.
    """

    sport_id: int
    title: str = ""
    description: Optional[str] = None
    location_name: str = ""
    location_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    play_date: datetime
    max_participants: int
    cost_per_person: int = 0
    min_skill_level: int = constants.SKILL_LEVEL_MIN
    max_skill_level: int = constants.SKILL_LEVEL_MAX

    @field_validator("description", "location_address")
    @classmethod
    def blank_to_none(cls, v):
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("title", "location_name")
    @classmethod
    def strip_required_text(cls, v):
        return (v or "").strip()


class RoomSummary(BaseModel):
    """Room with its sport and host, as shown in lists."""

    model_config = ConfigDict(from_attributes=True)
    id: int
    host_id: str
    sport_id: int
    title: str
    description: Optional[str] = None
    location_name: str
    location_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    play_date: datetime
    max_participants: int
    current_participants: int
    cost_per_person: int
    min_skill_level: int
    max_skill_level: int
    view_count: int = 0
    status: RoomStatus
    created_at: Optional[datetime] = None
    sport: Optional[SportResponse] = None
    host: Optional[UserSummary] = None

    @field_validator("play_date", "created_at")
    @classmethod
    def as_utc(cls, v):
        return ensure_utc(v)

    @computed_field
    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants

    @computed_field
    @property
    def card_header(self) -> Optional[str]:
        """List card header such as "⚽ 축구 · 2/28(토) 19:00"; None without a loaded sport."""
        if self.sport is None:
            return None
        return format_room_card_header(self.sport.icon, self.sport.name, self.play_date)


class ParticipantResponse(BaseModel):
    """A room membership row."""

    model_config = ConfigDict(from_attributes=True)
    id: int
    room_id: int
    user_id: str
    status: ParticipantStatus
    joined_at: Optional[datetime] = None
    user: Optional[UserSummary] = None

    @field_validator("joined_at")
    @classmethod
    def as_utc(cls, v):
        return ensure_utc(v)


class RoomDetail(RoomSummary):
    """Room with every participant row, whatever its status."""

    participants: List[ParticipantResponse] = Field(default_factory=list)

    @computed_field
    @property
    def approved_count(self) -> int:
        return sum(1 for p in self.participants if p.status == ParticipantStatus.APPROVED)

    @computed_field
    @property
    def effective_participants(self) -> int:
        """Host plus approved participants."""
        return self.approved_count + 1


class MyRoomsResponse(BaseModel):
    """Rooms the caller hosts and rooms the caller joined."""

    hosted: List[RoomSummary]
    participating: List[RoomSummary]


class RoomStatusUpdate(BaseModel):
    """Host request to move a room to a new status."""

    status: RoomStatus


# ============================================================================
# Notifications
# ============================================================================


class NotificationResponse(BaseModel):
    """Notification response."""

    id: int
    user_id: str
    type: str
    title: str
    body: Optional[str] = None
    room_id: Optional[int] = None
    is_read: bool
    created_at: Optional[str] = None


class UnreadCountResponse(BaseModel):
    """Unread notification count response."""

    count: int


# ============================================================================
# Places
# ============================================================================


class PlaceResponse(BaseModel):
    """One keyword place search hit."""

    name: str
    address: str
    road_address: Optional[str] = None
    latitude: float
    longitude: float
    phone: Optional[str] = None
    distance: Optional[int] = None  # meters, only when searching around a point


class PlaceSearchResponse(BaseModel):
    """Place search results; error is set when the provider call failed."""

    places: List[PlaceResponse]
    error: Optional[str] = None


class FavoritePlaceCreate(BaseModel):
    """Save a place search hit as a favourite."""

    place_name: str = Field(..., min_length=1)
    address_name: str = Field(..., min_length=1)
    road_address_name: Optional[str] = None
    latitude: float
    longitude: float
    phone: Optional[str] = None


class FavoritePlaceResponse(FavoritePlaceCreate):
    """Saved favourite place."""

    model_config = ConfigDict(from_attributes=True)
    id: int
    user_id: str
    created_at: Optional[datetime] = None
