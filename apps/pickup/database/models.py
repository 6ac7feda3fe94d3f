"""
SQLAlchemy ORM models for pickup game rooms.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Float,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pickup.database.db import Base


class RoomStatus(str, enum.Enum):
    """Room lifecycle status enum."""

    RECRUITING = "recruiting"
    CLOSED = "closed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ParticipantStatus(str, enum.Enum):
    """Room participant status enum."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class NotificationType(str, enum.Enum):
    """Notification type enum."""

    JOIN_REQUEST = "join_request"
    APPROVED = "approved"
    REJECTED = "rejected"
    ROOM_FULL = "room_full"
    ROOM_CANCELLED = "room_cancelled"
    ROOM_COMPLETED = "room_completed"


class User(Base):
    """User profiles. The id is issued by the external auth provider."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    nickname = Column(String(20), nullable=False)
    avatar_url = Column(String, nullable=True)
    region = Column(String, nullable=True)
    manner_score = Column(Float, default=0.0, server_default="0", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    sports = relationship("UserSport", back_populates="user", cascade="all, delete-orphan")
    hosted_rooms = relationship("Room", back_populates="host")


class Sport(Base):
    """Sports catalog (read-only for the app)."""

    __tablename__ = "sports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    icon = Column(String, nullable=False, default="")
    min_players = Column(Integer, nullable=False, default=2)
    max_players = Column(Integer, nullable=False, default=10)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    rooms = relationship("Room", back_populates="sport")

    __table_args__ = (Index("idx_sports_active", "is_active"),)


class UserSport(Base):
    """Sports a user plays, with a self-declared skill level."""

    __tablename__ = "user_sports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    sport_id = Column(Integer, ForeignKey("sports.id", ondelete="CASCADE"), nullable=False)
    skill_level = Column(Integer, nullable=False)

    user = relationship("User", back_populates="sports")
    sport = relationship("Sport")

    __table_args__ = (
        UniqueConstraint("user_id", "sport_id", name="uq_user_sports_user_sport"),
        CheckConstraint("skill_level BETWEEN 0 AND 10", name="ck_user_sports_skill_level"),
        Index("idx_user_sports_user", "user_id"),
    )


class Room(Base):
    """A scheduled pickup game owned by its host.

    current_participants counts the host (starts at 1) plus every approved
    participant row. It is only changed through conditional updates in the
    participation service.
    """

    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    host_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    sport_id = Column(Integer, ForeignKey("sports.id"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    location_name = Column(String, nullable=False)
    location_address = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    play_date = Column(DateTime(timezone=True), nullable=False)  # UTC
    max_participants = Column(Integer, nullable=False)
    current_participants = Column(Integer, nullable=False, default=1, server_default="1")
    cost_per_person = Column(Integer, nullable=False, default=0, server_default="0")
    min_skill_level = Column(Integer, nullable=False, default=0)
    max_skill_level = Column(Integer, nullable=False, default=10)
    view_count = Column(Integer, nullable=False, default=0, server_default="0")
    status = Column(String, nullable=False, default=RoomStatus.RECRUITING.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    host = relationship("User", back_populates="hosted_rooms")
    sport = relationship("Sport", back_populates="rooms")
    participants = relationship(
        "RoomParticipant", back_populates="room", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("max_participants >= 2", name="ck_rooms_max_participants"),
        CheckConstraint(
            "current_participants >= 1 AND current_participants <= max_participants",
            name="ck_rooms_current_participants",
        ),
        CheckConstraint("cost_per_person >= 0", name="ck_rooms_cost"),
        CheckConstraint(
            "min_skill_level >= 0 AND max_skill_level <= 10 AND min_skill_level <= max_skill_level",
            name="ck_rooms_skill_range",
        ),
        CheckConstraint(
            "status IN ('recruiting', 'closed', 'completed', 'cancelled')",
            name="ck_rooms_status",
        ),
        Index("idx_rooms_sport_status_date", "sport_id", "status", "play_date"),
        Index("idx_rooms_host", "host_id"),
        Index("idx_rooms_play_date", "play_date"),
    )


class RoomParticipant(Base):
    """Non-host members of a room. The host never has a row here."""

    __tablename__ = "room_participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String, nullable=False, default=ParticipantStatus.APPROVED.value)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    room = relationship("Room", back_populates="participants")
    user = relationship("User")

    __table_args__ = (
        # At most one active membership per (room, user)
        Index(
            "uq_room_participants_active",
            "room_id",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'approved'"),
            sqlite_where=text("status = 'approved'"),
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name="ck_room_participants_status",
        ),
        Index("idx_room_participants_room", "room_id"),
        Index("idx_room_participants_user_status", "user_id", "status"),
    )


class Notification(Base):
    """In-app notifications."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String, nullable=False)  # NotificationType value
    title = Column(String, nullable=False)
    body = Column(Text, nullable=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
        Index("idx_notifications_user_unread", "user_id", "is_read"),
    )


class FavoritePlace(Base):
    """Places a user saved from place search."""

    __tablename__ = "favorite_places"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    place_name = Column(String, nullable=False)
    address_name = Column(String, nullable=False)
    road_address_name = Column(String, nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    phone = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_favorite_places_user", "user_id"),)
