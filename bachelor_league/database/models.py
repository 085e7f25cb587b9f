"""
SQLAlchemy ORM models for the Bachelor Fantasy League.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Index,
    JSON,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from bachelor_league.database.db import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class LeagueStatus(str, enum.Enum):
    """League lifecycle status."""

    CREATED = "created"
    DRAFT_IN_PROGRESS = "draft_in_progress"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class DraftStatus(str, enum.Enum):
    """Draft status enum."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"


class DraftFormat(str, enum.Enum):
    """Turn ordering used by a draft."""

    SNAKE = "snake"
    LINEAR = "linear"


class NotificationType(str, enum.Enum):
    """Notification type enum."""

    DRAFT_STARTED = "draft_started"
    DRAFT_TURN = "draft_turn"
    DRAFT_PICK_MADE = "draft_pick_made"
    DRAFT_COMPLETED = "draft_completed"
    DRAFT_DELETED = "draft_deleted"
    SCORING_EVENT = "scoring_event"
    STANDINGS_UPDATE = "standings_update"
    LEAGUE_UPDATE = "league_update"
    EPISODE_STARTED = "episode_started"
    EPISODE_ENDED = "episode_ended"


class User(Base):
    """User accounts. Credentials live with the external auth provider."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=True, unique=True)
    display_name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    commissioned_leagues = relationship("League", back_populates="commissioner")
    teams = relationship("Team", back_populates="owner")


class League(Base):
    """Fantasy leagues built around one season of the show."""

    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    season = Column(String(50), nullable=False)
    league_code = Column(String(6), nullable=False, unique=True)  # Join code, e.g. "K3XQ9A"
    commissioner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(String(30), nullable=False, default=LeagueStatus.CREATED.value)
    settings = Column(JSONType, nullable=True)  # Serialized LeagueSettings
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    commissioner = relationship("User", back_populates="commissioned_leagues")
    teams = relationship("Team", back_populates="league", cascade="all, delete-orphan")
    contestants = relationship("Contestant", back_populates="league", cascade="all, delete-orphan")
    episodes = relationship("Episode", back_populates="league", cascade="all, delete-orphan")
    draft = relationship(
        "Draft", back_populates="league", uselist=False, cascade="all, delete-orphan"
    )
    notifications = relationship(
        "Notification", back_populates="league", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_leagues_commissioner", "commissioner_id"),
        Index("idx_leagues_code", "league_code"),
    )


class Team(Base):
    """A user's fantasy team within one league."""

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(50), nullable=False)
    drafted_contestants = Column(JSONType, nullable=False, default=list)  # Ordered contestant ids
    total_points = Column(Integer, nullable=False, default=0)
    episode_scores = Column(JSONType, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    league = relationship("League", back_populates="teams")
    owner = relationship("User", back_populates="teams")

    __table_args__ = (
        UniqueConstraint("league_id", "owner_id", name="uq_teams_league_owner"),
        Index("idx_teams_league", "league_id"),
        Index("idx_teams_owner", "owner_id"),
    )


class Contestant(Base):
    """A cast member of the show, scoped to one league."""

    __tablename__ = "contestants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    name = Column(String(100), nullable=False)
    age = Column(Integer, nullable=True)
    hometown = Column(String(100), nullable=True)
    occupation = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)
    profile_image_url = Column(String(500), nullable=True)
    is_eliminated = Column(Boolean, nullable=False, default=False)
    elimination_episode = Column(Integer, nullable=True)
    total_points = Column(Integer, nullable=False, default=0)
    episode_scores = Column(JSONType, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    league = relationship("League", back_populates="contestants")
    scoring_events = relationship(
        "ScoringEvent",
        back_populates="contestant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("idx_contestants_league", "league_id"),)


class Episode(Base):
    """One aired installment of the show."""

    __tablename__ = "episodes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    episode_number = Column(Integer, nullable=False)
    air_date = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)
    total_events = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    league = relationship("League", back_populates="episodes")
    scoring_events = relationship(
        "ScoringEvent",
        back_populates="episode",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("league_id", "episode_number", name="uq_episodes_league_number"),
        Index("idx_episodes_league_active", "league_id", "is_active"),
    )


class ScoringEvent(Base):
    """A point-affecting action recorded against a contestant in an episode."""

    __tablename__ = "scoring_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    episode_id = Column(Integer, ForeignKey("episodes.id"), nullable=False)
    contestant_id = Column(Integer, ForeignKey("contestants.id"), nullable=False)
    action_type = Column(String(50), nullable=False)
    points = Column(Integer, nullable=False)
    description = Column(String(255), nullable=True)
    scored_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    episode = relationship("Episode", back_populates="scoring_events")
    contestant = relationship("Contestant", back_populates="scoring_events")
    scorer = relationship("User")

    __table_args__ = (
        Index("idx_scoring_events_episode", "episode_id", "created_at"),
        Index("idx_scoring_events_contestant", "contestant_id"),
    )


class Draft(Base):
    """The single draft of a league (one-to-one)."""

    __tablename__ = "drafts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=DraftStatus.NOT_STARTED.value)
    current_pick = Column(Integer, nullable=False, default=0)  # Zero-based
    current_turn_started_at = Column(DateTime(timezone=True), nullable=True)
    draft_order = Column(JSONType, nullable=False, default=list)  # Team ids
    picks = Column(JSONType, nullable=False, default=list)  # Append-only pick records
    settings = Column(JSONType, nullable=True)  # Serialized DraftSettings
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    league = relationship("League", back_populates="draft")


class Notification(Base):
    """Short-lived league event records fanned out to connected clients."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    type = Column(String(30), nullable=False)  # NotificationType enum value
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    data = Column(JSONType, nullable=True)
    target_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # None = whole league
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    league = relationship("League", back_populates="notifications")

    __table_args__ = (
        Index("idx_notifications_league_created", "league_id", "created_at"),
        Index("idx_notifications_expires", "expires_at"),
    )
