"""
SQLAlchemy ORM models for the padel statistics system.
"""

import enum
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    Float,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from padel_stats.database.db import Base


class MatchType(str, enum.Enum):
    """Match type enum."""

    TOURNAMENT = "TOURNAMENT"
    FRIENDLY = "FRIENDLY"


class TournamentPhase(str, enum.Enum):
    """Tournament phase enum."""

    ROUND_OF_16 = "ROUND_OF_16"
    QUARTERFINAL = "QUARTERFINAL"
    SEMIFINAL = "SEMIFINAL"
    FINAL = "FINAL"


class MatchStatus(str, enum.Enum):
    """Match status enum."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TournamentStatus(str, enum.Enum):
    """Tournament status enum."""

    UPCOMING = "UPCOMING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# JSONB on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


class User(Base):
    """User accounts with email/password authentication."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(30), nullable=False, unique=True)
    email = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    match_players = relationship("MatchPlayer", back_populates="user")
    player_stats = relationship("PlayerStats", back_populates="user")

    __table_args__ = (
        Index("idx_users_email", "email"),
        Index("idx_users_username", "username"),
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Tournament(Base):
    """Tournaments that group matches."""

    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    status = Column(Enum(TournamentStatus), nullable=False, default=TournamentStatus.UPCOMING)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    matches = relationship("Match", back_populates="tournament")


class Match(Base):
    """A four-player padel match."""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(Enum(MatchType), nullable=False)
    phase = Column(Enum(TournamentPhase), nullable=True)
    status = Column(Enum(MatchStatus), nullable=False, default=MatchStatus.IN_PROGRESS)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    tournament = relationship("Tournament", back_populates="matches")
    players = relationship(
        "MatchPlayer",
        back_populates="match",
        cascade="all, delete-orphan",
        order_by="[MatchPlayer.team, MatchPlayer.position]",
    )
    events = relationship("MatchEvent", back_populates="match", cascade="all, delete-orphan")
    player_stats = relationship("PlayerStats", back_populates="match", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_matches_status", "status"),
        Index("idx_matches_type", "type"),
        Index("idx_matches_tournament", "tournament_id"),
    )

    @property
    def player_ids(self):
        """Roster user IDs in team/position order."""
        return [mp.user_id for mp in self.players]


class MatchPlayer(Base):
    """Assignment of a user to a team slot in a match."""

    __tablename__ = "match_players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    team = Column(Integer, nullable=False)
    position = Column(Integer, nullable=False)

    # Relationships
    match = relationship("Match", back_populates="players")
    user = relationship("User", back_populates="match_players")

    __table_args__ = (
        UniqueConstraint("match_id", "team", "position", name="uq_match_players_slot"),
        UniqueConstraint("match_id", "user_id", name="uq_match_players_user"),
        CheckConstraint("team IN (1, 2)", name="ck_match_players_team"),
        CheckConstraint("position IN (1, 2)", name="ck_match_players_position"),
        Index("idx_match_players_user", "user_id"),
    )


class MatchEvent(Base):
    """Append-only log of observations recorded during a match."""

    __tablename__ = "match_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    # Stored as a plain string so tags newer than this server still record
    event_type = Column(String(50), nullable=False)
    observer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    additional_data = Column(JSONPayload, nullable=True)

    # Relationships
    match = relationship("Match", back_populates="events")
    player = relationship("User", foreign_keys=[player_id])
    observer = relationship("User", foreign_keys=[observer_id])

    __table_args__ = (
        Index("idx_match_events_match_timestamp", "match_id", "timestamp"),
        Index("idx_match_events_player", "player_id"),
    )


class PlayerStats(Base):
    """Per-match statistics for a player, derived from match_events."""

    __tablename__ = "player_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    first_serves_in = Column(Integer, default=0, nullable=False)
    first_serves_out = Column(Integer, default=0, nullable=False)
    first_serve_percentage = Column(Float, default=0.0, nullable=False)
    points_won_first_serve = Column(Integer, default=0, nullable=False)
    points_won_second_serve = Column(Integer, default=0, nullable=False)
    points_won_exit34 = Column(Integer, default=0, nullable=False)
    points_lost_exit34 = Column(Integer, default=0, nullable=False)
    points_won_return = Column(Integer, default=0, nullable=False)
    unforced_errors = Column(Integer, default=0, nullable=False)
    forced_errors = Column(Integer, default=0, nullable=False)
    net_errors = Column(Integer, default=0, nullable=False)
    return_errors = Column(Integer, default=0, nullable=False)
    smash_errors = Column(Integer, default=0, nullable=False)
    lob_errors = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="player_stats")
    match = relationship("Match", back_populates="player_stats")

    __table_args__ = (
        UniqueConstraint("user_id", "match_id", name="uq_player_stats_user_match"),
        Index("idx_player_stats_match", "match_id"),
    )
