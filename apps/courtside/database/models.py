"""
SQLAlchemy ORM models for the club session and match tracker.
"""

from typing import List
import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Float,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from courtside.database.db import Base


class SessionStatus(str, enum.Enum):
    """Session status enum."""

    OPEN = "OPEN"
    FULL = "FULL"
    COMPLETED = "COMPLETED"


class ClubRole(str, enum.Enum):
    """Club membership role."""

    ADMIN = "admin"
    MEMBER = "member"


class MatchTeam(str, enum.Enum):
    """Side of a match."""

    A = "A"
    B = "B"


class AnnouncementType(str, enum.Enum):
    """Announcement type enum."""

    INFO = "info"
    ALERT = "alert"
    SUCCESS = "success"


class User(Base):
    """Player accounts."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True)  # Stored lowercased
    name = Column(String, nullable=False)
    skill_level = Column(Integer, nullable=False)  # Self-reported, 1-10
    avatar_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    memberships = relationship("ClubMember", back_populates="user")

    __table_args__ = (
        CheckConstraint("skill_level BETWEEN 1 AND 10", name="ck_users_skill_level"),
        Index("idx_users_email", "email"),
    )


class Club(Base):
    """Sports clubs."""

    __tablename__ = "clubs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    location = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    banner_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)  # User who created the club

    # Relationships
    members = relationship("ClubMember", back_populates="club", cascade="all, delete-orphan")
    sessions = relationship("Session", back_populates="club", cascade="all, delete-orphan")
    announcements = relationship(
        "Announcement", back_populates="club", cascade="all, delete-orphan"
    )


class ClubMember(Base):
    """Join table (User ↔ Club) carrying the per-club match ledger."""

    __tablename__ = "club_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    club_id = Column(Integer, ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(Enum(ClubRole), default=ClubRole.MEMBER, nullable=False)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())
    # Ledger counters: only the match recorder increments these
    matches_played = Column(Integer, default=0, nullable=False)
    matches_won = Column(Integer, default=0, nullable=False)

    # Relationships
    club = relationship("Club", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("club_id", "user_id", name="uq_club_members_club_user"),
        CheckConstraint("matches_won <= matches_played", name="ck_club_members_won_le_played"),
        CheckConstraint("matches_won >= 0", name="ck_club_members_won_non_negative"),
        Index("idx_club_members_club", "club_id"),
        Index("idx_club_members_user", "user_id"),
    )


class Announcement(Base):
    """Club announcements, shown newest first."""

    __tablename__ = "announcements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    club_id = Column(Integer, ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False)
    type = Column(Enum(AnnouncementType), default=AnnouncementType.INFO, nullable=False)
    content = Column(Text, nullable=False)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    club = relationship("Club", back_populates="announcements")

    __table_args__ = (Index("idx_announcements_club", "club_id"),)


class Session(Base):
    """Scheduled play sessions with a bounded roster."""

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    club_id = Column(Integer, ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # "HH:MM" in SESSION_TIMEZONE
    end_time = Column(String(5), nullable=False)  # "HH:MM" in SESSION_TIMEZONE
    court = Column(String, nullable=False)
    max_players = Column(Integer, nullable=False)
    price = Column(Float, nullable=True)
    status = Column(Enum(SessionStatus), default=SessionStatus.OPEN, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)  # Set only by explicit completion
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    club = relationship("Club", back_populates="sessions")
    players = relationship(
        "SessionPlayer",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionPlayer.id",
    )
    matches = relationship("Match", back_populates="session")

    __table_args__ = (
        CheckConstraint("max_players >= 1", name="ck_sessions_max_players"),
        Index("idx_sessions_club", "club_id"),
        Index("idx_sessions_date", "date"),
        Index("idx_sessions_status", "status"),
    )

    @property
    def registered_player_ids(self) -> List[int]:
        """Roster user IDs in join order (requires players to be loaded)."""
        return [p.user_id for p in self.players]


class SessionPlayer(Base):
    """Roster entries. Row id order is join order."""

    __tablename__ = "session_players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)  # UTC

    # Relationships
    session = relationship("Session", back_populates="players")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="uq_session_players_session_user"),
        Index("idx_session_players_session", "session_id"),
        Index("idx_session_players_user", "user_id"),
    )


class Match(Base):
    """Recorded match results. Immutable once created."""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False)
    score_a = Column(Integer, nullable=False)
    score_b = Column(Integer, nullable=False)
    winner = Column(Enum(MatchTeam), nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False)  # From the monotonic match clock

    # Relationships
    session = relationship("Session", back_populates="matches")
    participants = relationship(
        "MatchParticipant",
        back_populates="match",
        cascade="all, delete-orphan",
        order_by="MatchParticipant.id",
    )

    __table_args__ = (
        CheckConstraint("score_a >= 0 AND score_b >= 0", name="ck_matches_scores_non_negative"),
        CheckConstraint("score_a <> score_b", name="ck_matches_no_tie"),
        Index("idx_matches_session", "session_id"),
        Index("idx_matches_recorded_at", "recorded_at"),
    )

    @property
    def team_a(self) -> List[int]:
        """User IDs on team A (requires participants to be loaded)."""
        return [p.user_id for p in self.participants if p.team == MatchTeam.A]

    @property
    def team_b(self) -> List[int]:
        """User IDs on team B (requires participants to be loaded)."""
        return [p.user_id for p in self.participants if p.team == MatchTeam.B]


class MatchParticipant(Base):
    """Players in a match, one row per player with their side."""

    __tablename__ = "match_participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    team = Column(Enum(MatchTeam), nullable=False)

    # Relationships
    match = relationship("Match", back_populates="participants")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("match_id", "user_id", name="uq_match_participants_match_user"),
        Index("idx_match_participants_match", "match_id"),
        Index("idx_match_participants_user", "user_id"),
    )
