"""
Pydantic models for API request/response validation.
"""

from typing import Optional, List
from pydantic import BaseModel, model_validator


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str


# User schemas


class UserCreate(BaseModel):
    """Request to register a new user."""

    name: str
    email: str
    skill_level: int
    avatar_url: Optional[str] = None


class UserUpdate(BaseModel):
    """Request to update a user profile. Omitted fields are left unchanged."""

    name: Optional[str] = None
    email: Optional[str] = None
    skill_level: Optional[int] = None
    avatar_url: Optional[str] = None


class LoginRequest(BaseModel):
    """Request to look up a user by email."""

    email: str


class UserResponse(BaseModel):
    """User profile response."""

    id: int
    email: str
    name: str
    skill_level: int
    avatar_url: Optional[str] = None


class PlayerSummaryResponse(BaseModel):
    """Overall stats for a player's profile."""

    user_id: int
    won: int
    played: int
    win_rate: float
    form: List[str]


class CoachingTipsResponse(BaseModel):
    """Coaching tips for a player."""

    user_id: int
    stats: dict
    tips: List[str]


# Club schemas


class ClubCreate(BaseModel):
    """Request to create a club."""

    name: str
    creator_user_id: int
    location: Optional[str] = None
    description: Optional[str] = None
    banner_url: Optional[str] = None


class InviteRequest(BaseModel):
    """Request to invite someone to a club by email."""

    email: str


class InviteResponse(BaseModel):
    """Result of an invite."""

    success: bool
    message: str
    user: Optional[UserResponse] = None


class AnnouncementCreate(BaseModel):
    """Request to post an announcement."""

    type: str = "info"
    content: str


class AnnouncementUpdate(BaseModel):
    """Request to edit an announcement."""

    type: Optional[str] = None
    content: Optional[str] = None

    @model_validator(mode="after")
    def validate_has_changes(self):
        """Ensure at least one field is provided."""
        if self.type is None and self.content is None:
            raise ValueError("Provide type or content to update")
        return self


# Session schemas


class SessionCreate(BaseModel):
    """Request to create a session, or a weekly series of sessions."""

    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    court: Optional[str] = None
    max_players: Optional[int] = None
    price: Optional[float] = None
    recurrence_weeks: int = 1


class RosterRequest(BaseModel):
    """Request to join or leave a session."""

    user_id: int


class SessionResponse(BaseModel):
    """Session with its roster."""

    id: int
    club_id: int
    date: str
    start_time: str
    end_time: str
    court: str
    max_players: int
    price: Optional[float] = None
    registered_player_ids: List[int]
    player_count: int
    status: str
    is_upcoming: bool


class ClubScheduleResponse(BaseModel):
    """A club's sessions split into upcoming and past."""

    upcoming: List[SessionResponse]
    past: List[SessionResponse]


# Match schemas


class MatchCreate(BaseModel):
    """Request to record a match."""

    team_a: List[int]
    team_b: List[int]
    score_a: int
    score_b: int


class MatchResponse(BaseModel):
    """Recorded match."""

    id: int
    session_id: int
    team_a: List[int]
    team_b: List[int]
    score_a: int
    score_b: int
    winner: str
    timestamp: str
