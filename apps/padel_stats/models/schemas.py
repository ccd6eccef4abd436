"""
Pydantic models for API request/response validation.
"""

from datetime import date
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

from padel_stats.utils.constants import (
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    PASSWORD_MIN_LENGTH,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)


# ============================================================================
# Auth
# ============================================================================

class RegisterRequest(BaseModel):
    """Request to create a new account."""

    model_config = ConfigDict(populate_by_name=True)
    username: str = Field(min_length=USERNAME_MIN_LENGTH, max_length=USERNAME_MAX_LENGTH)
    email: str
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    first_name: str = Field(alias="firstName", min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    last_name: str = Field(alias="lastName", min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)

    @field_validator("username")
    @classmethod
    def username_characters(cls, value: str) -> str:
        if not value.replace("_", "").isalnum():
            raise ValueError("username may only contain letters, numbers and underscores")
        return value

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < NAME_MIN_LENGTH:
            raise ValueError(f"must be at least {NAME_MIN_LENGTH} characters")
        return value


class LoginRequest(BaseModel):
    """Request to log in with email and password."""

    email: str
    password: str


class ChangePasswordRequest(BaseModel):
    """Request to change the current user's password."""

    model_config = ConfigDict(populate_by_name=True)
    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword", min_length=PASSWORD_MIN_LENGTH)


class AuthResponse(BaseModel):
    """Token issued after register or login."""

    access_token: str
    token_type: str = "bearer"
    user: Dict[str, Any]


# ============================================================================
# Matches and tournaments
# ============================================================================

class CreateMatchRequest(BaseModel):
    """Request to create a new match; player_ids lists team 1 then team 2."""

    model_config = ConfigDict(populate_by_name=True)
    type: str
    phase: Optional[str] = None
    player_ids: List[int] = Field(alias="playerIds")
    tournament_id: Optional[int] = Field(default=None, alias="tournamentId")


class UpdateMatchRequest(BaseModel):
    """Request to update an existing match."""

    phase: Optional[str] = None
    status: Optional[str] = None


class CreateTournamentRequest(BaseModel):
    """Request to create a tournament."""

    model_config = ConfigDict(populate_by_name=True)
    name: str
    start_date: date = Field(alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")
    status: Optional[str] = None


# ============================================================================
# Events
# ============================================================================

class RecordEventRequest(BaseModel):
    """Request to record a match event for a player."""

    model_config = ConfigDict(populate_by_name=True)
    match_id: int = Field(alias="matchId")
    player_id: int = Field(alias="playerId")
    event_type: str = Field(alias="eventType", min_length=1, max_length=50)
    additional_data: Optional[Dict[str, Any]] = Field(default=None, alias="additionalData")
