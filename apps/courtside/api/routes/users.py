"""User profile, history and coaching route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.api.routes import http_error
from courtside.database.db import get_db_session
from courtside.services import (
    user_service,
    session_service,
    match_service,
    stats_service,
    coaching_service,
)
from courtside.models.schemas import (
    UserCreate,
    UserUpdate,
    UserResponse,
    LoginRequest,
    PlayerSummaryResponse,
    CoachingTipsResponse,
)
from courtside.utils.exceptions import CourtsideError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/users", response_model=UserResponse, status_code=201)
async def create_user(payload: UserCreate, session: AsyncSession = Depends(get_db_session)):
    """
    Register a new user.

    Request body:
        {
            "name": "Alex",
            "email": "alex@example.com",
            "skill_level": 6,
            "avatar_url": null   // Optional - defaults to an initials avatar
        }
    """
    try:
        return await user_service.create_user(
            session,
            name=payload.name,
            email=payload.email,
            skill_level=payload.skill_level,
            avatar_url=payload.avatar_url,
        )
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error creating user: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating user: {str(e)}")


@router.post("/api/auth/login", response_model=UserResponse)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_db_session)):
    """Look up a registered user by email."""
    try:
        return await user_service.get_user_by_email(session, payload.email)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error logging in: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error logging in: {str(e)}")


@router.get("/api/users/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, session: AsyncSession = Depends(get_db_session)):
    try:
        return await user_service.get_user(session, user_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting user: {str(e)}")


@router.put("/api/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int, payload: UserUpdate, session: AsyncSession = Depends(get_db_session)
):
    """Update a user's profile. Only the fields present in the body change."""
    try:
        return await user_service.update_user(
            session,
            user_id,
            name=payload.name,
            email=payload.email,
            skill_level=payload.skill_level,
            avatar_url=payload.avatar_url,
        )
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error updating user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating user: {str(e)}")


@router.get("/api/users/{user_id}/clubs")
async def get_user_clubs(user_id: int, session: AsyncSession = Depends(get_db_session)):
    """Clubs the user belongs to, with their role in each."""
    try:
        return await user_service.get_user_clubs(session, user_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting user clubs: {str(e)}")


@router.get("/api/users/{user_id}/sessions")
async def get_user_sessions(user_id: int, session: AsyncSession = Depends(get_db_session)):
    """Sessions the user is registered for, most recent first."""
    try:
        await user_service.get_user(session, user_id)
        return await session_service.get_user_sessions(session, user_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting user sessions: {str(e)}")


@router.get("/api/users/{user_id}/matches")
async def get_user_matches(
    user_id: int,
    limit: Optional[int] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Matches the user played, most recent first."""
    try:
        await user_service.get_user(session, user_id)
        return await match_service.get_user_matches(session, user_id, limit=limit)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting user matches: {str(e)}")


@router.get("/api/users/{user_id}/stats", response_model=PlayerSummaryResponse)
async def get_user_stats(user_id: int, session: AsyncSession = Depends(get_db_session)):
    """Won, played, win rate and recent form (oldest first)."""
    try:
        return await stats_service.get_player_summary(session, user_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting user stats: {str(e)}")


@router.get("/api/users/{user_id}/coaching-tips", response_model=CoachingTipsResponse)
async def get_coaching_tips(user_id: int, session: AsyncSession = Depends(get_db_session)):
    """
    Three coaching tips for the user.

    Provider failures never surface here; the fallback tips are returned instead.
    """
    try:
        return await coaching_service.get_coaching_tips_for_user(session, user_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error getting coaching tips for user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error getting coaching tips: {str(e)}")
