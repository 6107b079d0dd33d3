"""Session roster route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.api.routes import http_error
from courtside.database.db import get_db_session
from courtside.services import session_service
from courtside.models.schemas import RosterRequest, SessionResponse, UserResponse
from courtside.utils.exceptions import CourtsideError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: int, session: AsyncSession = Depends(get_db_session)):
    try:
        return await session_service.get_session(session, session_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting session: {str(e)}")


@router.get("/api/sessions/{session_id}/players", response_model=List[UserResponse])
async def get_session_players(session_id: int, session: AsyncSession = Depends(get_db_session)):
    """Roster as user profiles, in join order."""
    try:
        return await session_service.get_session_players(session, session_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting session players: {str(e)}")


@router.post("/api/sessions/{session_id}/join", response_model=SessionResponse)
async def join_session(
    session_id: int, payload: RosterRequest, session: AsyncSession = Depends(get_db_session)
):
    """
    Add a player to the roster.

    Returns 409 when the session is full or completed. Joining twice is
    harmless and returns the session unchanged.
    """
    try:
        return await session_service.join_session(session, session_id, payload.user_id)
    except CourtsideError as e:
        logger.debug(f"Join rejected for user {payload.user_id} in session {session_id}: {e}")
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error joining session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error joining session: {str(e)}")


@router.post("/api/sessions/{session_id}/leave", response_model=SessionResponse)
async def leave_session(
    session_id: int, payload: RosterRequest, session: AsyncSession = Depends(get_db_session)
):
    """Remove a player from the roster. Not allowed once the session has started."""
    try:
        return await session_service.leave_session(session, session_id, payload.user_id)
    except CourtsideError as e:
        logger.debug(f"Leave rejected for user {payload.user_id} in session {session_id}: {e}")
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error leaving session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error leaving session: {str(e)}")


@router.post("/api/sessions/{session_id}/complete", response_model=SessionResponse)
async def complete_session(session_id: int, session: AsyncSession = Depends(get_db_session)):
    try:
        return await session_service.complete_session(session, session_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error completing session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error completing session: {str(e)}")
