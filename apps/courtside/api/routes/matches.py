"""Match recording and history route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.api.routes import http_error
from courtside.database.db import get_db_session
from courtside.services import match_service, session_service
from courtside.models.schemas import MatchCreate, MatchResponse
from courtside.utils.exceptions import CourtsideError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/sessions/{session_id}/matches", response_model=MatchResponse, status_code=201)
async def record_match(
    session_id: int, payload: MatchCreate, session: AsyncSession = Depends(get_db_session)
):
    """
    Record a match played in a session.

    Request body:
        {
            "team_a": [1, 2],
            "team_b": [3, 4],
            "score_a": 21,
            "score_b": 15
        }

    Club members on either team get matches_played + 1, winners also get
    matches_won + 1. Ties are rejected with 400.
    """
    try:
        return await match_service.record_match(
            session,
            session_id,
            team_a=payload.team_a,
            team_b=payload.team_b,
            score_a=payload.score_a,
            score_b=payload.score_b,
        )
    except CourtsideError as e:
        logger.debug(f"Match rejected for session {session_id}: {e}")
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error recording match in session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error recording match: {str(e)}")


@router.get("/api/sessions/{session_id}/matches", response_model=List[MatchResponse])
async def get_session_matches(session_id: int, session: AsyncSession = Depends(get_db_session)):
    """Matches in a session, most recent first."""
    try:
        await session_service.get_session(session, session_id)
        return await match_service.get_session_matches(session, session_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting matches: {str(e)}")


@router.get("/api/matches/{match_id}", response_model=MatchResponse)
async def get_match(match_id: int, session: AsyncSession = Depends(get_db_session)):
    try:
        return await match_service.get_match(session, match_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting match: {str(e)}")
