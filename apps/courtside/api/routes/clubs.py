"""Club, membership, announcement and schedule route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.api.routes import http_error
from courtside.database.db import get_db_session
from courtside.services import club_service, session_service
from courtside.models.schemas import (
    ClubCreate,
    InviteRequest,
    InviteResponse,
    AnnouncementCreate,
    AnnouncementUpdate,
    SessionCreate,
    SessionResponse,
    ClubScheduleResponse,
)
from courtside.utils.exceptions import CourtsideError

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Clubs and members
# ---------------------------------------------------------------------------


@router.post("/api/clubs", status_code=201)
async def create_club(payload: ClubCreate, session: AsyncSession = Depends(get_db_session)):
    """Create a club. The creator becomes its admin."""
    try:
        return await club_service.create_club(
            session,
            name=payload.name,
            creator_user_id=payload.creator_user_id,
            location=payload.location,
            description=payload.description,
            banner_url=payload.banner_url,
        )
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error creating club: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating club: {str(e)}")


@router.get("/api/clubs/{club_id}")
async def get_club(club_id: int, session: AsyncSession = Depends(get_db_session)):
    try:
        return await club_service.get_club(session, club_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting club: {str(e)}")


@router.get("/api/clubs/{club_id}/members")
async def get_club_members(club_id: int, session: AsyncSession = Depends(get_db_session)):
    """Members with their ledger stats, best win rate first."""
    try:
        return await club_service.get_club_members(session, club_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting club members: {str(e)}")


@router.post("/api/clubs/{club_id}/invites", response_model=InviteResponse)
async def invite_member(
    club_id: int, payload: InviteRequest, session: AsyncSession = Depends(get_db_session)
):
    """
    Invite by email. Registered users are added immediately; anyone else
    just gets an invitation message.
    """
    try:
        return await club_service.invite_member(session, club_id, payload.email)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error inviting member to club {club_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error inviting member: {str(e)}")


@router.delete("/api/clubs/{club_id}/members/{user_id}")
async def remove_member(
    club_id: int, user_id: int, session: AsyncSession = Depends(get_db_session)
):
    try:
        removed = await club_service.remove_member(session, club_id, user_id)
        if not removed:
            raise HTTPException(status_code=404, detail="Member not found")
        return {"success": True}
    except HTTPException:
        raise
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error removing member {user_id} from club {club_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error removing member: {str(e)}")


# ---------------------------------------------------------------------------
# Announcements
# ---------------------------------------------------------------------------


@router.post("/api/clubs/{club_id}/announcements", status_code=201)
async def add_announcement(
    club_id: int, payload: AnnouncementCreate, session: AsyncSession = Depends(get_db_session)
):
    try:
        return await club_service.add_announcement(session, club_id, payload.type, payload.content)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error adding announcement: {str(e)}")


@router.put("/api/clubs/{club_id}/announcements/{announcement_id}")
async def update_announcement(
    club_id: int,
    announcement_id: int,
    payload: AnnouncementUpdate,
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await club_service.update_announcement(
            session, club_id, announcement_id, type=payload.type, content=payload.content
        )
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating announcement: {str(e)}")


@router.delete("/api/clubs/{club_id}/announcements/{announcement_id}")
async def delete_announcement(
    club_id: int, announcement_id: int, session: AsyncSession = Depends(get_db_session)
):
    try:
        await club_service.delete_announcement(session, club_id, announcement_id)
        return {"success": True}
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting announcement: {str(e)}")


# ---------------------------------------------------------------------------
# Schedule
# ---------------------------------------------------------------------------


@router.get("/api/clubs/{club_id}/sessions", response_model=ClubScheduleResponse)
async def get_club_schedule(club_id: int, session: AsyncSession = Depends(get_db_session)):
    """Club sessions split into upcoming (earliest first) and past (latest first)."""
    try:
        return await session_service.get_club_schedule(session, club_id)
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting sessions: {str(e)}")


@router.post("/api/clubs/{club_id}/sessions", response_model=List[SessionResponse], status_code=201)
async def create_sessions(
    club_id: int, payload: SessionCreate, session: AsyncSession = Depends(get_db_session)
):
    """
    Create a session, or a weekly series of them.

    Request body:
        {
            "date": "2024-01-01",
            "start_time": "18:00",
            "end_time": "20:00",
            "court": "Court 3",        // Optional - defaults to "TBD"
            "max_players": 8,          // Optional - defaults to 8
            "price": 5.0,              // Optional
            "recurrence_weeks": 4      // Optional - defaults to 1
        }
    """
    try:
        return await session_service.create_sessions(
            session,
            club_id,
            date=payload.date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            court=payload.court,
            max_players=payload.max_players,
            price=payload.price,
            recurrence_weeks=payload.recurrence_weeks,
        )
    except CourtsideError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error creating sessions for club {club_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating sessions: {str(e)}")
