"""
Club service layer.

Handles clubs, their membership rows and announcements. Membership rows
carry the match ledger, so every change to them is made under the club's
ledger lock.
"""

from typing import Optional, Dict, List
import logging

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.database.models import (
    Club, ClubMember, ClubRole, User, Announcement, AnnouncementType,
)
from courtside.services import stats_service
from courtside.services.user_service import user_to_dict
from courtside.utils.constants import DEFAULT_BANNER_URL
from courtside.utils.datetime_utils import utcnow
from courtside.utils.exceptions import NotFound, ValidationError, DuplicateEntity
from courtside.utils.locks import get_entity_locks, club_lock_key

logger = logging.getLogger(__name__)


def _announcement_to_dict(announcement: Announcement) -> Dict:
    return {
        "id": announcement.id,
        "club_id": announcement.club_id,
        "type": announcement.type.value,
        "content": announcement.content,
        "date": announcement.date.isoformat() if announcement.date else None,
    }


def _parse_announcement_type(value: Optional[str]) -> AnnouncementType:
    try:
        return AnnouncementType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in AnnouncementType)
        raise ValidationError(f"announcement type must be one of: {allowed}")


async def _require_club(session: AsyncSession, club_id: int) -> Club:
    club = await session.get(Club, club_id)
    if not club:
        raise NotFound(f"Club {club_id} not found")
    return club


async def _club_to_dict(session: AsyncSession, club: Club, include_announcements: bool = False) -> Dict:
    """Convert Club model to dict."""
    count_result = await session.execute(
        select(func.count(ClubMember.id)).where(ClubMember.club_id == club.id)
    )
    result = {
        "id": club.id,
        "name": club.name,
        "location": club.location,
        "description": club.description,
        "banner_url": club.banner_url,
        "member_count": count_result.scalar() or 0,
        "created_at": club.created_at.isoformat() if club.created_at else None,
    }
    if include_announcements:
        result["announcements"] = await list_announcements(session, club.id)
    return result


async def create_club(
    session: AsyncSession,
    name: str,
    creator_user_id: int,
    location: Optional[str] = None,
    description: Optional[str] = None,
    banner_url: Optional[str] = None,
) -> Dict:
    """
    Create a club. The creator becomes its first admin.

    Raises:
        ValidationError: If name is missing
        NotFound: If the creator does not exist
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")

    creator = await session.get(User, creator_user_id)
    if not creator:
        raise NotFound(f"User {creator_user_id} not found")

    club = Club(
        name=name,
        location=location,
        description=description,
        banner_url=banner_url or DEFAULT_BANNER_URL,
        created_by=creator_user_id,
    )
    session.add(club)
    await session.flush()

    session.add(
        ClubMember(
            club_id=club.id,
            user_id=creator_user_id,
            role=ClubRole.ADMIN,
            matches_played=0,
            matches_won=0,
        )
    )
    await session.commit()
    await session.refresh(club)

    logger.info(f"Created club {club.id} ({name!r}) with admin user {creator_user_id}")
    return await _club_to_dict(session, club)


async def get_club(session: AsyncSession, club_id: int) -> Dict:
    """Get club details including announcements (newest first)."""
    club = await _require_club(session, club_id)
    return await _club_to_dict(session, club, include_announcements=True)


async def list_clubs(session: AsyncSession) -> List[Dict]:
    """List all clubs."""
    result = await session.execute(select(Club).order_by(Club.id))
    return [await _club_to_dict(session, c) for c in result.scalars().all()]


async def get_membership(session: AsyncSession, club_id: int, user_id: int) -> Optional[Dict]:
    """Get a single membership row, or None if the user is not a member."""
    result = await session.execute(
        select(ClubMember).where(
            ClubMember.club_id == club_id,
            ClubMember.user_id == user_id,
        )
    )
    member = result.scalar_one_or_none()
    if not member:
        return None
    return {
        "club_id": member.club_id,
        "user_id": member.user_id,
        "role": member.role.value,
        "joined_at": member.joined_at.isoformat() if member.joined_at else None,
        "matches_played": member.matches_played,
        "matches_won": member.matches_won,
    }


async def add_member(
    session: AsyncSession,
    club_id: int,
    user_id: int,
    role: str = ClubRole.MEMBER.value,
) -> Dict:
    """
    Add an existing user to a club with zeroed ledger counters.

    Raises:
        NotFound: If the club or user does not exist
        ValidationError: If role is not admin/member
        DuplicateEntity: If the user is already a member
    """
    try:
        club_role = ClubRole(role)
    except ValueError:
        raise ValidationError("role must be 'admin' or 'member'")

    async with get_entity_locks().hold(club_lock_key(club_id)):
        await _require_club(session, club_id)
        user = await session.get(User, user_id)
        if not user:
            raise NotFound(f"User {user_id} not found")

        if await get_membership(session, club_id, user_id):
            raise DuplicateEntity("User is already a member of this club")

        session.add(
            ClubMember(
                club_id=club_id,
                user_id=user_id,
                role=club_role,
                matches_played=0,
                matches_won=0,
            )
        )
        await session.commit()

    logger.info(f"Added user {user_id} to club {club_id} as {club_role.value}")
    return await get_membership(session, club_id, user_id)


async def invite_member(session: AsyncSession, club_id: int, email: str) -> Dict:
    """
    Invite someone to a club by email.

    Registered users are added straight away as members. Unknown emails get
    an invitation message and no membership.

    Returns:
        Dict with success, message and (when added) the user

    Raises:
        NotFound: If the club does not exist
        ValidationError: If email is missing
        DuplicateEntity: If the user is already a member
    """
    email = (email or "").strip()
    if not email:
        raise ValidationError("email is required")

    await _require_club(session, club_id)

    result = await session.execute(
        select(User).where(func.lower(User.email) == email.lower())
    )
    user = result.scalar_one_or_none()
    if not user:
        logger.info(f"Invitation for club {club_id} sent to unregistered email {email}")
        return {"success": True, "message": f"Invitation sent to {email}", "user": None}

    await add_member(session, club_id, user.id)
    return {
        "success": True,
        "message": f"{user.name} added to club",
        "user": user_to_dict(user),
    }


async def remove_member(session: AsyncSession, club_id: int, user_id: int) -> bool:
    """
    Remove a member from a club. Recorded matches are left untouched.

    Returns:
        True if a membership was deleted, False if the user was not a member
    """
    async with get_entity_locks().hold(club_lock_key(club_id)):
        result = await session.execute(
            delete(ClubMember).where(
                ClubMember.club_id == club_id,
                ClubMember.user_id == user_id,
            )
        )
        await session.commit()

    removed = result.rowcount > 0
    if removed:
        logger.info(f"Removed user {user_id} from club {club_id}")
    return removed


async def get_club_members(session: AsyncSession, club_id: int) -> List[Dict]:
    """Members with role and ledger stats, best win rate first."""
    return await stats_service.get_leaderboard(session, club_id)


#
# Announcements
#

async def list_announcements(session: AsyncSession, club_id: int) -> List[Dict]:
    """Announcements for a club, newest first."""
    result = await session.execute(
        select(Announcement)
        .where(Announcement.club_id == club_id)
        .order_by(Announcement.id.desc())
    )
    return [_announcement_to_dict(a) for a in result.scalars().all()]


async def add_announcement(
    session: AsyncSession,
    club_id: int,
    type: str,
    content: str,
) -> Dict:
    """Post an announcement dated today."""
    announcement_type = _parse_announcement_type(type)
    content = (content or "").strip()
    if not content:
        raise ValidationError("content is required")
    await _require_club(session, club_id)

    announcement = Announcement(
        club_id=club_id,
        type=announcement_type,
        content=content,
        date=utcnow().date(),
    )
    session.add(announcement)
    await session.commit()
    return _announcement_to_dict(announcement)


async def _require_announcement(
    session: AsyncSession, club_id: int, announcement_id: int
) -> Announcement:
    result = await session.execute(
        select(Announcement).where(
            Announcement.id == announcement_id,
            Announcement.club_id == club_id,
        )
    )
    announcement = result.scalar_one_or_none()
    if not announcement:
        raise NotFound(f"Announcement {announcement_id} not found")
    return announcement


async def update_announcement(
    session: AsyncSession,
    club_id: int,
    announcement_id: int,
    type: Optional[str] = None,
    content: Optional[str] = None,
) -> Dict:
    """Edit an announcement's type and/or content."""
    announcement = await _require_announcement(session, club_id, announcement_id)
    new_type = _parse_announcement_type(type) if type is not None else None
    if content is not None and not content.strip():
        raise ValidationError("content cannot be empty")

    if new_type is not None:
        announcement.type = new_type
    if content is not None:
        announcement.content = content.strip()
    await session.commit()
    return _announcement_to_dict(announcement)


async def delete_announcement(session: AsyncSession, club_id: int, announcement_id: int) -> bool:
    """Delete an announcement."""
    announcement = await _require_announcement(session, club_id, announcement_id)
    await session.delete(announcement)
    await session.commit()
    return True
