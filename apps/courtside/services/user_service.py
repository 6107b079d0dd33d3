"""
User service layer for registration and profile operations.
"""

from typing import Optional, Dict, List
from urllib.parse import quote_plus
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from courtside.database.models import User, Club, ClubMember
from courtside.utils.constants import AVATAR_URL_TEMPLATE, MIN_SKILL_LEVEL, MAX_SKILL_LEVEL
from courtside.utils.exceptions import NotFound, ValidationError, DuplicateEntity
import logging

logger = logging.getLogger(__name__)


def _normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def _validate_skill_level(skill_level) -> int:
    if isinstance(skill_level, bool) or not isinstance(skill_level, int):
        raise ValidationError("skill_level must be an integer")
    if not MIN_SKILL_LEVEL <= skill_level <= MAX_SKILL_LEVEL:
        raise ValidationError(
            f"skill_level must be between {MIN_SKILL_LEVEL} and {MAX_SKILL_LEVEL}"
        )
    return skill_level


def user_to_dict(user: User) -> Dict:
    """Convert User model to dict."""
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "skill_level": user.skill_level,
        "avatar_url": user.avatar_url,
    }


async def _email_taken(session: AsyncSession, email: str, exclude_user_id: Optional[int] = None) -> bool:
    query = select(User.id).where(func.lower(User.email) == email)
    if exclude_user_id is not None:
        query = query.where(User.id != exclude_user_id)
    result = await session.execute(query)
    return result.first() is not None


async def create_user(
    session: AsyncSession,
    name: str,
    email: str,
    skill_level: int,
    avatar_url: Optional[str] = None,
) -> Dict:
    """
    Register a new user.

    Args:
        session: Database session
        name: Display name
        email: Email address (unique, case-insensitive)
        skill_level: Self-reported rating, 1-10
        avatar_url: Optional avatar; defaults to a generated initials avatar

    Returns:
        Dict with user info

    Raises:
        ValidationError: If name/email are missing or skill_level is out of range
        DuplicateEntity: If the email is already registered
    """
    name = (name or "").strip()
    email = _normalize_email(email)
    if not name:
        raise ValidationError("name is required")
    if not email:
        raise ValidationError("email is required")
    _validate_skill_level(skill_level)

    if await _email_taken(session, email):
        raise DuplicateEntity(f"Email {email} is already registered")

    user = User(
        name=name,
        email=email,
        skill_level=skill_level,
        avatar_url=avatar_url or AVATAR_URL_TEMPLATE.format(name=quote_plus(name)),
    )
    session.add(user)
    await session.flush()
    await session.commit()

    logger.info(f"Registered user {user.id} ({email})")
    return user_to_dict(user)


async def get_user(session: AsyncSession, user_id: int) -> Dict:
    """
    Resolve a user by ID.

    Raises:
        NotFound: If the user does not exist
    """
    user = await session.get(User, user_id)
    if not user:
        raise NotFound(f"User {user_id} not found")
    return user_to_dict(user)


async def get_user_by_email(session: AsyncSession, email: str) -> Dict:
    """
    Look up a user by email (used by login).

    Raises:
        NotFound: If no user has this email
    """
    result = await session.execute(
        select(User).where(func.lower(User.email) == _normalize_email(email))
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFound("User not found")
    return user_to_dict(user)


async def list_users(session: AsyncSession) -> List[Dict]:
    """List all users ordered by ID."""
    result = await session.execute(select(User).order_by(User.id))
    return [user_to_dict(u) for u in result.scalars().all()]


async def update_user(
    session: AsyncSession,
    user_id: int,
    name: Optional[str] = None,
    email: Optional[str] = None,
    skill_level: Optional[int] = None,
    avatar_url: Optional[str] = None,
) -> Dict:
    """
    Apply a profile edit. Only provided fields are changed.

    Raises:
        NotFound: If the user does not exist
        ValidationError: If a provided field is invalid
        DuplicateEntity: If the new email belongs to another user
    """
    user = await session.get(User, user_id)
    if not user:
        raise NotFound(f"User {user_id} not found")

    # Validate everything before touching the row
    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationError("name cannot be empty")
    if email is not None:
        email = _normalize_email(email)
        if not email:
            raise ValidationError("email cannot be empty")
        if await _email_taken(session, email, exclude_user_id=user_id):
            raise DuplicateEntity(f"Email {email} is already registered")
    if skill_level is not None:
        _validate_skill_level(skill_level)

    if name is not None:
        user.name = name
    if email is not None:
        user.email = email
    if skill_level is not None:
        user.skill_level = skill_level
    if avatar_url is not None:
        user.avatar_url = avatar_url

    await session.commit()
    return user_to_dict(user)


async def get_user_clubs(session: AsyncSession, user_id: int) -> List[Dict]:
    """Get all clubs the user belongs to, with their role."""
    result = await session.execute(
        select(Club, ClubMember.role)
        .join(ClubMember, ClubMember.club_id == Club.id)
        .where(ClubMember.user_id == user_id)
        .order_by(Club.id)
    )
    return [
        {
            "id": club.id,
            "name": club.name,
            "location": club.location,
            "description": club.description,
            "banner_url": club.banner_url,
            "role": role.value,
        }
        for club, role in result.all()
    ]
