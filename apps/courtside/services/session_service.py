"""
Session lifecycle service.

Creates sessions (optionally as a weekly series), admits and releases
players, and keeps the stored status in line with the roster:

    OPEN  <-> FULL   driven purely by roster size vs. max_players
    COMPLETED        terminal, set only by complete_session()

Every roster mutation holds the session's lock from the first read until
commit, so concurrent joins can never push a roster past capacity.
"""

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple, Union
import logging

from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.database.models import (
    Club, Session, SessionPlayer, SessionStatus, User,
)
from courtside.services.user_service import user_to_dict
from courtside.utils.constants import DEFAULT_COURT, DEFAULT_MAX_PLAYERS, DAYS_PER_RECURRENCE
from courtside.utils.datetime_utils import (
    utcnow,
    parse_session_date,
    parse_session_time,
    is_session_upcoming,
    has_session_started,
)
from courtside.utils.exceptions import (
    NotFound, ValidationError, CapacityExceeded, SessionLocked,
)
from courtside.utils.locks import get_entity_locks, session_lock_key

logger = logging.getLogger(__name__)


def derive_status(player_count: int, max_players: int, is_completed: bool) -> SessionStatus:
    """
    Status for a roster of player_count against max_players.

    COMPLETED wins over everything; otherwise FULL exactly when the roster
    has reached capacity.
    """
    if is_completed:
        return SessionStatus.COMPLETED
    if player_count >= max_players:
        return SessionStatus.FULL
    return SessionStatus.OPEN


def _refresh_status(sess: Session) -> None:
    sess.status = derive_status(
        len(sess.players), sess.max_players, sess.completed_at is not None
    )


def session_to_dict(sess: Session, now: Optional[datetime] = None) -> Dict:
    """Convert Session model (with players loaded) to dict."""
    now = now or utcnow()
    return {
        "id": sess.id,
        "club_id": sess.club_id,
        "date": sess.date.isoformat(),
        "start_time": sess.start_time,
        "end_time": sess.end_time,
        "court": sess.court,
        "max_players": sess.max_players,
        "price": sess.price,
        "registered_player_ids": sess.registered_player_ids,
        "player_count": len(sess.players),
        "status": sess.status.value,
        "is_upcoming": is_session_upcoming(sess.date, sess.end_time, now),
    }


def partition_sessions(
    sessions: List[Dict], now: Optional[datetime] = None
) -> Tuple[List[Dict], List[Dict]]:
    """
    Split session dicts into (upcoming, past).

    Upcoming keeps the input order; past is reversed so the most recent
    session comes first. Status plays no part in the split.
    """
    now = now or utcnow()
    upcoming = []
    past = []
    for s in sessions:
        if is_session_upcoming(parse_session_date(s["date"]), s["end_time"], now):
            upcoming.append(s)
        else:
            past.append(s)
    past.reverse()
    return upcoming, past


async def _load_session(session: AsyncSession, session_id: int) -> Session:
    """Load a session with its roster, bypassing stale identity-map state."""
    result = await session.execute(
        select(Session)
        .options(selectinload(Session.players))
        .where(Session.id == session_id)
        .execution_options(populate_existing=True)
    )
    sess = result.scalar_one_or_none()
    if not sess:
        raise NotFound(f"Session {session_id} not found")
    return sess


def _validate_template(
    session_date: Union[str, date, None],
    start_time: Optional[str],
    end_time: Optional[str],
    max_players: Optional[int],
    recurrence_weeks: int,
) -> Tuple[date, int]:
    missing = [
        name
        for name, value in (
            ("date", session_date),
            ("start_time", start_time),
            ("end_time", end_time),
        )
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    try:
        base_date = parse_session_date(session_date)
    except ValueError:
        raise ValidationError(f"Invalid date {session_date!r}, expected YYYY-MM-DD")
    for label, value in (("start_time", start_time), ("end_time", end_time)):
        try:
            parse_session_time(value)
        except ValueError:
            raise ValidationError(f"Invalid {label} {value!r}, expected HH:MM")

    if isinstance(recurrence_weeks, bool) or not isinstance(recurrence_weeks, int) or recurrence_weeks < 1:
        raise ValidationError("recurrence_weeks must be an integer >= 1")

    # Unset (or 0, as a blank form field arrives) falls back to the default
    capacity = max_players or DEFAULT_MAX_PLAYERS
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
        raise ValidationError("max_players must be a positive integer")

    return base_date, capacity


async def create_sessions(
    session: AsyncSession,
    club_id: int,
    date: Union[str, date, None],
    start_time: Optional[str],
    end_time: Optional[str],
    court: Optional[str] = None,
    max_players: Optional[int] = None,
    price: Optional[float] = None,
    recurrence_weeks: int = 1,
    now: Optional[datetime] = None,
) -> List[Dict]:
    """
    Create one session, or a weekly series of them, from a template.

    Instance i is dated date + 7*i days; every other field is copied. All
    instances start OPEN with an empty roster. Everything is validated
    before anything is created, and the series is committed as one unit.

    Args:
        session: Database session
        club_id: Owning club
        date: First session date ("YYYY-MM-DD" or date)
        start_time: "HH:MM"
        end_time: "HH:MM"
        court: Court label, defaults to DEFAULT_COURT
        max_players: Roster capacity, defaults to DEFAULT_MAX_PLAYERS
        price: Optional price per player
        recurrence_weeks: Number of weekly instances (>= 1)

    Returns:
        List of session dicts in date order

    Raises:
        ValidationError: If required fields are missing or malformed
        NotFound: If the club does not exist
    """
    base_date, capacity = _validate_template(
        date, start_time, end_time, max_players, recurrence_weeks
    )
    if not await session.get(Club, club_id):
        raise NotFound(f"Club {club_id} not found")

    created = []
    for i in range(recurrence_weeks):
        sess = Session(
            club_id=club_id,
            date=base_date + timedelta(days=DAYS_PER_RECURRENCE * i),
            start_time=start_time.strip(),
            end_time=end_time.strip(),
            court=(court or "").strip() or DEFAULT_COURT,
            max_players=capacity,
            price=price,
            status=SessionStatus.OPEN,
            players=[],
        )
        session.add(sess)
        created.append(sess)

    try:
        await session.flush()
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(
        f"Created {len(created)} session(s) for club {club_id} starting {base_date.isoformat()}"
    )
    return [session_to_dict(s, now) for s in created]


async def get_session(session: AsyncSession, session_id: int, now: Optional[datetime] = None) -> Dict:
    """
    Get a session with its roster.

    Raises:
        NotFound: If the session does not exist
    """
    return session_to_dict(await _load_session(session, session_id), now)


async def get_sessions(session: AsyncSession, club_id: int, now: Optional[datetime] = None) -> List[Dict]:
    """All sessions of a club, earliest first."""
    result = await session.execute(
        select(Session)
        .options(selectinload(Session.players))
        .where(Session.club_id == club_id)
        .order_by(Session.date.asc(), Session.start_time.asc(), Session.id.asc())
    )
    return [session_to_dict(s, now) for s in result.scalars().all()]


async def get_club_schedule(session: AsyncSession, club_id: int, now: Optional[datetime] = None) -> Dict:
    """
    A club's sessions split by time.

    Returns:
        {"upcoming": [...earliest first], "past": [...most recent first]}

    Raises:
        NotFound: If the club does not exist
    """
    now = now or utcnow()
    if not await session.get(Club, club_id):
        raise NotFound(f"Club {club_id} not found")
    upcoming, past = partition_sessions(await get_sessions(session, club_id, now), now)
    return {"upcoming": upcoming, "past": past}


async def get_user_sessions(session: AsyncSession, user_id: int, now: Optional[datetime] = None) -> List[Dict]:
    """Sessions whose roster contains the user, most recent date first."""
    result = await session.execute(
        select(Session)
        .options(selectinload(Session.players))
        .join(SessionPlayer, SessionPlayer.session_id == Session.id)
        .where(SessionPlayer.user_id == user_id)
        .order_by(Session.date.desc(), Session.start_time.desc(), Session.id.desc())
    )
    return [session_to_dict(s, now) for s in result.scalars().unique().all()]


async def get_session_players(session: AsyncSession, session_id: int) -> List[Dict]:
    """Users on the roster, in join order."""
    sess = await _load_session(session, session_id)
    result = await session.execute(
        select(User)
        .join(SessionPlayer, SessionPlayer.user_id == User.id)
        .where(SessionPlayer.session_id == sess.id)
        .order_by(SessionPlayer.id.asc())
    )
    return [user_to_dict(u) for u in result.scalars().all()]


async def join_session(
    session: AsyncSession,
    session_id: int,
    user_id: int,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Add a player to the end of a session's roster.

    Joining twice is a no-op that returns the session unchanged. Club
    membership is not checked.

    Raises:
        NotFound: If the session or user does not exist
        SessionLocked: If the session is completed
        CapacityExceeded: If the roster is already full
    """
    async with get_entity_locks().hold(session_lock_key(session_id)):
        try:
            sess = await _load_session(session, session_id)
            if not await session.get(User, user_id):
                raise NotFound(f"User {user_id} not found")

            if sess.status == SessionStatus.COMPLETED:
                raise SessionLocked("Session is completed")

            if user_id in sess.registered_player_ids:
                return session_to_dict(sess, now)

            if len(sess.players) >= sess.max_players:
                raise CapacityExceeded("Session full")

            sess.players.append(SessionPlayer(user_id=user_id))
            _refresh_status(sess)
            await session.flush()
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    logger.info(
        f"User {user_id} joined session {session_id} "
        f"({len(sess.players)}/{sess.max_players}, {sess.status.value})"
    )
    return session_to_dict(sess, now)


async def leave_session(
    session: AsyncSession,
    session_id: int,
    user_id: int,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Remove a player from a session's roster.

    Leaving a session the user is not on is a no-op.

    Raises:
        NotFound: If the session does not exist
        SessionLocked: If the session is completed or has already started
    """
    now = now or utcnow()
    async with get_entity_locks().hold(session_lock_key(session_id)):
        try:
            sess = await _load_session(session, session_id)

            if sess.status == SessionStatus.COMPLETED:
                raise SessionLocked("Session is completed")
            if has_session_started(sess.date, sess.start_time, now):
                raise SessionLocked("Cannot leave a session that has already started")

            entry = next((p for p in sess.players if p.user_id == user_id), None)
            if entry is None:
                return session_to_dict(sess, now)

            sess.players.remove(entry)
            _refresh_status(sess)
            await session.flush()
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    logger.info(
        f"User {user_id} left session {session_id} "
        f"({len(sess.players)}/{sess.max_players}, {sess.status.value})"
    )
    return session_to_dict(sess, now)


async def complete_session(
    session: AsyncSession,
    session_id: int,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Mark a session COMPLETED. Terminal: the roster is frozen afterwards.

    Completing an already completed session returns it unchanged.

    Raises:
        NotFound: If the session does not exist
    """
    async with get_entity_locks().hold(session_lock_key(session_id)):
        try:
            sess = await _load_session(session, session_id)
            if sess.completed_at is None:
                sess.completed_at = utcnow()
                _refresh_status(sess)
                await session.commit()
                logger.info(f"Session {session_id} marked completed")
        except Exception:
            await session.rollback()
            raise

    return session_to_dict(sess, now)
