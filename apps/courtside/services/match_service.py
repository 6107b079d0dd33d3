"""
Match recording service.

record_match() is the only writer of the membership ledger. The match row,
its participants and every ledger increment are committed in a single
transaction while the club's ledger lock is held, so readers never see a
match without its counter updates or the other way round.
"""

from typing import Dict, List, Optional, Sequence
import logging

from sqlalchemy import select, update, case
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.database.models import (
    Session, ClubMember, User, Match, MatchParticipant, MatchTeam,
)
from courtside.utils.datetime_utils import ensure_utc, get_match_clock
from courtside.utils.exceptions import NotFound, ValidationError, InvalidScore
from courtside.utils.locks import get_entity_locks, club_lock_key

logger = logging.getLogger(__name__)


def match_to_dict(match: Match) -> Dict:
    """Convert Match model (with participants loaded) to dict."""
    return {
        "id": match.id,
        "session_id": match.session_id,
        "team_a": match.team_a,
        "team_b": match.team_b,
        "score_a": match.score_a,
        "score_b": match.score_b,
        "winner": match.winner.value,
        "timestamp": ensure_utc(match.recorded_at).isoformat(),
    }


def determine_winner(score_a: int, score_b: int) -> MatchTeam:
    """A if team A outscored team B, else B. Ties must be rejected beforehand."""
    return MatchTeam.A if score_a > score_b else MatchTeam.B


def _validate_team(label: str, team: Sequence[int]) -> List[int]:
    players = list(team or [])
    if not players:
        raise ValidationError(f"{label} must have at least one player")
    if len(set(players)) != len(players):
        raise ValidationError(f"{label} lists a player more than once")
    return players


def _validate_score(label: str, score) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError(f"{label} must be an integer")
    if score < 0:
        raise ValidationError(f"{label} cannot be negative")
    return score


def validate_match(
    team_a: Sequence[int], team_b: Sequence[int], score_a: int, score_b: int
) -> None:
    """
    Check a match result before anything is written.

    Raises:
        ValidationError: Empty teams, duplicate players, overlapping teams, bad scores
        InvalidScore: Tied scores
    """
    players_a = _validate_team("team_a", team_a)
    players_b = _validate_team("team_b", team_b)
    overlap = set(players_a) & set(players_b)
    if overlap:
        raise ValidationError(
            f"Players cannot be on both teams: {', '.join(str(p) for p in sorted(overlap))}"
        )
    _validate_score("score_a", score_a)
    _validate_score("score_b", score_b)
    if score_a == score_b:
        raise InvalidScore("Matches cannot end in a draw")


async def record_match(
    session: AsyncSession,
    session_id: int,
    team_a: Sequence[int],
    team_b: Sequence[int],
    score_a: int,
    score_b: int,
) -> Dict:
    """
    Record a completed match and update the club ledger.

    Every member of the session's club who played gets matches_played + 1;
    members on the winning team also get matches_won + 1. Players who are
    not members (guests) appear in the match only.

    Args:
        session: Database session
        session_id: Session the match was played in
        team_a: User IDs on team A
        team_b: User IDs on team B
        score_a: Team A score
        score_b: Team B score

    Returns:
        Dict with the recorded match

    Raises:
        ValidationError: Empty/overlapping teams or negative scores
        InvalidScore: Tied scores
        NotFound: Unknown session or player
    """
    validate_match(team_a, team_b, score_a, score_b)
    players_a = list(team_a)
    players_b = list(team_b)
    winner = determine_winner(score_a, score_b)
    winning_team = players_a if winner == MatchTeam.A else players_b
    all_players = players_a + players_b

    sess = await session.get(Session, session_id)
    if not sess:
        raise NotFound(f"Session {session_id} not found")
    club_id = sess.club_id

    async with get_entity_locks().hold(club_lock_key(club_id)):
        try:
            result = await session.execute(select(User.id).where(User.id.in_(all_players)))
            known = set(result.scalars().all())
            unknown = [p for p in all_players if p not in known]
            if unknown:
                raise NotFound(f"Unknown players: {', '.join(str(p) for p in unknown)}")

            # Row-lock the ledger rows being updated (PostgreSQL); SQLite
            # relies on its database-level write lock
            result = await session.execute(
                select(ClubMember.user_id)
                .where(
                    ClubMember.club_id == club_id,
                    ClubMember.user_id.in_(all_players),
                )
                .with_for_update()
            )
            member_ids = set(result.scalars().all())

            match = Match(
                session_id=session_id,
                score_a=score_a,
                score_b=score_b,
                winner=winner,
                recorded_at=get_match_clock().now(),
                participants=[
                    MatchParticipant(user_id=p, team=MatchTeam.A) for p in players_a
                ] + [
                    MatchParticipant(user_id=p, team=MatchTeam.B) for p in players_b
                ],
            )
            session.add(match)

            if member_ids:
                await session.execute(
                    update(ClubMember)
                    .where(
                        ClubMember.club_id == club_id,
                        ClubMember.user_id.in_(sorted(member_ids)),
                    )
                    .values(
                        matches_played=ClubMember.matches_played + 1,
                        matches_won=ClubMember.matches_won + case(
                            (ClubMember.user_id.in_(winning_team), 1),
                            else_=0,
                        ),
                    )
                    .execution_options(synchronize_session="fetch")
                )

            await session.flush()
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    guests = [p for p in all_players if p not in member_ids]
    logger.info(
        f"Recorded match {match.id} in session {session_id}: {score_a}-{score_b}, "
        f"winner {winner.value}; ledger updated for {len(member_ids)} member(s)"
        + (f", guests {guests}" if guests else "")
    )
    return match_to_dict(match)


async def get_match(session: AsyncSession, match_id: int) -> Dict:
    """
    Get a match by ID.

    Raises:
        NotFound: If the match does not exist
    """
    result = await session.execute(
        select(Match)
        .options(selectinload(Match.participants))
        .where(Match.id == match_id)
    )
    match = result.scalar_one_or_none()
    if not match:
        raise NotFound(f"Match {match_id} not found")
    return match_to_dict(match)


async def get_session_matches(session: AsyncSession, session_id: int) -> List[Dict]:
    """Matches played in a session, most recent first."""
    result = await session.execute(
        select(Match)
        .options(selectinload(Match.participants))
        .where(Match.session_id == session_id)
        .order_by(Match.recorded_at.desc(), Match.id.desc())
    )
    return [match_to_dict(m) for m in result.scalars().all()]


async def get_user_matches(session: AsyncSession, user_id: int, limit: Optional[int] = None) -> List[Dict]:
    """Matches the user played on either team, most recent first."""
    query = (
        select(Match)
        .options(selectinload(Match.participants))
        .join(MatchParticipant, MatchParticipant.match_id == Match.id)
        .where(MatchParticipant.user_id == user_id)
        .order_by(Match.recorded_at.desc(), Match.id.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    result = await session.execute(query)
    return [match_to_dict(m) for m in result.scalars().unique().all()]
