"""
Read-only stats projections.

Leaderboards come from the per-club ledger kept on membership rows. A
player's form and overall win rate are recomputed from the match log,
because a player can belong to several clubs.
"""

from typing import Dict, List, Tuple
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.database.models import Club, ClubMember, User, Match, MatchParticipant
from courtside.services.user_service import user_to_dict
from courtside.utils.constants import RECENT_FORM_LENGTH
from courtside.utils.exceptions import NotFound

logger = logging.getLogger(__name__)


def win_rate(won: int, played: int) -> float:
    """won / played with a floor divisor of 1, so zero matches rank as 0%."""
    return won / max(played, 1)


async def get_leaderboard(session: AsyncSession, club_id: int) -> List[Dict]:
    """
    All members of a club joined with their user, best win rate first.

    Members with equal win rates keep their join order.

    Raises:
        NotFound: If the club does not exist
    """
    if not await session.get(Club, club_id):
        raise NotFound(f"Club {club_id} not found")

    result = await session.execute(
        select(ClubMember, User)
        .join(User, ClubMember.user_id == User.id)
        .where(ClubMember.club_id == club_id)
        .order_by(ClubMember.id)
    )

    members = []
    for member, user in result.all():
        entry = user_to_dict(user)
        entry["role"] = member.role.value
        entry["stats"] = {"played": member.matches_played, "won": member.matches_won}
        entry["win_rate"] = win_rate(member.matches_won, member.matches_played)
        members.append(entry)

    # sorted() is stable, so ties stay in join order
    return sorted(members, key=lambda m: m["win_rate"], reverse=True)


async def _user_results(session: AsyncSession, user_id: int) -> List[Tuple[Match, bool]]:
    """(match, won) for every match the user played, newest first."""
    result = await session.execute(
        select(Match, MatchParticipant.team)
        .join(MatchParticipant, MatchParticipant.match_id == Match.id)
        .where(MatchParticipant.user_id == user_id)
        .order_by(Match.recorded_at.desc(), Match.id.desc())
    )
    return [(match, team == match.winner) for match, team in result.all()]


def _form(results: List[Tuple[Match, bool]], n: int) -> List[str]:
    form = ["W" if won else "L" for _, won in results[:max(n, 0)]]
    form.reverse()
    return form


async def get_recent_form(
    session: AsyncSession, user_id: int, n: int = RECENT_FORM_LENGTH
) -> List[str]:
    """
    The user's last n results as "W"/"L", oldest first.

    Args:
        session: Database session
        user_id: User ID
        n: Number of most recent matches to include

    Returns:
        List like ["L", "W", "W"]
    """
    results = await _user_results(session, user_id)
    return _form(results, n)


async def get_win_rate(session: AsyncSession, user_id: int) -> float:
    """Win rate across every club's matches (0.0 when the user has none)."""
    results = await _user_results(session, user_id)
    if not results:
        return 0.0
    won = sum(1 for _, w in results if w)
    return won / len(results)


async def get_player_summary(
    session: AsyncSession, user_id: int, form_length: int = RECENT_FORM_LENGTH
) -> Dict:
    """
    Overall stats for a player's profile.

    Raises:
        NotFound: If the user does not exist

    Returns:
        Dict with won, played, win_rate and form
    """
    if not await session.get(User, user_id):
        raise NotFound(f"User {user_id} not found")

    results = await _user_results(session, user_id)
    played = len(results)
    won = sum(1 for _, w in results if w)
    form = _form(results, form_length)

    return {
        "user_id": user_id,
        "won": won,
        "played": played,
        "win_rate": win_rate(won, played),
        "form": form,
    }
