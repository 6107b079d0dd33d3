"""
Coaching tips from Google Gemini.

The provider is a black box that may be unconfigured, fail, or answer with
something other than three tips. None of that ever reaches the caller:
every failure is logged and replaced with FALLBACK_COACHING_TIPS.
"""

import asyncio
import json
import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.services import stats_service
from courtside.services import match_service
from courtside.utils.constants import FALLBACK_COACHING_TIPS, RECENT_FORM_LENGTH

load_dotenv()

logger = logging.getLogger(__name__)

# Configuration
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
TIP_COUNT = 3

TIPS_JSON_SCHEMA = {
    "type": "array",
    "items": {"type": "string"},
    "minItems": TIP_COUNT,
    "maxItems": TIP_COUNT,
}

# Gemini client (singleton); type is Any to allow lazy import
_gemini_client: Any = None


def get_gemini_client():
    """Get or create Gemini client. Lazy-imports google.genai to avoid import-time dependency."""
    global _gemini_client
    if _gemini_client is None:
        if not GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY or GOOGLE_API_KEY environment variable is not set")
        from google import genai
        _gemini_client = genai.Client(api_key=GEMINI_API_KEY)
    return _gemini_client


def fallback_tips() -> List[str]:
    return list(FALLBACK_COACHING_TIPS)


def build_tips_prompt(stats: Dict, recent_matches: List[Dict]) -> str:
    """
    Build the coaching prompt.

    Args:
        stats: {"won", "played", "form"}
        recent_matches: [{"score_a", "score_b", "result"}], newest first
    """
    win_rate = round(stats.get("won", 0) / (stats.get("played") or 1) * 100)
    form = "-".join(stats.get("form") or []) or "no matches yet"
    details = "\n".join(
        f"- Score: {m['score_a']}-{m['score_b']} (Result: {m['result']})"
        for m in recent_matches[:RECENT_FORM_LENGTH]
    ) or "- none"

    return (
        "You are an expert badminton coach. Analyze this player's stats:\n"
        f"- Win Rate: {win_rate}%\n"
        f"- Recent Form: {form}\n"
        f"- Recent Match Details:\n{details}\n\n"
        f"Provide exactly {TIP_COUNT} short, actionable, and encouraging coaching tips "
        "to improve their game. Format as a JSON string array. "
        'Example: ["Tip 1", "Tip 2", "Tip 3"]'
    )


def parse_tips(response_text: Optional[str]) -> Optional[List[str]]:
    """
    Parse the provider's answer.

    Returns:
        Exactly TIP_COUNT non-empty strings, or None if the answer is unusable
    """
    if not response_text:
        return None
    try:
        parsed = json.loads(response_text)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, list) or len(parsed) != TIP_COUNT:
        return None
    if not all(isinstance(tip, str) and tip.strip() for tip in parsed):
        return None
    return [tip.strip() for tip in parsed]


async def generate_coaching_tips(stats: Dict, recent_matches: List[Dict]) -> List[str]:
    """
    Ask Gemini for three coaching tips. Never raises.

    Args:
        stats: {"won", "played", "form"}
        recent_matches: [{"score_a", "score_b", "result"}], newest first

    Returns:
        Three tips, from the provider or the static fallback
    """
    try:
        client = get_gemini_client()
        prompt = build_tips_prompt(stats, recent_matches)

        def _call() -> str:
            response = client.models.generate_content(
                model=GEMINI_MODEL,
                contents=prompt,
                config={
                    "response_mime_type": "application/json",
                    "response_json_schema": TIPS_JSON_SCHEMA,
                },
            )
            return (getattr(response, "text", None) or "") if response else ""

        raw_text = await asyncio.to_thread(_call)
    except Exception as e:
        logger.warning(f"Gemini coaching tips failed, using fallback: {e}")
        return fallback_tips()

    tips = parse_tips(raw_text)
    if tips is None:
        logger.warning(f"Gemini returned unusable coaching tips, using fallback: {raw_text!r}")
        return fallback_tips()
    return tips


async def get_coaching_tips_for_user(session: AsyncSession, user_id: int) -> Dict:
    """
    Build a player's stats and ask for tips.

    Only the stats lookup can raise (NotFound for an unknown user); the
    provider call itself always yields three tips.
    """
    summary = await stats_service.get_player_summary(session, user_id)
    matches = await match_service.get_user_matches(session, user_id, limit=RECENT_FORM_LENGTH)

    recent = []
    for m in matches:
        on_team_a = user_id in m["team_a"]
        won = (m["winner"] == "A") == on_team_a
        recent.append({
            "score_a": m["score_a"],
            "score_b": m["score_b"],
            "result": "Win" if won else "Loss",
        })

    stats = {"won": summary["won"], "played": summary["played"], "form": summary["form"]}
    tips = await generate_coaching_tips(stats, recent)
    return {"user_id": user_id, "stats": stats, "tips": tips}
