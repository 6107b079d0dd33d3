"""
Tests for the coaching tips service.

The Gemini client is always mocked; no network calls are made.
"""

import json
import pytest
from unittest.mock import MagicMock, patch

from courtside.services import coaching_service, match_service
from courtside.utils.constants import FALLBACK_COACHING_TIPS
from courtside.utils.exceptions import NotFound


# ============================================================================
# Test Data Fixtures
# ============================================================================

@pytest.fixture
def sample_stats():
    return {"won": 2, "played": 3, "form": ["W", "L", "W"]}


@pytest.fixture
def sample_recent_matches():
    return [
        {"score_a": 21, "score_b": 18, "result": "Win"},
        {"score_a": 15, "score_b": 21, "result": "Loss"},
        {"score_a": 21, "score_b": 9, "result": "Win"},
    ]


def _mock_client(text=None, side_effect=None):
    client = MagicMock()
    if side_effect is not None:
        client.models.generate_content.side_effect = side_effect
    else:
        client.models.generate_content.return_value = MagicMock(text=text)
    return client


# ============================================================================
# Prompt and parsing
# ============================================================================

class TestBuildTipsPrompt:
    """Tests for the prompt sent to the provider."""

    def test_prompt_includes_stats(self, sample_stats, sample_recent_matches):
        prompt = coaching_service.build_tips_prompt(sample_stats, sample_recent_matches)

        assert "expert badminton coach" in prompt
        assert "Win Rate: 67%" in prompt
        assert "Recent Form: W-L-W" in prompt
        assert "Score: 15-21 (Result: Loss)" in prompt
        assert "exactly 3" in prompt

    def test_prompt_without_matches(self):
        prompt = coaching_service.build_tips_prompt({"won": 0, "played": 0, "form": []}, [])
        assert "Win Rate: 0%" in prompt
        assert "no matches yet" in prompt

    def test_prompt_caps_match_details_at_five(self):
        matches = [{"score_a": i, "score_b": 21, "result": "Loss"} for i in range(8)]
        prompt = coaching_service.build_tips_prompt({"won": 0, "played": 8, "form": []}, matches)
        assert prompt.count("Score:") == 5


class TestParseTips:
    """Tests for validating the provider's answer."""

    def test_valid_answer(self):
        assert coaching_service.parse_tips('["a", " b ", "c"]') == ["a", "b", "c"]

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "",
            "not json",
            '{"tips": ["a", "b", "c"]}',
            '["a", "b"]',
            '["a", "b", "c", "d"]',
            '["a", "", "c"]',
            '["a", 2, "c"]',
        ],
    )
    def test_unusable_answers(self, raw):
        assert coaching_service.parse_tips(raw) is None


# ============================================================================
# generate_coaching_tips
# ============================================================================

class TestGenerateCoachingTips:
    """generate_coaching_tips with a mocked Gemini client."""

    @pytest.mark.asyncio
    async def test_returns_provider_tips(self, sample_stats, sample_recent_matches):
        tips = ["Move your feet", "Clear to the back", "Serve low"]
        client = _mock_client(text=json.dumps(tips))

        with patch.object(coaching_service, "get_gemini_client", return_value=client):
            result = await coaching_service.generate_coaching_tips(sample_stats, sample_recent_matches)

        assert result == tips
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == coaching_service.GEMINI_MODEL
        assert kwargs["config"]["response_mime_type"] == "application/json"
        assert "Win Rate: 67%" in kwargs["contents"]

    @pytest.mark.asyncio
    async def test_provider_error_returns_fallback(self, sample_stats, sample_recent_matches):
        client = _mock_client(side_effect=Exception("API rate limit exceeded"))

        with patch.object(coaching_service, "get_gemini_client", return_value=client):
            result = await coaching_service.generate_coaching_tips(sample_stats, sample_recent_matches)

        assert result == FALLBACK_COACHING_TIPS

    @pytest.mark.asyncio
    async def test_missing_api_key_returns_fallback(self, sample_stats):
        with patch.object(coaching_service, "get_gemini_client", side_effect=ValueError("no key")):
            result = await coaching_service.generate_coaching_tips(sample_stats, [])

        assert result == FALLBACK_COACHING_TIPS

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "[]", '["only one"]', "Here are some tips!"])
    async def test_unusable_output_returns_fallback(self, sample_stats, text):
        client = _mock_client(text=text)

        with patch.object(coaching_service, "get_gemini_client", return_value=client):
            result = await coaching_service.generate_coaching_tips(sample_stats, [])

        assert result == FALLBACK_COACHING_TIPS

    @pytest.mark.asyncio
    async def test_fallback_is_a_copy(self, sample_stats):
        with patch.object(coaching_service, "get_gemini_client", side_effect=ValueError("no key")):
            result = await coaching_service.generate_coaching_tips(sample_stats, [])
        result.append("mutated")

        assert len(FALLBACK_COACHING_TIPS) == 3


def test_get_gemini_client_requires_key(monkeypatch):
    monkeypatch.setattr(coaching_service, "_gemini_client", None)
    monkeypatch.setattr(coaching_service, "GEMINI_API_KEY", None)

    with pytest.raises(ValueError):
        coaching_service.get_gemini_client()


# ============================================================================
# get_coaching_tips_for_user
# ============================================================================

@pytest.mark.asyncio
async def test_tips_for_user_sends_recent_results(db_session, make_user, make_session):
    me, them = await make_user(), await make_user()
    s = await make_session()
    await match_service.record_match(db_session, s["id"], [me["id"]], [them["id"]], 21, 15)
    await match_service.record_match(db_session, s["id"], [them["id"]], [me["id"]], 21, 19)

    captured = {}

    async def fake_generate(stats, recent_matches):
        captured["stats"] = stats
        captured["recent"] = recent_matches
        return ["one", "two", "three"]

    with patch.object(coaching_service, "generate_coaching_tips", side_effect=fake_generate):
        result = await coaching_service.get_coaching_tips_for_user(db_session, me["id"])

    assert result["tips"] == ["one", "two", "three"]
    assert captured["stats"] == {"won": 1, "played": 2, "form": ["W", "L"]}
    assert captured["recent"] == [
        {"score_a": 21, "score_b": 19, "result": "Loss"},
        {"score_a": 21, "score_b": 15, "result": "Win"},
    ]


@pytest.mark.asyncio
async def test_tips_for_unknown_user(db_session):
    with pytest.raises(NotFound):
        await coaching_service.get_coaching_tips_for_user(db_session, 999)
