"""
Unit tests for API endpoints.

Route tests replace the service functions with fakes; the flow test at the
bottom drives the real services through the ASGI app.
"""

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from courtside.api.main import app
from courtside.database.db import get_db_session
from courtside.services import (
    user_service,
    club_service,
    session_service,
    match_service,
    coaching_service,
)
from courtside.utils.constants import FALLBACK_COACHING_TIPS
from courtside.utils.exceptions import (
    NotFound,
    CapacityExceeded,
    SessionLocked,
    InvalidScore,
    ValidationError,
    DuplicateEntity,
)


# ============================================================================
# Test Fixtures and Helpers
# ============================================================================

SESSION_DICT = {
    "id": 1,
    "club_id": 1,
    "date": "2099-01-01",
    "start_time": "18:00",
    "end_time": "20:00",
    "court": "TBD",
    "max_players": 2,
    "price": None,
    "registered_player_ids": [1, 2],
    "player_count": 2,
    "status": "FULL",
    "is_upcoming": True,
}

USER_DICT = {
    "id": 1,
    "email": "alex@example.com",
    "name": "Alex",
    "skill_level": 6,
    "avatar_url": "https://ui-avatars.com/api/?name=Alex&background=random",
}


@pytest.fixture
def client():
    """TestClient with the database dependency stubbed out."""
    async def fake_get_db_session():
        yield None

    app.dependency_overrides[get_db_session] = fake_get_db_session
    yield TestClient(app)
    app.dependency_overrides.clear()


def _raise(error):
    async def fake(*args, **kwargs):
        raise error
    return fake


# ============================================================================
# Health and error mapping
# ============================================================================

def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.parametrize(
    "error,status_code",
    [
        (NotFound("Session 1 not found"), 404),
        (CapacityExceeded("Session full"), 409),
        (SessionLocked("Session is completed"), 409),
        (ValidationError("bad"), 400),
    ],
)
def test_join_error_mapping(client, monkeypatch, error, status_code):
    monkeypatch.setattr(session_service, "join_session", _raise(error), raising=True)

    response = client.post("/api/sessions/1/join", json={"user_id": 3})

    assert response.status_code == status_code
    assert response.json()["detail"] == str(error)


def test_unexpected_error_is_500(client, monkeypatch):
    monkeypatch.setattr(session_service, "join_session", _raise(RuntimeError("boom")), raising=True)

    response = client.post("/api/sessions/1/join", json={"user_id": 3})
    assert response.status_code == 500


# ============================================================================
# Users
# ============================================================================

class TestUserEndpoints:
    """Tests for user endpoints."""

    def test_create_user(self, client, monkeypatch):
        captured = {}

        async def fake_create_user(session, **kwargs):
            captured.update(kwargs)
            return USER_DICT

        monkeypatch.setattr(user_service, "create_user", fake_create_user, raising=True)

        response = client.post(
            "/api/users", json={"name": "Alex", "email": "alex@example.com", "skill_level": 6}
        )
        assert response.status_code == 201
        assert response.json() == USER_DICT
        assert captured["skill_level"] == 6
        assert captured["avatar_url"] is None

    def test_create_user_duplicate_email(self, client, monkeypatch):
        monkeypatch.setattr(
            user_service, "create_user", _raise(DuplicateEntity("Email taken")), raising=True
        )
        response = client.post(
            "/api/users", json={"name": "Alex", "email": "alex@example.com", "skill_level": 6}
        )
        assert response.status_code == 409

    def test_create_user_missing_field(self, client):
        response = client.post("/api/users", json={"name": "Alex"})
        assert response.status_code == 422

    def test_login_unknown_email(self, client, monkeypatch):
        monkeypatch.setattr(
            user_service, "get_user_by_email", _raise(NotFound("User not found")), raising=True
        )
        response = client.post("/api/auth/login", json={"email": "nobody@example.com"})
        assert response.status_code == 404

    def test_update_user_passes_only_given_fields(self, client, monkeypatch):
        captured = {}

        async def fake_update_user(session, user_id, **kwargs):
            captured["user_id"] = user_id
            captured.update(kwargs)
            return {**USER_DICT, "skill_level": 8}

        monkeypatch.setattr(user_service, "update_user", fake_update_user, raising=True)

        response = client.put("/api/users/1", json={"skill_level": 8})
        assert response.status_code == 200
        assert response.json()["skill_level"] == 8
        assert captured == {
            "user_id": 1, "name": None, "email": None, "skill_level": 8, "avatar_url": None,
        }

    def test_coaching_tips(self, client, monkeypatch):
        async def fake_tips(session, user_id):
            return {
                "user_id": user_id,
                "stats": {"won": 0, "played": 0, "form": []},
                "tips": list(FALLBACK_COACHING_TIPS),
            }

        monkeypatch.setattr(coaching_service, "get_coaching_tips_for_user", fake_tips, raising=True)

        response = client.get("/api/users/5/coaching-tips")
        assert response.status_code == 200
        assert response.json()["tips"] == FALLBACK_COACHING_TIPS


# ============================================================================
# Clubs
# ============================================================================

class TestClubEndpoints:
    """Tests for club endpoints."""

    def test_invite_unregistered(self, client, monkeypatch):
        async def fake_invite(session, club_id, email):
            return {"success": True, "message": f"Invitation sent to {email}", "user": None}

        monkeypatch.setattr(club_service, "invite_member", fake_invite, raising=True)

        response = client.post("/api/clubs/1/invites", json={"email": "new@example.com"})
        assert response.status_code == 200
        assert response.json()["message"] == "Invitation sent to new@example.com"

    def test_remove_missing_member_is_404(self, client, monkeypatch):
        async def fake_remove(session, club_id, user_id):
            return False

        monkeypatch.setattr(club_service, "remove_member", fake_remove, raising=True)

        response = client.delete("/api/clubs/1/members/9")
        assert response.status_code == 404

    def test_announcement_update_requires_a_field(self, client):
        response = client.put("/api/clubs/1/announcements/1", json={})
        assert response.status_code == 422

    def test_create_recurring_sessions(self, client, monkeypatch):
        captured = {}

        async def fake_create(session, club_id, **kwargs):
            captured.update(kwargs)
            return [
                {**SESSION_DICT, "id": i + 1, "registered_player_ids": [], "player_count": 0, "status": "OPEN"}
                for i in range(kwargs["recurrence_weeks"])
            ]

        monkeypatch.setattr(session_service, "create_sessions", fake_create, raising=True)

        response = client.post(
            "/api/clubs/1/sessions",
            json={"date": "2099-01-01", "start_time": "18:00", "end_time": "20:00", "recurrence_weeks": 3},
        )
        assert response.status_code == 201
        assert len(response.json()) == 3
        assert captured["max_players"] is None


# ============================================================================
# Sessions and matches
# ============================================================================

class TestSessionAndMatchEndpoints:
    """Tests for roster and match endpoints."""

    def test_join_returns_session(self, client, monkeypatch):
        async def fake_join(session, session_id, user_id):
            return SESSION_DICT

        monkeypatch.setattr(session_service, "join_session", fake_join, raising=True)

        response = client.post("/api/sessions/1/join", json={"user_id": 2})
        assert response.status_code == 200
        assert response.json()["status"] == "FULL"

    def test_record_tied_match_is_400(self, client, monkeypatch):
        monkeypatch.setattr(
            match_service, "record_match", _raise(InvalidScore("Matches cannot end in a draw")), raising=True
        )

        response = client.post(
            "/api/sessions/1/matches",
            json={"team_a": [1], "team_b": [2], "score_a": 15, "score_b": 15},
        )
        assert response.status_code == 400

    def test_get_match_not_found(self, client, monkeypatch):
        monkeypatch.setattr(match_service, "get_match", _raise(NotFound("Match 9 not found")), raising=True)

        response = client.get("/api/matches/9")
        assert response.status_code == 404


# ============================================================================
# End-to-end flow against the real services
# ============================================================================

@pytest_asyncio.fixture
async def api_client(test_engine):
    # The real get_db_session, running over the per-test engine
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_club_night_flow(api_client):
    async def register(name):
        response = await api_client.post(
            "/api/users", json={"name": name, "email": f"{name.lower()}@example.com", "skill_level": 5}
        )
        assert response.status_code == 201
        return response.json()

    admin, u1, u2, u3 = [await register(n) for n in ("Admin", "Uma", "Vic", "Wen")]

    response = await api_client.post("/api/clubs", json={"name": "Night Club", "creator_user_id": admin["id"]})
    assert response.status_code == 201
    club = response.json()

    for user in (u1, u2):
        response = await api_client.post(f"/api/clubs/{club['id']}/invites", json={"email": user["email"]})
        assert response.json()["message"] == f"{user['name']} added to club"

    response = await api_client.post(
        f"/api/clubs/{club['id']}/sessions",
        json={"date": "2099-01-01", "start_time": "18:00", "end_time": "20:00", "max_players": 2},
    )
    assert response.status_code == 201
    session_id = response.json()[0]["id"]

    assert (await api_client.post(f"/api/sessions/{session_id}/join", json={"user_id": u1["id"]})).status_code == 200
    response = await api_client.post(f"/api/sessions/{session_id}/join", json={"user_id": u2["id"]})
    assert response.json()["status"] == "FULL"
    response = await api_client.post(f"/api/sessions/{session_id}/join", json={"user_id": u3["id"]})
    assert response.status_code == 409

    response = await api_client.post(
        f"/api/sessions/{session_id}/matches",
        json={"team_a": [u1["id"]], "team_b": [u2["id"]], "score_a": 21, "score_b": 10},
    )
    assert response.status_code == 201
    assert response.json()["winner"] == "A"

    response = await api_client.get(f"/api/clubs/{club['id']}/members")
    board = response.json()
    assert board[0]["id"] == u1["id"]
    assert board[0]["stats"] == {"played": 1, "won": 1}

    response = await api_client.get(f"/api/users/{u2['id']}/stats")
    assert response.json()["form"] == ["L"]

    response = await api_client.get(f"/api/clubs/{club['id']}/sessions")
    assert [s["id"] for s in response.json()["upcoming"]] == [session_id]
