# Tests for API v1 sessions router.
# Created: 2026-10-12

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from portalchat.api.deps import get_manager
from portalchat.api.v1.sessions import router


@pytest.fixture
def test_app(manager):
    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    app.dependency_overrides[get_manager] = lambda: manager
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


@pytest.fixture
def populated(manager, scheduler, clock):
    """Three finished sessions, oldest first."""
    ids = []
    for text in ("Library hours?", "Cafeteria menu today?", "Shuttle schedule?"):
        manager.start_new_session()
        manager.send_user_message(text)
        scheduler.run_all()
        ids.append(manager.active_session_id)
        clock.advance(10)
    return ids


class TestListSessions:
    """Tests for GET /api/v1/sessions."""

    def test_list_sessions_empty(self, client):
        resp = client.get("/api/v1/sessions")
        assert resp.status_code == 200
        assert resp.json() == {"sessions": [], "total": 0}

    def test_list_sessions_with_data(self, client, populated):
        resp = client.get("/api/v1/sessions")
        data = resp.json()
        assert data["total"] == 3
        assert [s["id"] for s in data["sessions"]] == list(reversed(populated))
        assert data["sessions"][0]["title"] == "Shuttle schedule?"
        assert data["sessions"][0]["message_count"] == 2

    def test_list_sessions_with_limit(self, client, populated):
        resp = client.get("/api/v1/sessions?limit=2")
        data = resp.json()
        assert len(data["sessions"]) == 2
        assert data["total"] == 3

    def test_list_sessions_bad_limit(self, client):
        assert client.get("/api/v1/sessions?limit=0").status_code == 422


class TestSearchSessions:
    """Tests for GET /api/v1/sessions/search."""

    def test_search_empty_query(self, client, populated):
        resp = client.get("/api/v1/sessions/search?q=")
        assert resp.status_code == 200
        assert resp.json()["sessions"] == []

    def test_search_with_matches(self, client, populated):
        resp = client.get("/api/v1/sessions/search?q=cafeteria")
        results = resp.json()["sessions"]
        assert len(results) == 1
        assert results[0]["id"] == populated[1]

    def test_search_no_matches(self, client, populated):
        assert client.get("/api/v1/sessions/search?q=parking").json()["sessions"] == []


class TestGetSession:
    """Tests for GET /api/v1/sessions/{session_id}."""

    def test_get_existing(self, client, manager, populated):
        active = manager.active_session_id
        resp = client.get(f"/api/v1/sessions/{populated[0]}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "Library hours?"
        assert [m["role"] for m in data["messages"]] == ["user", "assistant"]
        assert manager.active_session_id == active

    def test_get_not_found(self, client):
        resp = client.get("/api/v1/sessions/nonexistent")
        assert resp.status_code == 404


class TestLoadSession:
    """Tests for POST /api/v1/sessions/{session_id}/load."""

    def test_load_existing(self, client, manager, populated):
        resp = client.post(f"/api/v1/sessions/{populated[0]}/load")
        assert resp.status_code == 200
        data = resp.json()
        assert data["active_session_id"] == populated[0]
        assert data["messages"][0]["content"] == "Library hours?"
        assert manager.active_session_id == populated[0]

    def test_load_unknown_is_not_an_error(self, client, manager):
        resp = client.post("/api/v1/sessions/nonexistent/load")
        assert resp.status_code == 200
        assert resp.json() == {"active_session_id": None, "messages": []}


class TestClearSessions:
    """Tests for DELETE /api/v1/sessions."""

    def test_clear(self, client, manager, populated, storage):
        resp = client.delete("/api/v1/sessions")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert list(manager.list_sessions()) == []
        assert storage.get("chat_history") is None
