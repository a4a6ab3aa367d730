"""
Rate limiting for session creation and message writes.

Covers:
  - fixed-window counting, reset after the window, per-key isolation
  - 429 with Retry-After on room messages, replies and DMs past the per-user limit
  - 429 on session creation past the per-address limit
  - RATE_LIMIT_ENABLED=false turns enforcement off
"""

import pytest
from fastapi.testclient import TestClient

import shadowtalk.services.rate_limiter as rate_limiter
from shadowtalk.main import app
from shadowtalk.services.rate_limiter import (
    MESSAGE_LIMIT_DETAIL,
    SESSION_LIMIT_DETAIL,
    FixedWindowRateLimiter,
    RateLimits,
)
from shadowtalk.tests.conftest import auth_headers, create_session, join_room, make_room


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def monotonic(self) -> float:
        return self.now


@pytest.fixture()
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr(rate_limiter, "time", fake)
    return fake


def _install(messages: int = 100, sessions: int = 100, enabled: bool = True) -> RateLimits:
    limits = RateLimits(
        messages=FixedWindowRateLimiter(messages, 60),
        sessions=FixedWindowRateLimiter(sessions, 900),
        enabled=enabled,
    )
    app.state.rate_limits = limits
    return limits


class TestFixedWindow:
    def test_allows_up_to_limit(self, clock):
        limiter = FixedWindowRateLimiter(3, 60)
        assert [limiter.acquire("a") for _ in range(4)] == [True, True, True, False]

    def test_window_resets(self, clock):
        limiter = FixedWindowRateLimiter(1, 60)
        assert limiter.acquire("a") is True
        clock.now += 30
        assert limiter.acquire("a") is False
        assert limiter.retry_after("a") == 30
        clock.now += 30
        assert limiter.acquire("a") is True

    def test_keys_are_independent(self, clock):
        limiter = FixedWindowRateLimiter(1, 60)
        assert limiter.acquire("user:1") is True
        assert limiter.acquire("user:2") is True
        assert limiter.acquire("user:1") is False

    def test_prune_drops_expired_windows(self, clock):
        limiter = FixedWindowRateLimiter(5, 60)
        limiter.acquire("old")
        clock.now += 61
        limiter.acquire("new")
        assert limiter.prune() == 1
        assert len(limiter) == 1
        assert limiter.retry_after("old") == 0

    def test_rejects_nonsense_configuration(self):
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(0, 60)


class TestMessageLimit:
    def test_room_messages_limited_per_user(self, client: TestClient):
        owner = create_session(client)
        other = create_session(client)
        room = make_room(client, owner, name="busy-room")
        join_room(client, other, room["id"])
        _install(messages=3)

        url = f"/api/messages/{room['id']}"
        for i in range(3):
            resp = client.post(url, json={"content": f"note {i}"}, headers=auth_headers(owner))
            assert resp.status_code == 201

        resp = client.post(url, json={"content": "one too many"}, headers=auth_headers(owner))
        assert resp.status_code == 429
        assert resp.json()["detail"] == MESSAGE_LIMIT_DETAIL
        assert int(resp.headers["Retry-After"]) > 0

        # Someone else in the room is unaffected
        resp = client.post(url, json={"content": "my turn"}, headers=auth_headers(other))
        assert resp.status_code == 201

    def test_replies_and_dms_share_the_budget(self, client: TestClient):
        alice = create_session(client)
        bob = create_session(client)
        room = make_room(client, alice, name="thread-room")
        _install(messages=2)

        parent = client.post(f"/api/messages/{room['id']}", json={"content": "parent"}, headers=auth_headers(alice))
        assert parent.status_code == 201
        reply = client.post(
            f"/api/messages/{parent.json()['id']}/reply", json={"content": "child"}, headers=auth_headers(alice)
        )
        assert reply.status_code == 201

        resp = client.post(f"/api/dms/{bob['user']['id']}", json={"content": "hey"}, headers=auth_headers(alice))
        assert resp.status_code == 429

    def test_rejected_write_stores_nothing(self, client: TestClient):
        owner = create_session(client)
        room = make_room(client, owner, name="quiet-room")
        _install(messages=1)

        url = f"/api/messages/{room['id']}"
        assert client.post(url, json={"content": "first"}, headers=auth_headers(owner)).status_code == 201
        assert client.post(url, json={"content": "second"}, headers=auth_headers(owner)).status_code == 429

        history = client.get(url, headers=auth_headers(owner)).json()
        assert [m["content"] for m in history["messages"]] == ["first"]

    def test_disabled_limits_are_not_enforced(self, client: TestClient):
        owner = create_session(client)
        room = make_room(client, owner, name="open-room")
        _install(messages=1, enabled=False)

        url = f"/api/messages/{room['id']}"
        for i in range(3):
            assert client.post(url, json={"content": f"free {i}"}, headers=auth_headers(owner)).status_code == 201


class TestSessionLimit:
    def test_session_creation_limited_per_address(self, client: TestClient):
        _install(sessions=2)
        create_session(client)
        create_session(client)

        resp = client.post("/api/auth/create-session")
        assert resp.status_code == 429
        assert resp.json()["detail"] == SESSION_LIMIT_DETAIL
        assert "Retry-After" in resp.headers

    def test_lifespan_builds_limits_from_settings(self, client: TestClient):
        limits = app.state.rate_limits
        assert limits.messages.limit == 20
        assert limits.messages.window == 60
        assert limits.sessions.limit == 100
        assert limits.sessions.window == 900
