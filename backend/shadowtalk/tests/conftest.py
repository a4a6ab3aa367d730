"""
Pytest fixtures shared across all test modules.
Uses an in-memory SQLite database with StaticPool so all connections
share a single in-memory DB. Redis is disabled; presence tests patch in a
fake client.
"""

import os

# Set env vars BEFORE any app module is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-min-32-chars-long!!"
os.environ["ALGORITHM"] = "HS256"
os.environ["REDIS_URL"] = ""
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Import app modules AFTER env vars are set
import shadowtalk.models  # noqa: E402,F401
from shadowtalk.database import Base, get_db  # noqa: E402
from shadowtalk.main import app  # noqa: E402

# Single shared in-memory SQLite engine. StaticPool ensures all
# connections share the same DB instance.
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def realtime(client):
    """The dispatcher built by the app lifespan."""
    return app.state.realtime


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def create_session(client: TestClient) -> dict:
    """Mint a ShadowID. Returns {"token": ..., "user": {...}}."""
    resp = client.post("/api/auth/create-session")
    assert resp.status_code == 201, f"Session creation failed: {resp.json()}"
    return resp.json()


def auth_headers(session: dict) -> dict:
    return {"Authorization": f"Bearer {session['token']}"}


def make_room(client: TestClient, session: dict, name: str = "general chat", topic: str = "General") -> dict:
    resp = client.post("/api/rooms", json={"name": name, "topic": topic}, headers=auth_headers(session))
    assert resp.status_code == 201, resp.json()
    return resp.json()


def join_room(client: TestClient, session: dict, room_id: int) -> None:
    resp = client.post(f"/api/rooms/{room_id}/join", headers=auth_headers(session))
    assert resp.status_code == 200, resp.json()


def open_socket(ws) -> str:
    """Consume the greeting frame and return the transport session id."""
    frame = ws.receive_json()
    assert frame["type"] == "session"
    return frame["sessionId"]


def sync(ws) -> None:
    """Round-trip a ping so every frame sent before it has been handled.

    Frames from one socket are handled in order, so the pong is also the
    first frame after any events those earlier frames produced for ``ws``.
    """
    ws.send_json({"type": "ping"})
    frame = ws.receive_json()
    assert frame["type"] == "pong", f"expected pong, got {frame}"
