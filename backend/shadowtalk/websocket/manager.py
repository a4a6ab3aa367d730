import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """One live transport session.

    ``user_id`` stays None until the client registers with join_dm_session.
    """

    session_id: str
    websocket: WebSocket
    user_id: int | None = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    alive: bool = True


class ConnectionManager:
    """Owns the live WebSocket objects, keyed by transport session id.

    Everything else in the realtime core refers to connections only by
    session id and sends through this class. A failed send marks the
    connection dead; the socket's own receive loop then runs the normal
    disconnect cleanup.
    """

    def __init__(self) -> None:
        # session_id -> Connection
        self._connections: dict[str, Connection] = {}

    def open(self, websocket: WebSocket) -> Connection:
        """Register an already-accepted WebSocket under a fresh session id."""
        conn = Connection(session_id=uuid.uuid4().hex, websocket=websocket)
        self._connections[conn.session_id] = conn
        logger.info("WebSocket connected (session %s)", conn.session_id)
        return conn

    def close(self, session_id: str) -> Connection | None:
        conn = self._connections.pop(session_id, None)
        if conn is not None:
            conn.alive = False
            logger.info("WebSocket disconnected (session %s, user %s)", session_id, conn.user_id)
        return conn

    def get(self, session_id: str) -> Connection | None:
        return self._connections.get(session_id)

    def is_connected(self, session_id: str) -> bool:
        conn = self._connections.get(session_id)
        return conn is not None and conn.alive

    def session_ids(self) -> list[str]:
        return list(self._connections)

    def __len__(self) -> int:
        return len(self._connections)

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def send(self, session_id: str, event_type: str, payload: dict[str, Any] | None = None) -> bool:
        """Send one event to one session.

        Returns True if delivered, False if the session is unknown or the
        write failed.
        """
        conn = self._connections.get(session_id)
        if conn is None or not conn.alive:
            return False
        try:
            await conn.websocket.send_text(json.dumps({"type": event_type, **(payload or {})}))
            return True
        except Exception as exc:
            conn.alive = False
            logger.warning("send to session %s failed, marking dead: %s", session_id, exc)
            return False

    async def send_many(self, session_ids: Iterable[str], event_type: str, payload: dict[str, Any]) -> int:
        """Send the same event to several sessions in order. Returns the delivered count."""
        delivered = 0
        for sid in session_ids:
            if await self.send(sid, event_type, payload):
                delivered += 1
        return delivered

    async def close_all(self) -> None:
        for sid in list(self._connections):
            conn = self.close(sid)
            if conn is None:
                continue
            try:
                await conn.websocket.close(code=1001)
            except Exception as exc:
                logger.debug("closing session %s at shutdown failed: %s", sid, exc)
