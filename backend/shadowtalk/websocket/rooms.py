import logging
from typing import Any

from shadowtalk.websocket.manager import ConnectionManager

logger = logging.getLogger(__name__)


class RoomChannels:
    """Transient broadcast groups keyed by room id.

    Subscription is independent of durable room membership and is never
    authorized here: callers that write to a room check membership before
    they broadcast.
    """

    def __init__(self, transport: ConnectionManager) -> None:
        self._transport = transport
        # room_id -> {session_id: None}; a dict keeps subscription order
        self._members: dict[int, dict[str, None]] = {}
        # session_id -> {room_id}, so disconnect never leaks a subscription
        self._rooms_by_session: dict[str, set[int]] = {}

    def join(self, session_id: str, room_id: int) -> bool:
        """Subscribe a session. Returns False if it was already subscribed."""
        members = self._members.setdefault(room_id, {})
        if session_id in members:
            return False
        members[session_id] = None
        self._rooms_by_session.setdefault(session_id, set()).add(room_id)
        logger.debug("session %s joined room channel %s", session_id, room_id)
        return True

    def leave(self, session_id: str, room_id: int) -> bool:
        members = self._members.get(room_id)
        if not members or session_id not in members:
            return False
        del members[session_id]
        if not members:
            del self._members[room_id]
        rooms = self._rooms_by_session.get(session_id)
        if rooms is not None:
            rooms.discard(room_id)
            if not rooms:
                del self._rooms_by_session[session_id]
        logger.debug("session %s left room channel %s", session_id, room_id)
        return True

    def leave_all(self, session_id: str) -> set[int]:
        rooms = set(self._rooms_by_session.get(session_id, ()))
        for room_id in rooms:
            self.leave(session_id, room_id)
        return rooms

    def rooms_of(self, session_id: str) -> set[int]:
        return set(self._rooms_by_session.get(session_id, ()))

    def subscribers(self, room_id: int, exclude: str | None = None) -> list[str]:
        return [sid for sid in self._members.get(room_id, {}) if sid != exclude]

    async def broadcast(
        self,
        room_id: int,
        event_type: str,
        payload: dict[str, Any],
        exclude_session_id: str | None = None,
    ) -> int:
        """Deliver to every session currently subscribed to ``room_id``.

        The subscriber list is snapshotted before the first send, so sessions
        that join mid-broadcast do not receive it.
        """
        targets = self.subscribers(room_id, exclude=exclude_session_id)
        delivered = await self._transport.send_many(targets, event_type, payload)
        logger.debug("broadcast %s to room %s: %d/%d sessions", event_type, room_id, delivered, len(targets))
        return delivered
