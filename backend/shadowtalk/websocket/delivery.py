"""
Direct-message push.

Two independent channels carry a DM: the durable write (already committed by
the time anything here runs) and this best-effort, at-most-once push. A
recipient with no registered session simply sees the message on their next
history fetch.
"""

import logging
from typing import Any

from shadowtalk.websocket.manager import ConnectionManager
from shadowtalk.websocket.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class DirectMessageDelivery:
    def __init__(self, registry: ConnectionRegistry, transport: ConnectionManager) -> None:
        self._registry = registry
        self._transport = transport

    async def deliver(self, user_id: int, event_type: str, payload: dict[str, Any]) -> bool:
        session_id = self._registry.lookup(user_id)
        if session_id is None:
            logger.debug("%s for user %s dropped: no registered session", event_type, user_id)
            return False
        delivered = await self._transport.send(session_id, event_type, payload)
        if not delivered:
            logger.debug("%s for user %s dropped: session %s gone", event_type, user_id, session_id)
        return delivered

    async def deliver_pair(
        self,
        sender_id: int,
        recipient_id: int,
        event_type: str,
        payload: dict[str, Any],
    ) -> int:
        """Push to the recipient and echo to the sender's registered session.

        The echo lets the sender's other open tab see the message too. Each
        distinct session receives the event at most once.
        """
        user_ids = [recipient_id] if sender_id == recipient_id else [recipient_id, sender_id]
        sessions: list[str] = []
        for uid in user_ids:
            sid = self._registry.lookup(uid)
            if sid is None:
                logger.debug("%s for user %s dropped: no registered session", event_type, uid)
            elif sid not in sessions:
                sessions.append(sid)
        return await self._transport.send_many(sessions, event_type, payload)
