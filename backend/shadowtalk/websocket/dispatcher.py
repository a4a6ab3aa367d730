"""
Realtime dispatcher, the single owner of all in-memory realtime state.

One instance is built per process in the FastAPI lifespan and stored on
``app.state.realtime``. Every mutation of the registry, room channels and
voice sessions runs as a short handler on the event loop, so no locking is
needed as long as the app runs a single worker.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import WebSocket
from pydantic import ValidationError

from shadowtalk.config import settings
from shadowtalk.core import events
from shadowtalk.redis import presence
from shadowtalk.schemas.events import (
    IceCandidate,
    JoinDMSession,
    JoinRoom,
    LeaveRoom,
    Ping,
    SessionDescription,
    TypingEvent,
    VoiceJoin,
    VoiceLeave,
    VoicePresence,
    VoiceStatusUpdate,
    parse_event,
    signal_payload,
)
from shadowtalk.services.auth_service import user_id_from_token
from shadowtalk.websocket.delivery import DirectMessageDelivery
from shadowtalk.websocket.manager import Connection, ConnectionManager
from shadowtalk.websocket.registry import ConnectionRegistry
from shadowtalk.websocket.rooms import RoomChannels
from shadowtalk.websocket.voice import VoiceCoordinator

logger = logging.getLogger(__name__)

Handler = Callable[[Connection, Any], Awaitable[None]]


class RealtimeDispatcher:
    def __init__(self) -> None:
        self.transport = ConnectionManager()
        self.registry = ConnectionRegistry()
        self.rooms = RoomChannels(self.transport)
        self.dm = DirectMessageDelivery(self.registry, self.transport)
        self.voice = VoiceCoordinator(self.transport, self.rooms)

        self._handlers: dict[str, Handler] = {
            events.JOIN_DM_SESSION: self._on_join_dm_session,
            events.JOIN_ROOM: self._on_join_room,
            events.LEAVE_ROOM: self._on_leave_room,
            events.TYPING: self._on_typing,
            events.STOP_TYPING: self._on_typing,
            events.VOICE_JOIN: self._on_voice_join,
            events.VOICE_LEAVE: self._on_voice_leave,
            events.WEBRTC_OFFER: self._on_signal,
            events.WEBRTC_ANSWER: self._on_signal,
            events.ICE_CANDIDATE: self._on_signal,
            events.VOICE_UPDATE_STATUS: self._on_voice_status,
            events.VOICE_SPEAKING: self._on_voice_presence,
            events.VOICE_STOPPED_SPEAKING: self._on_voice_presence,
            events.PING: self._on_ping,
        }

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self, websocket: WebSocket) -> Connection:
        """Adopt an accepted WebSocket and tell the client its session id."""
        conn = self.transport.open(websocket)
        await self.transport.send(conn.session_id, events.SESSION, {"sessionId": conn.session_id})
        return conn

    async def disconnect(self, session_id: str) -> None:
        """Purge every trace of a session: transport, voice, rooms, registry."""
        self.transport.close(session_id)
        left_voice = await self.voice.leave_session(session_id)
        rooms = self.rooms.leave_all(session_id)
        users = self.registry.unregister(session_id)
        for uid in users:
            await presence.set_offline(uid)
        logger.debug(
            "session %s cleaned up: %d voice sessions, %d rooms, users %s",
            session_id,
            left_voice,
            len(rooms),
            users,
        )

    async def shutdown(self) -> None:
        """Close every socket with 1001, then purge each session's state."""
        session_ids = self.transport.session_ids()
        await self.transport.close_all()
        for sid in session_ids:
            await self.disconnect(sid)
        logger.info("realtime shut down, %d sessions closed", len(session_ids))

    # ------------------------------------------------------------------
    # Inbound frames
    # ------------------------------------------------------------------

    async def handle(self, session_id: str, raw: str | bytes) -> None:
        """Validate and dispatch one client frame.

        Malformed frames and handler errors are logged and dropped; they never
        close the connection.
        """
        conn = self.transport.get(session_id)
        if conn is None:
            return
        try:
            event = parse_event(raw)
        except ValidationError as exc:
            logger.warning("dropping invalid frame from session %s: %s", session_id, exc.errors(include_url=False))
            return

        try:
            await self._handlers[event.type](conn, event)
        except Exception as exc:
            logger.error("Error handling event %r from session %s: %s", event.type, session_id, exc, exc_info=True)

    def _user_for(self, conn: Connection, claimed: int | None) -> int | None:
        # A registered session speaks for its registered user only
        return conn.user_id if conn.user_id is not None else claimed

    def _sender_for(self, conn: Connection, claimed: str | None, room_id: int | None) -> str | None:
        if conn.user_id is None:
            return claimed
        known = self.voice.identity_of(conn.session_id, room_id)
        return known if known is not None else claimed

    async def _on_join_dm_session(self, conn: Connection, event: JoinDMSession) -> None:
        if settings.SOCKET_AUTH_REQUIRED:
            token_user = user_id_from_token(event.token or "")
            if token_user != event.user_id:
                logger.warning(
                    "session %s: join_dm_session for user %s rejected (bad token)",
                    conn.session_id,
                    event.user_id,
                )
                return
        if conn.user_id is not None and conn.user_id != event.user_id:
            for uid in self.registry.unregister(conn.session_id):
                await presence.set_offline(uid)
        conn.user_id = event.user_id
        self.registry.register(event.user_id, conn.session_id)
        await presence.set_online(event.user_id)

    async def _on_join_room(self, conn: Connection, event: JoinRoom) -> None:
        self.rooms.join(conn.session_id, event.room_id)

    async def _on_leave_room(self, conn: Connection, event: LeaveRoom) -> None:
        self.rooms.leave(conn.session_id, event.room_id)

    async def _on_typing(self, conn: Connection, event: TypingEvent) -> None:
        event_type = events.USER_TYPING if event.type == events.TYPING else events.USER_STOPPED_TYPING
        await self.rooms.broadcast(
            event.room_id,
            event_type,
            {
                "roomId": event.room_id,
                "userId": self._user_for(conn, event.user_id),
                "anonymousId": event.anonymous_id,
            },
            exclude_session_id=conn.session_id,
        )

    async def _on_voice_join(self, conn: Connection, event: VoiceJoin) -> None:
        await self.voice.join(
            event.room_id,
            conn.session_id,
            self._user_for(conn, event.user_id),
            event.anonymous_id,
            event.peer_id,
        )

    async def _on_voice_leave(self, conn: Connection, event: VoiceLeave) -> None:
        await self.voice.leave(event.room_id, self._user_for(conn, event.user_id), session_id=conn.session_id)

    async def _on_signal(self, conn: Connection, event: SessionDescription | IceCandidate) -> None:
        room_id = getattr(event, "room_id", None)
        await self.voice.relay_signal(
            event.type,
            conn.session_id,
            event.target_session_id,
            signal_payload(event),
            sender=self._sender_for(conn, event.sender, room_id),
            room_id=room_id,
        )

    async def _on_voice_status(self, conn: Connection, event: VoiceStatusUpdate) -> None:
        await self.voice.update_status(
            event.room_id,
            self._user_for(conn, event.user_id),
            is_muted=event.is_muted,
            is_deafened=event.is_deafened,
        )

    async def _on_voice_presence(self, conn: Connection, event: VoicePresence) -> None:
        user_id = self._user_for(conn, event.user_id)
        if event.type == events.VOICE_SPEAKING:
            await self.voice.speaking(event.room_id, user_id)
        else:
            await self.voice.stopped_speaking(event.room_id, user_id)

    async def _on_ping(self, conn: Connection, event: Ping) -> None:
        await self.transport.send(conn.session_id, events.PONG)
        if conn.user_id is not None:
            await presence.heartbeat(conn.user_id)
