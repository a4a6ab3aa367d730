"""Per-room voice session coordinator.

The coordinator is a signaling broker only: audio flows peer-to-peer over a
full WebRTC mesh negotiated by the clients. It tracks who is in each room's
voice session, announces joins/leaves so every pair of peers can open a link,
and relays offer/answer/ICE payloads verbatim between transport sessions.

A full mesh of n participants needs n*(n-1)/2 peer links, so this only suits
small rooms.

NOTE: state is in-memory and single-process, like ConnectionManager. A
multi-worker deployment would need shared state (e.g. Redis) keyed by room.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from shadowtalk.core import events
from shadowtalk.websocket.manager import ConnectionManager
from shadowtalk.websocket.rooms import RoomChannels

logger = logging.getLogger(__name__)


@dataclass
class VoiceParticipant:
    user_id: int
    anonymous_id: str
    session_id: str
    peer_id: str
    is_muted: bool = False
    is_deafened: bool = False
    is_speaking: bool = False
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_wire(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "userId": self.user_id,
            "anonymousId": self.anonymous_id,
            "peerId": self.peer_id,
            "isMuted": self.is_muted,
            "isDeafened": self.is_deafened,
            "isSpeaking": self.is_speaking,
            "joinedAt": self.joined_at.isoformat(),
        }


class VoiceCoordinator:
    def __init__(self, transport: ConnectionManager, rooms: RoomChannels) -> None:
        self._transport = transport
        self._rooms = rooms
        # room_id -> {user_id: VoiceParticipant}, in join order.
        # An empty dict is a valid (idle) voice session.
        self._sessions: dict[int, dict[int, VoiceParticipant]] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def participants(self, room_id: int) -> list[VoiceParticipant]:
        return list(self._sessions.get(room_id, {}).values())

    def get(self, room_id: int, user_id: int) -> VoiceParticipant | None:
        return self._sessions.get(room_id, {}).get(user_id)

    def memberships(self, session_id: str) -> list[tuple[int, int]]:
        """(room_id, user_id) pairs owned by a transport session."""
        return [
            (room_id, p.user_id)
            for room_id, members in self._sessions.items()
            for p in members.values()
            if p.session_id == session_id
        ]

    def identity_of(self, session_id: str, room_id: int | None = None) -> str | None:
        """Anonymous id this session joined voice with, if any."""
        for rid, members in self._sessions.items():
            if room_id is not None and rid != room_id:
                continue
            for p in members.values():
                if p.session_id == session_id:
                    return p.anonymous_id
        return None

    # ------------------------------------------------------------------
    # Join / leave
    # ------------------------------------------------------------------

    async def join(
        self,
        room_id: int,
        session_id: str,
        user_id: int,
        anonymous_id: str,
        peer_id: str,
    ) -> VoiceParticipant:
        members = self._sessions.setdefault(room_id, {})
        existing = members.get(user_id)

        if existing is not None and existing.session_id == session_id:
            # Same tab joining again: refresh the peer id and resend the list,
            # but do not re-announce to peers that already know this session.
            existing.peer_id = peer_id
            existing.anonymous_id = anonymous_id
            await self._send_participants(room_id, existing)
            return existing

        if existing is not None:
            # Another tab (or a reconnect) takes over; the stale session's
            # peer links must be torn down before the new one is negotiated.
            logger.info(
                "voice: user %s moved from session %s to %s in room %s",
                user_id,
                existing.session_id,
                session_id,
                room_id,
            )
            await self.leave(room_id, user_id)
            members = self._sessions.setdefault(room_id, {})

        participant = VoiceParticipant(
            user_id=user_id,
            anonymous_id=anonymous_id,
            session_id=session_id,
            peer_id=peer_id,
        )
        others = list(members.values())
        members[user_id] = participant
        logger.info("voice: user %s joined room %s (%d participants)", user_id, room_id, len(members))

        await self._send_participants(room_id, participant)
        await self._transport.send_many(
            [p.session_id for p in others],
            events.VOICE_USER_JOINED,
            {"roomId": room_id, **participant.to_wire()},
        )
        return participant

    async def leave(self, room_id: int, user_id: int, session_id: str | None = None) -> VoiceParticipant | None:
        """Remove a participant and tell the remaining peers.

        When ``session_id`` is given, only an entry owned by that session is
        removed, so a stale tab cannot kick out the user's current one.
        """
        members = self._sessions.get(room_id)
        if not members or user_id not in members:
            return None
        participant = members[user_id]
        if session_id is not None and participant.session_id != session_id:
            logger.debug("voice: ignoring leave for user %s from stale session %s", user_id, session_id)
            return None

        del members[user_id]
        logger.info("voice: user %s left room %s (%d remaining)", user_id, room_id, len(members))
        await self._transport.send_many(
            [p.session_id for p in members.values()],
            events.VOICE_USER_LEFT,
            {
                "roomId": room_id,
                "sessionId": participant.session_id,
                "userId": participant.user_id,
                "anonymousId": participant.anonymous_id,
            },
        )
        return participant

    async def leave_session(self, session_id: str) -> int:
        """Implicit leave of every voice session owned by a transport session."""
        memberships = self.memberships(session_id)
        for room_id, user_id in memberships:
            await self.leave(room_id, user_id, session_id=session_id)
        return len(memberships)

    # ------------------------------------------------------------------
    # Signaling relay
    # ------------------------------------------------------------------

    async def relay_signal(
        self,
        kind: str,
        from_session_id: str,
        target_session_id: str,
        payload: dict[str, Any],
        sender: str | None = None,
        room_id: int | None = None,
    ) -> bool:
        """Forward an offer/answer/ICE payload to one session, unmodified.

        The frame is tagged with the sender's session id and display identity
        so the target knows which peer connection it belongs to.
        """
        if kind not in events.SIGNAL_KINDS:
            raise ValueError(f"not a signaling event: {kind!r}")
        frame: dict[str, Any] = {"fromSessionId": from_session_id, "from": sender, **payload}
        if room_id is not None:
            frame["roomId"] = room_id
        delivered = await self._transport.send(target_session_id, kind, frame)
        if not delivered:
            logger.debug("voice: %s from %s to %s dropped: target gone", kind, from_session_id, target_session_id)
        return delivered

    # ------------------------------------------------------------------
    # Status / presence
    # ------------------------------------------------------------------

    async def update_status(
        self,
        room_id: int,
        user_id: int,
        is_muted: bool,
        is_deafened: bool,
    ) -> VoiceParticipant | None:
        participant = self.get(room_id, user_id)
        if participant is None:
            logger.debug("voice: status update for user %s not in room %s voice", user_id, room_id)
            return None
        participant.is_muted = is_muted
        participant.is_deafened = is_deafened
        await self._transport.send_many(
            self._audience(room_id, exclude=participant.session_id),
            events.VOICE_USER_STATUS_CHANGED,
            {
                "roomId": room_id,
                "sessionId": participant.session_id,
                "userId": user_id,
                "anonymousId": participant.anonymous_id,
                "isMuted": is_muted,
                "isDeafened": is_deafened,
            },
        )
        return participant

    async def speaking(self, room_id: int, user_id: int) -> VoiceParticipant | None:
        return await self._set_speaking(room_id, user_id, True)

    async def stopped_speaking(self, room_id: int, user_id: int) -> VoiceParticipant | None:
        return await self._set_speaking(room_id, user_id, False)

    async def _set_speaking(self, room_id: int, user_id: int, speaking: bool) -> VoiceParticipant | None:
        participant = self.get(room_id, user_id)
        if participant is None:
            return None
        participant.is_speaking = speaking
        event_type = events.VOICE_USER_SPEAKING if speaking else events.VOICE_USER_STOPPED_SPEAKING
        await self._transport.send_many(
            self._audience(room_id, exclude=participant.session_id),
            event_type,
            {
                "roomId": room_id,
                "sessionId": participant.session_id,
                "userId": user_id,
                "anonymousId": participant.anonymous_id,
            },
        )
        return participant

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _send_participants(self, room_id: int, joiner: VoiceParticipant) -> None:
        others = [p.to_wire() for p in self.participants(room_id) if p.user_id != joiner.user_id]
        await self._transport.send(
            joiner.session_id,
            events.VOICE_PARTICIPANTS,
            {"roomId": room_id, "participants": others},
        )

    def _audience(self, room_id: int, exclude: str | None = None) -> list[str]:
        """Room channel subscribers plus voice participants, each once."""
        audience = dict.fromkeys(self._rooms.subscribers(room_id))
        audience.update(dict.fromkeys(p.session_id for p in self.participants(room_id)))
        return [sid for sid in audience if sid != exclude]
