"""
Inbound realtime events: a closed, tagged union validated at the socket
boundary.

Each client frame is parsed with ``parse_event``; anything that does not
match one of the models below (unknown ``type``, missing fields, bad JSON)
raises ``pydantic.ValidationError`` and is dropped by the handler.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, Field, TypeAdapter

from shadowtalk.core import events
from shadowtalk.schemas.base import CamelModel


class JoinDMSession(CamelModel):
    type: Literal["join_dm_session"]
    user_id: int
    token: str | None = None


class JoinRoom(CamelModel):
    type: Literal["join_room"]
    room_id: int


class LeaveRoom(CamelModel):
    type: Literal["leave_room"]
    room_id: int


class TypingEvent(CamelModel):
    type: Literal["typing", "stop_typing"]
    room_id: int
    user_id: int | None = None
    anonymous_id: str | None = None


class VoiceJoin(CamelModel):
    type: Literal["voice:join"]
    room_id: int
    user_id: int
    anonymous_id: str
    peer_id: str


class VoiceLeave(CamelModel):
    type: Literal["voice:leave"]
    room_id: int
    user_id: int
    anonymous_id: str | None = None


class SessionDescription(CamelModel):
    """webrtc:offer / webrtc:answer. ``sdp`` is opaque and never inspected."""

    type: Literal["webrtc:offer", "webrtc:answer"]
    target_session_id: str
    room_id: int | None = None
    # Browsers built against the first client send the description as offer/answer
    sdp: Any = Field(None, validation_alias=AliasChoices("sdp", "offer", "answer"))
    sender: str | None = Field(None, alias="from")


class IceCandidate(CamelModel):
    type: Literal["ice:candidate"]
    target_session_id: str
    candidate: Any = None
    sender: str | None = Field(None, alias="from")


class VoiceStatusUpdate(CamelModel):
    type: Literal["voice:update_status"]
    room_id: int
    user_id: int
    is_muted: bool = False
    is_deafened: bool = False


class VoicePresence(CamelModel):
    type: Literal["voice:speaking", "voice:stopped_speaking"]
    room_id: int
    user_id: int
    anonymous_id: str | None = None


class Ping(CamelModel):
    type: Literal["ping"]


InboundEvent = Annotated[
    Union[
        JoinDMSession,
        JoinRoom,
        LeaveRoom,
        TypingEvent,
        VoiceJoin,
        VoiceLeave,
        SessionDescription,
        IceCandidate,
        VoiceStatusUpdate,
        VoicePresence,
        Ping,
    ],
    Field(discriminator="type"),
]

_adapter: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)


def parse_event(raw: str | bytes) -> InboundEvent:
    return _adapter.validate_json(raw)


def signal_payload(event: SessionDescription | IceCandidate) -> dict[str, Any]:
    """The opaque part of a signaling frame that is relayed to the target."""
    if event.type == events.ICE_CANDIDATE:
        return {"candidate": event.candidate}
    return {"sdp": event.sdp}
