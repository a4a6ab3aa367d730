"""
Voice REST API: query who is in a room's voice session.

Endpoints:
  GET /api/rooms/{room_id}/voice   → participants currently in voice
"""

from typing import Any

from fastapi import APIRouter, Depends

from shadowtalk.api.deps import get_realtime, require_room_member
from shadowtalk.models.room import Room
from shadowtalk.schemas.base import CamelModel
from shadowtalk.websocket.dispatcher import RealtimeDispatcher

router = APIRouter(prefix="/rooms", tags=["voice"])


class VoiceRoomResponse(CamelModel):
    room_id: int
    participants: list[dict[str, Any]]


@router.get("/{room_id}/voice", response_model=VoiceRoomResponse)
async def get_voice_room(
    room_id: int,
    room: Room = Depends(require_room_member),
    realtime: RealtimeDispatcher = Depends(get_realtime),
) -> VoiceRoomResponse:
    """Return the participants of the room's voice session, in join order."""
    participants = [p.to_wire() for p in realtime.voice.participants(room.id)]
    return VoiceRoomResponse(room_id=room.id, participants=participants)
