"""
RealtimeDispatcher tests driven through fake sockets, without an HTTP stack.

Covers:
  - shutdown closes every socket with 1001 and purges session state
  - relayed signaling frames carry the server-known identity of a registered sender
"""

import json

import pytest

from shadowtalk.tests.fakes import FakeWebSocket
from shadowtalk.websocket.dispatcher import RealtimeDispatcher

ROOM = 5


async def _send(realtime: RealtimeDispatcher, session_id: str, frame: dict) -> None:
    await realtime.handle(session_id, json.dumps(frame))


async def _voice_join(realtime: RealtimeDispatcher, session_id: str, user_id: int) -> None:
    await _send(
        realtime,
        session_id,
        {
            "type": "voice:join",
            "roomId": ROOM,
            "userId": user_id,
            "anonymousId": f"Shadow{user_id}",
            "peerId": f"peer-{user_id}",
        },
    )


@pytest.mark.asyncio
async def test_shutdown_closes_sockets_going_away():
    realtime = RealtimeDispatcher()
    a_ws, b_ws = FakeWebSocket(), FakeWebSocket()
    a = await realtime.connect(a_ws)
    b = await realtime.connect(b_ws)
    await _send(realtime, a.session_id, {"type": "join_dm_session", "userId": 1})
    await _send(realtime, b.session_id, {"type": "join_room", "roomId": ROOM})
    await _voice_join(realtime, a.session_id, 1)

    await realtime.shutdown()

    assert a_ws.closed_with == 1001
    assert b_ws.closed_with == 1001
    assert len(realtime.transport) == 0
    assert 1 not in realtime.registry
    assert realtime.voice.participants(ROOM) == []


@pytest.mark.asyncio
async def test_shutdown_with_no_sessions_is_a_no_op():
    realtime = RealtimeDispatcher()
    await realtime.shutdown()
    assert len(realtime.transport) == 0


@pytest.mark.asyncio
async def test_registered_sender_cannot_spoof_relayed_identity():
    realtime = RealtimeDispatcher()
    a_ws, b_ws = FakeWebSocket(), FakeWebSocket()
    a = await realtime.connect(a_ws)
    b = await realtime.connect(b_ws)
    await _send(realtime, a.session_id, {"type": "join_dm_session", "userId": 1})
    await _voice_join(realtime, a.session_id, 1)
    await _voice_join(realtime, b.session_id, 2)

    offer = {"type": "offer", "sdp": "v=0"}
    await _send(
        realtime,
        a.session_id,
        {"type": "webrtc:offer", "targetSessionId": b.session_id, "roomId": ROOM, "sdp": offer, "from": "Shadow99"},
    )

    relayed = b_ws.of_type("webrtc:offer")
    assert len(relayed) == 1
    assert relayed[0]["from"] == "Shadow1"
    assert relayed[0]["fromSessionId"] == a.session_id


@pytest.mark.asyncio
async def test_unregistered_sender_keeps_claimed_identity():
    realtime = RealtimeDispatcher()
    a_ws, b_ws = FakeWebSocket(), FakeWebSocket()
    a = await realtime.connect(a_ws)
    b = await realtime.connect(b_ws)

    candidate = {"candidate": "candidate:1 1 udp 1 10.0.0.1 5000 typ host"}
    await _send(
        realtime,
        a.session_id,
        {"type": "ice:candidate", "targetSessionId": b.session_id, "candidate": candidate, "from": "Guest"},
    )

    assert b_ws.of_type("ice:candidate")[0]["from"] == "Guest"
