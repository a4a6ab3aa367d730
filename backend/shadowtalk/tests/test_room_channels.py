import pytest

from shadowtalk.tests.fakes import FakeWebSocket
from shadowtalk.websocket.manager import ConnectionManager
from shadowtalk.websocket.rooms import RoomChannels


@pytest.fixture()
def transport():
    return ConnectionManager()


@pytest.fixture()
def rooms(transport):
    return RoomChannels(transport)


def _open(transport: ConnectionManager) -> tuple[str, FakeWebSocket]:
    ws = FakeWebSocket()
    return transport.open(ws).session_id, ws


def test_join_is_idempotent(transport, rooms):
    sid, _ = _open(transport)
    assert rooms.join(sid, 1) is True
    assert rooms.join(sid, 1) is False
    assert rooms.subscribers(1) == [sid]


def test_leave_unsubscribed_is_noop(transport, rooms):
    sid, _ = _open(transport)
    assert rooms.leave(sid, 1) is False


def test_leave_drops_empty_room(transport, rooms):
    sid, _ = _open(transport)
    rooms.join(sid, 1)
    assert rooms.leave(sid, 1) is True
    assert rooms.subscribers(1) == []
    assert rooms.rooms_of(sid) == set()


def test_leave_all(transport, rooms):
    sid, _ = _open(transport)
    other, _ = _open(transport)
    rooms.join(sid, 1)
    rooms.join(sid, 2)
    rooms.join(other, 2)
    assert rooms.leave_all(sid) == {1, 2}
    assert rooms.subscribers(1) == []
    assert rooms.subscribers(2) == [other]


@pytest.mark.asyncio
async def test_broadcast_reaches_every_subscriber(transport, rooms):
    a, ws_a = _open(transport)
    b, ws_b = _open(transport)
    c, ws_c = _open(transport)
    rooms.join(a, 7)
    rooms.join(b, 7)
    rooms.join(c, 8)

    delivered = await rooms.broadcast(7, "new_message", {"message": {"id": 1}})

    assert delivered == 2
    assert ws_a.sent == [{"type": "new_message", "message": {"id": 1}}]
    assert ws_b.sent == [{"type": "new_message", "message": {"id": 1}}]
    assert ws_c.sent == []


@pytest.mark.asyncio
async def test_broadcast_excludes_sender(transport, rooms):
    a, ws_a = _open(transport)
    b, ws_b = _open(transport)
    rooms.join(a, 1)
    rooms.join(b, 1)

    await rooms.broadcast(1, "user_typing", {"roomId": 1}, exclude_session_id=a)

    assert ws_a.sent == []
    assert ws_b.types() == ["user_typing"]


@pytest.mark.asyncio
async def test_broadcast_to_empty_room(rooms):
    assert await rooms.broadcast(99, "new_message", {}) == 0


@pytest.mark.asyncio
async def test_broadcast_skips_dead_connection(transport, rooms):
    a, _ = _open(transport)
    dead_ws = FakeWebSocket(fail=True)
    dead = transport.open(dead_ws).session_id
    rooms.join(dead, 1)
    rooms.join(a, 1)

    assert await rooms.broadcast(1, "new_message", {}) == 1
    assert transport.is_connected(dead) is False
    # A dead session is no longer written to
    assert await rooms.broadcast(1, "new_message", {}) == 1
