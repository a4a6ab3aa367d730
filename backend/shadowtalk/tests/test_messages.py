"""Tests for room message, reply and reaction endpoints and their broadcasts."""

import pytest
from fastapi.testclient import TestClient

from shadowtalk.tests.conftest import auth_headers, create_session, join_room, make_room, open_socket, sync


@pytest.fixture()
def owner(client):
    return create_session(client)


@pytest.fixture()
def room(client, owner):
    return make_room(client, owner, name="msg-room")


def _send(client: TestClient, session: dict, room_id: int, content: str):
    return client.post(f"/api/messages/{room_id}", json={"content": content}, headers=auth_headers(session))


class TestSendMessage:
    def test_send_success(self, client: TestClient, owner, room):
        resp = _send(client, owner, room["id"], "Hello shadows")
        assert resp.status_code == 201
        msg = resp.json()
        assert msg["content"] == "Hello shadows"
        assert msg["senderId"] == owner["user"]["id"]
        assert msg["sender"]["anonymousId"] == owner["user"]["anonymousId"]
        assert msg["reactions"] == []

        room_after = client.get(f"/api/rooms/{room['id']}", headers=auth_headers(owner)).json()
        assert room_after["messageCount"] == 1

    def test_send_to_nonexistent_room(self, client: TestClient, owner):
        assert _send(client, owner, 9999, "Hi").status_code == 404

    def test_non_member_forbidden(self, client: TestClient, room):
        outsider = create_session(client)
        assert _send(client, outsider, room["id"], "Hi").status_code == 403

    @pytest.mark.parametrize("content", ["", "   ", "x" * 2001])
    def test_send_invalid_length(self, client: TestClient, owner, room, content):
        assert _send(client, owner, room["id"], content).status_code == 400

    def test_send_filtered_content(self, client: TestClient, owner, room):
        resp = _send(client, owner, room["id"], "free money inside")
        assert resp.status_code == 400
        assert resp.json()["detail"]["reason"] == "inappropriate_content"

    def test_content_is_sanitized(self, client: TestClient, owner, room):
        assert _send(client, owner, room["id"], "<script>hi</script>").json()["content"] == "scripthi/script"


class TestListMessages:
    def test_list_oldest_first_with_pagination(self, client: TestClient, owner, room):
        for text in ("one", "two", "three"):
            _send(client, owner, room["id"], text)

        resp = client.get(f"/api/messages/{room['id']}?limit=2", headers=auth_headers(owner))
        assert resp.status_code == 200
        body = resp.json()
        assert [m["content"] for m in body["messages"]] == ["two", "three"]
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

        body = client.get(f"/api/messages/{room['id']}?limit=2&page=2", headers=auth_headers(owner)).json()
        assert [m["content"] for m in body["messages"]] == ["one"]

    def test_replies_are_not_top_level(self, client: TestClient, owner, room):
        parent = _send(client, owner, room["id"], "parent").json()
        client.post(f"/api/messages/{parent['id']}/reply", json={"content": "child"}, headers=auth_headers(owner))
        body = client.get(f"/api/messages/{room['id']}", headers=auth_headers(owner)).json()
        assert [m["content"] for m in body["messages"]] == ["parent"]


class TestBroadcasts:
    def test_new_message_reaches_subscribers_with_same_entity(self, client: TestClient, owner, room):
        member = create_session(client)
        join_room(client, member, room["id"])

        with client.websocket_connect("/ws") as ws1, client.websocket_connect("/ws") as ws2:
            open_socket(ws1)
            open_socket(ws2)
            ws1.send_json({"type": "join_room", "roomId": room["id"]})
            ws2.send_json({"type": "join_room", "roomId": room["id"]})
            sync(ws1)
            sync(ws2)

            resp = _send(client, owner, room["id"], "hello room")
            assert resp.status_code == 201

            for ws in (ws1, ws2):
                event = ws.receive_json()
                assert event["type"] == "new_message"
                assert event["message"] == resp.json()

    def test_failed_write_broadcasts_nothing(self, client: TestClient, owner, room):
        with client.websocket_connect("/ws") as ws:
            open_socket(ws)
            ws.send_json({"type": "join_room", "roomId": room["id"]})
            sync(ws)
            assert _send(client, owner, room["id"], "").status_code == 400
            sync(ws)

    def test_reply_broadcast(self, client: TestClient, owner, room):
        parent = _send(client, owner, room["id"], "parent").json()
        with client.websocket_connect("/ws") as ws:
            open_socket(ws)
            ws.send_json({"type": "join_room", "roomId": room["id"]})
            sync(ws)

            resp = client.post(
                f"/api/messages/{parent['id']}/reply", json={"content": "child"}, headers=auth_headers(owner)
            )
            assert resp.status_code == 201
            event = ws.receive_json()
            assert event["type"] == "new_reply"
            assert event["parentMessageId"] == parent["id"]
            assert event["reply"] == resp.json()

        replies = client.get(f"/api/messages/{parent['id']}/replies", headers=auth_headers(owner)).json()
        assert [r["content"] for r in replies["replies"]] == ["child"]

    def test_reaction_toggle_broadcast(self, client: TestClient, owner, room):
        member = create_session(client)
        join_room(client, member, room["id"])
        msg = _send(client, owner, room["id"], "react to me").json()

        with client.websocket_connect("/ws") as ws:
            open_socket(ws)
            ws.send_json({"type": "join_room", "roomId": room["id"]})
            sync(ws)

            for session in (owner, member):
                resp = client.post(
                    f"/api/messages/{msg['id']}/react", json={"emoji": "🔥"}, headers=auth_headers(session)
                )
                assert resp.status_code == 200
                ws.receive_json()

            resp = client.post(f"/api/messages/{msg['id']}/react", json={"emoji": "🔥"}, headers=auth_headers(owner))
            event = ws.receive_json()
            assert event == {
                "type": "message_reacted",
                "messageId": msg["id"],
                "reactions": [{"emoji": "🔥", "users": [member["user"]["id"]]}],
            }
            assert resp.json() == {"messageId": msg["id"], "reactions": event["reactions"]}
