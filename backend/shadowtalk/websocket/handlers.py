import logging

from fastapi import WebSocket, WebSocketDisconnect

from shadowtalk.websocket.dispatcher import RealtimeDispatcher

logger = logging.getLogger(__name__)


async def realtime_ws_handler(websocket: WebSocket, realtime: RealtimeDispatcher) -> None:
    """Full lifecycle handler for the single /ws connection of a client.

    The connection is anonymous until the client sends join_dm_session.
    Whatever way the loop ends, the dispatcher purges the session's registry
    entry, room subscriptions and voice participation.
    """
    await websocket.accept()
    conn = await realtime.connect(websocket)

    try:
        while True:
            raw = await websocket.receive_text()
            await realtime.handle(conn.session_id, raw)
    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.exception("realtime_ws_handler: unexpected error on session %s: %s", conn.session_id, exc)
    finally:
        await realtime.disconnect(conn.session_id)
