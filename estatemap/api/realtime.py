"""Event socket: server pushes property events, clients may join note rooms."""
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from estatemap.realtime import Broadcaster, decode_frame

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def property_events(websocket: WebSocket):
    broadcaster: Broadcaster = websocket.app.state.broadcaster
    conn = await broadcaster.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                event, data = decode_frame(raw)
                broadcaster.handle_client_message(conn, event, data)
            except ValueError as exc:
                logger.warning("Ignoring malformed frame from %s: %s", conn.id, exc)
    except WebSocketDisconnect as exc:
        logger.debug("Socket %s closed by client (code %s)", conn.id, exc.code)
    finally:
        await broadcaster.disconnect(conn)
