"""
Broadcaster

Fans committed property mutations out to every open event socket.

Delivery is at-most-once and fire-and-forget. There is no event log and no
replay: a client that is not connected when an event is published never sees
it and must resync with a full snapshot when it reconnects.

Each connection has its own bounded queue drained by its own sender task, so
a connection receives events in the order they were published, and a slow
client never delays the publisher or other clients. A connection that falls
a full queue behind is closed; its client reconnects and resyncs.
"""
import asyncio
import logging
import uuid
from typing import Any, Dict, Optional, Set

from starlette.websockets import WebSocket, WebSocketDisconnect

from .events import RoomMessage, encode_frame

logger = logging.getLogger(__name__)

# Close code sent to a client that could not keep up (RFC 6455 "try again later")
CLOSE_TRY_AGAIN = 1013


def room_name(property_id: Any) -> str:
    """
    Raises:
        ValueError: If property_id is not an integer id
    """
    if isinstance(property_id, bool):
        raise ValueError("property id must be an integer")
    try:
        return f"property-{int(property_id)}"
    except (TypeError, ValueError) as exc:
        raise ValueError("property id must be an integer") from exc


class Connection:
    """One live event socket"""

    def __init__(self, websocket: WebSocket, queue_size: int):
        self.id = uuid.uuid4().hex[:12]
        self.websocket = websocket
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.rooms: Set[str] = set()
        self.sender: Optional[asyncio.Task] = None
        self.closed = False

    def __repr__(self) -> str:
        return f"<Connection {self.id}>"


class Broadcaster:
    """Registry of live connections and per-connection delivery queues"""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._connections: Dict[str, Connection] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # ==================== CONNECTIONS ====================

    async def connect(self, websocket: WebSocket) -> Connection:
        """Register and accept a socket; events published from now on reach it"""
        conn = Connection(websocket, self.queue_size)
        self._connections[conn.id] = conn
        await websocket.accept()
        conn.sender = asyncio.create_task(self._drain(conn))
        logger.info("Client connected: %s (%d open)", conn.id, self.connection_count)
        return conn

    async def disconnect(self, conn: Connection) -> None:
        self._forget(conn)
        sender = conn.sender
        if sender is not None and sender is not asyncio.current_task() and not sender.done():
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass

    async def close_all(self) -> None:
        """Close every socket (server shutdown)"""
        for conn in list(self._connections.values()):
            await self.disconnect(conn)
            await self._close_socket(conn, 1001)

    def _forget(self, conn: Connection) -> None:
        conn.closed = True
        if self._connections.pop(conn.id, None) is not None:
            logger.info("Client disconnected: %s (%d open)", conn.id, self.connection_count)

    async def _close_socket(self, conn: Connection, code: int) -> None:
        try:
            await conn.websocket.close(code=code)
        except (RuntimeError, OSError) as exc:
            logger.debug("Close of %s failed: %s", conn.id, exc)

    async def _evict(self, conn: Connection) -> None:
        await self.disconnect(conn)
        await self._close_socket(conn, CLOSE_TRY_AGAIN)

    # ==================== DELIVERY ====================

    def publish(self, event: str, data: Any) -> int:
        """
        Queue an event for every open connection without waiting on any of them

        Returns:
            Number of connections the event was queued for
        """
        frame = encode_frame(event, data)
        delivered = 0
        for conn in list(self._connections.values()):
            if self._offer(conn, frame):
                delivered += 1
        logger.debug("Published %s to %d connection(s)", getattr(event, "value", event), delivered)
        return delivered

    def _offer(self, conn: Connection, frame: str) -> bool:
        if conn.closed:
            return False
        try:
            conn.queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning("Client %s fell %d events behind, disconnecting", conn.id, self.queue_size)
            self._forget(conn)
            asyncio.get_running_loop().create_task(self._evict(conn))
            return False
        return True

    async def _drain(self, conn: Connection) -> None:
        while True:
            frame = await conn.queue.get()
            try:
                await conn.websocket.send_text(frame)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.info("Send to %s failed: %s", conn.id, exc)
                self._forget(conn)
                return

    # ==================== ROOMS ====================

    def handle_client_message(self, conn: Connection, event: str, data: Any) -> None:
        """
        Apply a client frame: join/leave a property's room, or relay a note
        update to the other members of that room.

        Raises:
            ValueError: If the frame data does not name a property id
        """
        if event == RoomMessage.JOIN.value:
            conn.rooms.add(room_name(data))
        elif event == RoomMessage.LEAVE.value:
            conn.rooms.discard(room_name(data))
        elif event == RoomMessage.NOTE_UPDATE.value:
            if not isinstance(data, dict):
                raise ValueError("note update must be an object")
            self.relay(room_name(data.get("propertyId")), event, data, exclude=conn)
        else:
            logger.debug("Ignoring client event %r from %s", event, conn.id)

    def relay(self, room: str, event: str, data: Any, exclude: Optional[Connection] = None) -> int:
        frame = encode_frame(event, data)
        delivered = 0
        for conn in list(self._connections.values()):
            if conn is exclude or room not in conn.rooms:
                continue
            if self._offer(conn, frame):
                delivered += 1
        return delivered
