"""
Live sync loop

Keeps a ClientReconciler current against a running server:

1. open the event socket (events from here on are buffered by the socket)
2. fetch the full snapshot over REST and replace the cache
3. apply events in arrival order until the socket drops
4. back off, reconnect and start again from 1

Events published while disconnected are never replayed; the snapshot taken
on reconnect is what brings the cache back in line.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx
import websockets
from websockets.exceptions import WebSocketException

from estatemap.realtime.events import decode_frame

from .reconciler import ClientReconciler

logger = logging.getLogger(__name__)


def websocket_url(base_url: str) -> str:
    """http(s)://host -> ws(s)://host/ws"""
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://"):]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://"):]
    return base + "/ws"


class LiveSync:
    """Snapshot + event stream client with reconnect and full resync"""

    def __init__(
        self,
        base_url: str,
        reconciler: Optional[ClientReconciler] = None,
        api_prefix: str = "/api",
        initial_backoff: float = 0.5,
        max_backoff: float = 30.0,
        timeout: float = 30.0,
        connect: Optional[Callable] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.ws_url = websocket_url(self.base_url)
        self.api_prefix = api_prefix
        self.reconciler = reconciler or ClientReconciler()
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.timeout = timeout
        self._connect = connect or websockets.connect
        self._stopped = asyncio.Event()
        self._socket = None
        self._delay = initial_backoff
        self.resyncs = 0

    async def fetch_snapshot(self) -> List[Dict[str, Any]]:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout) as client:
            response = await client.get(f"{self.api_prefix}/properties")
            response.raise_for_status()
            return response.json()

    async def sync_once(self) -> None:
        """One connection lifetime; returns when the socket closes"""
        async with self._connect(self.ws_url) as socket:
            self._socket = socket
            try:
                self.reconciler.load_snapshot(await self.fetch_snapshot())
                self.resyncs += 1
                self._delay = self.initial_backoff
                logger.info("Synced %d properties from %s", len(self.reconciler), self.base_url)

                async for raw in socket:
                    try:
                        event, data = decode_frame(raw)
                    except ValueError as exc:
                        logger.warning("Dropping malformed frame: %s", exc)
                        continue
                    self.reconciler.apply(event, data)
                    if self._stopped.is_set():
                        break
            finally:
                self._socket = None

    async def run(self) -> None:
        """Sync until stop() is called, reconnecting with exponential backoff"""
        self._stopped.clear()
        while not self._stopped.is_set():
            try:
                await self.sync_once()
            except (WebSocketException, OSError, httpx.HTTPError) as exc:
                logger.warning("Live sync interrupted: %s", exc)
            if self._stopped.is_set():
                break

            logger.info("Reconnecting in %.1fs", self._delay)
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self._delay)
            except asyncio.TimeoutError:
                pass
            self._delay = min(self._delay * 2, self.max_backoff)

    async def stop(self) -> None:
        self._stopped.set()
        socket = self._socket
        if socket is not None:
            await socket.close()
