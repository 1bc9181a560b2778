"""Async WebSocket server that streams relay output to viewers.

Per connection: subscribe to the hub, send the ``snapshot`` message, then
forward every ``telemetry`` / ``connectivity`` message as JSON until the
viewer goes away or the relay shuts down.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from websockets.exceptions import ConnectionClosed

from gcslink.errors import HubClosedError

if TYPE_CHECKING:
    import websockets.asyncio.server as ws_server

    from gcslink.telemetry.relay import TelemetryRelay
    from gcslink.telemetry.subscription import Subscription

logger = logging.getLogger(__name__)


class ViewerServer:
    """Serves the relay's snapshot + live feed to any number of viewers."""

    def __init__(
        self, relay: TelemetryRelay, *, host: str = "127.0.0.1", port: int = 8765
    ) -> None:
        self._relay = relay
        self._host = host
        self._port = port
        self._server: ws_server.Server | None = None
        self._connection_count = 0

    async def start(self) -> None:
        """Start listening on ``{host}:{port}``."""
        import websockets.asyncio.server as ws_server_mod

        self._server = await ws_server_mod.serve(self._handler, host=self._host, port=self._port)
        logger.info("Viewer WebSocket server listening on %s:%d", self._host, self.port)

    async def stop(self) -> None:
        """Gracefully shut down the server."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("Viewer WebSocket server stopped")

    @property
    def port(self) -> int:
        """Bound port (resolves ``0`` to the OS-assigned port once started)."""
        if self._server is not None and self._server.sockets:
            return int(self._server.sockets[0].getsockname()[1])
        return self._port

    @property
    def connection_count(self) -> int:
        """Number of currently attached viewers."""
        return self._connection_count

    async def _handler(self, websocket: Any) -> None:
        remote = getattr(websocket, "remote_address", ("unknown", 0))
        try:
            sub = self._relay.hub.subscribe()
        except HubClosedError:
            await websocket.close(1001, "relay shutting down")
            return

        self._connection_count += 1
        logger.info("Viewer connected: %s (total: %d)", remote, self._connection_count)
        try:
            snapshot = self._relay.initial_snapshot()
            await websocket.send(snapshot.model_dump_json(by_alias=True))

            pump = asyncio.create_task(self._pump(websocket, sub))
            closed = asyncio.create_task(websocket.wait_closed())
            done, pending = await asyncio.wait({pump, closed}, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            if pump in done and pump.exception() is not None:
                logger.debug("Viewer stream to %s ended: %s", remote, pump.exception())
        except ConnectionClosed:
            logger.debug("Viewer %s closed during snapshot", remote)
        finally:
            sub.close()
            self._connection_count -= 1
            logger.info("Viewer disconnected: %s (remaining: %d)", remote, self._connection_count)

    @staticmethod
    async def _pump(websocket: Any, sub: Subscription) -> None:
        async for message in sub:
            await websocket.send(message.model_dump_json(by_alias=True))
