"""Upstream ingestion session: connect, read, reconnect with backoff, close.

State machine::

    disconnected -> connecting -> connected -> disconnected -> connecting ...
                                              (any) -> closing -> closed

The first connection attempt is immediate.  After a failed attempt or a
lost connection the session waits in ``connecting`` for the next backoff
delay (exponential, 1s base -> 30s max, with jitter).  A connection that
stayed up for at least ``min_uptime`` seconds resets the delay.

Malformed frames are logged, counted and skipped.  Only :meth:`close`
ends the session.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from typing import TYPE_CHECKING, Any

from websockets.exceptions import ConnectionClosed

from gcslink.errors import (
    ConnectResetError,
    DecodeError,
    TransportError,
    TransportTimeoutError,
)
from gcslink.models.telemetry import ConnectionState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from gcslink.models.telemetry import TelemetrySample
    from gcslink.telemetry.decoder import TelemetryDecoder

    Connector = Callable[[str], Awaitable[Any]]

logger = logging.getLogger(__name__)

_BACKOFF_BASE = 1.0
_BACKOFF_MAX = 30.0
_BACKOFF_FACTOR = 2.0
_BACKOFF_JITTER = 0.1


class Backoff:
    """Bounded exponential backoff.

    Each :meth:`next_delay` returns the current delay (plus up to
    ``jitter`` x delay of random spread, never above *cap*) and then grows
    the delay by *factor*.
    """

    def __init__(
        self,
        base: float = _BACKOFF_BASE,
        cap: float = _BACKOFF_MAX,
        factor: float = _BACKOFF_FACTOR,
        jitter: float = _BACKOFF_JITTER,
    ) -> None:
        self._base = base
        self._cap = cap
        self._factor = factor
        self._jitter = jitter
        self._current = base

    @property
    def current(self) -> float:
        return self._current

    def next_delay(self) -> float:
        wait = min(self._current + random.uniform(0, self._current * self._jitter), self._cap)
        self._current = min(self._current * self._factor, self._cap)
        return wait

    def reset(self) -> None:
        self._current = self._base


class IngestionSession:
    """Owns the upstream WebSocket connection lifecycle.

    Parameters:
        url: Upstream feed URL (``ws://`` or ``wss://``).
        decoder: Frame decoder.
        on_sample: Awaited for every accepted sample, in arrival order.
        on_state: Awaited on every state change with ``(state, reason)``.
        connector: ``await connector(url)`` must return an object with
            ``recv()`` and ``close()`` coroutines.  Defaults to
            :func:`websockets.asyncio.client.connect`.
        backoff: Reconnect delay policy.
        open_timeout: Seconds allowed for a connection attempt.
        read_timeout: Seconds without a frame before the link is treated as
            dead.  ``None`` waits forever.
        min_uptime: A connected period at least this long resets *backoff*.
    """

    def __init__(
        self,
        url: str,
        decoder: TelemetryDecoder,
        on_sample: Callable[[TelemetrySample], Awaitable[None]],
        *,
        on_state: Callable[[ConnectionState, str | None], Awaitable[None]] | None = None,
        connector: Connector | None = None,
        backoff: Backoff | None = None,
        open_timeout: float = 10.0,
        read_timeout: float | None = None,
        min_uptime: float = 5.0,
    ) -> None:
        self._url = url
        self._decoder = decoder
        self._on_sample = on_sample
        self._on_state = on_state
        self._connector: Connector = connector or _websocket_connect
        self._backoff = backoff or Backoff()
        self._open_timeout = open_timeout
        self._read_timeout = read_timeout
        self._min_uptime = min_uptime

        self._state = ConnectionState.DISCONNECTED
        self._task: asyncio.Task[None] | None = None
        self._conn: Any = None
        self._closing = False
        self._next_delay = 0.0
        self._frame_count = 0
        self._rejected_count = 0
        self._connect_attempts = 0
        self._reconnect_count = 0

    # -- Introspection ---------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def next_delay(self) -> float:
        """Delay (seconds) scheduled before the next connection attempt."""
        return self._next_delay

    @property
    def frame_count(self) -> int:
        """Frames decoded and handed to ``on_sample``."""
        return self._frame_count

    @property
    def rejected_count(self) -> int:
        """Frames dropped because they failed to decode."""
        return self._rejected_count

    @property
    def connect_attempts(self) -> int:
        return self._connect_attempts

    @property
    def reconnect_count(self) -> int:
        """Established connections that were subsequently lost."""
        return self._reconnect_count

    # -- Lifecycle ---------------------------------------------------------------

    def start(self) -> asyncio.Task[None]:
        """Spawn the read loop as a background task."""
        if self._task is None:
            self._task = asyncio.create_task(self.run(), name="gcslink-ingestion")
        return self._task

    async def run(self) -> None:
        """Connect and read until :meth:`close` is called."""
        if self._task is None:
            self._task = asyncio.current_task()

        delay = 0.0
        reason: str | None = None
        while not self._closing:
            await self._transition(ConnectionState.CONNECTING, reason)
            if delay > 0:
                logger.info("Connecting to %s in %.1fs", self._url, delay)
                await asyncio.sleep(delay)

            self._connect_attempts += 1
            try:
                conn = await self._open()
            except TransportError as exc:
                delay = self._schedule_retry()
                logger.info(
                    "Connection attempt %d failed: %s (retrying in %.1fs)",
                    self._connect_attempts,
                    exc,
                    delay,
                )
                continue

            self._conn = conn
            self._next_delay = 0.0
            connected_at = asyncio.get_running_loop().time()
            await self._transition(ConnectionState.CONNECTED)
            try:
                await self._read_loop(conn)
            except TransportError as exc:
                reason = str(exc)
                logger.warning("Upstream link lost: %s", exc)
            finally:
                self._conn = None
                await _release(conn)

            if asyncio.get_running_loop().time() - connected_at >= self._min_uptime:
                self._backoff.reset()
            self._reconnect_count += 1
            delay = self._schedule_retry()
            await self._transition(ConnectionState.DISCONNECTED, reason)

    async def close(self) -> None:
        """Stop reading, release the transport and move to ``closed``.

        Idempotent.  No reconnection is attempted afterwards.
        """
        if self._state is ConnectionState.CLOSED:
            return
        self._closing = True
        await self._transition(ConnectionState.CLOSING, "shutdown requested")

        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._conn is not None:
            await _release(self._conn)
            self._conn = None

        self._next_delay = 0.0
        await self._transition(ConnectionState.CLOSED, "shutdown requested")

    # -- Internals ---------------------------------------------------------------

    async def _open(self) -> Any:
        try:
            return await asyncio.wait_for(self._connector(self._url), timeout=self._open_timeout)
        except TimeoutError as exc:
            raise TransportTimeoutError(
                f"Timed out connecting to {self._url} after {self._open_timeout:.1f}s"
            ) from exc
        except Exception as exc:
            raise ConnectResetError(f"Failed to connect to {self._url}: {exc}") from exc

    async def _read_loop(self, conn: Any) -> None:
        """Receive frames until the transport fails.

        Raises:
            TransportError: Always, once the connection is unusable.
        """
        while True:
            try:
                message = await asyncio.wait_for(conn.recv(), timeout=self._read_timeout)
            except TimeoutError as exc:
                raise TransportTimeoutError(
                    f"No frame from {self._url} in {self._read_timeout:.1f}s"
                ) from exc
            except (ConnectionClosed, OSError) as exc:
                raise ConnectResetError(f"Connection to {self._url} closed: {exc}") from exc

            await self._handle(message)

    async def _handle(self, message: bytes | str) -> None:
        try:
            sample = self._decoder.decode(message)
        except DecodeError as exc:
            self._rejected_count += 1
            logger.warning("Dropped telemetry frame (%d bytes): %s", len(message), exc)
            return
        except Exception:
            self._rejected_count += 1
            logger.warning(
                "Failed to decode telemetry frame (%d bytes)", len(message), exc_info=True
            )
            return

        self._frame_count += 1
        try:
            await self._on_sample(sample)
        except Exception:
            logger.warning("Sample handler failed at t=%s", sample.timestamp, exc_info=True)

    def _schedule_retry(self) -> float:
        self._next_delay = self._backoff.next_delay()
        return self._next_delay

    async def _transition(self, state: ConnectionState, reason: str | None = None) -> None:
        if state is self._state:
            return
        if self._closing and state not in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        previous, self._state = self._state, state
        logger.info("Ingestion %s -> %s (%s)", previous, state, self._url)
        if self._on_state is None:
            return
        try:
            await self._on_state(state, reason)
        except Exception:
            logger.warning("State handler failed for %s", state, exc_info=True)


async def _websocket_connect(url: str) -> Any:
    import websockets.asyncio.client as ws_client

    return await ws_client.connect(url, open_timeout=None)


async def _release(conn: Any) -> None:
    with contextlib.suppress(Exception):
        await conn.close()
