"""A single viewer's bounded, non-blocking view of the hub's stream.

The hub writes with :meth:`Subscription.offer`, which never waits: when the
queue is full the oldest queued message is discarded to make room.  The
viewer consumes with ``async for`` (all messages, in hub order) or with the
filtered :meth:`~Subscription.updates` / :meth:`~Subscription.connectivity`
views.  The views share one queue, so use only one of them per
subscription.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING, Any

from gcslink.models.telemetry import ConnectivityEvent, TelemetryUpdate

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from gcslink.models.telemetry import DerivedState, HubMessage, TelemetrySample

# Termination marker; never dropped and never handed to consumers.
_END: Any = object()


class Subscription:
    """Opaque subscription handle owned by :class:`DistributionHub`."""

    def __init__(
        self,
        maxsize: int,
        *,
        on_release: Callable[[Subscription], None] | None = None,
    ) -> None:
        if maxsize < 1:
            raise ValueError(f"maxsize must be >= 1, got {maxsize}")
        self._id = uuid.uuid4().hex[:12]
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize)
        self._on_release = on_release
        self._dropped_count = 0
        self._consecutive_drops = 0
        self._terminated = False
        self._exhausted = False

    def __repr__(self) -> str:
        return f"Subscription(id={self._id!r}, pending={self.pending}, closed={self.closed})"

    @property
    def id(self) -> str:  # noqa: A003
        return self._id

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    @property
    def pending(self) -> int:
        """Messages waiting in the queue (including the end marker)."""
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        """Total messages discarded because this subscriber fell behind."""
        return self._dropped_count

    @property
    def consecutive_drops(self) -> int:
        """Drops since this subscriber last consumed a message."""
        return self._consecutive_drops

    @property
    def closed(self) -> bool:
        """``True`` once the stream has been terminated."""
        return self._terminated

    # -- Producer side (hub) ---------------------------------------------------

    def offer(self, message: HubMessage) -> bool:
        """Enqueue *message* without blocking.

        Returns ``True`` if an older message had to be dropped.  Offers to a
        terminated subscription are ignored.
        """
        if self._terminated:
            return False
        dropped = self._make_room()
        self._queue.put_nowait(message)
        return dropped

    def terminate(self) -> None:
        """Enqueue the end-of-stream marker; idempotent."""
        if self._terminated:
            return
        self._terminated = True
        self._make_room()
        self._queue.put_nowait(_END)

    def _make_room(self) -> bool:
        if not self._queue.full():
            return False
        self._queue.get_nowait()
        self._dropped_count += 1
        self._consecutive_drops += 1
        return True

    # -- Consumer side (viewer) ------------------------------------------------

    async def get(self) -> HubMessage | None:
        """Wait for the next message; ``None`` once the stream has ended."""
        if self._exhausted:
            return None
        item = await self._queue.get()
        return self._accept(item)

    def get_nowait(self) -> HubMessage | None:
        """Return the next message without waiting.

        Returns ``None`` once the stream has ended.

        Raises:
            asyncio.QueueEmpty: If the stream is live but nothing is queued.
        """
        if self._exhausted:
            return None
        return self._accept(self._queue.get_nowait())

    def _accept(self, item: Any) -> HubMessage | None:
        self._consecutive_drops = 0
        if item is _END:
            self._exhausted = True
            return None
        message: HubMessage = item
        return message

    async def __aiter__(self) -> AsyncIterator[HubMessage]:
        while (message := await self.get()) is not None:
            yield message

    async def updates(self) -> AsyncIterator[tuple[TelemetrySample, DerivedState]]:
        """Yield ``(sample, derived)`` pairs, skipping connectivity events."""
        async for message in self:
            if isinstance(message, TelemetryUpdate):
                yield message.sample, message.derived

    async def connectivity(self) -> AsyncIterator[ConnectivityEvent]:
        """Yield connectivity events, skipping telemetry updates."""
        async for message in self:
            if isinstance(message, ConnectivityEvent):
                yield message

    def close(self) -> None:
        """Detach from the hub and end the stream."""
        if self._on_release is not None:
            release, self._on_release = self._on_release, None
            release(self)
        self.terminate()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
