"""Fan-out of accepted samples and connectivity events to viewers.

Unlike a callback fan-out, the hub never awaits a consumer: each viewer owns
a bounded :class:`Subscription` queue and :meth:`DistributionHub.publish`
only does non-blocking puts.  A slow viewer loses its oldest queued
messages; it never delays ingestion or any other viewer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gcslink.errors import HubClosedError
from gcslink.models.telemetry import ConnectionState, ConnectivityEvent, TelemetryUpdate
from gcslink.telemetry.subscription import Subscription

if TYPE_CHECKING:
    from gcslink.models.telemetry import DerivedState, HubMessage, TelemetrySample

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


class DistributionHub:
    """Delivers each published message to every live subscription.

    Parameters:
        queue_size: Default per-subscription queue bound.
        evict_after_drops: Drop a subscription after this many consecutive
            dropped messages without a read.  ``0`` disables eviction.
    """

    def __init__(
        self,
        *,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        evict_after_drops: int = 0,
    ) -> None:
        self._queue_size = queue_size
        self._evict_after_drops = evict_after_drops
        self._subscriptions: dict[str, Subscription] = {}
        self._seq = 0
        self._published_count = 0
        self._connection_state = ConnectionState.DISCONNECTED
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def published_count(self) -> int:
        """Telemetry updates published since start."""
        return self._published_count

    @property
    def connection_state(self) -> ConnectionState:
        """Most recent connectivity state published through the hub."""
        return self._connection_state

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, maxsize: int | None = None) -> Subscription:
        """Attach a new subscriber.

        The queue starts empty; only messages published afterwards are
        delivered.

        Raises:
            HubClosedError: If the hub has been closed.
            ValueError: If *maxsize* is less than 1.
        """
        if self._closed:
            raise HubClosedError("Distribution hub is closed")
        size = self._queue_size if maxsize is None else maxsize
        sub = Subscription(size, on_release=self.unsubscribe)
        self._subscriptions[sub.id] = sub
        logger.info("Viewer subscribed: %s (total: %d)", sub.id, len(self._subscriptions))
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove *subscription* from the fan-out set and end its stream."""
        if self._subscriptions.pop(subscription.id, None) is None:
            return
        subscription.terminate()
        logger.info(
            "Viewer unsubscribed: %s (remaining: %d)",
            subscription.id,
            len(self._subscriptions),
        )

    def publish(self, sample: TelemetrySample, derived: DerivedState) -> None:
        """Fan out one accepted sample.  No-op after :meth:`close`."""
        if self._closed:
            return
        self._published_count += 1
        self._fan_out(TelemetryUpdate(seq=self._next_seq(), sample=sample, derived=derived))

    def publish_connectivity(self, state: ConnectionState, reason: str | None = None) -> None:
        """Fan out an ingestion state transition.  No-op after :meth:`close`."""
        if self._closed:
            return
        self._connection_state = state
        self._fan_out(ConnectivityEvent(seq=self._next_seq(), state=state, reason=reason))

    def close(self) -> None:
        """End every stream and refuse further subscriptions; idempotent."""
        if self._closed:
            return
        self._closed = True
        subs = list(self._subscriptions.values())
        self._subscriptions.clear()
        for sub in subs:
            sub.terminate()
        logger.info("Distribution hub closed (%d viewer(s) released)", len(subs))

    def _next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def _fan_out(self, message: HubMessage) -> None:
        for sub in list(self._subscriptions.values()):
            if not sub.offer(message):
                continue
            logger.debug("Viewer %s is behind; dropped oldest message", sub.id)
            if self._evict_after_drops and sub.consecutive_drops >= self._evict_after_drops:
                logger.info(
                    "Viewer %s unreachable after %d dropped messages, evicting",
                    sub.id,
                    sub.consecutive_drops,
                )
                self.unsubscribe(sub)
