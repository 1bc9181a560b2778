"""Telemetry relay lifecycle.

Wires the ingestion session to the buffer store, the derivation step and
the distribution hub:

    upstream frame -> decode -> store.push -> derive -> hub.publish

Usage::

    async with relay_session(settings) as session:
        # ingestion is running, viewers can connect on session.viewer_port
        await some_blocking_loop()
    # cleanup is guaranteed (ingestion close -> hub close -> viewer server stop)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from gcslink.models.telemetry import InitialSnapshot
from gcslink.telemetry.buffers import ChannelBufferStore
from gcslink.telemetry.decoder import TelemetryDecoder
from gcslink.telemetry.derive import derive
from gcslink.telemetry.hub import DistributionHub
from gcslink.telemetry.session import Backoff, IngestionSession

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from gcslink.models.config import AppSettings
    from gcslink.models.telemetry import ConnectionState, DerivedState, TelemetrySample
    from gcslink.telemetry.session import Connector
    from gcslink.telemetry.viewer_server import ViewerServer

logger = logging.getLogger(__name__)


class TelemetryRelay:
    """The ingestion -> history -> fan-out pipeline for one upstream feed."""

    def __init__(
        self,
        url: str,
        *,
        store: ChannelBufferStore | None = None,
        hub: DistributionHub | None = None,
        decoder: TelemetryDecoder | None = None,
        connector: Connector | None = None,
        backoff: Backoff | None = None,
        open_timeout: float = 10.0,
        read_timeout: float | None = None,
        min_uptime: float = 5.0,
    ) -> None:
        self.store = store or ChannelBufferStore()
        self.hub = hub or DistributionHub()
        self.decoder = decoder or TelemetryDecoder()
        self.session = IngestionSession(
            url,
            self.decoder,
            self.on_sample,
            on_state=self.on_state,
            connector=connector,
            backoff=backoff,
            open_timeout=open_timeout,
            read_timeout=read_timeout,
            min_uptime=min_uptime,
        )
        self._derived: DerivedState | None = None

    @classmethod
    def from_settings(
        cls, settings: AppSettings, *, connector: Connector | None = None
    ) -> TelemetryRelay:
        return cls(
            settings.upstream_url,
            store=ChannelBufferStore(settings.history_size, raw_log_size=settings.raw_log_size),
            hub=DistributionHub(
                queue_size=settings.queue_size,
                evict_after_drops=settings.evict_after_drops,
            ),
            decoder=TelemetryDecoder(strict_codes=settings.strict_codes),
            connector=connector,
            backoff=Backoff(
                base=settings.backoff_base,
                cap=settings.backoff_max,
                factor=settings.backoff_factor,
            ),
            open_timeout=settings.open_timeout,
            read_timeout=settings.read_timeout,
            min_uptime=settings.min_uptime,
        )

    @property
    def derived(self) -> DerivedState | None:
        """Derived state of the latest accepted sample."""
        return self._derived

    async def on_sample(self, sample: TelemetrySample) -> None:
        self.store.push(sample)
        self._derived = derive(sample)
        self.hub.publish(sample, self._derived)

    async def on_state(self, state: ConnectionState, reason: str | None) -> None:
        self.hub.publish_connectivity(state, reason)

    def initial_snapshot(self) -> InitialSnapshot:
        """Current history and state for a newly attached viewer."""
        return InitialSnapshot(
            channels=self.store.snapshot_all(),
            raw_log=self.store.raw_log(),
            latest=self.store.latest,
            derived=self._derived,
            connection=self.session.state,
        )

    def start(self) -> None:
        self.session.start()
        logger.info("Telemetry relay started (upstream: %s)", self.session.url)

    async def stop(self) -> None:
        """Close ingestion (viewers see ``closing``/``closed``), then the hub."""
        await self.session.close()
        self.hub.close()
        logger.info(
            "Telemetry relay stopped (%d frames, %d rejected)",
            self.session.frame_count,
            self.session.rejected_count,
        )


@dataclass
class RelaySession:
    """Active relay state exposed to callers."""

    relay: TelemetryRelay
    server: ViewerServer
    upstream_url: str
    viewer_host: str
    viewer_port: int


@asynccontextmanager
async def relay_session(
    settings: AppSettings,
    *,
    connector: Connector | None = None,
) -> AsyncIterator[RelaySession]:
    """Run a relay plus its viewer server for the duration of the block."""
    from gcslink.telemetry.viewer_server import ViewerServer

    relay = TelemetryRelay.from_settings(settings, connector=connector)
    server = ViewerServer(relay, host=settings.viewer_host, port=settings.viewer_port)

    await server.start()
    try:
        relay.start()
        yield RelaySession(
            relay=relay,
            server=server,
            upstream_url=settings.upstream_url,
            viewer_host=settings.viewer_host,
            viewer_port=server.port,
        )
    finally:
        # Hub must be closed before the server waits on its handlers.
        await relay.stop()
        await server.stop()
