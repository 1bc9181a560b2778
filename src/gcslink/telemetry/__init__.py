"""Telemetry pipeline from upstream ingestion to viewer fan-out."""

from __future__ import annotations

from gcslink.telemetry.buffers import CHANNELS, ChannelBuffer, ChannelBufferStore, RawLog
from gcslink.telemetry.decoder import TelemetryDecoder
from gcslink.telemetry.derive import derive
from gcslink.telemetry.hub import DistributionHub
from gcslink.telemetry.relay import RelaySession, TelemetryRelay, relay_session
from gcslink.telemetry.session import Backoff, IngestionSession
from gcslink.telemetry.simulator import FlightSimulator, SimulatorServer
from gcslink.telemetry.subscription import Subscription
from gcslink.telemetry.viewer_server import ViewerServer

__all__ = [
    "CHANNELS",
    "Backoff",
    "ChannelBuffer",
    "ChannelBufferStore",
    "DistributionHub",
    "FlightSimulator",
    "IngestionSession",
    "RawLog",
    "RelaySession",
    "SimulatorServer",
    "Subscription",
    "TelemetryDecoder",
    "TelemetryRelay",
    "ViewerServer",
    "derive",
    "relay_session",
]
