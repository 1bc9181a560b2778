from __future__ import annotations

from gcslink.models.config import AppSettings
from gcslink.models.telemetry import (
    ChannelPoint,
    ConnectionState,
    ConnectivityEvent,
    DerivedState,
    FaultCode,
    HubMessage,
    InitialSnapshot,
    Stage,
    TelemetrySample,
    TelemetryUpdate,
    ViewerMessage,
    parse_viewer_message,
)

__all__ = [
    # config
    "AppSettings",
    # telemetry
    "ChannelPoint",
    "ConnectionState",
    "ConnectivityEvent",
    "DerivedState",
    "FaultCode",
    "HubMessage",
    "InitialSnapshot",
    "Stage",
    "TelemetrySample",
    "TelemetryUpdate",
    "ViewerMessage",
    "parse_viewer_message",
]
