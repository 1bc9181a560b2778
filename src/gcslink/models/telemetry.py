"""Pydantic v2 models for decoded telemetry and the viewer wire protocol.

Wire keys for a sample mirror the flight device's JSON payload::

    {"timestamp": 1737264000, "temperature": 24.1, "voltage": 11.9,
     "gyroX": 3.2, "gyroY": -1.0, "gyroZ": 0.4, "altitude": 412.5,
     "altitudeDiff": 12.7, "latitude": -7.7714, "longitude": 110.3775,
     "launchStatus": 2, "errorCode": 0, "rawData": "RAW|..."}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


@dataclass(frozen=True, slots=True)
class ChannelPoint:
    """One ``(time, value)`` point in a channel's rolling history."""

    time: float
    value: float


class Stage(StrEnum):
    """Mission launch stage, indexed by the device's launch status code."""

    PRE_LAUNCH = "pre_launch"
    READY_TO_LAUNCH = "ready_to_launch"
    ASCENDING = "ascending"
    CRUISING = "cruising"
    DESCENDING = "descending"
    LANDED = "landed"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return _STAGE_LABELS[self]


_STAGE_LABELS: dict[Stage, str] = {
    Stage.PRE_LAUNCH: "Pre-Launch",
    Stage.READY_TO_LAUNCH: "Ready to Launch",
    Stage.ASCENDING: "Ascending",
    Stage.CRUISING: "Cruising",
    Stage.DESCENDING: "Descending",
    Stage.LANDED: "Landed",
    Stage.UNKNOWN: "Unknown",
}


class FaultCode(StrEnum):
    """Fault condition reported by the device's error code."""

    NO_ERROR = "no_error"
    CONTAINER_DESCENT_RATE_FAILURE = "container_descent_rate_failure"
    PAYLOAD_DESCENT_RATE_FAILURE = "payload_descent_rate_failure"
    CONTAINER_POSITION_FAILURE = "container_position_failure"
    PAYLOAD_POSITION_FAILURE = "payload_position_failure"
    RELEASE_FAILURE = "release_failure"
    UNKNOWN_FAULT = "unknown_fault"

    @property
    def message(self) -> str:
        return _FAULT_MESSAGES[self]


_FAULT_MESSAGES: dict[FaultCode, str] = {
    FaultCode.NO_ERROR: "No Error",
    FaultCode.CONTAINER_DESCENT_RATE_FAILURE: "Container descent rate failure",
    FaultCode.PAYLOAD_DESCENT_RATE_FAILURE: "Science Payload descent rate failure",
    FaultCode.CONTAINER_POSITION_FAILURE: "Container position failure",
    FaultCode.PAYLOAD_POSITION_FAILURE: "Science Payload position failure",
    FaultCode.RELEASE_FAILURE: "Release failure",
    FaultCode.UNKNOWN_FAULT: "Unknown Error",
}


class ConnectionState(StrEnum):
    """Upstream connectivity as seen by the ingestion session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"
    CLOSED = "closed"


class TelemetrySample(BaseModel):
    """One decoded reading from the flight device.

    Immutable once constructed.  Numeric fields must be finite; the two
    code fields are plain integers here and are range-checked by the
    decoder, so out-of-table codes can still be represented.
    """

    model_config = ConfigDict(
        frozen=True,
        strict=True,
        populate_by_name=True,
        allow_inf_nan=False,
        extra="ignore",
    )

    timestamp: float
    temperature: float
    voltage: float
    gyro_x: float = Field(alias="gyroX")
    gyro_y: float = Field(alias="gyroY")
    gyro_z: float = Field(alias="gyroZ")
    altitude: float
    altitude_rate: float = Field(alias="altitudeDiff")
    latitude: float
    longitude: float
    launch_stage: int = Field(alias="launchStatus")
    error_code: int = Field(alias="errorCode")
    raw: str = Field(alias="rawData")


class DerivedState(BaseModel):
    """Mission-level classification computed from the latest sample."""

    model_config = ConfigDict(frozen=True)

    stage: Stage
    fault: FaultCode

    @property
    def is_fault(self) -> bool:
        return self.fault is not FaultCode.NO_ERROR


# -- Viewer wire messages -----------------------------------------------------


class TelemetryUpdate(BaseModel):
    """An accepted sample and its derived state, as fanned out to viewers."""

    model_config = ConfigDict(frozen=True)

    type: Literal["telemetry"] = "telemetry"
    seq: int
    sample: TelemetrySample
    derived: DerivedState


class ConnectivityEvent(BaseModel):
    """An ingestion session state transition."""

    model_config = ConfigDict(frozen=True)

    type: Literal["connectivity"] = "connectivity"
    seq: int
    state: ConnectionState
    reason: str | None = None


class InitialSnapshot(BaseModel):
    """First message sent to a newly attached viewer."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["snapshot"] = "snapshot"
    channels: dict[str, tuple[ChannelPoint, ...]]
    raw_log: tuple[str, ...] = Field(alias="rawLog")
    latest: TelemetrySample | None = None
    derived: DerivedState | None = None
    connection: ConnectionState


HubMessage = TelemetryUpdate | ConnectivityEvent

ViewerMessage = Annotated[
    InitialSnapshot | TelemetryUpdate | ConnectivityEvent,
    Field(discriminator="type"),
]

_viewer_message_adapter: TypeAdapter[Any] = TypeAdapter(ViewerMessage)


def parse_viewer_message(raw: str | bytes) -> InitialSnapshot | HubMessage:
    """Parse one JSON message from the viewer feed."""
    result: InitialSnapshot | HubMessage = _viewer_message_adapter.validate_json(raw)
    return result
