"""Shared fixtures for telemetry tests."""

from __future__ import annotations

import json
from typing import Any

import pytest

from gcslink.models.telemetry import TelemetrySample

_BASE_PAYLOAD: dict[str, Any] = {
    "timestamp": 1737264000.0,
    "temperature": 24.1,
    "voltage": 11.9,
    "gyroX": 3.2,
    "gyroY": -1.0,
    "gyroZ": 0.4,
    "altitude": 412.5,
    "altitudeDiff": 12.7,
    "latitude": -7.7714,
    "longitude": 110.3775,
    "launchStatus": 2,
    "errorCode": 0,
    "rawData": "RAW|1737264000|412.50|-7.77|110.38|41.00",
}


def build_payload(**overrides: Any) -> dict[str, Any]:
    payload = dict(_BASE_PAYLOAD)
    payload.update(overrides)
    return payload


@pytest.fixture()
def make_payload() -> Any:
    """Factory for a valid wire payload dict with field overrides."""
    return build_payload


@pytest.fixture()
def make_frame() -> Any:
    """Factory for a valid JSON frame (bytes) with field overrides."""

    def _make(**overrides: Any) -> bytes:
        return json.dumps(build_payload(**overrides)).encode()

    return _make


@pytest.fixture()
def make_sample() -> Any:
    """Factory for a :class:`TelemetrySample` with wire-key overrides."""

    def _make(**overrides: Any) -> TelemetrySample:
        return TelemetrySample.model_validate(build_payload(**overrides))

    return _make
