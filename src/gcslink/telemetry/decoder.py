"""Decode telemetry frames pushed by the flight device.

Each WebSocket message carries exactly one JSON object (text or binary,
UTF-8) with a fixed field set::

    timestamp      number   seconds, producer-assigned
    temperature    number   degrees C
    voltage        number   V
    gyroX/Y/Z      number   deg/s
    altitude       number   m
    altitudeDiff   number   m/s
    latitude       number   degrees
    longitude      number   degrees
    launchStatus   integer  0..5
    errorCode      integer  0..5
    rawData        string   raw source text

Every field is mandatory and numbers must be finite.  Unknown extra keys
are ignored.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from gcslink.errors import FieldRangeError, MalformedFrameError
from gcslink.models.telemetry import TelemetrySample

LAUNCH_STAGE_RANGE = (0, 5)
ERROR_CODE_RANGE = (0, 5)


class TelemetryDecoder:
    """Decodes raw frames into :class:`TelemetrySample`.

    Decoding is pure: the same input always yields an equal sample or an
    error of the same type and message.

    Parameters:
        strict_codes: Reject frames whose ``launchStatus`` or ``errorCode``
            fall outside their tables.  When ``False`` such frames are
            accepted and classified as unknown downstream.
    """

    def __init__(self, *, strict_codes: bool = True) -> None:
        self._strict_codes = strict_codes

    @property
    def strict_codes(self) -> bool:
        return self._strict_codes

    def decode(self, raw: bytes | str) -> TelemetrySample:
        """Decode one frame.

        Args:
            raw: One message worth of bytes (or already-decoded text).

        Returns:
            The validated :class:`TelemetrySample`.

        Raises:
            MalformedFrameError: If the payload is structurally invalid.
            FieldRangeError: If a coded field is out of range (strict mode).
        """
        payload = self._parse(raw)

        try:
            sample = TelemetrySample.model_validate(payload)
        except ValidationError as exc:
            raise MalformedFrameError(_describe(exc)) from exc

        if self._strict_codes:
            _check_range("launchStatus", sample.launch_stage, LAUNCH_STAGE_RANGE)
            _check_range("errorCode", sample.error_code, ERROR_CODE_RANGE)

        return sample

    @staticmethod
    def _parse(raw: bytes | str) -> dict[str, Any]:
        if isinstance(raw, str):
            text = raw
        else:
            try:
                text = bytes(raw).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise MalformedFrameError(f"Frame is not valid UTF-8: {exc.reason}") from exc

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedFrameError(f"Frame is not valid JSON: {exc.msg}") from exc
        except RecursionError as exc:
            raise MalformedFrameError("Frame is not valid JSON: nested too deeply") from exc
        except ValueError as exc:
            # e.g. integer literals beyond the int-to-str digit limit
            raise MalformedFrameError(f"Frame is not valid JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise MalformedFrameError(
                f"Frame must be a JSON object, got {type(payload).__name__}"
            )
        return payload


def _check_range(field: str, value: int, bounds: tuple[int, int]) -> None:
    low, high = bounds
    if not low <= value <= high:
        raise FieldRangeError(field, value, low=low, high=high)


def _describe(exc: ValidationError) -> str:
    """Summarise the first validation error as ``"<field>: <message>"``."""
    first = exc.errors(include_url=False)[0]
    loc = ".".join(str(part) for part in first["loc"]) or "<root>"
    extra = f" (+{exc.error_count() - 1} more)" if exc.error_count() > 1 else ""
    return f"{loc}: {first['msg']}{extra}"
