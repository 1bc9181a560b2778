"""Exception hierarchy for gcslink.

Decode errors are recovered locally by the ingestion session (the frame is
dropped and counted). Transport errors drive the session back to
``connecting``. Neither ever escapes as a process-level failure.
"""

from __future__ import annotations

from typing import Any


class GcsLinkError(Exception):
    """Base class for all gcslink errors."""


class ConfigError(GcsLinkError):
    """Invalid or inconsistent configuration."""


# -- Frame decoding -----------------------------------------------------------


class DecodeError(GcsLinkError, ValueError):
    """A frame could not be turned into a telemetry sample."""


class MalformedFrameError(DecodeError):
    """The frame is not a structurally valid telemetry payload."""


class FieldRangeError(DecodeError):
    """A coded field (launch stage, error code) is outside its table."""

    def __init__(self, field: str, value: Any, *, low: int, high: int) -> None:
        self.field = field
        self.value = value
        super().__init__(f"{field}={value!r} is outside the range {low}..{high}")


# -- Upstream transport --------------------------------------------------------


class TransportError(GcsLinkError):
    """The upstream connection failed or was lost."""


class ConnectResetError(TransportError):
    """Connection refused, dropped, or closed by the peer."""


class TransportTimeoutError(TransportError):
    """No data (or no handshake) within the configured window."""


# -- Distribution --------------------------------------------------------------


class HubClosedError(GcsLinkError):
    """The distribution hub has shut down and accepts no new subscribers."""
