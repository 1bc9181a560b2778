"""Bounded rolling history for each measurement channel.

The ingestion task is the only writer.  :meth:`ChannelBufferStore.push` is
synchronous, so on a single event loop no reader can observe a channel set
that is only partly updated.  Readers always get tuple copies.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from gcslink.models.telemetry import ChannelPoint

if TYPE_CHECKING:
    from collections.abc import Callable

    from gcslink.models.telemetry import TelemetrySample

DEFAULT_HISTORY_SIZE = 50
DEFAULT_RAW_LOG_SIZE = 10

# Channel name -> scalar extractor, in display order.
CHANNELS: dict[str, Callable[[TelemetrySample], float]] = {
    "temperature": lambda s: s.temperature,
    "voltage": lambda s: s.voltage,
    "gyroX": lambda s: s.gyro_x,
    "gyroY": lambda s: s.gyro_y,
    "gyroZ": lambda s: s.gyro_z,
    "altitude": lambda s: s.altitude,
    "altitudeRate": lambda s: s.altitude_rate,
}


def _check_capacity(capacity: int) -> int:
    if capacity < 1:
        raise ValueError(f"capacity must be >= 1, got {capacity}")
    return capacity


class ChannelBuffer:
    """Fixed-capacity FIFO ring of the most recent points for one channel."""

    def __init__(self, name: str, capacity: int = DEFAULT_HISTORY_SIZE) -> None:
        self._name = name
        self._points: deque[ChannelPoint] = deque(maxlen=_check_capacity(capacity))

    @property
    def name(self) -> str:
        return self._name

    @property
    def capacity(self) -> int:
        assert self._points.maxlen is not None
        return self._points.maxlen

    def append(self, point: ChannelPoint) -> None:
        """Append *point*, evicting the oldest point when full."""
        self._points.append(point)

    def points(self) -> tuple[ChannelPoint, ...]:
        """Return an oldest-first copy of the buffered points."""
        return tuple(self._points)

    def __len__(self) -> int:
        return len(self._points)


class RawLog:
    """Fixed-capacity log of raw source strings, most recent first."""

    def __init__(self, capacity: int = DEFAULT_RAW_LOG_SIZE) -> None:
        self._entries: deque[str] = deque(maxlen=_check_capacity(capacity))

    def add(self, entry: str) -> None:
        # appendleft on a bounded deque drops from the right (the oldest).
        self._entries.appendleft(entry)

    def entries(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class ChannelBufferStore:
    """Per-channel rolling history plus the raw log.

    Parameters:
        capacity: Points kept per channel.
        raw_log_size: Raw source strings kept.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_HISTORY_SIZE,
        *,
        raw_log_size: int = DEFAULT_RAW_LOG_SIZE,
    ) -> None:
        self._buffers: dict[str, ChannelBuffer] = {
            name: ChannelBuffer(name, capacity) for name in CHANNELS
        }
        self._raw_log = RawLog(raw_log_size)
        self._latest: TelemetrySample | None = None
        self._push_count = 0

    @property
    def capacity(self) -> int:
        return next(iter(self._buffers.values())).capacity

    @property
    def channel_names(self) -> tuple[str, ...]:
        return tuple(self._buffers)

    @property
    def latest(self) -> TelemetrySample | None:
        """The most recently pushed sample, or ``None``."""
        return self._latest

    @property
    def push_count(self) -> int:
        return self._push_count

    def push(self, sample: TelemetrySample) -> None:
        """Record *sample* in every channel and in the raw log."""
        for name, extract in CHANNELS.items():
            self._buffers[name].append(ChannelPoint(sample.timestamp, extract(sample)))
        self._raw_log.add(sample.raw)
        self._latest = sample
        self._push_count += 1

    def snapshot(self, name: str) -> tuple[ChannelPoint, ...]:
        """Return a copy of one channel's history.

        Raises:
            KeyError: If *name* is not a tracked channel.
        """
        try:
            buffer = self._buffers[name]
        except KeyError:
            raise KeyError(
                f"Unknown channel {name!r} (expected one of {', '.join(self._buffers)})"
            ) from None
        return buffer.points()

    def snapshot_all(self) -> dict[str, tuple[ChannelPoint, ...]]:
        """Return a copy of every channel's history."""
        return {name: buffer.points() for name, buffer in self._buffers.items()}

    def raw_log(self) -> tuple[str, ...]:
        """Return the raw log, most recent first."""
        return self._raw_log.entries()
