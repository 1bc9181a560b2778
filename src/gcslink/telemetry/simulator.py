"""Simulated flight device feed.

Produces plausible telemetry for a short flight so the relay can run end to
end without hardware:

- each tick has a 5% chance to advance the launch stage (stops at landed)
- altitude climbs 0-50 m per tick while ascending or cruising and drops
  0-30 m per tick while descending (never below 0)
- GPS drifts up to +/-0.0005 deg per tick around the launch site
- each tick has a 10% chance to report a random fault code 1-5

:class:`SimulatorServer` pushes one JSON frame per interval to every
connected client.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import time
from typing import TYPE_CHECKING, Any

from websockets.exceptions import ConnectionClosed

from gcslink.models.telemetry import Stage, TelemetrySample
from gcslink.telemetry.derive import STAGE_TABLE

if TYPE_CHECKING:
    from collections.abc import Callable

    import websockets.asyncio.server as ws_server

logger = logging.getLogger(__name__)

LAUNCH_SITE = (-7.7714, 110.3775)

_CLIMBING = frozenset({Stage.ASCENDING, Stage.CRUISING})
_LAST_STAGE = max(STAGE_TABLE)


class FlightSimulator:
    """Stateful generator of :class:`TelemetrySample` values.

    Parameters:
        seed: Seed for a private RNG (reproducible flights).
        interval: Seconds per tick, used to express the altitude delta in m/s.
        clock: Wall-clock source for timestamps.
    """

    def __init__(
        self,
        *,
        seed: int | None = None,
        interval: float = 0.5,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rng = random.Random(seed)
        self._interval = interval
        self._clock = clock
        self._altitude = 0.0
        self._latitude, self._longitude = LAUNCH_SITE
        self._stage_code = 0

    @property
    def stage(self) -> Stage:
        return STAGE_TABLE[self._stage_code]

    def next_sample(self) -> TelemetrySample:
        """Advance the flight by one tick and return the reading."""
        rng = self._rng
        now = round(self._clock(), 3)

        if self._stage_code < _LAST_STAGE and rng.random() < 0.05:
            self._stage_code += 1

        previous = self._altitude
        if self.stage in _CLIMBING:
            self._altitude += rng.random() * 50
        elif self.stage is Stage.DESCENDING:
            self._altitude = max(self._altitude - rng.random() * 30, 0.0)

        self._latitude += (rng.random() - 0.5) * 0.001
        self._longitude += (rng.random() - 0.5) * 0.001

        error_code = rng.randint(1, 5) if rng.random() < 0.1 else 0

        return TelemetrySample(
            timestamp=now,
            temperature=20 + rng.random() * 15,
            voltage=11.1 + rng.random() * 1.5,
            gyro_x=(rng.random() - 0.5) * 360,
            gyro_y=(rng.random() - 0.5) * 360,
            gyro_z=(rng.random() - 0.5) * 360,
            altitude=self._altitude,
            altitude_rate=(self._altitude - previous) / self._interval,
            latitude=self._latitude,
            longitude=self._longitude,
            launch_stage=self._stage_code,
            error_code=error_code,
            raw=(
                f"RAW|{now:.0f}|{self._altitude:.2f}|{self._latitude:.2f}"
                f"|{self._longitude:.2f}|{rng.random() * 100:.2f}"
            ),
        )

    def next_frame(self) -> str:
        """Advance one tick and return the JSON wire frame."""
        return json.dumps(self.next_sample().model_dump(by_alias=True))


class SimulatorServer:
    """WebSocket server that streams simulated frames to every client."""

    def __init__(
        self,
        simulator: FlightSimulator,
        *,
        host: str = "127.0.0.1",
        port: int = 8080,
        interval: float = 0.5,
    ) -> None:
        self._simulator = simulator
        self._host = host
        self._port = port
        self._interval = interval
        self._server: ws_server.Server | None = None
        self._frame_count = 0

    async def start(self) -> None:
        import websockets.asyncio.server as ws_server_mod

        self._server = await ws_server_mod.serve(self._handler, host=self._host, port=self._port)
        logger.info("Simulated feed listening on %s:%d", self._host, self._port)

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("Simulated feed stopped (%d frames sent)", self._frame_count)

    @property
    def frame_count(self) -> int:
        return self._frame_count

    async def _handler(self, websocket: Any) -> None:
        remote = getattr(websocket, "remote_address", ("unknown", 0))
        logger.info("Feed client connected: %s", remote)
        try:
            while True:
                await websocket.send(self._simulator.next_frame())
                self._frame_count += 1
                await asyncio.sleep(self._interval)
        except ConnectionClosed:
            logger.info("Feed client disconnected: %s", remote)
