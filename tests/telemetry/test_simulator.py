"""Tests for the simulated flight device."""

from __future__ import annotations

import asyncio
import json

from gcslink.models.telemetry import Stage
from gcslink.telemetry.decoder import TelemetryDecoder
from gcslink.telemetry.simulator import LAUNCH_SITE, FlightSimulator, SimulatorServer


def _clock() -> float:
    return 1737264000.0


class TestFlightSimulator:
    def test_starts_on_the_pad(self) -> None:
        sim = FlightSimulator(seed=1, clock=_clock)
        assert sim.stage is Stage.PRE_LAUNCH

    def test_seeded_runs_are_reproducible(self) -> None:
        a = FlightSimulator(seed=42, clock=_clock)
        b = FlightSimulator(seed=42, clock=_clock)
        assert [a.next_frame() for _ in range(20)] == [b.next_frame() for _ in range(20)]

    def test_flight_invariants(self) -> None:
        sim = FlightSimulator(seed=7, interval=0.5, clock=_clock)
        previous_stage = 0
        previous_altitude = 0.0
        lat0, lon0 = LAUNCH_SITE

        for tick in range(1, 600):
            sample = sim.next_sample()
            assert previous_stage <= sample.launch_stage <= 5
            assert sample.launch_stage - previous_stage <= 1
            assert 0 <= sample.error_code <= 5
            assert sample.altitude >= 0.0
            assert abs(sample.altitude_rate - (sample.altitude - previous_altitude) / 0.5) < 1e-9
            assert abs(sample.latitude - lat0) <= 0.0005 * tick + 1e-9
            assert abs(sample.longitude - lon0) <= 0.0005 * tick + 1e-9
            assert sample.raw.startswith("RAW|1737264000|")
            previous_stage = sample.launch_stage
            previous_altitude = sample.altitude

    def test_altitude_flat_before_launch(self) -> None:
        sim = FlightSimulator(seed=3, clock=_clock)
        for _ in range(200):
            sample = sim.next_sample()
            if sample.launch_stage < 2:
                assert sample.altitude == 0.0
                assert sample.altitude_rate == 0.0

    def test_frames_decode_strictly(self) -> None:
        sim = FlightSimulator(seed=11, clock=_clock)
        decoder = TelemetryDecoder(strict_codes=True)
        for _ in range(100):
            frame = sim.next_frame()
            assert set(json.loads(frame)) >= {"gyroX", "altitudeDiff", "launchStatus", "rawData"}
            decoder.decode(frame)


class TestSimulatorServer:
    async def test_streams_frames(self) -> None:
        import websockets.asyncio.client as ws_client

        server = SimulatorServer(FlightSimulator(seed=5), port=59831, interval=0.01)
        await server.start()
        try:
            decoder = TelemetryDecoder()
            async with ws_client.connect("ws://127.0.0.1:59831/ws") as ws:
                samples = [
                    decoder.decode(await asyncio.wait_for(ws.recv(), 1.0)) for _ in range(3)
                ]
            assert len(samples) == 3
            assert server.frame_count >= 3
        finally:
            await server.stop()
        assert server._server is None
