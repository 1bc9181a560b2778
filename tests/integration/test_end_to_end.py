"""End-to-end: simulated device -> relay -> viewer over real sockets."""

from __future__ import annotations

import asyncio

from gcslink.models.config import AppSettings
from gcslink.models.telemetry import (
    ConnectionState,
    ConnectivityEvent,
    InitialSnapshot,
    TelemetryUpdate,
    parse_viewer_message,
)
from gcslink.telemetry.derive import derive
from gcslink.telemetry.relay import relay_session
from gcslink.telemetry.simulator import FlightSimulator, SimulatorServer

FEED_PORT = 59851
VIEWER_PORT = 59852


class TestRelayEndToEnd:
    async def test_viewer_sees_simulated_flight(self) -> None:
        import websockets.asyncio.client as ws_client

        feed = SimulatorServer(FlightSimulator(seed=99), port=FEED_PORT, interval=0.02)
        await feed.start()
        settings = AppSettings(
            upstream_url=f"ws://127.0.0.1:{FEED_PORT}/ws",
            viewer_port=VIEWER_PORT,
            history_size=5,
        )
        try:
            async with relay_session(settings) as session:
                async with ws_client.connect(f"ws://127.0.0.1:{VIEWER_PORT}") as ws:
                    snapshot = parse_viewer_message(await ws.recv())
                    assert isinstance(snapshot, InitialSnapshot)

                    updates: list[TelemetryUpdate] = []
                    seqs: list[int] = []
                    while len(updates) < 8:
                        message = parse_viewer_message(await asyncio.wait_for(ws.recv(), 2.0))
                        assert isinstance(message, TelemetryUpdate | ConnectivityEvent)
                        seqs.append(message.seq)
                        if isinstance(message, TelemetryUpdate):
                            updates.append(message)

                assert seqs == sorted(seqs)
                assert len(set(seqs)) == len(seqs)
                for update in updates:
                    assert update.derived == derive(update.sample)
                timestamps = [u.sample.timestamp for u in updates]
                assert timestamps == sorted(timestamps)

                history = session.relay.store.snapshot("altitude")
                assert len(history) == 5
                assert session.relay.session.state is ConnectionState.CONNECTED
        finally:
            await feed.stop()

    async def test_relay_survives_feed_restart(self) -> None:
        feed = SimulatorServer(FlightSimulator(seed=1), port=FEED_PORT + 2, interval=0.02)
        await feed.start()
        settings = AppSettings(
            upstream_url=f"ws://127.0.0.1:{FEED_PORT + 2}/ws",
            viewer_port=VIEWER_PORT + 2,
            backoff_base=0.05,
        )
        async with relay_session(settings) as session:
            relay = session.relay
            sub = relay.hub.subscribe()

            async def _wait(predicate: object) -> None:
                async def _poll() -> None:
                    while not predicate():  # type: ignore[operator]
                        await asyncio.sleep(0.01)

                await asyncio.wait_for(_poll(), timeout=3.0)

            await _wait(lambda: relay.session.frame_count > 0)
            await feed.stop()
            await _wait(lambda: relay.session.reconnect_count == 1)

            await feed.start()
            before = relay.session.frame_count
            await _wait(lambda: relay.session.frame_count > before and relay.session.is_connected)

            states = []
            while sub.pending:
                message = sub.get_nowait()
                if isinstance(message, ConnectivityEvent):
                    states.append(message.state)
            assert ConnectionState.DISCONNECTED in states
            assert states[-1] is ConnectionState.CONNECTED
            sub.close()
        await feed.stop()
