"""Tests for ViewerServer: WebSocket integration with a live relay."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from websockets.exceptions import ConnectionClosed

from gcslink.models.telemetry import (
    ConnectionState,
    ConnectivityEvent,
    InitialSnapshot,
    TelemetryUpdate,
    parse_viewer_message,
)
from gcslink.telemetry.relay import TelemetryRelay
from gcslink.telemetry.viewer_server import ViewerServer


async def _never_connect(url: str) -> Any:
    raise OSError("offline")


async def _wait_until(predicate: Any, timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout=timeout)


class TestViewerServer:
    async def test_start_and_stop(self) -> None:
        server = ViewerServer(TelemetryRelay("ws://x", connector=_never_connect), port=59821)
        await server.start()
        assert server._server is not None
        assert server.port == 59821
        await server.stop()
        assert server._server is None

    async def test_port_zero_resolves(self) -> None:
        server = ViewerServer(TelemetryRelay("ws://x", connector=_never_connect), port=0)
        await server.start()
        try:
            assert server.port != 0
        finally:
            await server.stop()

    async def test_snapshot_then_live_updates(self, make_sample: Any) -> None:
        import websockets.asyncio.client as ws_client

        relay = TelemetryRelay("ws://x", connector=_never_connect)
        await relay.on_sample(make_sample(timestamp=1.0))
        server = ViewerServer(relay, port=59822)
        await server.start()

        try:
            async with ws_client.connect("ws://127.0.0.1:59822") as ws:
                snapshot = parse_viewer_message(await ws.recv())
                assert isinstance(snapshot, InitialSnapshot)
                assert snapshot.latest is not None and snapshot.latest.timestamp == 1.0
                assert server.connection_count == 1

                await relay.on_sample(make_sample(timestamp=2.0, errorCode=5))
                update = parse_viewer_message(await asyncio.wait_for(ws.recv(), 1.0))
                assert isinstance(update, TelemetryUpdate)
                assert update.sample.timestamp == 2.0
                assert update.derived.fault.message == "Release failure"

            await _wait_until(lambda: server.connection_count == 0)
            assert relay.hub.subscriber_count == 0
        finally:
            await relay.stop()
            await server.stop()

    async def test_every_viewer_gets_updates(self, make_sample: Any) -> None:
        import websockets.asyncio.client as ws_client

        relay = TelemetryRelay("ws://x", connector=_never_connect)
        server = ViewerServer(relay, port=59823)
        await server.start()

        try:
            async with (
                ws_client.connect("ws://127.0.0.1:59823") as ws_a,
                ws_client.connect("ws://127.0.0.1:59823") as ws_b,
            ):
                for ws in (ws_a, ws_b):
                    assert isinstance(parse_viewer_message(await ws.recv()), InitialSnapshot)

                relay.hub.publish_connectivity(ConnectionState.CONNECTING)
                await relay.on_sample(make_sample())

                for ws in (ws_a, ws_b):
                    first = parse_viewer_message(await asyncio.wait_for(ws.recv(), 1.0))
                    second = parse_viewer_message(await asyncio.wait_for(ws.recv(), 1.0))
                    assert isinstance(first, ConnectivityEvent)
                    assert isinstance(second, TelemetryUpdate)
                    assert second.seq == first.seq + 1
        finally:
            await relay.stop()
            await server.stop()

    async def test_relay_stop_ends_viewer_stream(self) -> None:
        import websockets.asyncio.client as ws_client

        relay = TelemetryRelay("ws://x", connector=_never_connect)
        server = ViewerServer(relay, port=59824)
        await server.start()

        try:
            async with ws_client.connect("ws://127.0.0.1:59824") as ws:
                await ws.recv()
                await relay.stop()

                states = []
                with pytest.raises(ConnectionClosed):
                    while True:
                        message = parse_viewer_message(await asyncio.wait_for(ws.recv(), 1.0))
                        assert isinstance(message, ConnectivityEvent)
                        states.append(message.state)
                assert states == [ConnectionState.CLOSING, ConnectionState.CLOSED]
        finally:
            await server.stop()

    async def test_closed_hub_refuses_viewer(self) -> None:
        import websockets.asyncio.client as ws_client

        relay = TelemetryRelay("ws://x", connector=_never_connect)
        relay.hub.close()
        server = ViewerServer(relay, port=59825)
        await server.start()

        try:
            async with ws_client.connect("ws://127.0.0.1:59825") as ws:
                with pytest.raises(ConnectionClosed) as exc_info:
                    await asyncio.wait_for(ws.recv(), 1.0)
            assert exc_info.value.rcvd is not None
            assert exc_info.value.rcvd.code == 1001
        finally:
            await server.stop()
