"""``gcslink simulate``: serve a simulated flight device feed."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import click

from gcslink._internal.async_utils import (
    install_shutdown_handlers,
    run_async,
    wait_for_interrupt,
)
from gcslink.cli._options import build_settings, global_options

if TYPE_CHECKING:
    from gcslink.cli.main import AppContext
    from gcslink.models.config import AppSettings


@click.command("simulate")
@click.option("--host", default=None, help="Bind address (env: GCSLINK_SIMULATOR_HOST)")
@click.option("--port", type=int, default=None, help="Feed port (default: 8080)")
@click.option("--interval", type=float, default=None, help="Seconds between frames (default: 0.5)")
@click.option("--seed", type=int, default=None, help="RNG seed for a reproducible flight")
@global_options
def simulate_cmd(
    app_ctx: AppContext,
    host: str | None,
    port: int | None,
    interval: float | None,
    seed: int | None,
) -> None:
    """Stream simulated flight telemetry on ws://HOST:PORT/.

    Point ``gcslink serve --upstream`` at this feed to exercise the relay
    without hardware.
    """
    settings = build_settings(
        simulator_host=host,
        simulator_port=port,
        simulator_interval=interval,
    )
    run_async(_cmd_simulate(app_ctx, settings, seed))


async def _cmd_simulate(app_ctx: AppContext, settings: AppSettings, seed: int | None) -> None:
    from gcslink.telemetry.simulator import FlightSimulator, SimulatorServer

    formatter = app_ctx.formatter
    shutdown_event = asyncio.Event()
    install_shutdown_handlers(shutdown_event)

    simulator = FlightSimulator(seed=seed, interval=settings.simulator_interval)
    server = SimulatorServer(
        simulator,
        host=settings.simulator_host,
        port=settings.simulator_port,
        interval=settings.simulator_interval,
    )
    await server.start()
    try:
        feed_url = f"ws://{settings.simulator_host}:{settings.simulator_port}/ws"
        if formatter.format == "rich":
            formatter.rich.info(f"Simulated feed on [cyan]{feed_url}[/cyan]")
            formatter.rich.info("Press q or Ctrl+C to stop.")
        elif formatter.format == "json":
            formatter.output({"feed": feed_url}, command="simulate")
        await wait_for_interrupt(shutdown_event)
    finally:
        await server.stop()
