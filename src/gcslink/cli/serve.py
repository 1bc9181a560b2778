"""``gcslink serve``: run the telemetry relay until interrupted."""

from __future__ import annotations

import asyncio
import logging
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

logger = logging.getLogger(__name__)


@click.command("serve")
@click.option("--upstream", default=None, help="Upstream feed URL (env: GCSLINK_UPSTREAM_URL)")
@click.option("--host", default=None, help="Viewer bind address (env: GCSLINK_VIEWER_HOST)")
@click.option("--port", type=int, default=None, help="Viewer port (env: GCSLINK_VIEWER_PORT)")
@click.option("--history", type=int, default=None, help="Points kept per channel (default: 50)")
@click.option("--queue-size", type=int, default=None, help="Per-viewer queue bound")
@click.option(
    "--read-timeout",
    type=float,
    default=None,
    help="Reconnect if no frame arrives within this many seconds",
)
@click.option(
    "--lenient-codes",
    is_flag=True,
    default=False,
    help="Accept out-of-table stage/error codes (classified as unknown)",
)
@global_options
def serve_cmd(
    app_ctx: AppContext,
    upstream: str | None,
    host: str | None,
    port: int | None,
    history: int | None,
    queue_size: int | None,
    read_timeout: float | None,
    lenient_codes: bool,
) -> None:
    """Relay an upstream telemetry feed to WebSocket viewers.

    Connects to the flight device feed (reconnecting with backoff), keeps
    a rolling history per channel, and streams a snapshot plus live
    updates to every viewer that connects.

    \b
    Examples:
      gcslink serve                                  # defaults / GCSLINK_* env
      gcslink serve --upstream ws://10.0.0.5:8080/ws --port 9000
      gcslink serve --lenient-codes --read-timeout 5
    """
    settings = build_settings(
        upstream_url=upstream,
        viewer_host=host,
        viewer_port=port,
        history_size=history,
        queue_size=queue_size,
        read_timeout=read_timeout,
        strict_codes=False if lenient_codes else None,
    )
    run_async(_cmd_serve(app_ctx, settings))


async def _cmd_serve(app_ctx: AppContext, settings: AppSettings) -> None:
    from gcslink.telemetry.relay import relay_session

    formatter = app_ctx.formatter
    shutdown_event = asyncio.Event()
    install_shutdown_handlers(shutdown_event)

    async with relay_session(settings) as session:
        viewer_url = f"ws://{session.viewer_host}:{session.viewer_port}"
        if formatter.format == "rich":
            formatter.rich.info(
                f"Relaying [cyan]{session.upstream_url}[/cyan] to viewers on "
                f"[cyan]{viewer_url}[/cyan]"
            )
            formatter.rich.info("Press q or Ctrl+C to stop.")
        elif formatter.format == "json":
            formatter.output(
                {"upstream": session.upstream_url, "viewers": viewer_url},
                command="serve",
            )
        await wait_for_interrupt(shutdown_event)

    relay = session.relay
    if formatter.format == "rich":
        formatter.rich.info(
            f"[dim]Relay stopped: {relay.session.frame_count} frames, "
            f"{relay.session.rejected_count} rejected, "
            f"{relay.session.reconnect_count} reconnects[/dim]"
        )
