"""``gcslink watch``: attach to a relay as a viewer and print the feed."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import click
from websockets.exceptions import ConnectionClosed

from gcslink._internal.async_utils import install_shutdown_handlers, race_shutdown, run_async
from gcslink.cli._options import build_settings, global_options
from gcslink.errors import ConnectResetError
from gcslink.models.telemetry import InitialSnapshot, parse_viewer_message

if TYPE_CHECKING:
    from gcslink.cli.main import AppContext
    from gcslink.output.formatter import OutputFormatter

logger = logging.getLogger(__name__)


@click.command("watch")
@click.argument("url", required=False, default=None)
@click.option(
    "--count",
    "-n",
    type=click.IntRange(min=1),
    default=None,
    help="Exit after this many live messages (snapshot not counted)",
)
@global_options
def watch_cmd(app_ctx: AppContext, url: str | None, count: int | None) -> None:
    """Print the snapshot and live updates from a running relay.

    URL defaults to the local viewer endpoint (``GCSLINK_VIEWER_HOST`` /
    ``GCSLINK_VIEWER_PORT``).  In JSON mode each message is written as
    one line, ready for ``jq``.
    """
    if url is None:
        settings = build_settings()
        url = f"ws://{settings.viewer_host}:{settings.viewer_port}"
    run_async(_cmd_watch(app_ctx, url, count))


async def _cmd_watch(app_ctx: AppContext, url: str, count: int | None) -> None:
    import websockets.asyncio.client as ws_client

    try:
        websocket = await ws_client.connect(url)
    except (OSError, TimeoutError) as exc:
        raise ConnectResetError(f"Cannot reach relay at {url}: {exc}") from exc
    except Exception as exc:
        raise ConnectResetError(f"Relay at {url} refused the connection: {exc}") from exc

    shutdown_event = asyncio.Event()
    install_shutdown_handlers(shutdown_event)
    try:
        await race_shutdown(_stream(websocket, app_ctx.formatter, count), shutdown_event)
    finally:
        await websocket.close()


async def _stream(websocket: Any, formatter: OutputFormatter, count: int | None) -> None:
    received = 0
    try:
        async for raw in websocket:
            message = parse_viewer_message(raw)
            formatter.stream(message)
            if isinstance(message, InitialSnapshot):
                continue
            received += 1
            if count is not None and received >= count:
                return
    except ConnectionClosed as exc:
        logger.info("Relay closed the viewer stream: %s", exc)
