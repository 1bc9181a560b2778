"""``gcslink decode``: validate a single telemetry frame offline."""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO

import click

from gcslink.cli._options import global_options
from gcslink.telemetry.decoder import TelemetryDecoder
from gcslink.telemetry.derive import derive

if TYPE_CHECKING:
    from gcslink.cli.main import AppContext


@click.command("decode")
@click.argument("frame", type=click.File("rb"), default="-")
@click.option(
    "--lenient-codes",
    is_flag=True,
    default=False,
    help="Accept out-of-table stage/error codes (classified as unknown)",
)
@global_options
def decode_cmd(app_ctx: AppContext, frame: BinaryIO, lenient_codes: bool) -> None:
    """Decode one JSON frame from FRAME (or stdin) and show its classification.

    \b
    Examples:
      gcslink decode frame.json
      echo '{"timestamp": 1700000000, ...}' | gcslink decode --format json
    """
    decoder = TelemetryDecoder(strict_codes=not lenient_codes)
    sample = decoder.decode(frame.read())
    derived = derive(sample)

    formatter = app_ctx.formatter
    if formatter.format == "json":
        formatter.output({"sample": sample, "derived": derived}, command="decode")
    elif formatter.format == "rich":
        formatter.rich.sample(sample, derived)
