"""Shared CLI helpers: global-option propagation and settings overrides."""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any

import click
from pydantic import ValidationError

from gcslink.errors import ConfigError
from gcslink.models.config import AppSettings

if TYPE_CHECKING:
    from gcslink.cli.main import AppContext


def global_options(f: Any) -> Any:
    """Add global CLI options to a leaf command.

    Allows ``--format``, ``--quiet`` and ``--verbose`` to be specified
    **after** the subcommand name (e.g. ``gcslink watch --format json``).
    Command-level values override the root-group values stored in
    :class:`AppContext`.
    """

    @click.option(
        "--verbose",
        "local_verbose",
        is_flag=True,
        default=False,
        help="Enable verbose logging",
    )
    @click.option(
        "--quiet",
        "local_quiet",
        is_flag=True,
        default=False,
        help="Suppress normal output",
    )
    @click.option(
        "--format",
        "local_output_format",
        type=click.Choice(["rich", "json", "quiet"]),
        default=None,
        help="Output format (default: auto-detect)",
    )
    @click.pass_obj
    def wrapper(app_ctx: AppContext, /, **kwargs: Any) -> Any:
        local_output_format: str | None = kwargs.pop("local_output_format", None)
        local_quiet: bool = kwargs.pop("local_quiet", False)
        local_verbose: bool = kwargs.pop("local_verbose", False)

        # Merge overrides into AppContext (command-level wins)
        if local_output_format is not None:
            app_ctx.output_format = local_output_format
            app_ctx._formatter = None  # reset cached formatter
        if local_quiet:
            app_ctx.quiet = True
            app_ctx._formatter = None
        if local_verbose and not app_ctx.verbose:
            from gcslink.cli.main import configure_logging

            app_ctx.verbose = True
            configure_logging(True)

        return f(app_ctx, **kwargs)

    functools.update_wrapper(wrapper, f)
    return wrapper


def build_settings(**overrides: Any) -> AppSettings:
    """Load :class:`AppSettings` with CLI flag overrides (``None`` = not given).

    Raises:
        ConfigError: If the merged settings fail validation.
    """
    explicit = {key: value for key, value in overrides.items() if value is not None}
    try:
        return AppSettings(**explicit)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors(include_url=False)
        )
        raise ConfigError(f"Invalid settings: {problems}") from exc
