from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from gcslink.models.telemetry import (
    ConnectionState,
    ConnectivityEvent,
    InitialSnapshot,
    TelemetryUpdate,
)

if TYPE_CHECKING:
    from rich.console import Console

    from gcslink.models.telemetry import DerivedState, TelemetrySample

_STATE_STYLES: dict[ConnectionState, str] = {
    ConnectionState.CONNECTED: "green",
    ConnectionState.CONNECTING: "yellow",
    ConnectionState.DISCONNECTED: "red",
    ConnectionState.CLOSING: "dim",
    ConnectionState.CLOSED: "dim",
}


def _clock(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%H:%M:%S")


class RichOutput:
    """Rich-based terminal output helpers for *gcslink*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    # ------------------------------------------------------------------
    # Single sample
    # ------------------------------------------------------------------

    def sample(self, sample: TelemetrySample, derived: DerivedState) -> None:
        """Print a table of every field in *sample* plus its classification."""
        table = Table(title=f"Telemetry @ {_clock(sample.timestamp)}")
        table.add_column("Field", style="bold")
        table.add_column("Value")

        table.add_row("Temperature", f"{sample.temperature:.2f} °C")
        table.add_row("Voltage", f"{sample.voltage:.2f} V")
        table.add_row(
            "Gyro (x, y, z)",
            f"{sample.gyro_x:.1f}, {sample.gyro_y:.1f}, {sample.gyro_z:.1f} °/s",
        )
        table.add_row("Altitude", f"{sample.altitude:.2f} m")
        table.add_row("Altitude rate", f"{sample.altitude_rate:+.2f} m/s")
        table.add_row("Position", f"{sample.latitude:.5f}, {sample.longitude:.5f}")
        table.add_row("Stage", f"{derived.stage.label} ({sample.launch_stage})")
        fault_style = "red" if derived.is_fault else "green"
        table.add_row(
            "Fault",
            f"[{fault_style}]{derived.fault.message}[/{fault_style}] ({sample.error_code})",
        )
        table.add_row("Raw", escape(sample.raw))

        self._con.print(table)

    # ------------------------------------------------------------------
    # Viewer feed
    # ------------------------------------------------------------------

    def snapshot(self, snapshot: InitialSnapshot) -> None:
        """Print a channel summary and the raw log of an initial snapshot."""
        state = snapshot.connection
        style = _STATE_STYLES.get(state, "white")
        self._con.print(Panel(f"Upstream: [{style}]{state.value}[/{style}]", expand=False))

        table = Table(title="Channels")
        table.add_column("Channel", style="cyan")
        table.add_column("Points", justify="right")
        table.add_column("Last", justify="right")
        for name, points in snapshot.channels.items():
            last = f"{points[-1].value:.2f}" if points else "-"
            table.add_row(escape(name), str(len(points)), last)
        self._con.print(table)

        if snapshot.raw_log:
            self._con.print("[bold]Raw log[/bold]")
            for entry in snapshot.raw_log:
                self._con.print(f"  [dim]{escape(entry)}[/dim]")

    def update(self, update: TelemetryUpdate) -> None:
        """Print a one-line summary of a live telemetry update."""
        s, d = update.sample, update.derived
        fault_style = "red" if d.is_fault else "green"
        self._con.print(
            f"[dim]#{update.seq} {_clock(s.timestamp)}[/dim] "
            f"alt={s.altitude:8.2f} m  rate={s.altitude_rate:+7.2f} m/s  "
            f"T={s.temperature:5.1f} °C  V={s.voltage:5.2f}  "
            f"[cyan]{d.stage.label}[/cyan]  "
            f"[{fault_style}]{d.fault.message}[/{fault_style}]"
        )

    def connectivity(self, event: ConnectivityEvent) -> None:
        style = _STATE_STYLES.get(event.state, "white")
        suffix = f": {escape(event.reason)}" if event.reason else ""
        self._con.print(
            f"[dim]#{event.seq}[/dim] upstream [{style}]{event.state.value}[/{style}]{suffix}"
        )

    def viewer_message(self, message: Any) -> None:
        """Dispatch a decoded viewer message to the matching printer."""
        if isinstance(message, InitialSnapshot):
            self.snapshot(message)
        elif isinstance(message, TelemetryUpdate):
            self.update(message)
        elif isinstance(message, ConnectivityEvent):
            self.connectivity(message)
        else:
            self.info(escape(str(message)))

    # ------------------------------------------------------------------
    # Generic messages
    # ------------------------------------------------------------------

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def info(self, message: str) -> None:
        """Print an informational message (plain)."""
        self._con.print(message)
