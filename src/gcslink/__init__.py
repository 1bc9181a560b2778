"""gcslink: ground-station telemetry relay for live flight viewers."""

__version__ = "0.3.0"
