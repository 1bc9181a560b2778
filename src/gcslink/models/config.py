from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application-wide settings populated from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GCSLINK_",
        extra="ignore",
    )

    # Upstream feed
    upstream_url: str = "ws://127.0.0.1:8080/ws"
    open_timeout: float = Field(default=10.0, gt=0)
    read_timeout: float | None = Field(default=None, gt=0)
    """Seconds without a frame before the link is treated as dead (``None`` disables)."""
    backoff_base: float = Field(default=1.0, gt=0)
    backoff_max: float = Field(default=30.0, gt=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    min_uptime: float = Field(default=5.0, ge=0)
    """A connected period at least this long resets the backoff delay."""
    strict_codes: bool = True
    """Reject frames whose launch status / error code fall outside 0..5."""

    # History
    history_size: int = Field(default=50, ge=1)
    raw_log_size: int = Field(default=10, ge=1)

    # Viewers
    viewer_host: str = "127.0.0.1"
    viewer_port: int = Field(default=8765, ge=0, le=65535)
    queue_size: int = Field(default=100, ge=1)
    evict_after_drops: int = Field(default=0, ge=0)
    """Consecutive drops before a viewer is considered unreachable (``0`` disables)."""

    # Simulated flight device
    simulator_host: str = "127.0.0.1"
    simulator_port: int = Field(default=8080, ge=0, le=65535)
    simulator_interval: float = Field(default=0.5, gt=0)
