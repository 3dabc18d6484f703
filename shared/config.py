"""
Shared configuration management for Trend Ankara Access Layer.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TRENDANKARA_",
        case_sensitive=False,
        extra="allow",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    postgres_dsn: str = Field(default="postgres://localhost:5432/trendankara")
    postgres_min_pool_size: int = Field(default=2)
    postgres_max_pool_size: int = Field(default=10)

    # Radio fallbacks used when no radio_settings row exists
    radio_stream_url: str = Field(default="https://radyo.yayin.com.tr:5132/stream")
    radio_metadata_url: Optional[str] = Field(default=None)
    site_name: str = Field(default="Trend Ankara Radio")

    # Mobile cache
    cache_max_entries: int = Field(default=500)
    cache_eviction_policy: str = Field(default="oldest")
    cache_sweep_interval_seconds: float = Field(default=60.0)
    cache_serve_stale_on_error: bool = Field(default=False)

    # Per-namespace TTLs (seconds)
    radio_config_ttl: int = Field(default=30)
    radio_connection_ttl: int = Field(default=60)
    radio_stale_while_revalidate: int = Field(default=60)
    mobile_config_ttl: int = Field(default=600)
    cards_ttl: int = Field(default=180)
    news_ttl: int = Field(default=120)
    polls_ttl: int = Field(default=60)

    # Stream connectivity probe
    stream_probe_timeout_seconds: float = Field(default=3.0)
    stream_check_timeout_seconds: float = Field(default=10.0)

    # Observability
    enable_metrics: bool = Field(default=True)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
