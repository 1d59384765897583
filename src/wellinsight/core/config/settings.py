"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """WellInsight server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: there is no auth layer in front of the MCP tools.
    insights_host: str = "127.0.0.1"
    insights_port: int = 8001
    insights_log_level: str = "info"
    insights_allow_insecure_bind: bool = False

    # Storage (health records + insights cache)
    db_path: str = "~/.wellinsight/health.db"

    # Encryption. Empty key -> ephemeral in-memory store with a throwaway key.
    encryption_key: str = ""

    # Insights engine
    cache_ttl_seconds: int = 3600
    min_data_points: int = 3
    analysis_period_days: int = 30
    summary_window_days: int = 7
    quick_stats_window_days: int = 7
    slow_generation_ms: float = 5000.0


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
