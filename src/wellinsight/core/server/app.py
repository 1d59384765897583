"""WellInsight Health MCP Server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from fastmcp import FastMCP

from wellinsight.core.audit.logger import AuditLogger
from wellinsight.core.config.settings import Settings, get_settings
from wellinsight.core.storage.database import HealthDatabase
from wellinsight.core.storage.encryption import FieldEncryptor
from wellinsight.core.storage.repository import HealthRepository
from wellinsight.domains.insights.connectors.repository_source import RepositoryRecordSource
from wellinsight.domains.insights.domain_logic.cache_manager import (
    CacheManager,
    CacheStats,
    utc_now,
)
from wellinsight.domains.insights.domain_logic.fetcher import HealthDataFetcher
from wellinsight.domains.insights.domain_logic.orchestrator import InsightsOrchestrator
from wellinsight.domains.insights.tools.audit_tools import register_audit_tools
from wellinsight.domains.insights.tools.data_management_tools import (
    register_data_management_tools,
)
from wellinsight.domains.insights.tools.insights_tools import register_insights_tools
from wellinsight.domains.insights.tools.record_entry_tools import (
    register_record_entry_tools,
)

logger = logging.getLogger(__name__)

SERVER_NAME = "WellInsight Health"
SERVER_VERSION = "0.1.0"


def _create_repository(settings: Settings) -> HealthRepository:
    """Open the encrypted health data bank described by ``settings``.

    Without an encryption key the store is an in-memory database with a
    throwaway key; nothing survives a restart.
    """
    if settings.encryption_key:
        encryptor = FieldEncryptor(settings.encryption_key)
        health_db = HealthDatabase(settings.db_path)
    else:
        logger.warning(
            "No ENCRYPTION_KEY configured — using an ephemeral in-memory store. "
            "Set ENCRYPTION_KEY to persist health records."
        )
        encryptor = FieldEncryptor(FieldEncryptor.generate_key())
        health_db = HealthDatabase(":memory:")

    health_db.initialize()
    logger.info(
        "Health data bank initialized: %s (schema v%d)",
        health_db.path,
        health_db.get_schema_version(),
    )
    return HealthRepository(health_db, encryptor)


def create_app(
    *,
    repository_override: HealthRepository | None = None,
    clock: Callable[[], datetime] | None = None,
    settings: Settings | None = None,
) -> FastMCP:
    """Create and configure the WellInsight Health MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens the encrypted storage layer (records + insights cache)
    3. Wires the insights engine: fetcher, cache manager, orchestrator
    4. Registers all tools
    """
    settings = settings or get_settings()
    now_fn = clock or utc_now

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "WellInsight Health server. Records vital signs and daily health "
            "journal entries, and turns them into a health score, insight cards, "
            "period-over-period trends, a summary and recommendations."
        ),
    )

    # --- Storage ---
    if repository_override is not None:
        repository = repository_override
    else:
        repository = _create_repository(settings)
    audit_logger = AuditLogger(repository.database)

    # --- Insights engine ---
    cache = CacheManager(
        repository,
        ttl_seconds=settings.cache_ttl_seconds,
        clock=now_fn,
        stats=CacheStats(),
    )
    orchestrator = InsightsOrchestrator(
        fetcher=HealthDataFetcher(RepositoryRecordSource(repository)),
        cache=cache,
        min_data_points=settings.min_data_points,
        analysis_period_days=settings.analysis_period_days,
        summary_window_days=settings.summary_window_days,
        quick_stats_window_days=settings.quick_stats_window_days,
        slow_generation_ms=settings.slow_generation_ms,
        now_fn=now_fn,
    )

    # --- Register tools ---
    @server.tool
    async def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "storage": repository.database.path,
            "schema_version": repository.database.get_schema_version(),
            "cached_insights": repository.count_cached_insights(),
            "cache_ttl_seconds": settings.cache_ttl_seconds,
            "cache_stats": orchestrator.get_cache_stats(),
        }

    register_insights_tools(server, orchestrator, audit_logger)
    logger.info("Insights tools registered")

    register_record_entry_tools(server, repository, audit_logger)
    logger.info("Record entry tools registered")

    register_data_management_tools(server, repository, now_fn, audit_logger)
    logger.info("Data management tools registered")

    register_audit_tools(server, audit_logger)

    return server


# Module-level instance for FastMCP discovery ("...app.py:mcp").
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
