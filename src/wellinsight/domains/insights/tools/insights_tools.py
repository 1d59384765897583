"""MCP tools for the health insights engine.

Every tool that touches a user's insights writes a PHI-free audit event:
hashed user id, cache status, duration and outcome.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from wellinsight.domains.insights.domain_logic.orchestrator import InsightsGenerationError

if TYPE_CHECKING:
    from wellinsight.core.audit.logger import AuditLogger
    from wellinsight.domains.insights.domain_logic.orchestrator import InsightsOrchestrator

logger = logging.getLogger(__name__)

# Trend periods offered to clients, in days.
TREND_PERIODS = (7, 30, 90, 365)


def _error(message: str, **extra: Any) -> str:
    return json.dumps({"status": "error", "error": message, **extra})


def register_insights_tools(
    mcp: FastMCP,
    orchestrator: InsightsOrchestrator,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register insights, trends and cache tools on the MCP server."""

    def _audit(
        tool_name: str,
        user_id: str,
        start_time: float,
        *,
        action: str = "insights_read",
        cache_status: str | None = None,
        error: Exception | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if audit_logger is None:
            return
        audit_logger.log_tool_call(
            tool_name,
            user_id=user_id,
            action=action,
            cache_status=cache_status,
            duration_ms=(time.monotonic() - start_time) * 1000,
            status="failure" if error is not None else "success",
            error_type=type(error).__name__ if error is not None else None,
            metadata=metadata,
        )

    async def _insights(tool_name: str, user_id: str) -> tuple[dict[str, Any] | None, str]:
        """Run the orchestrator; returns (document, '') or (None, error JSON)."""
        start_time = time.monotonic()
        if not user_id.strip():
            return None, _error("user_id is required")
        try:
            response, cache_status = await orchestrator.get_insights_with_status(user_id)
        except InsightsGenerationError as exc:
            _audit(tool_name, user_id, start_time, error=exc)
            return None, _error(str(exc))

        _audit(
            tool_name, user_id, start_time,
            cache_status=cache_status,
            metadata={"data_points": response.metadata.data_points_analyzed},
        )
        return response.to_dict(), ""

    @mcp.tool
    async def ai_insights(ctx: Context, user_id: str) -> str:
        """Get the full health insights bundle for a user.

        Includes the health score, insight cards, trends, narrative summary,
        quick stats and recommendations. Served from cache when a fresh
        bundle exists (default TTL: 1 hour).

        Args:
            user_id: The user whose records are analysed.
        """
        document, error = await _insights("ai_insights", user_id)
        if document is None:
            return error
        return json.dumps(document, indent=2)

    @mcp.tool
    async def ai_insights_summary(ctx: Context, user_id: str) -> str:
        """Get only the narrative summary of a user's recent health data.

        Args:
            user_id: The user whose records are analysed.
        """
        document, error = await _insights("ai_insights_summary", user_id)
        if document is None:
            return error
        return json.dumps(document["summary"], indent=2)

    @mcp.tool
    async def health_score(ctx: Context, user_id: str) -> str:
        """Get a user's composite health score (0-100) with its components.

        Args:
            user_id: The user whose records are analysed.
        """
        document, error = await _insights("health_score", user_id)
        if document is None:
            return error
        return json.dumps(document["health_score"], indent=2)

    @mcp.tool
    async def health_trends(ctx: Context, user_id: str, period: int = 30) -> str:
        """Compare a user's metrics with the preceding period of equal length.

        Always computed fresh; never cached.

        Args:
            user_id: The user whose records are analysed.
            period: Period length in days: 7, 30, 90 or 365.
        """
        start_time = time.monotonic()
        if not user_id.strip():
            return _error("user_id is required")
        if period not in TREND_PERIODS:
            return _error(
                f"period must be one of {', '.join(str(p) for p in TREND_PERIODS)}",
                period=period,
            )
        try:
            trends = await orchestrator.analyze_trends(user_id, period)
        except InsightsGenerationError as exc:
            _audit("health_trends", user_id, start_time, action="trend_query", error=exc)
            return _error(str(exc))

        _audit(
            "health_trends", user_id, start_time,
            action="trend_query", cache_status="bypass", metadata={"period": period},
        )
        return json.dumps({
            "status": "ok",
            "period_days": period,
            "trends": [trend.to_dict() for trend in trends],
        }, indent=2)

    @mcp.tool
    async def refresh_insights(ctx: Context, user_id: str) -> str:
        """Drop a user's cached insights and regenerate them now.

        Args:
            user_id: The user whose insights are refreshed.
        """
        start_time = time.monotonic()
        if not user_id.strip():
            return _error("user_id is required")
        try:
            response = await orchestrator.refresh_insights(user_id)
        except InsightsGenerationError as exc:
            _audit("refresh_insights", user_id, start_time, action="cache_clear", error=exc)
            return _error(str(exc))

        _audit("refresh_insights", user_id, start_time, action="cache_clear", cache_status="miss")
        return json.dumps(response.to_dict(), indent=2)

    @mcp.tool
    async def insights_cache_stats(ctx: Context) -> str:
        """Show insights cache hits, misses and hit rate (percent) since the last reset."""
        return json.dumps({"status": "ok", **orchestrator.get_cache_stats()})

    @mcp.tool
    async def reset_insights_cache_stats(ctx: Context) -> str:
        """Reset the insights cache hit/miss counters."""
        orchestrator.reset_cache_stats()
        return json.dumps({"status": "reset", **orchestrator.get_cache_stats()})
