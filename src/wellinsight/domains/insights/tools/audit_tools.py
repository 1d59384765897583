"""MCP tools for viewing the audit trail.

The audit log is PHI-free: it records which insights tools were used, when,
whether the cache served the call, and how long it took. User ids appear
only as SHA-256 hashes.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from wellinsight.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def register_audit_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger,
) -> None:
    """Register audit trail tools on the MCP server."""

    @mcp.tool
    async def audit_summary(
        ctx: Context,
        days: int = 30,
        user_id: str = "",
    ) -> str:
        """View recent insights access events.

        Args:
            days: Number of days to look back (default: 30).
            user_id: Optional filter; matched against the hashed id.
        """
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
        who = user_id or None
        events = audit_logger.get_events(user_id=who, since=since, limit=20)

        display_events = [
            {
                "timestamp": event.get("timestamp"),
                "action": event.get("action"),
                "tool_name": event.get("tool_name"),
                "cache_status": event.get("cache_status"),
                "status": event.get("status"),
                "duration_ms": event.get("duration_ms"),
            }
            for event in events
        ]

        return json.dumps({
            "status": "ok",
            "period_days": days,
            "total_events": audit_logger.count_events(user_id=who, since=since),
            "cache_clears": audit_logger.count_events(
                action="cache_clear", user_id=who, since=since
            ),
            "recent_events": display_events,
            "note": "This audit trail contains no health data.",
        }, indent=2)
