"""MCP tools for managing stored health data (user deletion, cache purge).

Deleting a user's records also drops their cached insights. Every deletion
is audit-logged with counts only.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from wellinsight.core.audit.logger import AuditLogger
    from wellinsight.core.storage.repository import HealthRepository

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "DELETE"


def register_data_management_tools(
    mcp: FastMCP,
    repository: HealthRepository,
    now_fn: Callable[[], datetime],
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register data management tools on the MCP server."""

    @mcp.tool
    async def delete_health_records(
        ctx: Context,
        user_id: str,
        confirm: str = "",
    ) -> str:
        """Permanently delete a user's vital signs, journal and cached insights.

        Args:
            user_id: The user whose data is removed.
            confirm: Must be exactly 'DELETE' to proceed.
        """
        if not user_id.strip():
            return json.dumps({"status": "error", "error": "user_id is required"})

        stored = repository.count_records(user_id)
        if confirm != DELETE_CONFIRMATION:
            return json.dumps({
                "status": "cancelled",
                "stored_records": stored,
                "message": (
                    f"Call again with confirm='{DELETE_CONFIRMATION}' to delete these "
                    "records. This cannot be undone."
                ),
            })

        start_time = time.monotonic()
        count = repository.delete_user_records(user_id)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if audit_logger is not None:
            audit_logger.log_tool_call(
                "delete_health_records",
                user_id=user_id,
                action="data_delete",
                duration_ms=elapsed_ms,
                metadata={"records_deleted": count},
            )
        return json.dumps({
            "status": "deleted",
            "records_deleted": count,
            "duration_ms": round(elapsed_ms, 1),
        })

    @mcp.tool
    async def purge_expired_insights(ctx: Context) -> str:
        """Delete expired insights cache rows for every user."""
        count = repository.purge_expired_insights(now_fn())
        if audit_logger is not None and count > 0:
            audit_logger.log_tool_call(
                "purge_expired_insights",
                action="data_delete",
                metadata={"cache_rows_deleted": count},
            )
        return json.dumps({"status": "purged", "cache_rows_deleted": count})
