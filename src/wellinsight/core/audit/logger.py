"""Audit logger — PHI-free access trail for insights tools.

Records every insights generation, cache clear and trend query in the
``audit_log`` table without storing raw health values or raw user ids:

* ``user_hash``    — SHA-256 of the user id.
* ``cache_status`` — 'hit' | 'miss' | 'insufficient' | 'bypass' for the call that was served.
* ``metadata``     — counts and timings only.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from wellinsight.core.storage.database import HealthDatabase

logger = logging.getLogger(__name__)


def hash_user_id(user_id: str) -> str:
    """SHA-256 hex digest of a user id; empty string for an empty id."""
    if not user_id:
        return ""
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                          # 'insights_read' | 'cache_clear' | 'trend_query' | 'record_write'
    tool_name: str = ""
    user_hash: str = ""
    cache_status: str | None = None
    duration_ms: float | None = None
    status: str = "success"              # 'success' | 'failure'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Records audit events to the ``audit_log`` SQLite table.

    Writes are committed immediately. A failed write is logged and dropped;
    it never fails the tool call being audited.

    Usage::

        audit = AuditLogger(health_db)
        audit.log_tool_call("ai_insights", user_id="u1", cache_status="hit",
                            duration_ms=3.2)
    """

    def __init__(self, database: HealthDatabase) -> None:
        self._db = database

    def log_event(self, event: AuditEvent) -> str:
        """Insert an audit event and return its id ('' if the write failed)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":"), default=str)
            if event.metadata
            else None
        )

        try:
            with self._db.transaction() as conn:
                conn.execute(
                    """INSERT INTO audit_log
                       (id, timestamp, action, tool_name, user_hash, cache_status,
                        duration_ms, status, error_type, metadata_json)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        event_id,
                        now,
                        event.action,
                        event.tool_name or None,
                        event.user_hash or None,
                        event.cache_status,
                        event.duration_ms,
                        event.status,
                        event.error_type,
                        metadata_json,
                    ),
                )
        except Exception:
            logger.exception("Failed to write audit event — event lost")
            return ""

        return event_id

    def log_tool_call(
        self,
        tool_name: str,
        *,
        user_id: str = "",
        action: str = "insights_read",
        cache_status: str | None = None,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Convenience wrapper for logging an MCP tool invocation."""
        return self.log_event(AuditEvent(
            action=action,
            tool_name=tool_name,
            user_hash=hash_user_id(user_id),
            cache_status=cache_status,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata or {},
        ))

    def get_events(
        self,
        *,
        action: str | None = None,
        user_id: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query audit events, newest first.

        ``user_id`` is hashed before matching; ``since`` is an ISO 8601 string.
        """
        where, params = _filters(action=action, user_id=user_id, since=since)
        rows = self._db.connection.execute(
            f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?",
            [*params, limit],
        ).fetchall()
        return [dict(row) for row in rows]

    def count_events(
        self,
        *,
        action: str | None = None,
        user_id: str | None = None,
        since: str | None = None,
    ) -> int:
        where, params = _filters(action=action, user_id=user_id, since=since)
        row = self._db.connection.execute(
            f"SELECT COUNT(*) FROM audit_log{where}", params
        ).fetchone()
        return row[0]


def _filters(
    *, action: str | None, user_id: str | None, since: str | None
) -> tuple[str, list[Any]]:
    """Build a WHERE clause and its parameters from the optional filters."""
    clauses = [
        (column, value)
        for column, value in (
            ("action = ?", action),
            ("user_hash = ?", hash_user_id(user_id) if user_id else None),
            ("timestamp >= ?", since),
        )
        if value
    ]
    if not clauses:
        return "", []
    return (
        " WHERE " + " AND ".join(column for column, _ in clauses),
        [value for _, value in clauses],
    )
