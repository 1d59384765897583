"""MCP tools for recording vital signs and health journal entries.

Records land in the encrypted health data bank and feed the insights engine.
A new record does not invalidate cached insights; call ``refresh_insights``
to see it reflected before the cache expires.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from wellinsight.core.storage.models import StoredJournalEntry, StoredVitalSign
from wellinsight.core.storage.repository import RepositoryError

if TYPE_CHECKING:
    from wellinsight.core.audit.logger import AuditLogger
    from wellinsight.core.storage.repository import HealthRepository

logger = logging.getLogger(__name__)

EXERCISE_INTENSITIES = ("low", "moderate", "high")


def parse_recorded_at(value: str) -> datetime:
    """Parse an ISO 8601 date or datetime; empty means now (UTC).

    Raises:
        ValueError: ``value`` is not ISO 8601.
    """
    if not value:
        return datetime.now(timezone.utc)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def register_record_entry_tools(
    mcp: FastMCP,
    repository: HealthRepository,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register vital sign and journal entry tools on the MCP server."""

    def _audit(tool_name: str, user_id: str, metadata: dict[str, Any]) -> None:
        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name, user_id=user_id, action="record_write", metadata=metadata
            )

    @mcp.tool
    async def record_vital_sign(
        ctx: Context,
        user_id: str,
        systolic_bp: float | None = None,
        diastolic_bp: float | None = None,
        heart_rate: float | None = None,
        recorded_at: str = "",
    ) -> str:
        """Record a blood pressure and/or heart rate reading.

        Blood pressure readings are only analysed when both numbers are given.

        Args:
            user_id: The user the reading belongs to.
            systolic_bp: Systolic blood pressure (top number), mmHg.
            diastolic_bp: Diastolic blood pressure (bottom number), mmHg.
            heart_rate: Resting heart rate in BPM.
            recorded_at: When the reading was taken (ISO 8601). Defaults to now.
        """
        if not user_id.strip():
            return json.dumps({"status": "error", "error": "user_id is required"})
        try:
            when = parse_recorded_at(recorded_at)
            rid = repository.save_vital_sign(StoredVitalSign(
                id="",
                user_id=user_id,
                recorded_at=when,
                systolic_bp=systolic_bp,
                diastolic_bp=diastolic_bp,
                heart_rate=heart_rate,
            ))
        except (ValueError, RepositoryError) as exc:
            return json.dumps({"status": "error", "error": str(exc)})

        _audit("record_vital_sign", user_id, {"fields": sum(
            v is not None for v in (systolic_bp, diastolic_bp, heart_rate)
        )})
        logger.info("Vital sign reading saved (%s)", rid)
        return json.dumps({
            "status": "saved",
            "record_id": rid,
            "recorded_at": when.isoformat(),
            "systolic_bp": systolic_bp,
            "diastolic_bp": diastolic_bp,
            "heart_rate": heart_rate,
        })

    @mcp.tool
    async def record_health_journal(
        ctx: Context,
        user_id: str,
        sleep_hours: float | None = None,
        sleep_quality: int | None = None,
        exercise_type: str = "",
        exercise_minutes: float | None = None,
        exercise_intensity: str = "",
        stress_level: float | None = None,
        notes: str = "",
        recorded_at: str = "",
    ) -> str:
        """Record a daily journal entry: sleep, exercise, stress and notes.

        Args:
            user_id: The user the entry belongs to.
            sleep_hours: Hours slept.
            sleep_quality: Subjective sleep quality, 1-10.
            exercise_type: Activity name (e.g., 'Running', 'Yoga').
            exercise_minutes: Exercise duration in minutes.
            exercise_intensity: 'low', 'moderate' or 'high'.
            stress_level: Stress level, 0 (none) to 10 (extreme).
            notes: Free-text notes (stored encrypted).
            recorded_at: Date of the entry (ISO 8601). Defaults to now.
        """
        if not user_id.strip():
            return json.dumps({"status": "error", "error": "user_id is required"})
        if sleep_quality is not None and sleep_hours is None:
            return json.dumps({"status": "error", "error": "sleep_quality requires sleep_hours"})
        if sleep_quality is not None and not 1 <= sleep_quality <= 10:
            return json.dumps({"status": "error", "error": "sleep_quality must be between 1 and 10"})
        if stress_level is not None and not 0 <= stress_level <= 10:
            return json.dumps({"status": "error", "error": "stress_level must be between 0 and 10"})
        if exercise_intensity and exercise_intensity not in EXERCISE_INTENSITIES:
            return json.dumps({
                "status": "error",
                "error": f"exercise_intensity must be one of {', '.join(EXERCISE_INTENSITIES)}",
            })

        payload: dict[str, Any] = {}
        if sleep_hours is not None:
            payload["sleep"] = {"duration": sleep_hours}
            if sleep_quality is not None:
                payload["sleep"]["quality"] = sleep_quality
        if exercise_minutes is not None:
            exercise: dict[str, Any] = {
                "type": exercise_type or "unknown",
                "duration": exercise_minutes,
            }
            if exercise_intensity:
                exercise["intensity"] = exercise_intensity
            payload["exercise"] = [exercise]
        if stress_level is not None:
            payload["stress"] = {"level": stress_level}
        if notes:
            payload["notes"] = notes

        if not payload:
            return json.dumps({"status": "error", "error": "Journal entry has no content"})

        try:
            when = parse_recorded_at(recorded_at)
        except ValueError as exc:
            return json.dumps({"status": "error", "error": str(exc)})

        eid = repository.save_journal_entry(StoredJournalEntry(
            id="", user_id=user_id, recorded_at=when, payload=payload,
        ))
        _audit("record_health_journal", user_id, {"sections": sorted(payload)})
        logger.info("Journal entry saved (%s)", eid)
        return json.dumps({
            "status": "saved",
            "record_id": eid,
            "recorded_at": when.isoformat(),
            "sections": sorted(payload),
        })
