"""Data models for the health record and insights cache persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class StoredVitalSign:
    """A single vital sign reading as stored.

    Any of the measurement columns may be missing; a blood pressure reading
    is only usable when both systolic and diastolic are present.
    """

    id: str
    user_id: str
    recorded_at: datetime
    systolic_bp: float | None = None
    diastolic_bp: float | None = None
    heart_rate: float | None = None
    source: str = "manual"


@dataclass
class StoredJournalEntry:
    """A health journal entry with its decrypted JSON payload.

    Payload shape (all keys optional)::

        {
            "sleep": {"duration": 7.5, "quality": 8},
            "exercise": [{"type": "Running", "duration": 40, "intensity": "moderate"}],
            "stress": {"level": 3},
            "notes": "..."
        }
    """

    id: str
    user_id: str
    recorded_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class CacheEntry:
    """One cached insights bundle for a user.

    ``insights_data`` is the serialized ``AIInsightsResponse`` document,
    including its ``schema_version``.
    """

    user_id: str
    insights_data: dict[str, Any]
    generated_at: datetime
    expires_at: datetime
    id: str = ""
