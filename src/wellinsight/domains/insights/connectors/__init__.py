"""Insights connectors — abstraction layer over the health record store and cache."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from wellinsight.core.storage.models import (
    CacheEntry,
    StoredJournalEntry,
    StoredVitalSign,
)


@runtime_checkable
class HealthRecordSource(Protocol):
    """Read-only access to a user's raw health records.

    The fetcher calls these without knowing whether records live in the local
    SQLite data bank or somewhere else. Both return records oldest first.
    """

    async def fetch_vital_signs(
        self,
        user_id: str,
        since: datetime,
        until: datetime,
        *,
        include_until: bool = True,
    ) -> list[StoredVitalSign]:
        """Vital sign readings recorded inside the window."""
        ...

    async def fetch_health_journal(
        self,
        user_id: str,
        since: datetime,
        until: datetime,
        *,
        include_until: bool = True,
    ) -> list[StoredJournalEntry]:
        """Raw journal records (sleep / exercise / stress payloads) inside the window."""
        ...


@runtime_checkable
class InsightsCacheStore(Protocol):
    """Per-user insights cache rows. Implemented by ``HealthRepository``."""

    def find_fresh_insights(self, user_id: str, now: datetime) -> CacheEntry | None:
        ...

    def upsert_insights(self, entry: CacheEntry) -> CacheEntry:
        ...

    def delete_insights(self, user_id: str) -> int:
        ...
