"""Repository-backed record source — reads from the health data bank (SQLite).

Users enter vitals and journal entries via MCP tools; this source exposes the
stored rows to the insights fetcher as a ``HealthRecordSource``.
"""

from __future__ import annotations

import logging
from datetime import datetime

from wellinsight.core.storage.models import StoredJournalEntry, StoredVitalSign
from wellinsight.core.storage.repository import HealthRepository

logger = logging.getLogger(__name__)


class RepositoryRecordSource:
    """HealthRecordSource backed by ``HealthRepository``.

    Repository calls are short synchronous sqlite3 reads on the event loop
    thread, so concurrent fetches never interleave on the shared connection.
    """

    def __init__(self, repository: HealthRepository) -> None:
        self._repo = repository

    async def fetch_vital_signs(
        self,
        user_id: str,
        since: datetime,
        until: datetime,
        *,
        include_until: bool = True,
    ) -> list[StoredVitalSign]:
        return self._repo.get_vital_signs(
            user_id, since=since, until=until, include_until=include_until
        )

    async def fetch_health_journal(
        self,
        user_id: str,
        since: datetime,
        until: datetime,
        *,
        include_until: bool = True,
    ) -> list[StoredJournalEntry]:
        return self._repo.get_journal_entries(
            user_id, since=since, until=until, include_until=include_until
        )

