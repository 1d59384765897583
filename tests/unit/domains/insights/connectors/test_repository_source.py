"""Tests for the repository-backed record source."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from wellinsight.domains.insights.connectors import HealthRecordSource, InsightsCacheStore
from wellinsight.domains.insights.connectors.repository_source import RepositoryRecordSource

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestProtocols:
    def test_source_satisfies_protocol(self, health_repository):
        assert isinstance(RepositoryRecordSource(health_repository), HealthRecordSource)

    def test_repository_is_a_cache_store(self, health_repository):
        assert isinstance(health_repository, InsightsCacheStore)


class TestFetch:
    def test_reads_window(self, health_repository, seed_records):
        seed_records(days=10)
        source = RepositoryRecordSource(health_repository)
        since = FIXED_NOW - timedelta(days=5)

        vitals = _run(source.fetch_vital_signs("user-1", since, FIXED_NOW))
        journal = _run(source.fetch_health_journal("user-1", since, FIXED_NOW))

        assert len(vitals) == 5
        assert len(journal) == 5
        assert journal[0].payload["sleep"]["duration"] == 8

    def test_other_users_excluded(self, health_repository, seed_records):
        seed_records("someone-else", days=3)
        source = RepositoryRecordSource(health_repository)
        since = FIXED_NOW - timedelta(days=30)
        assert _run(source.fetch_vital_signs("user-1", since, FIXED_NOW)) == []

