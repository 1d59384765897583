"""Tests for InsightsOrchestrator: cache flow, data guard, errors."""

from __future__ import annotations

import asyncio
import logging

import pytest

from wellinsight.domains.insights.connectors.repository_source import RepositoryRecordSource
from wellinsight.domains.insights.domain_logic.cache_manager import CacheManager
from wellinsight.domains.insights.domain_logic.fetcher import HealthDataFetcher
from wellinsight.domains.insights.domain_logic.orchestrator import (
    InsightsGenerationError,
    InsightsOrchestrator,
)


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class CountingSource:
    """Wraps a record source and counts vital sign reads; can simulate an outage."""

    def __init__(self, inner, *, fail: bool = False) -> None:
        self._inner = inner
        self._fail = fail
        self.reads = 0

    async def fetch_vital_signs(self, user_id, since, until, *, include_until=True):
        self.reads += 1
        if self._fail:
            raise RuntimeError("record store offline")
        return await self._inner.fetch_vital_signs(
            user_id, since, until, include_until=include_until
        )

    async def fetch_health_journal(self, user_id, since, until, *, include_until=True):
        if self._fail:
            raise RuntimeError("record store offline")
        return await self._inner.fetch_health_journal(
            user_id, since, until, include_until=include_until
        )


class BrokenCacheStore:
    def find_fresh_insights(self, user_id, now):
        return None

    def upsert_insights(self, entry):
        raise RuntimeError("cache offline")

    def delete_insights(self, user_id):
        raise RuntimeError("cache offline")


@pytest.fixture
def source(health_repository):
    return CountingSource(RepositoryRecordSource(health_repository))


@pytest.fixture
def orchestrator(health_repository, source, clock):
    return InsightsOrchestrator(
        fetcher=HealthDataFetcher(source),
        cache=CacheManager(health_repository, ttl_seconds=3600, clock=clock),
        now_fn=clock,
    )


class TestFreshGeneration:
    def test_healthy_user(self, orchestrator, seed_records, clock):
        points = seed_records()
        response, status = _run(orchestrator.get_insights_with_status("user-1"))

        assert status == "miss"
        assert response.health_score.score == 100
        assert response.health_score.category == "excellent"
        assert response.metadata.data_points_analyzed == 70
        assert points == 28
        assert response.metadata.analysis_period_days == 30
        assert response.metadata.generated_at == clock()
        assert response.metadata.cache_expiry == orchestrator.cache.expiry_for(clock())
        assert response.summary.period == "Last 7 days"
        assert response.summary.confidence == 0.9
        assert 3 <= len(response.recommendations) <= 5
        assert response.trends[-1].metric == "hydration"
        assert response.quick_stats.blood_pressure.value == "115/75"

    def test_insights_sorted_by_priority(self, orchestrator, seed_records):
        seed_records(systolic=150, diastolic=95, heart_rate=110, sleep_hours=4, stress_level=9)
        response = _run(orchestrator.get_insights("user-1"))
        priorities = [card.priority for card in response.insights]
        order = {"high": 0, "medium": 1, "low": 2}
        assert priorities == sorted(priorities, key=order.__getitem__)
        assert response.health_score.category == "poor"

    def test_slow_generation_warns(self, health_repository, source, clock, seed_records, caplog):
        seed_records()
        orchestrator = InsightsOrchestrator(
            fetcher=HealthDataFetcher(source),
            cache=CacheManager(health_repository, clock=clock),
            slow_generation_ms=-1,
            now_fn=clock,
        )
        with caplog.at_level(logging.WARNING):
            _run(orchestrator.get_insights("user-1"))
        assert "Slow insights generation" in caplog.text


class TestCaching:
    def test_second_call_served_from_cache(self, orchestrator, seed_records, source):
        seed_records()
        first, first_status = _run(orchestrator.get_insights_with_status("user-1"))
        reads = source.reads
        second, second_status = _run(orchestrator.get_insights_with_status("user-1"))

        assert (first_status, second_status) == ("miss", "hit")
        assert second == first
        assert source.reads == reads
        assert orchestrator.get_cache_stats()["hits"] == 1

    def test_cleared_cache_reads_store_again(self, orchestrator, seed_records, source):
        seed_records()
        _run(orchestrator.get_insights("user-1"))
        reads = source.reads
        assert orchestrator.clear_cache("user-1") == 1

        _, status = _run(orchestrator.get_insights_with_status("user-1"))
        assert status == "miss"
        assert source.reads > reads

    def test_expired_cache_regenerates(self, orchestrator, seed_records, clock):
        seed_records()
        _run(orchestrator.get_insights("user-1"))
        clock.advance(minutes=61)
        _, status = _run(orchestrator.get_insights_with_status("user-1"))
        assert status == "miss"

    def test_refresh_sees_new_records(self, orchestrator, seed_records, health_repository):
        seed_records(days=7)
        before = _run(orchestrator.get_insights("user-1"))
        seed_records(days=3, systolic=150, diastolic=95)

        cached = _run(orchestrator.get_insights("user-1"))
        assert cached == before

        refreshed = _run(orchestrator.refresh_insights("user-1"))
        assert refreshed.metadata.data_points_analyzed > before.metadata.data_points_analyzed
        assert health_repository.count_cached_insights() == 1

    def test_cache_write_failure_still_returns(self, source, clock, seed_records):
        seed_records()
        orchestrator = InsightsOrchestrator(
            fetcher=HealthDataFetcher(source),
            cache=CacheManager(BrokenCacheStore(), clock=clock),
            now_fn=clock,
        )
        response = _run(orchestrator.get_insights("user-1"))
        assert response.health_score.score == 100

    def test_concurrent_requests(self, orchestrator, seed_records):
        seed_records()

        async def both():
            return await asyncio.gather(
                orchestrator.get_insights("user-1"),
                orchestrator.get_insights("user-1"),
            )

        first, second = _run(both())
        assert first.health_score == second.health_score


class TestInsufficientData:
    def test_canned_response(self, orchestrator, seed_records, clock):
        seed_records(days=1, sleep_hours=None, exercise_minutes=None, stress_level=None)
        response, status = _run(orchestrator.get_insights_with_status("user-1"))

        assert status == "insufficient"
        assert response.health_score.score == 0
        assert response.health_score.category_label == "Insufficient data"
        assert [card.id for card in response.insights] == ["insufficient-data"]
        assert [rec.id for rec in response.recommendations] == ["rec-data-entry"]
        assert response.trends == ()
        assert response.metadata.data_points_analyzed == 1
        assert response.metadata.cache_expiry is None
        assert response.summary.confidence == 0.0

    def test_never_cached(self, orchestrator, health_repository, source):
        _run(orchestrator.get_insights("nobody"))
        reads = source.reads
        _, status = _run(orchestrator.get_insights_with_status("nobody"))
        assert status == "insufficient"
        assert source.reads > reads
        assert health_repository.count_cached_insights() == 0

    def test_threshold_is_configurable(self, health_repository, source, clock, seed_records):
        seed_records(days=1, sleep_hours=None, exercise_minutes=None, stress_level=None)
        orchestrator = InsightsOrchestrator(
            fetcher=HealthDataFetcher(source),
            cache=CacheManager(health_repository, clock=clock),
            min_data_points=1,
            now_fn=clock,
        )
        _, status = _run(orchestrator.get_insights_with_status("user-1"))
        assert status == "miss"


class TestErrors:
    def test_store_failure_wrapped(self, health_repository, clock):
        orchestrator = InsightsOrchestrator(
            fetcher=HealthDataFetcher(CountingSource(None, fail=True)),
            cache=CacheManager(health_repository, clock=clock),
            now_fn=clock,
        )
        with pytest.raises(InsightsGenerationError, match="insights generation failed"):
            _run(orchestrator.get_insights("user-1"))

    def test_clear_failure_wrapped(self, source, clock):
        orchestrator = InsightsOrchestrator(
            fetcher=HealthDataFetcher(source),
            cache=CacheManager(BrokenCacheStore(), clock=clock),
            now_fn=clock,
        )
        with pytest.raises(InsightsGenerationError, match="cache clear failed"):
            orchestrator.clear_cache("user-1")


class TestAnalyzeTrends:
    def test_bypasses_cache_and_guard(self, orchestrator, seed_records, health_repository):
        seed_records(days=1, sleep_hours=None, exercise_minutes=None, stress_level=None)
        trends = _run(orchestrator.analyze_trends("user-1", 7))
        assert [t.metric for t in trends] == ["blood_pressure", "heart_rate", "hydration"]
        assert health_repository.count_cached_insights() == 0
        assert orchestrator.get_cache_stats()["total"] == 0

    def test_compares_with_previous_period(self, orchestrator, seed_records, clock):
        from datetime import timedelta

        seed_records(days=7, systolic=140, diastolic=100)
        seed_records(days=7, end=clock() - timedelta(days=7), systolic=150, diastolic=110)
        trends = _run(orchestrator.analyze_trends("user-1", 7))
        bp = trends[0]
        assert bp.change == pytest.approx(-7.69)
        assert bp.change_direction == "down"
        assert bp.is_improving is True

    def test_period_must_be_positive(self, orchestrator):
        with pytest.raises(ValueError):
            _run(orchestrator.analyze_trends("user-1", 0))

    def test_reset_cache_stats(self, orchestrator):
        _run(orchestrator.get_insights("nobody"))
        orchestrator.reset_cache_stats()
        assert orchestrator.get_cache_stats()["total"] == 0
