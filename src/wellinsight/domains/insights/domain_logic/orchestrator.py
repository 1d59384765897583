"""Insights orchestrator — cache check, data guard, parallel compute, cache write.

States of one ``get_insights`` run::

    cache check ──hit──> return cached
        │ miss
    fetch data ──fewer than min_data_points──> return canned response (not cached)
        │
    compute (score, insights, trends, summary, quick stats in parallel)
        │
    recommendations ──> cache write (best-effort) ──> return
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from wellinsight.domains.insights.domain_logic.cache_manager import CacheManager, utc_now
from wellinsight.domains.insights.domain_logic.fetcher import HealthDataFetcher
from wellinsight.domains.insights.domain_logic.health_score import calculate_health_score
from wellinsight.domains.insights.domain_logic.insight_generator import generate_insights
from wellinsight.domains.insights.domain_logic.models import (
    METRICS,
    SCORE_WEIGHTS,
    AIInsightsResponse,
    AISummary,
    ComponentScore,
    HealthScore,
    InsightCard,
    InsightsMetadata,
    Recommendation,
    TrendData,
)
from wellinsight.domains.insights.domain_logic.quick_stats import (
    empty_quick_stats,
    recent_quick_stats,
)
from wellinsight.domains.insights.domain_logic.recommendations import (
    generate_recommendations,
)
from wellinsight.domains.insights.domain_logic.summary_generator import generate_summary
from wellinsight.domains.insights.domain_logic.trend_analyzer import analyze_trends

logger = logging.getLogger(__name__)


class InsightsGenerationError(Exception):
    """Raised when insights cannot be produced (store read or compute failure)."""


def insufficient_data_response(
    user_id: str,
    data_points: int,
    minimum: int,
    now: datetime,
    period_days: int,
) -> AIInsightsResponse:
    """Canned response for users with too few records. Never cached."""
    return AIInsightsResponse(
        summary=AISummary(
            text=(
                "There is not enough health data for a detailed analysis yet. "
                "Add more health records to receive personalized insights."
            ),
            period="Last 7 days",
            last_updated=now,
            confidence=0.0,
            positive_findings=(),
            concerning_findings=("Analysis is limited by missing data",),
        ),
        insights=(
            InsightCard(
                id="insufficient-data",
                type="info",
                priority="high",
                icon="info",
                title="More data needed",
                description=(
                    f"You have {data_points} data points. Record at least {minimum} "
                    "health entries to unlock insights."
                ),
                action_text="Add health data",
                action_link="/health/records",
                related_metrics=(),
                generated_at=now,
            ),
        ),
        health_score=HealthScore(
            score=0,
            category="poor",
            category_label="Insufficient data",
            previous_score=0,
            change=0,
            change_direction="stable",
            components={m: ComponentScore(score=0, weight=SCORE_WEIGHTS[m]) for m in METRICS},
        ),
        quick_stats=empty_quick_stats(),
        recommendations=(
            Recommendation(
                id="rec-data-entry",
                icon="memo",
                title="Start logging your health data",
                description=(
                    "Record vital signs, sleep and exercise regularly so trends "
                    "and insights can be calculated."
                ),
                category="exercise",
                priority=1,
            ),
        ),
        trends=(),
        metadata=InsightsMetadata(
            user_id=user_id,
            generated_at=now,
            data_points_analyzed=data_points,
            analysis_period_days=period_days,
            cache_expiry=None,
        ),
    )


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class InsightsOrchestrator:
    """Top-level coordinator for the insights engine.

    Usage::

        orchestrator = InsightsOrchestrator(
            fetcher=HealthDataFetcher(RepositoryRecordSource(repo)),
            cache=CacheManager(repo, ttl_seconds=3600),
        )
        response = await orchestrator.get_insights("u1")
    """

    def __init__(
        self,
        fetcher: HealthDataFetcher,
        cache: CacheManager,
        *,
        min_data_points: int = 3,
        analysis_period_days: int = 30,
        summary_window_days: int = 7,
        quick_stats_window_days: int = 7,
        slow_generation_ms: float = 5000.0,
        now_fn: Callable[[], datetime] = utc_now,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._min_data_points = min_data_points
        self._period_days = analysis_period_days
        self._summary_window = summary_window_days
        self._quick_stats_window = quick_stats_window_days
        self._slow_ms = slow_generation_ms
        self._now = now_fn

    @property
    def cache(self) -> CacheManager:
        return self._cache

    async def get_insights(self, user_id: str) -> AIInsightsResponse:
        """Cached or freshly computed insights for ``user_id``.

        Raises:
            InsightsGenerationError: Reading records or computing insights failed.
        """
        response, _ = await self.get_insights_with_status(user_id)
        return response

    async def get_insights_with_status(self, user_id: str) -> tuple[AIInsightsResponse, str]:
        """Like ``get_insights`` but also reports 'hit', 'miss' or 'insufficient'."""
        start = time.perf_counter()

        cached = self._cache.get(user_id)
        lookup_ms = _elapsed_ms(start)
        if cached is not None:
            logger.info("Insights cache hit (lookup %.1fms)", lookup_ms)
            return cached, "hit"
        logger.info("Insights cache miss (lookup %.1fms); generating", lookup_ms)

        now = self._now()
        try:
            fetch_start = time.perf_counter()
            data = await self._fetcher.fetch(user_id, self._period_days, now)
            fetch_ms = _elapsed_ms(fetch_start)

            count = data.data_point_count()
            if count < self._min_data_points:
                logger.info("Insufficient data (%d/%d)", count, self._min_data_points)
                return insufficient_data_response(
                    user_id, count, self._min_data_points, now, self._period_days
                ), "insufficient"

            compute_start = time.perf_counter()
            health_score, insights, trends, summary, quick_stats = await asyncio.gather(
                asyncio.to_thread(calculate_health_score, data),
                asyncio.to_thread(generate_insights, data.current, now),
                asyncio.to_thread(analyze_trends, data.current, data.previous),
                asyncio.to_thread(
                    generate_summary,
                    data.current,
                    now,
                    window_days=self._summary_window,
                    data_points=count,
                ),
                asyncio.to_thread(
                    recent_quick_stats, data.current, now, self._quick_stats_window
                ),
            )
            recommendations = generate_recommendations(data.current, insights)
            compute_ms = _elapsed_ms(compute_start)
        except Exception as exc:
            logger.exception("Insights generation failed (%.1fms)", _elapsed_ms(start))
            raise InsightsGenerationError("insights generation failed") from exc

        response = AIInsightsResponse(
            summary=summary,
            insights=tuple(insights),
            health_score=health_score,
            quick_stats=quick_stats,
            recommendations=tuple(recommendations),
            trends=tuple(trends),
            metadata=InsightsMetadata(
                user_id=user_id,
                generated_at=now,
                data_points_analyzed=count,
                analysis_period_days=self._period_days,
                cache_expiry=self._cache.expiry_for(now),
            ),
        )

        save_start = time.perf_counter()
        self._cache.set(user_id, response)
        save_ms = _elapsed_ms(save_start)

        total_ms = _elapsed_ms(start)
        logger.info(
            "Insights generated in %.1fms (fetch %.1fms, compute %.1fms, cache save %.1fms, "
            "%d data points)",
            total_ms, fetch_ms, compute_ms, save_ms, count,
        )
        if total_ms > self._slow_ms:
            logger.warning("Slow insights generation: %.1fms", total_ms)

        return response, "miss"

    async def refresh_insights(self, user_id: str) -> AIInsightsResponse:
        """Drop the cached response and regenerate."""
        self.clear_cache(user_id)
        return await self.get_insights(user_id)

    def clear_cache(self, user_id: str) -> int:
        """Delete the user's cached responses, forcing the next call to recompute.

        Raises:
            InsightsGenerationError: The cache store rejected the delete.
        """
        try:
            return self._cache.clear(user_id)
        except Exception as exc:
            logger.exception("Insights cache clear failed")
            raise InsightsGenerationError("cache clear failed") from exc

    async def analyze_trends(self, user_id: str, period_days: int) -> list[TrendData]:
        """Standalone trends over ``period_days``; bypasses cache and data guard.

        Raises:
            ValueError: ``period_days`` is not positive.
            InsightsGenerationError: Reading records failed.
        """
        if period_days <= 0:
            raise ValueError(f"period_days must be positive, got {period_days}")
        try:
            data = await self._fetcher.fetch(user_id, period_days, self._now())
        except Exception as exc:
            logger.exception("Trend analysis failed")
            raise InsightsGenerationError("insights generation failed") from exc
        return analyze_trends(data.current, data.previous)

    def get_cache_stats(self) -> dict[str, Any]:
        return self._cache.stats()

    def reset_cache_stats(self) -> None:
        self._cache.reset_stats()
