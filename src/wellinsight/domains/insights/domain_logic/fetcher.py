"""Health data fetcher — normalizes raw records into a ``HealthData`` snapshot.

Reads the current analysis window and the equal-length window immediately
before it, then destructures journal payloads into sleep, exercise and
stress samples.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any

from wellinsight.core.storage.models import StoredJournalEntry, StoredVitalSign
from wellinsight.domains.insights.connectors import HealthRecordSource
from wellinsight.domains.insights.domain_logic.models import (
    ExerciseSample,
    HealthData,
    HealthSeries,
    SleepSample,
    StressSample,
    VitalSignSample,
)

logger = logging.getLogger(__name__)


def _num(value: Any, default: float | None = 0.0) -> float | None:
    """Lenient numeric coercion for journal payload fields."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def normalize_vital_signs(records: list[StoredVitalSign]) -> tuple[VitalSignSample, ...]:
    samples = [
        VitalSignSample(
            recorded_at=r.recorded_at,
            systolic_bp=_num(r.systolic_bp, None),
            diastolic_bp=_num(r.diastolic_bp, None),
            heart_rate=_num(r.heart_rate, None),
        )
        for r in records
    ]
    samples.sort(key=lambda s: s.recorded_at)
    return tuple(samples)


def normalize_journal(records: list[StoredJournalEntry]) -> HealthSeries:
    """Split journal records into sleep / exercise / stress series.

    A record contributes a sleep sample if it has a ``sleep`` object, one
    exercise sample per element of an ``exercise`` list, and a stress sample
    if it has a ``stress`` object. Missing or non-numeric values become 0.
    """
    ordered = sorted(records, key=lambda r: r.recorded_at)
    sleep: list[SleepSample] = []
    exercise: list[ExerciseSample] = []
    stress: list[StressSample] = []

    for record in ordered:
        payload = record.payload if isinstance(record.payload, dict) else {}
        when = record.recorded_at

        sleep_data = payload.get("sleep")
        if isinstance(sleep_data, dict):
            sleep.append(SleepSample(
                date=when,
                duration_hours=_num(sleep_data.get("duration")),
                quality=_num(sleep_data.get("quality"), None),
            ))

        exercise_data = payload.get("exercise")
        if isinstance(exercise_data, list):
            for item in exercise_data:
                if not isinstance(item, dict):
                    continue
                exercise.append(ExerciseSample(
                    date=when,
                    type=str(item.get("type") or "unknown"),
                    duration_minutes=_num(item.get("duration")),
                    intensity=item.get("intensity") or None,
                ))

        stress_data = payload.get("stress")
        if isinstance(stress_data, dict):
            stress.append(StressSample(date=when, level=_num(stress_data.get("level"))))

    return HealthSeries(
        journal_entries=tuple(r.recorded_at for r in ordered),
        sleep=tuple(sleep),
        exercise=tuple(exercise),
        stress=tuple(stress),
    )


class HealthDataFetcher:
    """Builds ``HealthData`` snapshots from a ``HealthRecordSource``.

    Usage::

        fetcher = HealthDataFetcher(RepositoryRecordSource(repo))
        data = await fetcher.fetch("u1", period_days=30, now=now)
        data.current.data_point_count()
    """

    def __init__(self, source: HealthRecordSource) -> None:
        self._source = source

    async def fetch_window(
        self,
        user_id: str,
        since: datetime,
        until: datetime,
        *,
        include_until: bool = True,
    ) -> HealthSeries:
        """Read one window's vitals and journal concurrently."""
        vitals, journal = await asyncio.gather(
            self._source.fetch_vital_signs(
                user_id, since, until, include_until=include_until
            ),
            self._source.fetch_health_journal(
                user_id, since, until, include_until=include_until
            ),
        )
        series = normalize_journal(journal)
        return HealthSeries(
            vital_signs=normalize_vital_signs(vitals),
            journal_entries=series.journal_entries,
            sleep=series.sleep,
            exercise=series.exercise,
            stress=series.stress,
        )

    async def fetch(self, user_id: str, period_days: int, now: datetime) -> HealthData:
        """Fetch the current window and the preceding window of equal length."""
        if period_days <= 0:
            raise ValueError(f"period_days must be positive, got {period_days}")

        period = timedelta(days=period_days)
        current_start = now - period
        previous_start = now - 2 * period

        current, previous = await asyncio.gather(
            self.fetch_window(user_id, current_start, now),
            self.fetch_window(user_id, previous_start, current_start, include_until=False),
        )
        logger.debug(
            "Fetched %d current / %d previous data points over %d days",
            current.data_point_count(),
            previous.data_point_count(),
            period_days,
        )
        return HealthData(
            current=current,
            previous=previous,
            period_days=period_days,
            window_end=now,
        )
