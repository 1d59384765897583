"""Quick stats — raw short-window averages for the dashboard widget."""

from __future__ import annotations

from datetime import datetime, timedelta

from wellinsight.domains.insights.domain_logic.models import (
    HealthSeries,
    QuickStat,
    QuickStats,
)
from wellinsight.domains.insights.domain_logic.scorers import (
    average_blood_pressure,
    average_heart_rate,
    average_sleep_hours,
    round_half_up,
    weekly_exercise_minutes,
)

NO_DATA = "No data"


def empty_quick_stats() -> QuickStats:
    return QuickStats(
        blood_pressure=QuickStat(value=NO_DATA, unit="mmHg"),
        heart_rate=QuickStat(value=0, unit="bpm"),
        sleep=QuickStat(value=0.0, unit="hours"),
        exercise=QuickStat(value=0, unit="min/week"),
    )


def calculate_quick_stats(series: HealthSeries) -> QuickStats:
    """Averages over every record in ``series``."""
    bp = average_blood_pressure(series)
    hr = average_heart_rate(series)
    sleep = average_sleep_hours(series)
    weekly = weekly_exercise_minutes(series)

    return QuickStats(
        blood_pressure=QuickStat(
            value=(
                f"{round_half_up(bp[0])}/{round_half_up(bp[1])}" if bp is not None else NO_DATA
            ),
            unit="mmHg",
        ),
        heart_rate=QuickStat(value=round_half_up(hr) if hr is not None else 0, unit="bpm"),
        sleep=QuickStat(
            value=round_half_up(sleep * 10) / 10 if sleep is not None else 0.0,
            unit="hours",
        ),
        exercise=QuickStat(
            value=round_half_up(weekly) if weekly is not None else 0,
            unit="min/week",
        ),
    )


def recent_quick_stats(series: HealthSeries, now: datetime, window_days: int = 7) -> QuickStats:
    """Quick stats over the last ``window_days`` of ``series``."""
    return calculate_quick_stats(series.since(now - timedelta(days=window_days)))
