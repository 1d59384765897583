"""Period-over-period trends per metric.

Compares the current window's average (total, for exercise) with the
preceding window's and classifies direction and improvement. Each trend
carries up to 10 of the most recent raw points for charting.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime

from wellinsight.domains.insights.domain_logic.models import (
    DataPoint,
    HealthSeries,
    TrendData,
)
from wellinsight.domains.insights.domain_logic.scorers import (
    average_blood_pressure,
    average_heart_rate,
    average_sleep_hours,
    average_stress_level,
    round_half_up,
)

logger = logging.getLogger(__name__)

# Percent change above which a metric counts as moving up or down.
DIRECTION_THRESHOLDS = {
    "blood_pressure": 2.0,
    "heart_rate": 2.0,
    "sleep": 5.0,
    "exercise": 10.0,
    "stress": 10.0,
}

# Ideal centers for "moving closer is improving" metrics.
MEAN_PRESSURE_CENTER = 80.0
HEART_RATE_CENTER = 70.0
SLEEP_CENTER = 8.0

MAX_DATA_POINTS = 10
NO_DATA = "No data"


def percent_change(current: float, previous: float) -> float:
    """``(current - previous) / previous * 100`` rounded to 2 places; 0 if previous <= 0."""
    if previous <= 0:
        return 0.0
    return round((current - previous) / previous * 100, 2)


def trend_direction(change: float, threshold: float) -> str:
    if abs(change) > threshold:
        return "up" if change > 0 else "down"
    return "stable"


def closer_to(center: float, current: float, previous: float) -> bool:
    return abs(current - center) < abs(previous - center)


def recent_points(points: Iterable[tuple[datetime, float]]) -> tuple[DataPoint, ...]:
    """The most recent points, oldest first, dated YYYY-MM-DD."""
    ordered = sorted(points, key=lambda p: p[0])[-MAX_DATA_POINTS:]
    return tuple(DataPoint(date=when.date().isoformat(), value=value) for when, value in ordered)


def _trend(
    metric: str,
    label: str,
    current: float,
    previous: float | None,
    fmt: Callable[[float], str],
    is_improving: Callable[[float, float], bool],
    points: tuple[DataPoint, ...],
) -> TrendData:
    if previous is None:
        change = 0.0
        improving = False
        previous_text = NO_DATA
    else:
        change = percent_change(current, previous)
        improving = is_improving(current, previous)
        previous_text = fmt(previous)
    return TrendData(
        metric=metric,
        label=label,
        current_value=fmt(current),
        previous_value=previous_text,
        change=change,
        change_direction=trend_direction(change, DIRECTION_THRESHOLDS[metric]),
        is_improving=improving,
        data_points=points,
    )


def _format_pressure(average: tuple[float, float]) -> str:
    systolic, diastolic = average
    return f"{round_half_up(systolic)}/{round_half_up(diastolic)} mmHg"


def blood_pressure_trend(current: HealthSeries, previous: HealthSeries) -> TrendData | None:
    """Trend on the mean-pressure proxy ``(systolic + diastolic) / 2``."""
    now_avg = average_blood_pressure(current)
    if now_avg is None:
        return None
    prev_avg = average_blood_pressure(previous)

    trend = _trend(
        "blood_pressure",
        "Blood pressure",
        sum(now_avg) / 2,
        sum(prev_avg) / 2 if prev_avg is not None else None,
        str,
        lambda cur, prev: closer_to(MEAN_PRESSURE_CENTER, cur, prev),
        recent_points(
            (r.recorded_at, (r.systolic_bp + r.diastolic_bp) / 2)
            for r in current.blood_pressure_readings
        ),
    )
    return replace(
        trend,
        current_value=_format_pressure(now_avg),
        previous_value=_format_pressure(prev_avg) if prev_avg is not None else NO_DATA,
    )


def heart_rate_trend(current: HealthSeries, previous: HealthSeries) -> TrendData | None:
    now_avg = average_heart_rate(current)
    if now_avg is None:
        return None
    return _trend(
        "heart_rate",
        "Heart rate",
        now_avg,
        average_heart_rate(previous),
        lambda v: f"{round_half_up(v)} bpm",
        lambda cur, prev: closer_to(HEART_RATE_CENTER, cur, prev),
        recent_points((r.recorded_at, r.heart_rate) for r in current.heart_rate_readings),
    )


def sleep_trend(current: HealthSeries, previous: HealthSeries) -> TrendData | None:
    now_avg = average_sleep_hours(current)
    if now_avg is None:
        return None
    return _trend(
        "sleep",
        "Sleep",
        now_avg,
        average_sleep_hours(previous),
        lambda v: f"{v:.1f} h",
        lambda cur, prev: closer_to(SLEEP_CENTER, cur, prev),
        recent_points((s.date, s.duration_hours) for s in current.sleep),
    )


def exercise_trend(current: HealthSeries, previous: HealthSeries) -> TrendData | None:
    """Trend on total minutes; points are per-day totals."""
    if not current.exercise:
        return None
    current_total = sum(e.duration_minutes for e in current.exercise)
    previous_total = sum(e.duration_minutes for e in previous.exercise)

    daily: dict[str, tuple[datetime, float]] = {}
    for e in current.exercise:
        key = e.date.date().isoformat()
        first, total = daily.get(key, (e.date, 0.0))
        daily[key] = (first, total + e.duration_minutes)

    return _trend(
        "exercise",
        "Exercise",
        current_total,
        previous_total,
        lambda v: f"{round_half_up(v)} min",
        lambda cur, prev: cur > prev,
        recent_points(daily.values()),
    )


def stress_trend(current: HealthSeries, previous: HealthSeries) -> TrendData | None:
    now_avg = average_stress_level(current)
    if now_avg is None:
        return None
    return _trend(
        "stress",
        "Stress",
        now_avg,
        average_stress_level(previous),
        lambda v: f"{v:.1f}/10",
        lambda cur, prev: cur < prev,
        recent_points((s.date, s.level) for s in current.stress),
    )


def hydration_trend() -> TrendData:
    """Placeholder: there is no hydration data source."""
    return TrendData(
        metric="hydration",
        label="Hydration",
        current_value=NO_DATA,
        previous_value=NO_DATA,
        change=0.0,
        change_direction="stable",
        is_improving=True,
        data_points=(),
    )


def analyze_trends(current: HealthSeries, previous: HealthSeries) -> list[TrendData]:
    """Trends for every metric with current data, then the hydration placeholder."""
    trends = [
        trend
        for trend in (
            blood_pressure_trend(current, previous),
            heart_rate_trend(current, previous),
            sleep_trend(current, previous),
            exercise_trend(current, previous),
            stress_trend(current, previous),
        )
        if trend is not None
    ]
    trends.append(hydration_trend())
    return trends
