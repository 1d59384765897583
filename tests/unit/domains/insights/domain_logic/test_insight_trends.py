"""Tests for period-over-period trend analysis."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from wellinsight.domains.insights.domain_logic.models import (
    ExerciseSample,
    HealthSeries,
    SleepSample,
    StressSample,
    VitalSignSample,
)
from wellinsight.domains.insights.domain_logic.trend_analyzer import (
    MAX_DATA_POINTS,
    analyze_trends,
    blood_pressure_trend,
    exercise_trend,
    heart_rate_trend,
    hydration_trend,
    percent_change,
    recent_points,
    sleep_trend,
    stress_trend,
    trend_direction,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _vitals(systolic, diastolic, heart_rate=None, *, days=3, offset=0) -> HealthSeries:
    return HealthSeries(vital_signs=tuple(
        VitalSignSample(NOW - timedelta(days=offset + d), systolic, diastolic, heart_rate)
        for d in range(days)
    ))


class TestPercentChange:
    def test_rounded_to_two_places(self):
        assert percent_change(120, 130) == -7.69

    def test_zero_previous(self):
        assert percent_change(50, 0) == 0.0

    def test_direction_threshold_is_strict(self):
        assert trend_direction(2.0, 2.0) == "stable"
        assert trend_direction(2.01, 2.0) == "up"
        assert trend_direction(-2.01, 2.0) == "down"


class TestRecentPoints:
    def test_caps_to_most_recent(self):
        points = [(NOW - timedelta(days=d), float(d)) for d in range(14)]
        result = recent_points(points)
        assert len(result) == MAX_DATA_POINTS
        assert result[-1].date == NOW.date().isoformat()
        assert [p.date for p in result] == sorted(p.date for p in result)


class TestBloodPressureTrend:
    def test_falling_pressure_is_improving(self):
        current = _vitals(140, 100)
        previous = _vitals(150, 110, offset=30)
        trend = blood_pressure_trend(current, previous)
        assert trend.change == pytest.approx(-7.69)
        assert trend.change_direction == "down"
        assert trend.is_improving is True
        assert trend.current_value == "140/100 mmHg"
        assert trend.previous_value == "150/110 mmHg"

    def test_points_use_mean_pressure(self):
        trend = blood_pressure_trend(_vitals(140, 100, days=1), HealthSeries())
        assert [p.value for p in trend.data_points] == [120]

    def test_without_previous(self):
        trend = blood_pressure_trend(_vitals(120, 80), HealthSeries())
        assert trend.previous_value == "No data"
        assert trend.change == 0
        assert trend.change_direction == "stable"
        assert trend.is_improving is False

    def test_no_current_data(self):
        assert blood_pressure_trend(HealthSeries(), _vitals(120, 80)) is None


class TestHeartRateTrend:
    def test_moving_toward_center_improves(self):
        trend = heart_rate_trend(_vitals(None, None, 75), _vitals(None, None, 90, offset=30))
        assert trend.is_improving is True
        assert trend.change_direction == "down"
        assert trend.current_value == "75 bpm"


class TestSleepTrend:
    def test_more_sleep_toward_eight_hours(self):
        current = HealthSeries(sleep=(SleepSample(NOW, 7.5),))
        previous = HealthSeries(sleep=(SleepSample(NOW - timedelta(days=31), 6),))
        trend = sleep_trend(current, previous)
        assert trend.change == 25.0
        assert trend.change_direction == "up"
        assert trend.is_improving is True
        assert trend.current_value == "7.5 h"


class TestExerciseTrend:
    def test_totals_and_daily_points(self):
        current = HealthSeries(exercise=(
            ExerciseSample(NOW, "Walking", 30),
            ExerciseSample(NOW, "Yoga", 20),
            ExerciseSample(NOW - timedelta(days=1), "Running", 40),
        ))
        trend = exercise_trend(current, HealthSeries())
        assert trend.current_value == "90 min"
        assert trend.previous_value == "0 min"
        assert trend.is_improving is True
        assert [p.value for p in trend.data_points] == [40, 50]

    def test_less_exercise_is_not_improving(self):
        current = HealthSeries(exercise=(ExerciseSample(NOW, "Walking", 30),))
        previous = HealthSeries(exercise=(ExerciseSample(NOW - timedelta(days=31), "Walking", 60),))
        trend = exercise_trend(current, previous)
        assert trend.change == -50.0
        assert trend.change_direction == "down"
        assert trend.is_improving is False


class TestStressTrend:
    def test_lower_stress_improves(self):
        current = HealthSeries(stress=(StressSample(NOW, 3),))
        previous = HealthSeries(stress=(StressSample(NOW - timedelta(days=31), 6),))
        trend = stress_trend(current, previous)
        assert trend.is_improving is True
        assert trend.current_value == "3.0/10"
        assert trend.change_direction == "down"


class TestAnalyzeTrends:
    def test_empty_data_only_hydration(self):
        trends = analyze_trends(HealthSeries(), HealthSeries())
        assert [t.metric for t in trends] == ["hydration"]

    def test_hydration_placeholder(self):
        trend = hydration_trend()
        assert trend.current_value == "No data"
        assert trend.is_improving is True
        assert trend.data_points == ()

    def test_metric_order(self):
        current = HealthSeries(
            vital_signs=(VitalSignSample(NOW, 120, 80, 70),),
            sleep=(SleepSample(NOW, 8),),
            exercise=(ExerciseSample(NOW, "Walking", 30),),
            stress=(StressSample(NOW, 2),),
        )
        trends = analyze_trends(current, HealthSeries())
        assert [t.metric for t in trends] == [
            "blood_pressure", "heart_rate", "sleep", "exercise", "stress", "hydration",
        ]
