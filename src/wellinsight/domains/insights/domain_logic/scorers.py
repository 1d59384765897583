"""Component scorers, metric averages and shared threshold bands.

Everything here is a pure function of a ``HealthSeries`` (or of an average
taken from one). The band classifiers are the single source of threshold
language for both the insight generator and the summary generator.
"""

from __future__ import annotations

import math
from datetime import datetime

from wellinsight.domains.insights.domain_logic.models import HealthSeries

# Neutral default for metrics without data. Exercise without data is scored
# as inactive.
NO_DATA_SCORE = 50
NO_EXERCISE_SCORE = 30

WEEKLY_EXERCISE_TARGET = 150     # minutes

_SECONDS_PER_DAY = 86400.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def mean(values: list[float]) -> float:
    return math.fsum(values) / len(values)


# ---------------------------------------------------------------------------
# Averages
# ---------------------------------------------------------------------------

def average_blood_pressure(series: HealthSeries) -> tuple[float, float] | None:
    """Mean (systolic, diastolic) over readings carrying both values."""
    readings = series.blood_pressure_readings
    if not readings:
        return None
    return (
        mean([r.systolic_bp for r in readings]),
        mean([r.diastolic_bp for r in readings]),
    )


def average_heart_rate(series: HealthSeries) -> float | None:
    readings = series.heart_rate_readings
    if not readings:
        return None
    return mean([r.heart_rate for r in readings])


def average_sleep_hours(series: HealthSeries) -> float | None:
    if not series.sleep:
        return None
    return mean([s.duration_hours for s in series.sleep])


def average_stress_level(series: HealthSeries) -> float | None:
    if not series.stress:
        return None
    return mean([s.level for s in series.stress])


def days_covered(dates: list[datetime]) -> float:
    """Fractional days between the first and last date, plus one."""
    if not dates:
        return 1.0
    span = (max(dates) - min(dates)).total_seconds() / _SECONDS_PER_DAY
    return max(span + 1.0, 1.0)


def weekly_exercise_minutes(series: HealthSeries) -> float | None:
    """Total logged minutes normalized to a weekly rate; None without exercise."""
    if not series.exercise:
        return None
    total = math.fsum(e.duration_minutes for e in series.exercise)
    return total / days_covered([e.date for e in series.exercise]) * 7


# ---------------------------------------------------------------------------
# Threshold bands
# ---------------------------------------------------------------------------

def blood_pressure_band(systolic: float, diastolic: float) -> str:
    """'alert' | 'warning' | 'normal' | 'elevated' (between normal and warning)."""
    if systolic > 140 or diastolic > 90:
        return "alert"
    if systolic > 130 or diastolic > 85:
        return "warning"
    if systolic <= 120 and diastolic <= 80:
        return "normal"
    return "elevated"


def heart_rate_band(bpm: float) -> str:
    """'high' | 'low' | 'ideal' | 'borderline'."""
    if bpm > 100:
        return "high"
    if bpm < 50:
        return "low"
    if 60 <= bpm <= 80:
        return "ideal"
    return "borderline"


def sleep_band(hours: float) -> str:
    """'short' | 'long' | 'ideal' | 'borderline'."""
    if hours < 6:
        return "short"
    if hours > 10:
        return "long"
    if 7 <= hours <= 9:
        return "ideal"
    return "borderline"


def exercise_band(weekly_minutes: float | None) -> str:
    """'none' | 'low' | 'sufficient'."""
    if weekly_minutes is None:
        return "none"
    if weekly_minutes < WEEKLY_EXERCISE_TARGET:
        return "low"
    return "sufficient"


def stress_band(level: float) -> str:
    """'high' | 'elevated' | 'moderate' | 'low'."""
    if level > 7:
        return "high"
    if level > 5:
        return "elevated"
    if level > 3:
        return "moderate"
    return "low"


# ---------------------------------------------------------------------------
# Component scores
# ---------------------------------------------------------------------------

def _systolic_deduction(systolic: float) -> int:
    if systolic <= 120:
        return 0
    if systolic <= 130:
        return 10
    if systolic <= 140:
        return 30
    if systolic <= 160:
        return 60
    return 80


def _diastolic_deduction(diastolic: float) -> int:
    if diastolic <= 80:
        return 0
    if diastolic <= 85:
        return 10
    if diastolic <= 90:
        return 30
    if diastolic <= 100:
        return 60
    return 80


def score_blood_pressure(average: tuple[float, float] | None) -> int:
    if average is None:
        return NO_DATA_SCORE
    systolic, diastolic = average
    score = 100 - _systolic_deduction(systolic) - _diastolic_deduction(diastolic)
    return max(0, min(100, score))


def score_heart_rate(bpm: float | None) -> int:
    if bpm is None:
        return NO_DATA_SCORE
    if 60 <= bpm <= 80:
        return 100
    if 50 <= bpm <= 90:
        return 80
    if 40 <= bpm <= 100:
        return 60
    if 35 <= bpm <= 110:
        return 40
    return 20


def score_sleep(hours: float | None) -> int:
    if hours is None:
        return NO_DATA_SCORE
    if 7 <= hours <= 9:
        return 100
    if 6 <= hours <= 10:
        return 80
    if 5 <= hours <= 11:
        return 60
    if 4 <= hours <= 12:
        return 40
    return 20


def score_exercise(weekly_minutes: float | None) -> int:
    if weekly_minutes is None:
        return NO_EXERCISE_SCORE
    if weekly_minutes >= 150:
        return 100
    if weekly_minutes >= 100:
        return 80
    if weekly_minutes >= 60:
        return 60
    if weekly_minutes >= 30:
        return 40
    return 20


def score_stress(level: float | None) -> int:
    if level is None:
        return NO_DATA_SCORE
    if level <= 3:
        return 100
    if level <= 5:
        return 70
    if level <= 7:
        return 40
    return 10


def component_scores(series: HealthSeries) -> dict[str, int]:
    """All five component scores for one window, keyed by metric name."""
    return {
        "blood_pressure": score_blood_pressure(average_blood_pressure(series)),
        "heart_rate": score_heart_rate(average_heart_rate(series)),
        "sleep": score_sleep(average_sleep_hours(series)),
        "exercise": score_exercise(weekly_exercise_minutes(series)),
        "stress": score_stress(average_stress_level(series)),
    }
