"""Templated narrative summary over the most recent days of the window.

Findings reuse the scorer bands, so the summary never contradicts the
insight cards built from the same averages.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from wellinsight.domains.insights.domain_logic.models import AISummary, HealthSeries
from wellinsight.domains.insights.domain_logic.scorers import (
    average_blood_pressure,
    average_heart_rate,
    average_sleep_hours,
    average_stress_level,
    blood_pressure_band,
    exercise_band,
    heart_rate_band,
    round_half_up,
    sleep_band,
    stress_band,
    weekly_exercise_minutes,
)

MAX_ITEMS_PER_BUCKET = 2


def classify_findings(series: HealthSeries) -> tuple[list[str], list[str]]:
    """Return (positive, concerning) findings for the five metrics."""
    positive: list[str] = []
    concerning: list[str] = []

    bp = average_blood_pressure(series)
    if bp is not None:
        systolic, diastolic = bp
        reading = f"{round_half_up(systolic)}/{round_half_up(diastolic)} mmHg"
        band = blood_pressure_band(systolic, diastolic)
        if band == "normal":
            positive.append(f"blood pressure is in the normal range ({reading})")
        elif band == "alert":
            concerning.append(
                f"blood pressure is high ({reading}), consider consulting a professional"
            )
        else:
            concerning.append(f"blood pressure is slightly high ({reading})")

    hr = average_heart_rate(series)
    if hr is not None:
        band = heart_rate_band(hr)
        if band == "ideal":
            positive.append(f"heart rate is healthy ({round_half_up(hr)} bpm)")
        elif band in ("high", "low"):
            concerning.append(f"heart rate is outside the normal range ({round_half_up(hr)} bpm)")

    hours = average_sleep_hours(series)
    if hours is None:
        concerning.append("no sleep data was recorded")
    else:
        band = sleep_band(hours)
        if band == "ideal":
            positive.append(f"you are getting enough sleep ({hours:.1f} h on average)")
        elif band == "short":
            concerning.append(f"you are not sleeping enough ({hours:.1f} h on average)")
        elif band == "long":
            concerning.append(f"you are sleeping too much ({hours:.1f} h on average)")

    weekly = weekly_exercise_minutes(series)
    band = exercise_band(weekly)
    if band == "none":
        concerning.append("there are no exercise records")
    elif band == "sufficient":
        positive.append(f"you exercise regularly ({round_half_up(weekly)} min per week)")
    else:
        concerning.append(f"you need more exercise ({round_half_up(weekly)} min per week)")

    level = average_stress_level(series)
    if level is not None:
        band = stress_band(level)
        if band == "low":
            positive.append(f"you are managing stress well (level {level:.1f}/10)")
        elif band == "high":
            concerning.append(f"your stress level is high (level {level:.1f}/10)")
        elif band == "elevated":
            concerning.append(f"stress needs managing (level {level:.1f}/10)")

    return positive, concerning


def overall_status(positive_count: int, concerning_count: int) -> str:
    if positive_count > 2 * concerning_count:
        return "very good"
    if positive_count > concerning_count:
        return "good"
    if positive_count == concerning_count:
        return "moderate"
    return "in need of attention"


def confidence_for(data_points: int) -> float:
    """Step function of the analysed data point count."""
    if data_points >= 20:
        return 0.9
    if data_points >= 10:
        return 0.7
    if data_points >= 5:
        return 0.5
    return 0.3


def compose_text(window_days: int, positive: list[str], concerning: list[str]) -> str:
    status = overall_status(len(positive), len(concerning))
    parts = [
        f"Based on your health data from the last {window_days} days, "
        f"your overall health is {status}."
    ]
    if positive:
        parts.append(f"On the positive side, {', '.join(positive[:MAX_ITEMS_PER_BUCKET])}.")
    if concerning:
        parts.append(
            f"Areas to improve: {', '.join(concerning[:MAX_ITEMS_PER_BUCKET])}."
        )
    parts.append("Keep up consistent habits to maintain your health.")
    return " ".join(parts)


def generate_summary(
    series: HealthSeries,
    now: datetime,
    *,
    window_days: int = 7,
    data_points: int | None = None,
) -> AISummary:
    """Summarize the last ``window_days`` of ``series``.

    Args:
        series: The full current analysis window.
        window_days: How many recent days the findings cover.
        data_points: Count driving confidence; defaults to the series count.
    """
    recent = series.since(now - timedelta(days=window_days))
    positive, concerning = classify_findings(recent)
    count = series.data_point_count() if data_points is None else data_points

    return AISummary(
        text=compose_text(window_days, positive, concerning),
        period=f"Last {window_days} days",
        last_updated=now,
        confidence=confidence_for(count),
        positive_findings=tuple(positive),
        concerning_findings=tuple(concerning),
    )
