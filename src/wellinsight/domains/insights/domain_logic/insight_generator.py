"""Insight cards — per-metric rule evaluation over the analysis window.

Each analyzer turns one metric's period average into at most one card
(alert / warning / positive). Metrics without data are skipped, except
exercise, which always reports. Cards are returned stably sorted by
priority: high before medium before low, producer order within a tier.
"""

from __future__ import annotations

import logging
from datetime import datetime

from wellinsight.domains.insights.domain_logic.models import (
    PRIORITY_RANK,
    HealthSeries,
    InsightCard,
)
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

logger = logging.getLogger(__name__)


def _card(
    prefix: str,
    now: datetime,
    *,
    type: str,
    priority: str,
    icon: str,
    title: str,
    description: str,
    action_text: str,
    action_link: str,
    metric: str,
) -> InsightCard:
    return InsightCard(
        id=f"{prefix}-{int(now.timestamp() * 1000)}",
        type=type,
        priority=priority,
        icon=icon,
        title=title,
        description=description,
        action_text=action_text,
        action_link=action_link,
        related_metrics=(metric,),
        generated_at=now,
    )


def blood_pressure_insights(series: HealthSeries, now: datetime) -> list[InsightCard]:
    average = average_blood_pressure(series)
    if average is None:
        return []
    systolic, diastolic = average
    reading = f"{round_half_up(systolic)}/{round_half_up(diastolic)} mmHg"
    band = blood_pressure_band(systolic, diastolic)

    if band == "alert":
        return [_card(
            "bp-alert", now,
            type="alert", priority="high", icon="alert",
            title="High blood pressure",
            description=(
                f"Your average blood pressure is {reading}, above the 140/90 range. "
                "Consider talking to a healthcare professional."
            ),
            action_text="Review medical records",
            action_link="/health/medical-records",
            metric="blood_pressure",
        )]
    if band == "warning":
        return [_card(
            "bp-warning", now,
            type="warning", priority="medium", icon="caution",
            title="Blood pressure needs attention",
            description=(
                f"Your average blood pressure is {reading}, slightly above normal. "
                "Cutting back on salt and regular aerobic exercise can help."
            ),
            action_text="See health tips",
            action_link="/health/tips",
            metric="blood_pressure",
        )]
    if band == "normal":
        return [_card(
            "bp-positive", now,
            type="positive", priority="low", icon="check",
            title="Healthy blood pressure",
            description=f"Your average blood pressure of {reading} is in the normal range.",
            action_text="View trends",
            action_link="/health/trends",
            metric="blood_pressure",
        )]
    return []


def heart_rate_insights(series: HealthSeries, now: datetime) -> list[InsightCard]:
    bpm = average_heart_rate(series)
    if bpm is None:
        return []
    rate = f"{round_half_up(bpm)} bpm"
    band = heart_rate_band(bpm)

    if band == "high":
        return [_card(
            "hr-alert", now,
            type="alert", priority="high", icon="heart",
            title="Elevated resting heart rate",
            description=(
                f"Your average heart rate is {rate}, above 100 bpm. "
                "If this persists, check in with a healthcare professional."
            ),
            action_text="Check vital signs",
            action_link="/health/vital-signs",
            metric="heart_rate",
        )]
    if band == "low":
        return [_card(
            "hr-alert-low", now,
            type="alert", priority="high", icon="heart",
            title="Low resting heart rate",
            description=(
                f"Your average heart rate is {rate}, below 50 bpm. "
                "Unless you train for endurance, consider a medical check."
            ),
            action_text="Check vital signs",
            action_link="/health/vital-signs",
            metric="heart_rate",
        )]
    if band == "ideal":
        return [_card(
            "hr-positive", now,
            type="positive", priority="low", icon="heart",
            title="Healthy heart rate",
            description=f"Your average heart rate of {rate} is in the ideal 60-80 bpm range.",
            action_text="View trends",
            action_link="/health/trends",
            metric="heart_rate",
        )]
    return []


def sleep_insights(series: HealthSeries, now: datetime) -> list[InsightCard]:
    hours = average_sleep_hours(series)
    if hours is None:
        return []
    band = sleep_band(hours)

    if band == "short":
        return [_card(
            "sleep-warning", now,
            type="warning", priority="medium", icon="sleep",
            title="Not enough sleep",
            description=(
                f"You average {hours:.1f} hours of sleep, below the recommended 7-9 hours."
            ),
            action_text="Sleep tips",
            action_link="/health/tips",
            metric="sleep",
        )]
    if band == "long":
        return [_card(
            "sleep-warning-excess", now,
            type="warning", priority="medium", icon="sleep",
            title="Sleeping more than usual",
            description=(
                f"You average {hours:.1f} hours of sleep, above the recommended 7-9 hours. "
                "Oversleeping can leave you feeling tired."
            ),
            action_text="Check sleep pattern",
            action_link="/health/sleep",
            metric="sleep",
        )]
    if band == "ideal":
        return [_card(
            "sleep-positive", now,
            type="positive", priority="low", icon="moon",
            title="Healthy sleep pattern",
            description=f"You average {hours:.1f} hours of sleep, right in the ideal range.",
            action_text="View sleep log",
            action_link="/health/sleep",
            metric="sleep",
        )]
    return []


def exercise_insights(series: HealthSeries, now: datetime) -> list[InsightCard]:
    weekly = weekly_exercise_minutes(series)
    band = exercise_band(weekly)

    if band == "none":
        return [_card(
            "exercise-warning-none", now,
            type="warning", priority="medium", icon="run",
            title="No exercise logged",
            description=(
                "There are no exercise records in this period. "
                "Aim for 150 minutes of moderate activity per week."
            ),
            action_text="Plan exercise",
            action_link="/health/exercise",
            metric="exercise",
        )]
    if band == "low":
        return [_card(
            "exercise-warning", now,
            type="warning", priority="medium", icon="run",
            title="More activity needed",
            description=(
                f"You exercise about {round_half_up(weekly)} minutes per week, "
                "short of the 150-minute target."
            ),
            action_text="Plan exercise",
            action_link="/health/exercise",
            metric="exercise",
        )]
    return [_card(
        "exercise-positive", now,
        type="positive", priority="low", icon="strength",
        title="Staying active",
        description=(
            f"You exercise about {round_half_up(weekly)} minutes per week, "
            "meeting the 150-minute target."
        ),
        action_text="View exercise log",
        action_link="/health/exercise",
        metric="exercise",
    )]


def stress_insights(series: HealthSeries, now: datetime) -> list[InsightCard]:
    level = average_stress_level(series)
    if level is None:
        return []
    band = stress_band(level)

    if band == "high":
        return [_card(
            "stress-alert", now,
            type="alert", priority="high", icon="stress",
            title="High stress level",
            description=(
                f"Your average stress level is {level:.1f}/10. "
                "Meditation, yoga or talking to a professional may help."
            ),
            action_text="Stress management tips",
            action_link="/health/tips",
            metric="stress",
        )]
    if band == "elevated":
        return [_card(
            "stress-warning", now,
            type="warning", priority="medium", icon="stress",
            title="Stress is building up",
            description=(
                f"Your average stress level is {level:.1f}/10. "
                "Make room for rest and relaxing activities."
            ),
            action_text="Stress management tips",
            action_link="/health/tips",
            metric="stress",
        )]
    return [_card(
        "stress-positive", now,
        type="positive", priority="low", icon="smile",
        title="Stress under control",
        description=f"Your average stress level of {level:.1f}/10 is healthy.",
        action_text="View stress log",
        action_link="/health/stress",
        metric="stress",
    )]


def sort_by_priority(cards: list[InsightCard]) -> list[InsightCard]:
    """Stable sort: high, medium, low; ties keep producer order."""
    return sorted(cards, key=lambda card: PRIORITY_RANK.get(card.priority, len(PRIORITY_RANK)))


def generate_insights(series: HealthSeries, now: datetime) -> list[InsightCard]:
    cards: list[InsightCard] = []
    cards.extend(blood_pressure_insights(series, now))
    cards.extend(heart_rate_insights(series, now))
    cards.extend(sleep_insights(series, now))
    cards.extend(exercise_insights(series, now))
    cards.extend(stress_insights(series, now))
    logger.debug("Generated %d insight cards", len(cards))
    return sort_by_priority(cards)
