"""Recommendation engine — 3 to 5 ranked action items from insights and data gaps.

Priority is an ascending integer: 1 is the most important. Items are emitted
in this order, each taking the next priority:

1. one targeted item per metric (blood pressure, heart rate, stress) named
   by a high-priority insight,
2. exactly one sleep item,
3. an exercise item unless weekly minutes already meet the target,
4. hydration and nutrition fillers while fewer than five items exist.
"""

from __future__ import annotations

from wellinsight.domains.insights.domain_logic.models import (
    HealthSeries,
    InsightCard,
    Recommendation,
)
from wellinsight.domains.insights.domain_logic.scorers import (
    WEEKLY_EXERCISE_TARGET,
    average_sleep_hours,
    round_half_up,
    weekly_exercise_minutes,
)

MAX_RECOMMENDATIONS = 5

# metric -> (id prefix, icon, title, description, category)
_TARGETED = {
    "blood_pressure": (
        "rec-bp",
        "stethoscope",
        "Manage your blood pressure",
        "Keep a low-sodium diet and do regular aerobic exercise. "
        "Measure your blood pressure at the same time every day to track changes.",
        "nutrition",
    ),
    "heart_rate": (
        "rec-hr",
        "heart",
        "Steady your heart rate",
        "Cut back on caffeine and drink enough water. "
        "Try meditation or deep breathing to manage stress.",
        "stress",
    ),
    "stress": (
        "rec-stress",
        "meditation",
        "Manage stress",
        "Practice 10-15 minutes of meditation or yoga daily, "
        "and make time for rest and hobbies.",
        "stress",
    ),
}


class _Builder:
    def __init__(self) -> None:
        self.items: list[Recommendation] = []
        self._next = 1

    def add(self, prefix: str, icon: str, title: str, description: str, category: str) -> None:
        self.items.append(Recommendation(
            id=f"{prefix}-{self._next}",
            icon=icon,
            title=title,
            description=description,
            category=category,
            priority=self._next,
        ))
        self._next += 1


def generate_recommendations(
    series: HealthSeries,
    insights: list[InsightCard],
) -> list[Recommendation]:
    builder = _Builder()

    covered: set[str] = set()
    for card in insights:
        if card.priority != "high":
            continue
        for metric in ("blood_pressure", "heart_rate", "stress"):
            if metric in card.related_metrics and metric not in covered:
                covered.add(metric)
                builder.add(*_TARGETED[metric])

    # TODO: skip the sleep item when sleep is tracked and already adequate.
    hours = average_sleep_hours(series)
    if hours is not None and hours < 7:
        builder.add(
            "rec-sleep", "moon", "Improve your sleep",
            "Go to bed and wake up at the same time every day. Avoid screens for an "
            "hour before bed and keep your bedroom comfortable.",
            "sleep",
        )
    else:
        builder.add(
            "rec-sleep-track", "chart", "Track your sleep",
            "Log how long you sleep every night to understand your sleep pattern. "
            "Regular sleep is the foundation of good health.",
            "sleep",
        )

    weekly = weekly_exercise_minutes(series)
    if weekly is None:
        builder.add(
            "rec-exercise-start", "run", "Start exercising",
            "Begin with a 30-minute walk a day and build up to 150 minutes of "
            "moderate activity over five days a week.",
            "exercise",
        )
    elif weekly < WEEKLY_EXERCISE_TARGET:
        builder.add(
            "rec-exercise-increase", "strength", "Exercise a little more",
            f"You currently exercise about {round_half_up(weekly)} minutes a week. "
            "Add 10 minutes a day to reach the 150-minute goal; taking the stairs "
            "and stretching count too.",
            "exercise",
        )

    if len(builder.items) < MAX_RECOMMENDATIONS:
        builder.add(
            "rec-hydration", "water", "Stay hydrated",
            "Drink about 8 glasses (2 liters) of water a day, starting with a glass "
            "when you wake up.",
            "hydration",
        )
    if len(builder.items) < MAX_RECOMMENDATIONS:
        builder.add(
            "rec-nutrition", "salad", "Eat a balanced diet",
            "Eat a variety of vegetables and fruit, cut back on processed food and "
            "sugar, and get enough whole grains and protein.",
            "nutrition",
        )

    return sorted(builder.items, key=lambda rec: rec.priority)[:MAX_RECOMMENDATIONS]
