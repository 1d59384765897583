"""Composite health score: weighted component scores with prior-period comparison."""

from __future__ import annotations

import math

from wellinsight.domains.insights.domain_logic.models import (
    METRICS,
    SCORE_WEIGHTS,
    ComponentScore,
    HealthData,
    HealthScore,
    HealthSeries,
)
from wellinsight.domains.insights.domain_logic.scorers import (
    component_scores,
    round_half_up,
)

# |change| at or below this many points reports as "stable".
CHANGE_HYSTERESIS = 2

_CATEGORY_LABELS = {
    "excellent": "Excellent",
    "good": "Good",
    "fair": "Fair",
    "poor": "Needs attention",
}


def categorize(score: int) -> str:
    """Map a rounded total score to its category (81 / 61 / 41 boundaries)."""
    if score >= 81:
        return "excellent"
    if score >= 61:
        return "good"
    if score >= 41:
        return "fair"
    return "poor"


def category_label(category: str) -> str:
    return _CATEGORY_LABELS[category]


def change_direction(change: float, threshold: float = CHANGE_HYSTERESIS) -> str:
    if change > threshold:
        return "up"
    if change < -threshold:
        return "down"
    return "stable"


def weighted_total(scores: dict[str, int]) -> int:
    """Weighted sum of component scores, rounded half-up and clamped to [0, 100]."""
    total = math.fsum(scores[m] * SCORE_WEIGHTS[m] for m in METRICS)
    return max(0, min(100, round_half_up(total)))


def series_score(series: HealthSeries) -> int:
    return weighted_total(component_scores(series))


def calculate_health_score(data: HealthData) -> HealthScore:
    """Score the current window and compare it with the preceding window.

    The preceding window is scored with the same rules; a window without
    data scores the no-data defaults.
    """
    current = component_scores(data.current)
    score = weighted_total(current)
    previous_score = series_score(data.previous)
    change = score - previous_score
    category = categorize(score)

    return HealthScore(
        score=score,
        category=category,
        category_label=category_label(category),
        previous_score=previous_score,
        change=change,
        change_direction=change_direction(change),
        components={
            m: ComponentScore(score=current[m], weight=SCORE_WEIGHTS[m]) for m in METRICS
        },
    )
