"""Tests for the recommendation engine."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from wellinsight.domains.insights.domain_logic.insight_generator import generate_insights
from wellinsight.domains.insights.domain_logic.models import (
    ExerciseSample,
    HealthSeries,
    SleepSample,
    StressSample,
    VitalSignSample,
)
from wellinsight.domains.insights.domain_logic.recommendations import (
    MAX_RECOMMENDATIONS,
    generate_recommendations,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _recommend(series: HealthSeries):
    return generate_recommendations(series, generate_insights(series, NOW))


def _prefixes(recs) -> list[str]:
    return [rec.id.rsplit("-", 1)[0] for rec in recs]


class TestGenerateRecommendations:
    def test_no_data(self):
        recs = _recommend(HealthSeries())
        assert _prefixes(recs) == [
            "rec-sleep-track", "rec-exercise-start", "rec-hydration", "rec-nutrition",
        ]
        assert [r.priority for r in recs] == [1, 2, 3, 4]

    def test_healthy_user_gets_minimum(self):
        dates = [NOW - timedelta(days=d) for d in range(7)]
        series = HealthSeries(
            vital_signs=tuple(VitalSignSample(d, 115, 75, 65) for d in dates),
            sleep=tuple(SleepSample(d, 8) for d in dates),
            exercise=tuple(ExerciseSample(d, "Walking", 50) for d in dates),
            stress=tuple(StressSample(d, 2) for d in dates),
        )
        recs = _recommend(series)
        assert _prefixes(recs) == ["rec-sleep-track", "rec-hydration", "rec-nutrition"]

    def test_unhealthy_user_targets_alerts(self):
        series = HealthSeries(
            vital_signs=(VitalSignSample(NOW, 150, 95, 110),),
            sleep=(SleepSample(NOW, 4),),
            stress=(StressSample(NOW, 9),),
        )
        recs = _recommend(series)
        assert _prefixes(recs) == [
            "rec-bp", "rec-hr", "rec-stress", "rec-sleep", "rec-exercise-start",
        ]
        assert recs[0].category == "nutrition"
        assert recs[1].category == "stress"

    def test_low_exercise_suggests_increase(self):
        series = HealthSeries(
            sleep=(SleepSample(NOW, 8),),
            exercise=(ExerciseSample(NOW, "Walking", 10),),
        )
        recs = _recommend(series)
        assert "rec-exercise-increase" in _prefixes(recs)
        assert "70 minutes" in recs[_prefixes(recs).index("rec-exercise-increase")].description

    def test_one_targeted_item_per_metric(self):
        series = HealthSeries(stress=(StressSample(NOW, 9),))
        cards = generate_insights(series, NOW)
        recs = generate_recommendations(series, cards + cards)
        assert _prefixes(recs).count("rec-stress") == 1

    def test_medium_insights_are_not_targeted(self):
        series = HealthSeries(vital_signs=(VitalSignSample(NOW, 135, 84),))
        assert "rec-bp" not in _prefixes(_recommend(series))

    def test_bounds_and_order(self):
        for series in (
            HealthSeries(),
            HealthSeries(vital_signs=(VitalSignSample(NOW, 150, 95, 110),),
                         stress=(StressSample(NOW, 9),)),
        ):
            recs = _recommend(series)
            assert 3 <= len(recs) <= MAX_RECOMMENDATIONS
            priorities = [r.priority for r in recs]
            assert priorities == sorted(priorities)
            assert len({r.id for r in recs}) == len(recs)
