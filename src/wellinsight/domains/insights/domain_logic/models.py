"""Insights domain models: normalized health series and the composed response.

Input side: ``HealthSeries`` / ``HealthData`` snapshots built by the fetcher.
Output side: ``AIInsightsResponse`` and its parts, serializable to a
versioned JSON document for the insights cache.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

METRICS = ["blood_pressure", "heart_rate", "sleep", "exercise", "stress"]

# Component weights for the composite health score. Must sum to 1.0.
SCORE_WEIGHTS = {
    "blood_pressure": 0.25,
    "heart_rate": 0.20,
    "sleep": 0.25,
    "exercise": 0.20,
    "stress": 0.10,
}

# Bump when the serialized AIInsightsResponse shape changes.
CACHE_SCHEMA_VERSION = 1

INSIGHT_TYPES = ("positive", "warning", "alert", "info")
PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


class CacheSchemaError(Exception):
    """Raised when a cached insights document has an unknown or broken shape."""


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# ---------------------------------------------------------------------------
# Normalized input samples
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VitalSignSample:
    recorded_at: datetime
    systolic_bp: float | None = None
    diastolic_bp: float | None = None
    heart_rate: float | None = None

    @property
    def has_blood_pressure(self) -> bool:
        return self.systolic_bp is not None and self.diastolic_bp is not None


@dataclass(frozen=True)
class SleepSample:
    date: datetime
    duration_hours: float
    quality: float | None = None


@dataclass(frozen=True)
class ExerciseSample:
    date: datetime
    type: str
    duration_minutes: float
    intensity: str | None = None


@dataclass(frozen=True)
class StressSample:
    date: datetime
    level: float                     # 0-10


@dataclass(frozen=True)
class HealthSeries:
    """Time-ordered records for one user over one window.

    ``journal_entries`` holds the timestamps of the raw journal records the
    sleep / exercise / stress samples were extracted from.
    """

    vital_signs: tuple[VitalSignSample, ...] = ()
    journal_entries: tuple[datetime, ...] = ()
    sleep: tuple[SleepSample, ...] = ()
    exercise: tuple[ExerciseSample, ...] = ()
    stress: tuple[StressSample, ...] = ()

    def data_point_count(self) -> int:
        """Total records across the five series."""
        return (
            len(self.vital_signs)
            + len(self.journal_entries)
            + len(self.sleep)
            + len(self.exercise)
            + len(self.stress)
        )

    def since(self, cutoff: datetime) -> HealthSeries:
        """Sub-series with every record at or after ``cutoff``."""
        return HealthSeries(
            vital_signs=tuple(v for v in self.vital_signs if v.recorded_at >= cutoff),
            journal_entries=tuple(t for t in self.journal_entries if t >= cutoff),
            sleep=tuple(s for s in self.sleep if s.date >= cutoff),
            exercise=tuple(e for e in self.exercise if e.date >= cutoff),
            stress=tuple(s for s in self.stress if s.date >= cutoff),
        )

    @property
    def blood_pressure_readings(self) -> tuple[VitalSignSample, ...]:
        return tuple(v for v in self.vital_signs if v.has_blood_pressure)

    @property
    def heart_rate_readings(self) -> tuple[VitalSignSample, ...]:
        return tuple(v for v in self.vital_signs if v.heart_rate is not None)


@dataclass(frozen=True)
class HealthData:
    """Immutable snapshot shared by every computation in one insights run.

    ``current`` covers ``[window_end - period_days, window_end]``;
    ``previous`` covers the equal-length window immediately before it.
    """

    current: HealthSeries
    previous: HealthSeries
    period_days: int
    window_end: datetime

    def data_point_count(self) -> int:
        return self.current.data_point_count()


# ---------------------------------------------------------------------------
# Insight cards
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InsightCard:
    id: str
    type: str                        # positive | warning | alert | info
    priority: str                    # high | medium | low
    title: str
    description: str
    action_text: str
    action_link: str
    related_metrics: tuple[str, ...]
    generated_at: datetime
    icon: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "priority": self.priority,
            "icon": self.icon,
            "title": self.title,
            "description": self.description,
            "action_text": self.action_text,
            "action_link": self.action_link,
            "related_metrics": list(self.related_metrics),
            "generated_at": _iso(self.generated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InsightCard:
        return cls(
            id=data["id"],
            type=data["type"],
            priority=data["priority"],
            icon=data.get("icon", ""),
            title=data["title"],
            description=data["description"],
            action_text=data["action_text"],
            action_link=data["action_link"],
            related_metrics=tuple(data.get("related_metrics", [])),
            generated_at=_parse_dt(data["generated_at"]),
        )


# ---------------------------------------------------------------------------
# Health score
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ComponentScore:
    score: int
    weight: float


@dataclass(frozen=True)
class HealthScore:
    score: int                       # 0-100
    category: str                    # excellent | good | fair | poor
    category_label: str
    previous_score: int
    change: int
    change_direction: str            # up | down | stable
    components: dict[str, ComponentScore] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "category": self.category,
            "category_label": self.category_label,
            "previous_score": self.previous_score,
            "change": self.change,
            "change_direction": self.change_direction,
            "components": {
                name: {"score": c.score, "weight": c.weight}
                for name, c in self.components.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HealthScore:
        return cls(
            score=data["score"],
            category=data["category"],
            category_label=data["category_label"],
            previous_score=data["previous_score"],
            change=data["change"],
            change_direction=data["change_direction"],
            components={
                name: ComponentScore(score=c["score"], weight=c["weight"])
                for name, c in data.get("components", {}).items()
            },
        )


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DataPoint:
    date: str                        # ISO date, YYYY-MM-DD
    value: float


@dataclass(frozen=True)
class TrendData:
    metric: str
    label: str
    current_value: str
    previous_value: str
    change: float                    # percent
    change_direction: str
    is_improving: bool
    data_points: tuple[DataPoint, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "label": self.label,
            "current_value": self.current_value,
            "previous_value": self.previous_value,
            "change": self.change,
            "change_direction": self.change_direction,
            "is_improving": self.is_improving,
            "data_points": [{"date": p.date, "value": p.value} for p in self.data_points],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrendData:
        return cls(
            metric=data["metric"],
            label=data["label"],
            current_value=data["current_value"],
            previous_value=data["previous_value"],
            change=data["change"],
            change_direction=data["change_direction"],
            is_improving=data["is_improving"],
            data_points=tuple(
                DataPoint(date=p["date"], value=p["value"])
                for p in data.get("data_points", [])
            ),
        )


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Recommendation:
    id: str
    title: str
    description: str
    category: str                    # nutrition | stress | sleep | exercise | hydration
    priority: int                    # ascending = more important
    icon: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "icon": self.icon,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Recommendation:
        return cls(
            id=data["id"],
            icon=data.get("icon", ""),
            title=data["title"],
            description=data["description"],
            category=data["category"],
            priority=data["priority"],
        )


# ---------------------------------------------------------------------------
# Summary, quick stats, metadata
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AISummary:
    text: str
    period: str
    last_updated: datetime
    confidence: float                # 0-1
    positive_findings: tuple[str, ...] = ()
    concerning_findings: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "period": self.period,
            "last_updated": _iso(self.last_updated),
            "confidence": self.confidence,
            "key_findings": {
                "positive": list(self.positive_findings),
                "concerning": list(self.concerning_findings),
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AISummary:
        findings = data.get("key_findings", {})
        return cls(
            text=data["text"],
            period=data["period"],
            last_updated=_parse_dt(data["last_updated"]),
            confidence=data["confidence"],
            positive_findings=tuple(findings.get("positive", [])),
            concerning_findings=tuple(findings.get("concerning", [])),
        )


@dataclass(frozen=True)
class QuickStat:
    value: Any                       # str for blood pressure, number otherwise
    unit: str


@dataclass(frozen=True)
class QuickStats:
    blood_pressure: QuickStat
    heart_rate: QuickStat
    sleep: QuickStat
    exercise: QuickStat

    def to_dict(self) -> dict[str, Any]:
        return {
            name: {"value": stat.value, "unit": stat.unit}
            for name, stat in (
                ("blood_pressure", self.blood_pressure),
                ("heart_rate", self.heart_rate),
                ("sleep", self.sleep),
                ("exercise", self.exercise),
            )
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuickStats:
        return cls(**{
            name: QuickStat(value=data[name]["value"], unit=data[name]["unit"])
            for name in ("blood_pressure", "heart_rate", "sleep", "exercise")
        })


@dataclass(frozen=True)
class InsightsMetadata:
    user_id: str
    generated_at: datetime
    data_points_analyzed: int
    analysis_period_days: int
    cache_expiry: datetime | None    # None for responses that are never cached

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "generated_at": _iso(self.generated_at),
            "data_points_analyzed": self.data_points_analyzed,
            "analysis_period_days": self.analysis_period_days,
            "cache_expiry": _iso(self.cache_expiry),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InsightsMetadata:
        return cls(
            user_id=data["user_id"],
            generated_at=_parse_dt(data["generated_at"]),
            data_points_analyzed=data["data_points_analyzed"],
            analysis_period_days=data["analysis_period_days"],
            cache_expiry=_parse_dt(data.get("cache_expiry")),
        )


# ---------------------------------------------------------------------------
# Composed response
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AIInsightsResponse:
    summary: AISummary
    insights: tuple[InsightCard, ...]
    health_score: HealthScore
    quick_stats: QuickStats
    recommendations: tuple[Recommendation, ...]
    trends: tuple[TrendData, ...]
    metadata: InsightsMetadata

    def to_dict(self) -> dict[str, Any]:
        """Versioned JSON document, as stored in the insights cache."""
        return {
            "schema_version": CACHE_SCHEMA_VERSION,
            "summary": self.summary.to_dict(),
            "insights": [card.to_dict() for card in self.insights],
            "health_score": self.health_score.to_dict(),
            "quick_stats": self.quick_stats.to_dict(),
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "trends": [trend.to_dict() for trend in self.trends],
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AIInsightsResponse:
        """Rebuild a response from a cached document.

        Raises:
            CacheSchemaError: Version mismatch or a missing / malformed field.
        """
        if not isinstance(data, dict):
            raise CacheSchemaError("Cached insights document is not an object")
        version = data.get("schema_version")
        if version != CACHE_SCHEMA_VERSION:
            raise CacheSchemaError(
                f"Cached insights schema version {version!r} != {CACHE_SCHEMA_VERSION}"
            )
        try:
            return cls(
                summary=AISummary.from_dict(data["summary"]),
                insights=tuple(InsightCard.from_dict(c) for c in data["insights"]),
                health_score=HealthScore.from_dict(data["health_score"]),
                quick_stats=QuickStats.from_dict(data["quick_stats"]),
                recommendations=tuple(
                    Recommendation.from_dict(r) for r in data["recommendations"]
                ),
                trends=tuple(TrendData.from_dict(t) for t in data["trends"]),
                metadata=InsightsMetadata.from_dict(data["metadata"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise CacheSchemaError(f"Malformed cached insights document: {exc}") from exc
