"""
Capacity Models - Result structures of the capacity/bottleneck analysis

This module defines the value objects produced by the capacity analyzer,
bottleneck detector and forecast engine, and the CapacityReport that
bundles them.

Key Features:
    - AnalysisMode enum (basic / detailed)
    - CapacityProfile with exact per-station and aggregate capacity-hours
    - BottleneckRecord with severity tiers and ranked station actions
    - Forecast days, alerts and recommendations tagged for reporting
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from models.errors import ValidationError


UTILIZATION_LIMIT = 0.85   # Safe share of available capacity


class AnalysisMode(str, Enum):
    """Depth of a capacity analysis."""
    BASIC = "basic"
    DETAILED = "detailed"

    @classmethod
    def parse(cls, value: Any) -> 'AnalysisMode':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as exc:
            raise ValidationError(
                f"mode must be one of {[m.value for m in cls]}, got {value!r}"
            ) from exc


class BottleneckSeverity(str, Enum):
    CRITICAL = "critical"
    POTENTIAL = "potential"
    NONE = "none"

    @classmethod
    def from_score(cls, score: float) -> 'BottleneckSeverity':
        """critical >= 70, potential 40-69, none below 40."""
        if score >= 70:
            return cls.CRITICAL
        if score >= 40:
            return cls.POTENTIAL
        return cls.NONE


@dataclass(frozen=True)
class StationCapacity:
    """Capacity-hours of one workstation over the horizon."""
    workstation_id: str
    name: str
    base_hours: float          # capacity x 24h x days x efficiency
    available_hours: float     # base minus maintenance deduction
    utilization_limit: float   # 85% of available
    maintenance_ratio: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workstation_id": self.workstation_id,
            "name": self.name,
            "base_hours": round(self.base_hours, 2),
            "available_hours": round(self.available_hours, 2),
            "utilization_limit": round(self.utilization_limit, 2),
            "maintenance_ratio": round(self.maintenance_ratio, 4),
        }


@dataclass(frozen=True)
class CapacityProfile:
    """
    Per-station and aggregate capacity over a planning horizon.

    Aggregates are computed by from_stations as plain sums of the station
    values, so the profile is additive by construction.
    """
    horizon_days: int
    stations: Tuple[StationCapacity, ...] = ()
    total_hours: float = 0.0
    available_hours: float = 0.0
    utilization_limit: float = 0.0
    average_efficiency: float = 0.0

    @classmethod
    def from_stations(cls, horizon_days: int, stations: List[StationCapacity],
                      average_efficiency: float = 0.0) -> 'CapacityProfile':
        return cls(
            horizon_days=horizon_days,
            stations=tuple(stations),
            total_hours=sum(s.base_hours for s in stations),
            available_hours=sum(s.available_hours for s in stations),
            utilization_limit=sum(s.utilization_limit for s in stations),
            average_efficiency=average_efficiency,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "horizon_days": self.horizon_days,
            "total_hours": round(self.total_hours, 2),
            "available_hours": round(self.available_hours, 2),
            "utilization_limit": round(self.utilization_limit, 2),
            "average_efficiency": round(self.average_efficiency, 4),
            "by_station": [s.to_dict() for s in self.stations],
        }


@dataclass(frozen=True)
class LoadRecord:
    """Current and projected load of one workstation."""
    workstation_id: str
    name: str
    utilization: float                 # Fraction, may exceed 1 when a schedule overbooks
    risk_level: str                    # critical | high | medium | low
    trend: str                         # increasing | decreasing | stable
    projected_loads: Tuple[float, ...] = ()   # Day 1..N load fractions

    @property
    def utilization_pct(self) -> float:
        return self.utilization * 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workstation_id": self.workstation_id,
            "name": self.name,
            "utilization": round(self.utilization_pct, 2),
            "risk_level": self.risk_level,
            "trend": self.trend,
            "projected_loads": [round(v, 4) for v in self.projected_loads],
        }


@dataclass(frozen=True)
class LoadDistribution:
    """Facility-wide load summary."""
    records: Tuple[LoadRecord, ...] = ()
    average_utilization: float = 0.0   # Percent
    peak_utilization: float = 0.0      # Percent
    balance_index: float = 100.0       # 100 - 2 x std-dev of utilization %
    overloaded_stations: int = 0       # Above 80%
    critical_stations: int = 0         # Above 90%
    overload_risk_score: float = 0.0   # [0, 100]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stations": [r.to_dict() for r in self.records],
            "average_utilization": round(self.average_utilization, 2),
            "peak_utilization": round(self.peak_utilization, 2),
            "balance_index": round(self.balance_index, 2),
            "projected_overload": {
                "risk_score": round(self.overload_risk_score, 2),
                "overloaded_stations": self.overloaded_stations,
                "critical_stations": self.critical_stations,
            },
        }


@dataclass(frozen=True)
class EfficiencyRecord:
    workstation_id: str
    efficiency: float                  # Percent
    category: str                      # excellent | good | average | poor
    improvement_potential: float       # Percentage points up to 98

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workstation_id": self.workstation_id,
            "efficiency": round(self.efficiency, 2),
            "category": self.category,
            "improvement_potential": round(self.improvement_potential, 2),
        }


@dataclass(frozen=True)
class EfficiencyAnalysis:
    records: Tuple[EfficiencyRecord, ...] = ()
    overall: float = 0.0
    distribution: Dict[str, int] = field(default_factory=dict)
    benchmarks: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": round(self.overall, 2),
            "by_station": [r.to_dict() for r in self.records],
            "distribution": dict(self.distribution),
            "benchmarks": {k: round(v, 2) for k, v in self.benchmarks.items()},
        }


@dataclass(frozen=True)
class BottleneckRecord:
    """
    Bottleneck assessment of one workstation.

    score = 0.4 U + 0.3 E + 0.2 S + 0.1 M, each sub-score in [0, 100].
    """
    workstation_id: str
    name: str
    score: float
    severity: BottleneckSeverity
    utilization: float                 # Fraction
    efficiency: float
    skill_coverage: float              # Fraction in [0, 1]
    maintenance_ratio: float
    sub_scores: Dict[str, float] = field(default_factory=dict)
    missing_skills: Tuple[str, ...] = ()
    factors: Tuple[str, ...] = ()      # capacity | efficiency | skills | maintenance
    actions: Tuple[str, ...] = ()      # Ranked recommended actions

    @property
    def skill_flagged(self) -> bool:
        return self.skill_coverage < 0.8

    @property
    def flagged(self) -> bool:
        return self.severity != BottleneckSeverity.NONE or self.skill_flagged

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workstation_id": self.workstation_id,
            "name": self.name,
            "bottleneck_score": round(self.score, 2),
            "severity": self.severity.value,
            "utilization": round(self.utilization * 100, 2),
            "efficiency": round(self.efficiency * 100, 2),
            "skill_coverage": round(self.skill_coverage * 100, 2),
            "maintenance_ratio": round(self.maintenance_ratio, 4),
            "sub_scores": {k: round(v, 2) for k, v in self.sub_scores.items()},
            "missing_skills": list(self.missing_skills),
            "factors": list(self.factors),
            "recommendations": list(self.actions),
        }


@dataclass(frozen=True)
class BottleneckReport:
    records: Tuple[BottleneckRecord, ...] = ()
    skill_gaps: Tuple[str, ...] = ()   # Skills required by work orders that no station offers
    overall_risk: str = "low"

    @property
    def critical(self) -> List[BottleneckRecord]:
        return [r for r in self.records if r.severity == BottleneckSeverity.CRITICAL]

    @property
    def potential(self) -> List[BottleneckRecord]:
        return [r for r in self.records if r.severity == BottleneckSeverity.POTENTIAL]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "critical": [r.to_dict() for r in self.critical],
            "potential": [r.to_dict() for r in self.potential],
            "analysis": [r.to_dict() for r in self.records],
            "skill_gaps": list(self.skill_gaps),
            "summary": {
                "total_bottlenecks": len(self.critical) + len(self.potential),
                "critical_count": len(self.critical),
                "potential_count": len(self.potential),
                "skill_flagged_count": sum(1 for r in self.records if r.skill_flagged),
                "overall_risk": self.overall_risk,
            },
        }


@dataclass(frozen=True)
class ForecastDay:
    day: int                           # 1-based day index
    date: Optional[str]                # ISO date when an origin is known
    total_hours: float
    available_hours: float
    projected_utilization: float       # Percent, capacity-weighted
    risk_level: str
    station_utilization: Dict[str, float] = field(default_factory=dict)  # Percent

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "date": self.date,
            "total_hours": round(self.total_hours, 2),
            "available_hours": round(self.available_hours, 2),
            "projected_utilization": round(self.projected_utilization, 2),
            "risk_level": self.risk_level,
            "station_utilization": {k: round(v, 2) for k, v in self.station_utilization.items()},
        }


@dataclass(frozen=True)
class CapacityAlert:
    day: int
    workstation_id: str
    severity: str                      # warning | critical
    utilization: float                 # Percent
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "workstation_id": self.workstation_id,
            "type": "overload" if self.severity == "critical" else "high_load",
            "severity": self.severity,
            "utilization": round(self.utilization, 2),
            "message": self.message,
        }


@dataclass(frozen=True)
class ForecastReport:
    days: Tuple[ForecastDay, ...] = ()
    utilization_trend: str = "stable"
    capacity_trend: str = "stable"
    peak_days: Tuple[int, ...] = ()
    low_days: Tuple[int, ...] = ()
    alerts: Tuple[CapacityAlert, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "forecast": [d.to_dict() for d in self.days],
            "trends": {
                "utilization": self.utilization_trend,
                "capacity": self.capacity_trend,
                "peak_days": list(self.peak_days),
                "low_days": list(self.low_days),
            },
            "alerts": [a.to_dict() for a in self.alerts],
        }


@dataclass(frozen=True)
class Recommendation:
    category: str                      # capacity | balance | bottleneck | skills | forecast
    priority: str                      # critical | high | medium | low
    title: str
    description: str
    expected_impact: float             # Estimated improvement points

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "priority": self.priority,
            "title": self.title,
            "description": self.description,
            "expected_impact": self.expected_impact,
        }


@dataclass(frozen=True)
class RecommendationSet:
    recommendations: Tuple[Recommendation, ...] = ()
    potential_improvement: float = 0.0   # Capped at 50

    @property
    def priority_actions(self) -> int:
        return sum(1 for r in self.recommendations if r.priority in ("critical", "high"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommendations": [r.to_dict() for r in self.recommendations],
            "potential_improvement": self.potential_improvement,
            "priority_actions": self.priority_actions,
        }


@dataclass(frozen=True)
class DetailedAnalysis:
    """Extra breakdown attached only in DETAILED mode."""
    capacity: CapacityProfile
    efficiency: EfficiencyAnalysis
    bottleneck_factors: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_capacity": self.capacity.to_dict(),
            "efficiency_analysis": self.efficiency.to_dict(),
            "bottleneck_factors": {
                station: {k: round(v, 2) for k, v in scores.items()}
                for station, scores in self.bottleneck_factors.items()
            },
        }


@dataclass(frozen=True)
class CapacityReport:
    """
    Complete output of one capacity analysis.
    """
    mode: AnalysisMode
    profile: CapacityProfile
    load: LoadDistribution
    efficiency: EfficiencyAnalysis
    bottlenecks: BottleneckReport
    forecast: ForecastReport
    recommendations: RecommendationSet
    confidence: float
    detailed: Optional[DetailedAnalysis] = None
    narrative: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        return {
            "total_capacity": round(self.profile.total_hours, 2),
            "available_capacity": round(self.profile.available_hours, 2),
            "utilization_limit": round(self.profile.utilization_limit, 2),
            "utilization_rate": round(self.load.average_utilization, 2),
            "efficiency": round(self.efficiency.overall, 2),
            "balance_index": round(self.load.balance_index, 2),
            "bottleneck_count": len(self.bottlenecks.critical),
            "optimization_potential": self.recommendations.potential_improvement,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "summary": self.summary(),
            "load_distribution": self.load.to_dict(),
            "bottlenecks": self.bottlenecks.to_dict(),
            "forecast": self.forecast.to_dict(),
            "recommendations": self.recommendations.to_dict(),
            "metadata": {
                "time_horizon_days": self.profile.horizon_days,
                "analysis_mode": self.mode.value,
                "confidence": self.confidence,
                "station_count": len(self.profile.stations),
            },
        }
        if self.detailed is not None:
            data["detailed"] = self.detailed.to_dict()
        if self.narrative:
            data["narrative"] = self.narrative
        return data
