"""
Forecast Agent

This agent projects near-future workstation load and turns the analysis
into a short, ranked list of improvement recommendations.

Key Responsibilities:
    - Project per-station load for each day of the horizon
    - Tag day/station alerts (warning > 85%, critical > 95%)
    - Classify utilization and capacity trends, peak and low days
    - Rank recommendations by expected impact (top 3)

Projection for day d (1-based):
    load = utilization * (1 + 0.1 sin(d pi / 7)) * (1 + 0.02 (d - 1)) * jitter

jitter is 1.0 unless a seed is given, in which case it is drawn from a
random.Random seeded with (seed, station, day). Forecasts never depend on
the wall clock.
"""

import logging
import math
import random
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from models.capacity import (
    BottleneckReport,
    CapacityAlert,
    ForecastDay,
    ForecastReport,
    LoadDistribution,
    Recommendation,
    RecommendationSet,
)
from models.workstation import Workstation


logger = logging.getLogger(__name__)

MAX_PROJECTED_LOAD = 1.2
WARNING_THRESHOLD = 85.0
CRITICAL_THRESHOLD = 95.0
PEAK_DAY_THRESHOLD = 90.0
LOW_DAY_THRESHOLD = 50.0
TREND_THRESHOLD = 0.05
MAX_RECOMMENDATIONS = 3
MAX_POTENTIAL_IMPROVEMENT = 50.0


def project_load(utilization: float, day: int, station_id: str = "", seed: Optional[int] = None) -> float:
    """
    Projected load fraction of a station on a given day.

    Args:
        utilization: Current utilization fraction
        day: 1-based day index
        station_id: Station identifier (only used to derive the jitter)
        seed: Optional seed enabling reproducible jitter in [0.9, 1.1]

    Returns:
        Load fraction capped at 1.2
    """
    seasonal = 1 + 0.1 * math.sin(day * math.pi / 7)
    trend = 1 + 0.02 * (day - 1)
    jitter = 1.0
    if seed is not None:
        jitter = random.Random(f"{seed}:{station_id}:{day}").uniform(0.9, 1.1)
    return min(utilization * seasonal * trend * jitter, MAX_PROJECTED_LOAD)


def classify_trend(values: Sequence[float], threshold: float) -> str:
    """increasing / decreasing / stable from the first to the last value."""
    if len(values) < 2 or values[0] == 0:
        return "stable"
    change = (values[-1] - values[0]) / values[0]
    if change > threshold:
        return "increasing"
    if change < -threshold:
        return "decreasing"
    return "stable"


def assess_risk_level(utilization: float) -> str:
    """Risk tier of a utilization fraction."""
    if utilization > 0.9:
        return "critical"
    if utilization > 0.8:
        return "high"
    if utilization > 0.6:
        return "medium"
    return "low"


class ForecastAgent:
    """
    Agent responsible for load forecasts, alerts and recommendations.

    Deterministic: the same inputs (and seed) always produce the same forecast.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Args:
            seed: Optional seed for the per-station, per-day jitter
        """
        self.seed = seed

    def project_station(self, station_id: str, utilization: float, horizon_days: int) -> List[float]:
        return [project_load(utilization, day, station_id, self.seed) for day in range(1, horizon_days + 1)]

    def forecast_capacity(
        self,
        workstations: Sequence[Workstation],
        utilization: Dict[str, float],
        horizon_days: int,
        origin: Optional[datetime] = None,
    ) -> ForecastReport:
        """
        Project facility load for every day of the horizon.

        Args:
            workstations: Workstations to forecast
            utilization: Current utilization fraction per station
            horizon_days: Number of days (>= 1)
            origin: Start of day 1; enables dates and per-day maintenance windows

        Returns:
            ForecastReport with days, trends and alerts
        """
        days: List[ForecastDay] = []
        alerts: List[CapacityAlert] = []

        for day in range(1, horizon_days + 1):
            day_start = origin + timedelta(days=day - 1) if origin is not None else None
            total_hours = 0.0
            available_hours = 0.0
            weighted_load = 0.0
            station_util: Dict[str, float] = {}

            for station in workstations:
                sid = station.workstation_id
                base = station.capacity * 24.0 * station.efficiency
                if day_start is not None:
                    ratio = station.maintenance_ratio_for(day_start, 24.0)
                else:
                    ratio = station.maintenance_ratio

                load = project_load(utilization.get(sid, 0.0), day, sid, self.seed)
                station_util[sid] = load * 100.0
                total_hours += base
                available_hours += base * (1 - ratio)
                weighted_load += base * load

                if load * 100.0 > CRITICAL_THRESHOLD:
                    alerts.append(CapacityAlert(
                        day=day, workstation_id=sid, severity="critical", utilization=load * 100.0,
                        message=f"Day {day}: {sid} projected at {load * 100:.1f}% (overload)",
                    ))
                elif load * 100.0 > WARNING_THRESHOLD:
                    alerts.append(CapacityAlert(
                        day=day, workstation_id=sid, severity="warning", utilization=load * 100.0,
                        message=f"Day {day}: {sid} projected at {load * 100:.1f}% (high load)",
                    ))

            projected = (weighted_load / total_hours) if total_hours > 0 else 0.0
            days.append(ForecastDay(
                day=day,
                date=day_start.date().isoformat() if day_start is not None else None,
                total_hours=total_hours,
                available_hours=available_hours,
                projected_utilization=projected * 100.0,
                risk_level=assess_risk_level(projected),
                station_utilization=station_util,
            ))

        if alerts:
            logger.info(f"Forecast raised {len(alerts)} alert(s) over {horizon_days} day(s)")

        return ForecastReport(
            days=tuple(days),
            utilization_trend=classify_trend([d.projected_utilization for d in days], TREND_THRESHOLD),
            capacity_trend=classify_trend([d.available_hours for d in days], TREND_THRESHOLD),
            peak_days=tuple(d.day for d in days if d.projected_utilization > PEAK_DAY_THRESHOLD),
            low_days=tuple(d.day for d in days if d.projected_utilization < LOW_DAY_THRESHOLD),
            alerts=tuple(alerts),
        )

    def generate_recommendations(
        self,
        load: LoadDistribution,
        bottlenecks: BottleneckReport,
        forecast: ForecastReport,
    ) -> RecommendationSet:
        """
        Build facility-level recommendations ranked by expected impact.

        Args:
            load: Load distribution
            bottlenecks: Bottleneck report
            forecast: Forecast report

        Returns:
            Top recommendations and the capped potential improvement
        """
        candidates: List[Recommendation] = []

        if load.average_utilization > 80:
            candidates.append(Recommendation(
                category="capacity", priority="high",
                title="Increase production capacity",
                description="Overall utilization is high; add equipment or extend working hours.",
                expected_impact=15.0,
            ))

        if load.balance_index < 70:
            candidates.append(Recommendation(
                category="balance", priority="medium",
                title="Rebalance workstation load",
                description="Load is uneven across workstations; redistribute work or adjust capacity.",
                expected_impact=10.0,
            ))

        critical = bottlenecks.critical
        if critical:
            candidates.append(Recommendation(
                category="bottleneck", priority="critical",
                title="Resolve critical bottlenecks",
                description=f"{len(critical)} critical bottleneck(s) need immediate action: "
                            f"{', '.join(r.workstation_id for r in critical)}.",
                expected_impact=20.0,
            ))

        skill_stations = [r.workstation_id for r in bottlenecks.records if r.skill_flagged]
        if bottlenecks.skill_gaps or skill_stations:
            gaps = ', '.join(bottlenecks.skill_gaps) or 'none facility-wide'
            candidates.append(Recommendation(
                category="skills", priority="high",
                title="Close skill coverage gaps",
                description=f"Cross-train staff; missing skills: {gaps}; "
                            f"stations below 80% coverage: {', '.join(skill_stations) or 'none'}.",
                expected_impact=12.0,
            ))

        critical_alerts = [a for a in forecast.alerts if a.severity == "critical"]
        if forecast.alerts:
            first = forecast.alerts[0]
            candidates.append(Recommendation(
                category="forecast",
                priority="high" if critical_alerts else "medium",
                title="Prepare for forecast overload",
                description=f"{len(forecast.alerts)} projected overload alert(s), first on day "
                            f"{first.day} at {first.workstation_id}; plan overtime or shift work.",
                expected_impact=8.0 if critical_alerts else 5.0,
            ))

        ranked = sorted(candidates, key=lambda r: r.expected_impact, reverse=True)[:MAX_RECOMMENDATIONS]
        potential = min(sum(r.expected_impact for r in ranked), MAX_POTENTIAL_IMPROVEMENT)
        return RecommendationSet(recommendations=tuple(ranked), potential_improvement=potential)
