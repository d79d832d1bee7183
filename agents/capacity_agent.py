"""
Capacity Agent

This agent computes the capacity side of a capacity analysis: how many
capacity-hours the workstations offer over a horizon and how loaded they are.

Key Responsibilities:
    - Base / available capacity-hours per station and in aggregate
    - Per-station utilization (current load plus an optional schedule)
    - Load distribution: risk levels, trends, balance index, overload risk
    - Efficiency categories, improvement potential and benchmarks
    - Confidence of the analysis

Does NOT use LLM - pure computation, no state kept between calls.
"""

import logging
from datetime import datetime
from typing import Dict, Optional, Sequence

import numpy as np

from agents.forecast_agent import ForecastAgent, assess_risk_level, classify_trend
from models.capacity import (
    UTILIZATION_LIMIT,
    CapacityProfile,
    EfficiencyAnalysis,
    EfficiencyRecord,
    LoadDistribution,
    LoadRecord,
    StationCapacity,
)
from models.schedule import Schedule
from models.workstation import Workstation


logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24.0
LOAD_TREND_THRESHOLD = 0.10
OVERLOAD_THRESHOLD = 80.0
CRITICAL_LOAD_THRESHOLD = 90.0
MAX_EFFICIENCY = 98.0
EFFICIENCY_BENCHMARKS = {"industry": 85.0, "target": 92.0}


def categorize_efficiency(efficiency_pct: float) -> str:
    if efficiency_pct >= 95:
        return "excellent"
    if efficiency_pct >= 85:
        return "good"
    if efficiency_pct >= 70:
        return "average"
    return "poor"


class CapacityAgent:
    """
    Agent responsible for capacity and load figures.

    Example:
        >>> agent = CapacityAgent()
        >>> profile = agent.calculate_base_capacity(stations, horizon_days=7)
        >>> profile.available_hours
    """

    def __init__(self, forecaster: Optional[ForecastAgent] = None):
        """
        Args:
            forecaster: Used for the projected load behind the per-station trend
        """
        self.forecaster = forecaster or ForecastAgent()

    def maintenance_ratios(
        self,
        workstations: Sequence[Workstation],
        horizon_days: int,
        origin: Optional[datetime] = None,
    ) -> Dict[str, float]:
        """
        Share of the horizon each station loses to maintenance.

        Windows are only used when the origin of the horizon is known;
        otherwise the configured maintenance_ratio applies.
        """
        ratios = {}
        for station in workstations:
            if origin is not None:
                ratios[station.workstation_id] = station.maintenance_ratio_for(origin, horizon_days * HOURS_PER_DAY)
            else:
                ratios[station.workstation_id] = station.maintenance_ratio
        return ratios

    def calculate_base_capacity(
        self,
        workstations: Sequence[Workstation],
        horizon_days: int,
        origin: Optional[datetime] = None,
    ) -> CapacityProfile:
        """
        Capacity-hours per station and in aggregate.

        base = capacity x 24h x days x efficiency
        available = base x (1 - maintenance ratio), limit = 85% of available

        Args:
            workstations: Workstations to analyze
            horizon_days: Horizon length in days
            origin: Start of the horizon (for maintenance windows)

        Returns:
            CapacityProfile whose totals are sums of the station values
        """
        ratios = self.maintenance_ratios(workstations, horizon_days, origin)
        stations = []
        for station in workstations:
            base = station.capacity * HOURS_PER_DAY * horizon_days * station.efficiency
            available = base * (1 - ratios[station.workstation_id])
            stations.append(StationCapacity(
                workstation_id=station.workstation_id,
                name=station.display_name,
                base_hours=base,
                available_hours=available,
                utilization_limit=available * UTILIZATION_LIMIT,
                maintenance_ratio=ratios[station.workstation_id],
            ))

        average_efficiency = float(np.mean([s.efficiency for s in workstations])) if workstations else 0.0
        return CapacityProfile.from_stations(horizon_days, stations, average_efficiency)

    def station_utilization(
        self,
        workstations: Sequence[Workstation],
        horizon_days: int,
        schedule: Optional[Schedule] = None,
    ) -> Dict[str, float]:
        """
        Utilization fraction per station.

        The current load, plus (when a schedule is given) the share of slot
        time over the horizon taken by the station's scheduled assignments.

        Args:
            workstations: Workstations to analyze
            horizon_days: Horizon length in days
            schedule: Optional produced schedule

        Returns:
            Mapping station id -> utilization fraction
        """
        utilization = {ws.workstation_id: ws.current_load for ws in workstations}
        if schedule is None:
            return utilization

        horizon_minutes = horizon_days * HOURS_PER_DAY * 60.0
        by_station = schedule.by_station()
        for station in workstations:
            busy = sum(a.duration for a in by_station.get(station.workstation_id, ()))
            utilization[station.workstation_id] += busy / (station.capacity * horizon_minutes)
        return utilization

    def analyze_workload(
        self,
        workstations: Sequence[Workstation],
        utilization: Dict[str, float],
        horizon_days: int,
    ) -> LoadDistribution:
        """
        Risk level and trend per station, then facility-wide balance and overload risk.

        Args:
            workstations: Workstations to analyze
            utilization: Utilization fraction per station
            horizon_days: Days projected for the trend

        Returns:
            LoadDistribution
        """
        records = []
        for station in workstations:
            sid = station.workstation_id
            projected = self.forecaster.project_station(sid, utilization[sid], horizon_days)
            records.append(LoadRecord(
                workstation_id=sid,
                name=station.display_name,
                utilization=utilization[sid],
                risk_level=assess_risk_level(utilization[sid]),
                trend=classify_trend(projected, LOAD_TREND_THRESHOLD),
                projected_loads=tuple(projected),
            ))

        if not records:
            return LoadDistribution()

        percents = np.array([r.utilization_pct for r in records])
        overloaded = percents[percents > OVERLOAD_THRESHOLD]
        risk_score = float(np.sum((overloaded - OVERLOAD_THRESHOLD) * 0.5))

        return LoadDistribution(
            records=tuple(records),
            average_utilization=float(percents.mean()),
            peak_utilization=float(percents.max()),
            balance_index=max(0.0, 100.0 - float(np.std(percents)) * 2.0),
            overloaded_stations=int(overloaded.size),
            critical_stations=int(np.sum(percents > CRITICAL_LOAD_THRESHOLD)),
            overload_risk_score=min(risk_score, 100.0),
        )

    def analyze_efficiency(self, workstations: Sequence[Workstation]) -> EfficiencyAnalysis:
        """
        Efficiency category and improvement potential per station.

        Args:
            workstations: Workstations to analyze

        Returns:
            EfficiencyAnalysis with distribution and benchmarks
        """
        records = []
        for station in workstations:
            pct = station.efficiency * 100.0
            records.append(EfficiencyRecord(
                workstation_id=station.workstation_id,
                efficiency=pct,
                category=categorize_efficiency(pct),
                improvement_potential=max(0.0, MAX_EFFICIENCY - pct),
            ))

        overall = float(np.mean([r.efficiency for r in records])) if records else 0.0
        distribution = {category: 0 for category in ("excellent", "good", "average", "poor")}
        for record in records:
            distribution[record.category] += 1

        return EfficiencyAnalysis(
            records=tuple(records),
            overall=overall,
            distribution=distribution,
            benchmarks={**EFFICIENCY_BENCHMARKS, "current": overall},
        )

    def calculate_confidence(self, station_count: int, horizon_days: int, completeness: float = 1.0) -> float:
        """
        Confidence of the analysis in percent.

        Args:
            station_count: Number of analyzed stations (0 gives 0)
            horizon_days: Horizon length; longer horizons lower confidence
            completeness: Fraction of stations with complete input data

        Returns:
            Rounded confidence in [0, 100]
        """
        if station_count == 0:
            return 0.0
        confidence = 100.0 * completeness
        if horizon_days > 14:
            confidence *= 0.8
        if horizon_days > 30:
            confidence *= 0.6
        return float(round(confidence))
