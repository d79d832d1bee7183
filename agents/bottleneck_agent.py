"""
Bottleneck Detection Agent

This agent scores every workstation as a potential capacity or skill
constraint and suggests how to relieve the flagged ones.

Key Responsibilities:
    - Combine utilization, efficiency, skill coverage and maintenance into a
      0-100 bottleneck score (weights 40/30/20/10)
    - Bucket stations into critical / potential / none tiers
    - Flag stations below 80% skill coverage regardless of load
    - Rank relief actions per flagged station (capacity, cross-training,
      rebalancing to the least-loaded able station, efficiency, maintenance)
    - Report facility-wide skill gaps of the work orders

Does NOT use LLM - deterministic scoring keeps reports reproducible.
"""

import logging
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

import numpy as np

from models.capacity import BottleneckRecord, BottleneckReport, BottleneckSeverity
from models.schedule import Schedule
from models.work_order import WorkOrder
from models.workstation import Workstation


logger = logging.getLogger(__name__)

FACTOR_WEIGHTS = {"utilization": 0.4, "efficiency": 0.3, "skills": 0.2, "maintenance": 0.1}
SKILL_COVERAGE_THRESHOLD = 0.8
REBALANCE_TARGET_MAX_LOAD = 0.7


def utilization_subscore(utilization: float) -> float:
    if utilization > 0.9:
        return 100.0
    if utilization > 0.8:
        return 75.0
    if utilization > 0.7:
        return 50.0
    return 0.0


def efficiency_subscore(efficiency: float) -> float:
    if efficiency < 0.7:
        return 100.0
    if efficiency < 0.8:
        return 200.0 / 3.0
    if efficiency < 0.9:
        return 100.0 / 3.0
    return 0.0


def skill_subscore(coverage: float) -> float:
    if coverage < SKILL_COVERAGE_THRESHOLD:
        return 100.0
    return (1.0 - coverage) * 100.0


def maintenance_subscore(ratio: float) -> float:
    return min(100.0, ratio / 0.2 * 100.0)


def skill_coverage(has: FrozenSet[str], required: FrozenSet[str]) -> float:
    """|has & required| / |required|, 1.0 when nothing is required."""
    if not required:
        return 1.0
    return len(has & required) / len(required)


class BottleneckAgent:
    """
    Agent responsible for detecting workstation bottlenecks.

    This agent scores stations from their load figures and skill coverage
    and proposes ranked relief actions for the flagged ones.
    """

    def required_skills(
        self,
        workstations: Sequence[Workstation],
        schedule: Optional[Schedule] = None,
        work_orders: Optional[Sequence[WorkOrder]] = None,
    ) -> Dict[str, FrozenSet[str]]:
        """
        Skills demanded of each station.

        The station's own required_skills plus the skills of the work orders
        the schedule assigns to it (when both are supplied).
        """
        required = {ws.workstation_id: set(ws.required_skills) for ws in workstations}
        if schedule is not None and work_orders:
            orders = {wo.work_order_id: wo for wo in work_orders}
            for assignment in schedule.assignments:
                order = orders.get(assignment.work_order_id)
                if order is not None and assignment.workstation_id in required:
                    required[assignment.workstation_id] |= order.required_skills
        return {sid: frozenset(skills) for sid, skills in required.items()}

    def _rebalance_target(
        self,
        station: Workstation,
        needed: FrozenSet[str],
        workstations: Sequence[Workstation],
        utilization: Dict[str, float],
    ) -> Optional[Workstation]:
        """Least-loaded other station offering every needed skill, below 70% load."""
        candidates = [
            ws for ws in workstations
            if ws.workstation_id != station.workstation_id
            and needed <= ws.skills
            and utilization[ws.workstation_id] < REBALANCE_TARGET_MAX_LOAD
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda ws: (utilization[ws.workstation_id], ws.workstation_id))

    def _station_actions(
        self,
        station: Workstation,
        utilization: float,
        maintenance_ratio: float,
        missing: Tuple[str, ...],
        target: Optional[Workstation],
    ) -> Tuple[str, ...]:
        actions: List[str] = []
        if utilization > 0.8:
            actions.append(f"Increase capacity of {station.workstation_id} "
                           f"(add a slot or extend working hours)")
        if missing:
            actions.append(f"Cross-train staff on {', '.join(missing)} for {station.workstation_id}")
        if utilization > REBALANCE_TARGET_MAX_LOAD and target is not None:
            actions.append(f"Rebalance work from {station.workstation_id} to {target.workstation_id}")
        if station.efficiency < 0.85:
            actions.append(f"Improve efficiency of {station.workstation_id} "
                           f"(process optimization, equipment upkeep)")
        if maintenance_ratio > 0.15:
            actions.append(f"Improve preventive maintenance plan of {station.workstation_id}")
        return tuple(actions)

    def identify_bottlenecks(
        self,
        workstations: Sequence[Workstation],
        utilization: Dict[str, float],
        maintenance_ratios: Dict[str, float],
        schedule: Optional[Schedule] = None,
        work_orders: Optional[Sequence[WorkOrder]] = None,
    ) -> BottleneckReport:
        """
        Score and rank every workstation.

        Args:
            workstations: Workstations to analyze
            utilization: Utilization fraction per station
            maintenance_ratios: Maintenance ratio per station over the horizon
            schedule: Optional produced schedule (adds required skills)
            work_orders: Optional work orders (skill gaps and required skills)

        Returns:
            BottleneckReport ordered by descending score
        """
        required = self.required_skills(workstations, schedule, work_orders)

        records = []
        for station in workstations:
            sid = station.workstation_id
            load = utilization[sid]
            ratio = maintenance_ratios[sid]
            coverage = skill_coverage(station.skills, required[sid])
            missing = tuple(sorted(required[sid] - station.skills))

            sub_scores = {
                "utilization": utilization_subscore(load),
                "efficiency": efficiency_subscore(station.efficiency),
                "skills": skill_subscore(coverage),
                "maintenance": maintenance_subscore(ratio),
            }
            score = sum(FACTOR_WEIGHTS[k] * v for k, v in sub_scores.items())
            severity = BottleneckSeverity.from_score(score)

            factors = tuple(name for name, flagged in (
                ("capacity", load > 0.8),
                ("efficiency", station.efficiency < 0.85),
                ("skills", bool(missing) or coverage < SKILL_COVERAGE_THRESHOLD),
                ("maintenance", ratio > 0.15),
            ) if flagged)

            actions: Tuple[str, ...] = ()
            if severity != BottleneckSeverity.NONE or coverage < SKILL_COVERAGE_THRESHOLD:
                needed = required[sid] or station.skills
                target = self._rebalance_target(station, needed, workstations, utilization)
                actions = self._station_actions(station, load, ratio, missing, target)

            records.append(BottleneckRecord(
                workstation_id=sid,
                name=station.display_name,
                score=score,
                severity=severity,
                utilization=load,
                efficiency=station.efficiency,
                skill_coverage=coverage,
                maintenance_ratio=ratio,
                sub_scores=sub_scores,
                missing_skills=missing,
                factors=factors,
                actions=actions,
            ))

        records.sort(key=lambda r: (-r.score, r.workstation_id))

        skill_gaps: Tuple[str, ...] = ()
        if work_orders:
            offered = frozenset().union(*(ws.skills for ws in workstations))
            demanded = frozenset().union(*(wo.required_skills for wo in work_orders))
            skill_gaps = tuple(sorted(demanded - offered))

        overall = "low"
        if records:
            average = float(np.mean([r.score for r in records]))
            if average > 70:
                overall = "high"
            elif average > 40:
                overall = "medium"

        report = BottleneckReport(records=tuple(records), skill_gaps=skill_gaps, overall_risk=overall)
        logger.debug(f"Bottlenecks: {len(report.critical)} critical, {len(report.potential)} potential, "
                     f"skill gaps {list(skill_gaps)}")
        return report

    def __str__(self) -> str:
        return "BottleneckAgent(rule-based scoring)"
