"""
Constraint Agent

This agent validates schedules against the hard rules of a planning run and
counts violations for the fitness evaluator.

Key Responsibilities:
    - Enforce totality (exactly one assignment per work order)
    - Detect time overlaps on a workstation slot
    - Check slot indices against workstation capacity
    - Check precedence (dependencies finish before successors start)
    - Check skill compatibility and maintenance window conflicts
    - Return violation reports or approval

Does NOT use LLM - uses deterministic rule checking for reliability.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from genetic.context import PlanningContext
from models.errors import InternalInvariantViolation
from models.schedule import Schedule, ScheduleAssignment


logger = logging.getLogger(__name__)

EPSILON = 1e-6


@dataclass(frozen=True)
class ViolationCounts:
    time_conflicts: int = 0          # Overlapping pairs on one station slot
    precedence_violations: int = 0
    skill_violations: int = 0
    maintenance_conflicts: int = 0
    slot_violations: int = 0         # Slot index outside [0, capacity)

    @property
    def total(self) -> int:
        return (self.time_conflicts + self.precedence_violations + self.skill_violations +
                self.maintenance_conflicts + self.slot_violations)

    def to_dict(self) -> Dict[str, int]:
        return {
            "time_conflicts": self.time_conflicts,
            "precedence_violations": self.precedence_violations,
            "skill_violations": self.skill_violations,
            "maintenance_conflicts": self.maintenance_conflicts,
            "slot_violations": self.slot_violations,
        }


def overlapping_pairs(timeline: List[ScheduleAssignment]) -> List[Tuple[ScheduleAssignment, ScheduleAssignment]]:
    """
    All overlapping pairs within one lane timeline sorted by start.

    Args:
        timeline: Assignments on one (station, slot), ordered by start

    Returns:
        List of conflicting pairs
    """
    pairs = []
    for i, first in enumerate(timeline):
        for second in timeline[i + 1:]:
            if second.start >= first.end - EPSILON:
                break
            pairs.append((first, second))
    return pairs


class ConstraintAgent:
    """
    Agent responsible for validating schedules against all constraints.

    This agent performs deterministic rule checking to ensure schedules
    are feasible and compliant with all operational constraints.
    """

    def __init__(self, context: PlanningContext):
        """
        Initialize the Constraint Agent.

        Args:
            context: Lookups for the current planning run
        """
        self.context = context

    def check_totality(self, schedule: Schedule) -> None:
        """
        Verify gene i holds work order i for every input order.

        Raises:
            InternalInvariantViolation: if an order is missing or duplicated
        """
        ids = schedule.work_order_ids()
        if ids == list(self.context.order_ids):
            return

        expected = set(self.context.order_ids)
        missing = sorted(expected - set(ids))
        duplicated = sorted({oid for oid in ids if ids.count(oid) > 1})
        raise InternalInvariantViolation(
            f"Schedule is not total: {len(ids)} genes for {len(expected)} work orders, "
            f"missing={missing}, duplicated={duplicated}"
        )

    def count_violations(self, schedule: Schedule) -> ViolationCounts:
        """
        Count every category of constraint violation in a schedule.

        Args:
            schedule: Schedule to inspect

        Returns:
            ViolationCounts
        """
        ctx = self.context
        ends = {a.work_order_id: a.end for a in schedule.assignments}

        conflicts = sum(len(overlapping_pairs(t)) for t in schedule.lanes().values())

        precedence = 0
        skills = 0
        maintenance = 0
        slots = 0
        for a in schedule.assignments:
            for pred in ctx.predecessors.get(a.work_order_id, ()):
                if pred in ends and a.start < ends[pred] - EPSILON:
                    precedence += 1
            if not ctx.is_compatible(a.work_order_id, a.workstation_id):
                skills += 1
            if any(a.start < w_end and w_start < a.end
                   for w_start, w_end in ctx.maintenance.get(a.workstation_id, ())):
                maintenance += 1
            station = ctx.stations.get(a.workstation_id)
            if station is None or not 0 <= a.slot < station.capacity:
                slots += 1

        return ViolationCounts(
            time_conflicts=conflicts,
            precedence_violations=precedence,
            skill_violations=skills,
            maintenance_conflicts=maintenance,
            slot_violations=slots,
        )

    def validate_schedule(self, schedule: Schedule) -> Tuple[bool, List[str], str]:
        """
        Comprehensive validation of a schedule against all constraints.

        Args:
            schedule: Schedule to validate

        Returns:
            Tuple of (is_valid, violations, report)
        """
        ctx = self.context
        violations = []

        try:
            self.check_totality(schedule)
        except InternalInvariantViolation as exc:
            violations.append(str(exc))

        ends = {a.work_order_id: a.end for a in schedule.assignments}
        for a in schedule.assignments:
            station = ctx.stations.get(a.workstation_id)
            if station is None:
                violations.append(f"Work order {a.work_order_id} assigned to unknown station {a.workstation_id}")
                continue
            if not 0 <= a.slot < station.capacity:
                violations.append(
                    f"Work order {a.work_order_id} uses slot {a.slot} on {a.workstation_id} "
                    f"(capacity {station.capacity})"
                )
            if not ctx.is_compatible(a.work_order_id, a.workstation_id):
                missing = ctx.orders[a.work_order_id].missing_skills(station.skills)
                violations.append(
                    f"Workstation {a.workstation_id} lacks {', '.join(sorted(missing))} "
                    f"for work order {a.work_order_id}"
                )
            for w_start, w_end in ctx.maintenance.get(a.workstation_id, ()):
                if a.start < w_end and w_start < a.end:
                    violations.append(
                        f"Work order {a.work_order_id} on {a.workstation_id} overlaps maintenance "
                        f"({w_start:.0f}-{w_end:.0f} min)"
                    )
            for pred in ctx.predecessors.get(a.work_order_id, ()):
                if pred in ends and a.start < ends[pred] - EPSILON:
                    violations.append(
                        f"Work order {a.work_order_id} starts at {a.start:.0f} min before "
                        f"predecessor {pred} ends at {ends[pred]:.0f} min"
                    )

        for (station_id, slot), timeline in sorted(schedule.lanes().items()):
            for first, second in overlapping_pairs(timeline):
                violations.append(
                    f"Time overlap on {station_id} slot {slot}: work orders "
                    f"{first.work_order_id} and {second.work_order_id} conflict"
                )

        is_valid = not violations
        if is_valid:
            report = (f"CONSTRAINT VALIDATION: PASSED\n\n"
                      f"All {len(schedule)} assignments validated (totality, slots, overlaps, "
                      f"precedence, skills, maintenance).")
        else:
            lines = ["CONSTRAINT VALIDATION: FAILED", "", f"Found {len(violations)} violation(s):", ""]
            lines += [f"{i}. {v}" for i, v in enumerate(violations, 1)]
            report = "\n".join(lines)
            logger.debug(report)

        return is_valid, violations, report

    def __str__(self) -> str:
        return "ConstraintAgent(rule-based validation)"
