"""
Fitness Evaluator - Deterministic multi-objective scoring of schedules

fitness = 100 + sum(weight_i * subscore_i) - sum(penalties), clipped to [0, 200]

Sub-scores (each 0-100):
    - on_time: share of work orders ending by their due date
    - utilization: busy time vs. slot time over the span, relative to target
    - load_balance: 100 - scale * std-dev of per-station utilization %
    - priority: high-priority orders starting early, discounted by skill violations

Penalties are weighted independently (time conflicts, precedence, skills,
maintenance, makespan overshoot). The evaluator is a pure function of the
schedule, which keeps seeded runs reproducible and lets it run in a pool.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

import numpy as np

from agents.constraint_agent import ConstraintAgent, ViolationCounts
from genetic.context import PlanningContext
from models.constraints import SchedulerConfig
from models.schedule import Schedule, ScheduleMetrics


BASELINE_FITNESS = 100.0
MIN_FITNESS = 0.0
MAX_FITNESS = 200.0


@dataclass
class FitnessBreakdown:
    """Scalar fitness together with every term that produced it."""
    fitness: float = BASELINE_FITNESS
    on_time: float = 0.0
    utilization: float = 0.0
    load_balance: float = 0.0
    priority: float = 0.0
    penalties: Dict[str, float] = field(default_factory=dict)
    violations: ViolationCounts = field(default_factory=ViolationCounts)

    # Raw measures reused for metrics
    on_time_rate: float = 100.0            # Percent
    average_utilization: float = 0.0       # Percent, facility-wide
    station_utilization: Dict[str, float] = field(default_factory=dict)  # Percent
    total_tardiness: float = 0.0           # Minutes
    makespan: float = 0.0                  # Minutes

    @property
    def total_penalty(self) -> float:
        return sum(self.penalties.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fitness": round(self.fitness, 4),
            "subscores": {
                "on_time": round(self.on_time, 2),
                "utilization": round(self.utilization, 2),
                "load_balance": round(self.load_balance, 2),
                "priority": round(self.priority, 2),
            },
            "penalties": {k: round(v, 2) for k, v in self.penalties.items()},
            "violations": self.violations.to_dict(),
        }


class FitnessEvaluator:
    """
    Scores schedules for one planning run.

    Instances are callable (schedule -> float) so they can be handed
    directly to an executor's map().
    """

    def __init__(self, context: PlanningContext, config: SchedulerConfig):
        self.context = context
        self.config = config
        self.weights = config.weights.normalized()
        self.penalty_weights = config.penalties
        self.constraints = ConstraintAgent(context)

    def __call__(self, schedule: Schedule) -> float:
        return self.evaluate(schedule).fitness

    def evaluate(self, schedule: Schedule) -> FitnessBreakdown:
        """
        Compute the full fitness breakdown of a schedule.

        Args:
            schedule: Total schedule to score

        Returns:
            FitnessBreakdown (fitness 100.0 for an empty schedule)
        """
        if not schedule.assignments:
            return FitnessBreakdown()

        ctx = self.context
        assignments = schedule.assignments
        n = len(assignments)

        # On-time and tardiness
        lateness = np.array([a.end - ctx.due_offsets[a.work_order_id] for a in assignments])
        on_time_rate = float(np.mean(lateness <= 1e-9)) * 100.0
        total_tardiness = float(np.clip(lateness, 0.0, None).sum())

        # Utilization over the schedule span
        span = schedule.makespan
        busy = {ws.workstation_id: 0.0 for ws in ctx.workstations}
        for a in assignments:
            busy[a.workstation_id] = busy.get(a.workstation_id, 0.0) + a.duration

        station_util = {}
        for ws in ctx.workstations:
            slot_time = ws.capacity * span
            station_util[ws.workstation_id] = (busy[ws.workstation_id] / slot_time * 100.0) if slot_time > 0 else 0.0

        total_slot_time = sum(ws.capacity for ws in ctx.workstations) * span
        average_util = (sum(busy.values()) / total_slot_time * 100.0) if total_slot_time > 0 else 0.0
        utilization_score = min(100.0, average_util / self.config.target_utilization * 100.0)

        # Load balance
        spread = float(np.std(list(station_util.values()))) if station_util else 0.0
        balance_score = max(0.0, 100.0 - spread * self.config.load_balance_scale)

        # Priority: earlier start position for higher priority orders
        violations = self.constraints.count_violations(schedule)
        skill_fraction = violations.skill_violations / n
        earliest = schedule.earliest_start
        priorities = np.array([ctx.orders[a.work_order_id].priority for a in assignments], dtype=float)
        if span > 0:
            positions = np.array([1.0 - (a.start - earliest) / span for a in assignments])
        else:
            positions = np.ones(n)
        priority_score = float(np.dot(priorities, positions) / priorities.sum() * 100.0)
        priority_score *= (1.0 - skill_fraction)

        w = self.weights
        reward = (w.on_time * on_time_rate + w.utilization * utilization_score +
                  w.load_balance * balance_score + w.priority * priority_score)

        p = self.penalty_weights
        penalties = {
            "time_conflict": p.time_conflict * (violations.time_conflicts + violations.slot_violations),
            "precedence": p.precedence * violations.precedence_violations,
            "skill": p.skill * skill_fraction,
            "maintenance": p.maintenance * violations.maintenance_conflicts,
            "makespan": 0.0,
        }
        max_makespan = self.config.max_makespan
        if max_makespan is not None and span > max_makespan:
            penalties["makespan"] = p.makespan * min(1.0, (span - max_makespan) / max_makespan)

        fitness = BASELINE_FITNESS + reward - sum(penalties.values())
        fitness = min(MAX_FITNESS, max(MIN_FITNESS, fitness))

        return FitnessBreakdown(
            fitness=fitness,
            on_time=on_time_rate,
            utilization=utilization_score,
            load_balance=balance_score,
            priority=priority_score,
            penalties=penalties,
            violations=violations,
            on_time_rate=on_time_rate,
            average_utilization=average_util,
            station_utilization=station_util,
            total_tardiness=total_tardiness,
            makespan=span,
        )

    def metrics(self, schedule: Schedule, breakdown: FitnessBreakdown = None) -> ScheduleMetrics:
        """
        Derive the reporting KPIs of a schedule.

        Args:
            schedule: Schedule to summarize
            breakdown: Precomputed breakdown, evaluated if omitted

        Returns:
            ScheduleMetrics
        """
        breakdown = breakdown or self.evaluate(schedule)
        v = breakdown.violations
        return ScheduleMetrics(
            makespan_minutes=breakdown.makespan,
            average_utilization=breakdown.average_utilization,
            on_time_rate=breakdown.on_time_rate,
            total_tardiness_minutes=breakdown.total_tardiness,
            time_conflicts=v.time_conflicts,
            precedence_violations=v.precedence_violations,
            skill_violations=v.skill_violations,
            maintenance_conflicts=v.maintenance_conflicts,
            unassignable_count=len(self.context.unassignable),
        )
