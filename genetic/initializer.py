"""
Population Initializer - Builds the first generation of total schedules

Each chromosome places every work order exactly once:
    1. Shuffle the work orders, then stable-sort by dependency depth
    2. Pick a random compatible workstation (fallback for unassignable orders)
    3. Take the slot that frees first; start after the slot, the placed
       predecessors and any maintenance window
"""

import logging
import random
import warnings
from typing import Dict, List, Optional, Tuple

from genetic.context import PlanningContext
from models.errors import UnassignableWorkOrderWarning
from models.schedule import Individual, Schedule, ScheduleAssignment


logger = logging.getLogger(__name__)


def earliest_lane(lane_free: List[float]) -> int:
    """Index of the slot that becomes free first (lowest index on ties)."""
    return min(range(len(lane_free)), key=lambda slot: (lane_free[slot], slot))


class PopulationInitializer:
    """
    Creates random, total, overlap-free schedules.

    Example:
        >>> initializer = PopulationInitializer(context, random.Random(42))
        >>> population = initializer.initialize(50)
    """

    def __init__(self, context: PlanningContext, rng: random.Random):
        self.context = context
        self.rng = rng

    def warn_unassignable(self) -> List[Dict[str, object]]:
        """
        Emit one UnassignableWorkOrderWarning per order no station can serve.

        Returns:
            Descriptions of the unassignable orders (for the result payload)
        """
        ctx = self.context
        items = []
        for order_id in ctx.unassignable:
            order = ctx.orders[order_id]
            fallback = ctx.fallback[order_id]
            missing = sorted(order.missing_skills(ctx.stations[fallback].skills))
            message = (f"Work order {order_id} requires {', '.join(sorted(order.required_skills))}; "
                       f"no workstation offers all of them. Placed on {fallback} "
                       f"(missing {', '.join(missing)})")
            warnings.warn(message, UnassignableWorkOrderWarning, stacklevel=2)
            items.append({
                "work_order_id": order_id,
                "fallback_workstation_id": fallback,
                "missing_skills": missing,
                "reason": message,
            })
        return items

    def random_schedule(self) -> Schedule:
        """Build one random total schedule."""
        ctx = self.context
        indices = list(range(len(ctx)))
        self.rng.shuffle(indices)

        lane_free: Dict[str, List[float]] = {
            ws.workstation_id: [0.0] * ws.capacity for ws in ctx.workstations
        }
        ends: Dict[str, float] = {}
        genes: List[Optional[ScheduleAssignment]] = [None] * len(indices)

        for index in ctx.placement_order(indices):
            order_id = ctx.order_ids[index]
            station_id = self.rng.choice(ctx.candidate_stations(order_id))
            genes[index] = self._place(order_id, station_id, lane_free, ends)

        return Schedule(assignments=list(genes))

    def _place(
        self,
        order_id: str,
        station_id: str,
        lane_free: Dict[str, List[float]],
        ends: Dict[str, float],
    ) -> ScheduleAssignment:
        ctx = self.context
        lanes = lane_free[station_id]
        slot = earliest_lane(lanes)
        duration = ctx.duration(order_id, station_id)

        ready = max((ends[p] for p in ctx.predecessors[order_id] if p in ends), default=0.0)
        start = ctx.clear_of_maintenance(station_id, max(0.0, lanes[slot], ready), duration)

        lanes[slot] = start + duration
        ends[order_id] = start + duration
        return ScheduleAssignment(
            work_order_id=order_id,
            workstation_id=station_id,
            start=start,
            end=start + duration,
            slot=slot,
            skill_violation=not ctx.is_compatible(order_id, station_id),
        )

    def initialize(self, size: int, seed_schedule: Optional[Schedule] = None) -> Tuple[Individual, ...]:
        """
        Create the initial population.

        Args:
            size: Number of individuals
            seed_schedule: Optional schedule used as member 0 (e.g., greedy baseline)

        Returns:
            Tuple of unevaluated individuals
        """
        members = []
        if seed_schedule is not None:
            members.append(Individual(schedule=seed_schedule.copy()))
        while len(members) < size:
            members.append(Individual(schedule=self.random_schedule()))

        logger.debug(f"Initialized population of {len(members)} for {len(self.context)} work orders")
        return tuple(members)
