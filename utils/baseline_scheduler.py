"""
Baseline Scheduler - Simple greedy implementation

This provides a baseline for comparison against the genetic optimizer and
an optional seed individual for its first generation.

Algorithm:
    1. Sort work orders by priority (highest first), then by due date
    2. Keep predecessors ahead of their dependents
    3. Put each order on the compatible slot that frees first
       (fallback station for unassignable orders)

Purpose: Show the improvement achieved by the evolutionary search.
"""

import logging
from typing import Dict, List, Optional

from genetic.context import PlanningContext
from genetic.initializer import earliest_lane
from models.schedule import Schedule, ScheduleAssignment


logger = logging.getLogger(__name__)


def build_baseline_schedule(context: PlanningContext) -> Schedule:
    """
    Create a greedy schedule without optimization.

    Args:
        context: Planning context of the run

    Returns:
        Total schedule whose gene order matches the input order
    """
    ctx = context
    ranked = sorted(
        range(len(ctx)),
        key=lambda i: (-ctx.work_orders[i].priority, ctx.work_orders[i].due_date, i),
    )

    lane_free: Dict[str, List[float]] = {
        ws.workstation_id: [0.0] * ws.capacity for ws in ctx.workstations
    }
    ends: Dict[str, float] = {}
    genes: List[Optional[ScheduleAssignment]] = [None] * len(ctx)

    for index in ctx.placement_order(ranked):
        order_id = ctx.order_ids[index]
        ready = max((ends[p] for p in ctx.predecessors[order_id] if p in ends), default=0.0)

        best = None
        for station_id in ctx.candidate_stations(order_id):
            slot = earliest_lane(lane_free[station_id])
            duration = ctx.duration(order_id, station_id)
            start = ctx.clear_of_maintenance(
                station_id, max(lane_free[station_id][slot], ready), duration
            )
            # Earliest finish, station id breaks ties
            key = (start + duration, station_id)
            if best is None or key < best[0]:
                best = (key, station_id, slot, start, duration)

        _, station_id, slot, start, duration = best
        lane_free[station_id][slot] = start + duration
        ends[order_id] = start + duration
        genes[index] = ScheduleAssignment(
            work_order_id=order_id,
            workstation_id=station_id,
            start=start,
            end=start + duration,
            slot=slot,
            skill_violation=not ctx.is_compatible(order_id, station_id),
        )

    schedule = Schedule(assignments=list(genes))
    logger.debug(f"Baseline schedule: {schedule}")
    return schedule


# Quick test
if __name__ == "__main__":
    from utils.data_generator import generate_work_orders
    from utils.config_loader import load_config

    print("Testing Baseline Greedy Scheduler...")

    config = load_config()
    orders = generate_work_orders(10, config['workstations'], seed=1)
    context = PlanningContext(orders, config['workstations'])

    schedule = build_baseline_schedule(context)
    print(schedule)
    print(schedule.to_dataframe(context.origin))
