"""
Shared fixtures for the scheduler and capacity analysis tests.
"""

from datetime import datetime, timedelta

import pytest

from genetic.context import PlanningContext
from models.constraints import SchedulerConfig
from models.work_order import WorkOrder
from models.workstation import Workstation


ORIGIN = datetime(2024, 5, 1)


def make_order(order_id, minutes=60, due_hours=8, priority=1, skills=(), dependencies=()):
    """Work order due a number of hours after ORIGIN."""
    return WorkOrder(
        work_order_id=order_id,
        estimated_minutes=minutes,
        due_date=ORIGIN + timedelta(hours=due_hours),
        priority=priority,
        required_skills=frozenset(skills),
        dependencies=tuple(dependencies),
    )


@pytest.fixture
def origin():
    return ORIGIN


@pytest.fixture
def workstations():
    return [
        Workstation("WS-A", capacity=1, skills={"assembly", "inspection"}, efficiency=1.0, current_load=0.5),
        Workstation("WS-B", capacity=2, skills={"machining"}, efficiency=1.0, current_load=0.3),
        Workstation("WS-C", capacity=1, skills={"assembly", "packaging"}, efficiency=0.8, current_load=0.2),
    ]


@pytest.fixture
def work_orders():
    return [
        make_order("WO-1", minutes=60, due_hours=2, priority=3, skills={"assembly"}),
        make_order("WO-2", minutes=90, due_hours=4, priority=1, skills={"machining"}),
        make_order("WO-3", minutes=45, due_hours=3, priority=2, skills={"inspection"}, dependencies=["WO-1"]),
        make_order("WO-4", minutes=120, due_hours=6, priority=1, skills={"machining"}),
        make_order("WO-5", minutes=30, due_hours=5, priority=5),
        make_order("WO-6", minutes=75, due_hours=8, priority=2, skills={"packaging"}, dependencies=["WO-3"]),
    ]


@pytest.fixture
def context(work_orders, workstations, origin):
    return PlanningContext(work_orders, workstations, origin)


@pytest.fixture
def fast_config():
    """Small, seeded GA run without a wall-clock budget."""
    return SchedulerConfig(
        population_size=12,
        generations=6,
        seed=42,
        max_workers=2,
        time_budget_seconds=None,
    )
