"""
Test Data Generator - Create realistic planning scenarios for testing

This module provides functions to generate test data including:
- Randomly generated work orders matched to a workstation pool
- Randomly generated workstations
- Rush order and maintenance scenarios
- CSV export / import of work orders and schedules
"""

import random
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence
import pandas as pd
from pathlib import Path

from models.errors import ValidationError
from models.schedule import Schedule
from models.work_order import WorkOrder
from models.workstation import MaintenanceWindow, Workstation


# Product family configurations
PRODUCT_FAMILIES = {
    'assembly': {'avg_time': 90, 'variance': 30, 'skills': ['assembly']},
    'machined': {'avg_time': 120, 'variance': 45, 'skills': ['machining']},
    'inspected': {'avg_time': 45, 'variance': 15, 'skills': ['inspection']},
    'packaged': {'avg_time': 30, 'variance': 10, 'skills': ['packaging']},
}

SKILL_POOL = ['assembly', 'soldering', 'machining', 'drilling', 'inspection',
              'quality_check', 'packaging', 'labeling', 'repair']

DEFAULT_ORIGIN = datetime(2024, 5, 1)


def generate_work_orders(
    num_orders: int,
    workstations: Optional[Sequence[Workstation]] = None,
    seed: Optional[int] = None,
    origin: datetime = DEFAULT_ORIGIN,
    horizon_hours: int = 48,
    dependency_probability: float = 0.15,
) -> List[WorkOrder]:
    """
    Generate random work orders for testing.

    Required skills are drawn from a single workstation's skill set, so
    every generated order can run somewhere in the given pool.

    Args:
        num_orders: Number of work orders to generate
        workstations: Pool the orders must fit (product families when None)
        seed: Seed for reproducible data
        origin: Start of the planning horizon
        horizon_hours: Latest due date, in hours after origin
        dependency_probability: Chance an order depends on an earlier one

    Returns:
        List of WorkOrder objects
    """
    rng = random.Random(seed)
    orders = []

    for i in range(num_orders):
        order_id = f"WO-{i + 1:03d}"

        family = rng.choice(list(PRODUCT_FAMILIES))
        config = PRODUCT_FAMILIES[family]
        minutes = max(15, config['avg_time'] + rng.randint(-config['variance'], config['variance']))

        if workstations:
            station = rng.choice(list(workstations))
            pool = sorted(station.skills)
            skills = rng.sample(pool, rng.randint(0, min(2, len(pool)))) if pool else []
        else:
            skills = list(config['skills'])

        dependencies = ()
        if orders and rng.random() < dependency_probability:
            dependencies = (rng.choice(orders).work_order_id,)

        due = origin + timedelta(minutes=rng.randint(120, horizon_hours * 60))
        orders.append(WorkOrder(
            work_order_id=order_id,
            estimated_minutes=minutes,
            due_date=due,
            priority=rng.randint(1, 5),
            required_skills=frozenset(skills),
            dependencies=dependencies,
            name=f"{family.title()} order {i + 1}",
        ))

    return orders


def generate_workstations(num_stations: int, seed: Optional[int] = None) -> List[Workstation]:
    """
    Generate random workstations.

    Args:
        num_stations: Number of workstations
        seed: Seed for reproducible data

    Returns:
        List of Workstation objects
    """
    rng = random.Random(seed)
    return [
        Workstation(
            workstation_id=f"WS-{101 + i}",
            capacity=rng.randint(1, 3),
            skills=frozenset(rng.sample(SKILL_POOL, rng.randint(2, 4))),
            efficiency=round(rng.uniform(0.7, 1.1), 2),
            current_load=round(rng.uniform(0.2, 0.95), 2),
            maintenance_ratio=round(rng.uniform(0.0, 0.2), 2),
            name=f"Workstation {101 + i}",
        )
        for i in range(num_stations)
    ]


def generate_rush_order(workstations: Sequence[Workstation], seed: Optional[int] = None,
                        origin: datetime = DEFAULT_ORIGIN) -> WorkOrder:
    """
    Generate a single rush order with a tight deadline.

    Returns:
        WorkOrder with top priority, due 2-3 hours after origin
    """
    rng = random.Random(seed)
    station = rng.choice(list(workstations))
    return WorkOrder(
        work_order_id=f"RUSH-{rng.randint(1000, 9999)}",
        estimated_minutes=60,
        due_date=origin + timedelta(hours=rng.randint(2, 3)),
        priority=5,
        required_skills=frozenset(sorted(station.skills)[:1]),
    )


def generate_maintenance_window(seed: Optional[int] = None,
                                origin: datetime = DEFAULT_ORIGIN) -> MaintenanceWindow:
    """
    Generate a random maintenance window on the first day of the horizon.

    Returns:
        MaintenanceWindow of 30-90 minutes between 09:00 and 15:00
    """
    rng = random.Random(seed)
    start = origin + timedelta(hours=rng.randint(9, 14), minutes=rng.choice([0, 30]))
    reasons = [
        "Scheduled Maintenance",
        "Tool Change",
        "Calibration",
        "Unplanned Breakdown",
    ]
    return MaintenanceWindow(start, start + timedelta(minutes=rng.randint(30, 90)), rng.choice(reasons))


def create_rush_scenario(seed: Optional[int] = None) -> Dict[str, Any]:
    """
    Scenario: Rush Order Insertion

    10 normal work orders + 2 rush orders
    """
    stations = generate_workstations(4, seed=seed)
    normal = generate_work_orders(10, stations, seed=seed)
    rush = [generate_rush_order(stations, seed=None if seed is None else seed + k) for k in range(2)]

    return {
        'name': 'Rush Order Insertion',
        'description': 'Test how the optimizer fits urgent orders into a loaded plan',
        'work_orders': normal + rush,
        'workstations': stations,
    }


def create_maintenance_scenario(seed: Optional[int] = None) -> Dict[str, Any]:
    """
    Scenario: Workstation Maintenance

    15 work orders with the first station down for maintenance
    """
    stations = generate_workstations(3, seed=seed)
    first = stations[0]
    stations[0] = Workstation(
        workstation_id=first.workstation_id,
        capacity=first.capacity,
        skills=first.skills,
        efficiency=first.efficiency,
        current_load=first.current_load,
        maintenance_windows=(generate_maintenance_window(seed),),
        name=first.name,
    )

    return {
        'name': 'Workstation Maintenance',
        'description': f'Test rescheduling around maintenance on {first.workstation_id}',
        'work_orders': generate_work_orders(15, stations, seed=seed),
        'workstations': stations,
    }


def export_work_orders_csv(work_orders: Sequence[WorkOrder], output_path: str):
    """
    Export work orders to a CSV file.

    Args:
        work_orders: List of WorkOrder objects
        output_path: Path to save CSV
    """
    data = []
    for order in work_orders:
        data.append({
            'work_order_id': order.work_order_id,
            'name': order.name or '',
            'estimated_minutes': order.estimated_minutes,
            'due_date': order.due_date.isoformat(),
            'priority': order.priority,
            'required_skills': ','.join(sorted(order.required_skills)),
            'dependencies': ','.join(order.dependencies),
        })

    df = pd.DataFrame(data, columns=['work_order_id', 'name', 'estimated_minutes', 'due_date',
                                     'priority', 'required_skills', 'dependencies'])
    df.to_csv(output_path, index=False)


def _split(value) -> List[str]:
    if pd.isna(value) or value == '':
        return []
    return [part.strip() for part in str(value).split(',') if part.strip()]


def load_work_orders_csv(input_path: str) -> List[WorkOrder]:
    """
    Load work orders from a CSV written by export_work_orders_csv.

    Args:
        input_path: Path to CSV

    Returns:
        List of WorkOrder objects
    """
    df = pd.read_csv(input_path, dtype={'work_order_id': str, 'name': str,
                                        'required_skills': str, 'dependencies': str})
    missing = {'work_order_id', 'estimated_minutes', 'due_date'} - set(df.columns)
    if missing:
        raise ValidationError(f"CSV {input_path} is missing column(s): {', '.join(sorted(missing))}")

    orders = []
    for row in df.itertuples(index=False):
        orders.append(WorkOrder(
            work_order_id=row.work_order_id,
            estimated_minutes=float(row.estimated_minutes),
            due_date=row.due_date,
            priority=int(getattr(row, 'priority', 1)),
            required_skills=frozenset(_split(getattr(row, 'required_skills', ''))),
            dependencies=tuple(_split(getattr(row, 'dependencies', ''))),
            name=None if pd.isna(getattr(row, 'name', None)) else row.name,
        ))
    return orders


def export_schedule_csv(schedule: Schedule, output_path: str, origin: Optional[datetime] = None):
    """
    Export a schedule to CSV, one row per assignment.

    Args:
        schedule: Schedule to export
        output_path: Path to save CSV
        origin: Planning origin for start/end datetime columns
    """
    schedule.to_dataframe(origin).to_csv(output_path, index=False)


# Example usage and CLI
if __name__ == "__main__":
    print("=" * 60)
    print("TEST DATA GENERATOR")
    print("=" * 60)

    output_dir = Path(__file__).parent.parent / 'data'
    output_dir.mkdir(exist_ok=True)

    for scenario, filename in [
        (create_rush_scenario(seed=1), 'scenario_rush_orders.csv'),
        (create_maintenance_scenario(seed=2), 'scenario_maintenance.csv'),
    ]:
        print(f"\n{scenario['name']}")
        print(f"{scenario['description']}")
        print(f"Work orders: {len(scenario['work_orders'])}, workstations: {len(scenario['workstations'])}")
        export_work_orders_csv(scenario['work_orders'], str(output_dir / filename))

    print(f"\nAll scenarios exported to {output_dir}")
