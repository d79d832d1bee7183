"""
Planning Service - Entry points for schedule optimization and capacity analysis

These functions are the boundary of the package. They accept model objects
or plain dictionaries, validate everything before any computation starts and
return plain, JSON-serializable dictionaries.

Operations:
    - optimize_schedule: genetic scheduling of work orders onto workstations
    - analyze_capacity: capacity, load, bottleneck and forecast report
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from langsmith import traceable

from models.errors import ValidationError
from models.schedule import Schedule
from models.work_order import WorkOrder, parse_datetime
from models.workstation import Workstation
from utils.config_loader import default_analysis_settings, parse_scheduler_config
from workflows.capacity_workflow import CapacityAnalysisWorkflow
from workflows.orchestrator import SchedulerOrchestrator


logger = logging.getLogger(__name__)

# A station dict must carry these (snake_case or camelCase) to count as complete
_COMPLETE_STATION_KEYS = (
    ("capacity",),
    ("efficiency",),
    ("current_load", "currentLoad"),
)


def _as_list(items, name: str) -> List[Any]:
    if items is None:
        return []
    if isinstance(items, (str, bytes, dict)) or not hasattr(items, "__iter__"):
        raise ValidationError(f"{name} must be a list, got {type(items).__name__}")
    return list(items)


def coerce_work_orders(items) -> List[WorkOrder]:
    """Work orders from model objects or dictionaries, order preserved."""
    return [
        item if isinstance(item, WorkOrder) else WorkOrder.from_dict(item)
        for item in _as_list(items, "work_orders")
    ]


def coerce_workstations(items) -> List[Workstation]:
    """Workstations from model objects or dictionaries, order preserved."""
    return [
        item if isinstance(item, Workstation) else Workstation.from_dict(item)
        for item in _as_list(items, "workstations")
    ]


def data_completeness(items: Sequence[Any]) -> float:
    """
    Fraction of workstation inputs that carry capacity, efficiency and load.

    Model objects always count as complete. An empty list gives 0.
    """
    if not items:
        return 0.0
    complete = 0
    for item in items:
        if not isinstance(item, dict):
            complete += 1
        elif all(any(key in item for key in keys) for keys in _COMPLETE_STATION_KEYS):
            complete += 1
    return complete / len(items)


def _parse_origin(origin: Optional[Union[str, datetime]]) -> Optional[datetime]:
    return None if origin is None else parse_datetime(origin)


@traceable(name="Optimize Schedule")
def optimize_schedule(
    work_orders,
    workstations,
    constraints: Optional[Dict[str, Any]] = None,
    *,
    origin: Optional[Union[str, datetime]] = None,
    supervisor=None,
) -> Dict[str, Any]:
    """
    Optimize the assignment of work orders to workstations.

    Args:
        work_orders: WorkOrder objects or dicts (may be empty)
        workstations: Workstation objects or dicts
        constraints: GA parameters, weights and penalties; missing keys fall
            back to the default policy, unknown keys are ignored
        origin: Planning origin (time zero); midnight of the earliest due
            date when omitted
        supervisor: Optional SupervisorAgent; adds an LLM review of the
            request (planning_overview) and a narrative

    Returns:
        Result dictionary (schedule, fitness, metrics, convergence, explanation)

    Raises:
        ValidationError: malformed input, rejected before scheduling starts
    """
    orders = coerce_work_orders(work_orders)
    stations = coerce_workstations(workstations)
    config = parse_scheduler_config(constraints)

    orchestrator = SchedulerOrchestrator(
        orders, stations, config, origin=_parse_origin(origin), supervisor=supervisor
    )
    result = orchestrator.optimize()
    return result.to_dict()


@traceable(name="Analyze Capacity")
def analyze_capacity(
    workstations,
    time_horizon_days: Optional[int] = None,
    mode: Optional[str] = None,
    *,
    work_orders=None,
    schedule=None,
    seed: Optional[int] = None,
    origin: Optional[Union[str, datetime]] = None,
    supervisor=None,
) -> Dict[str, Any]:
    """
    Analyze workstation capacity, load, bottlenecks and the load forecast.

    Args:
        workstations: Workstation objects or dicts (may be empty)
        time_horizon_days: Horizon in days (>= 1); default policy value when None
        mode: "basic" or "detailed"; default policy value when None
        work_orders: Optional work orders (skill gaps, schedule skills)
        schedule: Optional Schedule or list of assignment dicts
        seed: Optional seed for the forecast jitter
        origin: Start of the horizon (maintenance windows, forecast dates)
        supervisor: Optional SupervisorAgent adding an LLM narrative

    Returns:
        Capacity report dictionary

    Raises:
        ValidationError: malformed input or horizon < 1
    """
    defaults = default_analysis_settings()
    if time_horizon_days is None:
        time_horizon_days = defaults.get("time_horizon_days", 7)
    if mode is None:
        mode = defaults.get("mode", "detailed")

    raw_stations = _as_list(workstations, "workstations")
    stations = coerce_workstations(raw_stations)
    orders = coerce_work_orders(work_orders) if work_orders is not None else None

    plan = None
    if schedule is not None:
        plan = schedule if isinstance(schedule, Schedule) else Schedule.from_records(
            _as_list(schedule, "schedule")
        )
        known = {ws.workstation_id for ws in stations}
        unknown = sorted({a.workstation_id for a in plan.assignments} - known)
        if unknown:
            raise ValidationError(f"Schedule references unknown workstation(s): {', '.join(unknown)}")

    workflow = CapacityAnalysisWorkflow(seed=seed, supervisor=supervisor)
    report = workflow.analyze(
        stations,
        horizon_days=time_horizon_days,
        mode=mode,
        work_orders=orders,
        schedule=plan,
        origin=_parse_origin(origin),
        completeness=data_completeness(raw_stations),
    )
    return report.to_dict()


# Example usage
if __name__ == "__main__":
    import json
    from utils.config_loader import load_config
    from utils.data_generator import generate_work_orders

    logging.basicConfig(level=logging.INFO)

    policy = load_config()
    stations = policy["workstations"]
    orders = generate_work_orders(15, stations, seed=11)

    result = optimize_schedule(orders, stations, {"generations": 30, "seed": 11})
    print(result["explanation"])

    report = analyze_capacity(stations, 7, "detailed", work_orders=orders,
                              schedule=result["schedule"], seed=11)
    print(json.dumps(report["summary"], indent=2))
