"""
Planning Context - Per-run lookups shared by every GA component

The context is built once per optimization call from the validated work
orders and workstations. It is read-only afterwards, so it can be shared by
the worker pool (and pickled for the process backend).

Key Features:
    - Work order / workstation indexes
    - Compatible stations per order, least-incompatible fallback
    - Due dates and maintenance windows as minute offsets from the origin
    - Predecessor lists and dependency depth (cycles rejected)
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from models.errors import ValidationError
from models.work_order import WorkOrder
from models.workstation import Workstation


logger = logging.getLogger(__name__)


def default_origin(work_orders: Sequence[WorkOrder]) -> datetime:
    """Midnight of the day holding the earliest due date."""
    if not work_orders:
        return datetime(2000, 1, 1)
    earliest = min(wo.due_date for wo in work_orders)
    return earliest.replace(hour=0, minute=0, second=0, microsecond=0)


class PlanningContext:
    """
    Immutable lookups for one planning run.

    Raises ValidationError for duplicate ids, unknown dependency ids,
    dependency cycles, or work orders without any workstation.
    """

    def __init__(
        self,
        work_orders: Sequence[WorkOrder],
        workstations: Sequence[Workstation],
        origin: Optional[datetime] = None,
    ):
        self.work_orders: Tuple[WorkOrder, ...] = tuple(work_orders)
        self.workstations: Tuple[Workstation, ...] = tuple(workstations)
        self.origin = origin or default_origin(self.work_orders)

        self.order_ids: Tuple[str, ...] = tuple(wo.work_order_id for wo in self.work_orders)
        self.orders: Dict[str, WorkOrder] = {}
        for wo in self.work_orders:
            if wo.work_order_id in self.orders:
                raise ValidationError(f"Duplicate work order id: {wo.work_order_id}")
            self.orders[wo.work_order_id] = wo

        self.stations: Dict[str, Workstation] = {}
        for ws in self.workstations:
            if ws.workstation_id in self.stations:
                raise ValidationError(f"Duplicate workstation id: {ws.workstation_id}")
            self.stations[ws.workstation_id] = ws

        if self.work_orders and not self.workstations:
            raise ValidationError("At least one workstation is required to schedule work orders")

        for wo in self.work_orders:
            unknown = [d for d in wo.dependencies if d not in self.orders]
            if unknown:
                raise ValidationError(
                    f"Work order {wo.work_order_id} depends on unknown id(s): {', '.join(unknown)}"
                )

        self.predecessors: Dict[str, Tuple[str, ...]] = {
            wo.work_order_id: wo.dependencies for wo in self.work_orders
        }
        self.depth: Dict[str, int] = self._dependency_depths()

        self.due_offsets: Dict[str, float] = {
            wo.work_order_id: (wo.due_date - self.origin).total_seconds() / 60.0
            for wo in self.work_orders
        }
        self.maintenance: Dict[str, Tuple[Tuple[float, float], ...]] = {
            ws.workstation_id: tuple(sorted(w.offsets(self.origin) for w in ws.maintenance_windows))
            for ws in self.workstations
        }

        self.compatible: Dict[str, Tuple[str, ...]] = {}
        self.fallback: Dict[str, str] = {}
        for wo in self.work_orders:
            ids = tuple(sorted(
                ws.workstation_id for ws in self.workstations if ws.can_perform(wo.required_skills)
            ))
            self.compatible[wo.work_order_id] = ids
            if not ids:
                self.fallback[wo.work_order_id] = self._least_incompatible(wo)

        self.unassignable: Tuple[str, ...] = tuple(
            oid for oid in self.order_ids if oid in self.fallback
        )
        if self.unassignable:
            logger.info(f"{len(self.unassignable)} work order(s) have no compatible workstation: "
                        f"{', '.join(self.unassignable)}")

    def _least_incompatible(self, wo: WorkOrder) -> str:
        """Fewest missing skills, then highest efficiency, then id."""
        best = min(
            self.workstations,
            key=lambda ws: (len(wo.missing_skills(ws.skills)), -ws.efficiency, ws.workstation_id),
        )
        return best.workstation_id

    def _dependency_depths(self) -> Dict[str, int]:
        depths: Dict[str, int] = {}
        visiting = set()

        def visit(oid: str) -> int:
            if oid in depths:
                return depths[oid]
            if oid in visiting:
                raise ValidationError(f"Dependency cycle detected at work order {oid}")
            visiting.add(oid)
            preds = self.predecessors[oid]
            depth = 1 + max((visit(p) for p in preds), default=-1)
            visiting.discard(oid)
            depths[oid] = depth
            return depth

        for oid in self.order_ids:
            visit(oid)
        return depths

    def __len__(self) -> int:
        return len(self.work_orders)

    def candidate_stations(self, order_id: str) -> Tuple[str, ...]:
        """Compatible stations, or the single fallback station for unassignable orders."""
        compatible = self.compatible[order_id]
        if compatible:
            return compatible
        return (self.fallback[order_id],)

    def is_compatible(self, order_id: str, station_id: str) -> bool:
        return station_id in self.compatible.get(order_id, ())

    def duration(self, order_id: str, station_id: str) -> float:
        """Processing minutes of an order on a station (efficiency applied)."""
        return self.stations[station_id].processing_minutes(self.orders[order_id].estimated_minutes)

    def clear_of_maintenance(self, station_id: str, start: float, duration: float) -> float:
        """
        Earliest start >= start whose run avoids every maintenance window.

        Args:
            station_id: Workstation identifier
            start: Proposed start (minutes from origin)
            duration: Run length in minutes

        Returns:
            Adjusted start in minutes
        """
        for win_start, win_end in self.maintenance.get(station_id, ()):
            if start < win_end and win_start < start + duration:
                start = win_end
        return start

    def placement_order(self, order: List[int]) -> List[int]:
        """Stable sort of gene indices so predecessors come first."""
        return sorted(order, key=lambda i: self.depth[self.order_ids[i]])
