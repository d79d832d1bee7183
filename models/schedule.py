"""
Schedule Model - Represents candidate schedules (chromosomes) and metrics

This module defines the ScheduleAssignment gene, the Schedule chromosome and
the ScheduleMetrics derived from the best schedule of a run.

Key Features:
    - One assignment per work order, gene i <-> work order i (totality)
    - Station/slot timelines for overlap checks and repair
    - Times kept as minutes from the planning origin, datetimes on export
    - Tabular export through pandas
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field, replace
from collections import defaultdict

import pandas as pd

from models.errors import ValidationError


@dataclass(frozen=True)
class ScheduleAssignment:
    """
    A work order placed on one slot of a workstation.

    end = start + estimated duration / station efficiency
    """
    work_order_id: str
    workstation_id: str
    start: float                  # Minutes from planning origin
    end: float                    # Minutes from planning origin
    slot: int = 0                 # Parallel lane within the station
    skill_violation: bool = False  # Station lacks a required skill

    @property
    def duration(self) -> float:
        return self.end - self.start

    def moved(self, start: float, slot: Optional[int] = None) -> 'ScheduleAssignment':
        """Copy of this assignment starting at a new time (duration kept)."""
        return replace(
            self,
            start=start,
            end=start + self.duration,
            slot=self.slot if slot is None else slot,
        )

    def overlaps(self, other: 'ScheduleAssignment') -> bool:
        """True if both occupy the same station slot at the same time."""
        if self.workstation_id != other.workstation_id or self.slot != other.slot:
            return False
        return self.start < other.end and other.start < self.end

    def to_dict(self, origin: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Convert to dictionary.

        Args:
            origin: Planning origin; when given, datetimes are included

        Returns:
            Dictionary representation
        """
        data = {
            "work_order_id": self.work_order_id,
            "workstation_id": self.workstation_id,
            "slot": self.slot,
            "start_minute": round(self.start, 3),
            "end_minute": round(self.end, 3),
            "duration_minutes": round(self.duration, 3),
            "skill_violation": self.skill_violation,
        }
        if origin is not None:
            data["start_time"] = (origin + timedelta(minutes=self.start)).isoformat()
            data["end_time"] = (origin + timedelta(minutes=self.end)).isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScheduleAssignment':
        """
        Rebuild an assignment from its to_dict() form.

        end_minute may be replaced by duration_minutes.
        """
        if not isinstance(data, dict):
            raise ValidationError(f"Assignment must be a mapping, got {type(data).__name__}")

        try:
            start = float(data["start_minute"])
            if "end_minute" in data:
                end = float(data["end_minute"])
            else:
                end = start + float(data["duration_minutes"])
            return cls(
                work_order_id=str(data["work_order_id"]),
                workstation_id=str(data["workstation_id"]),
                start=start,
                end=end,
                slot=int(data.get("slot", 0)),
                skill_violation=bool(data.get("skill_violation", False)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid assignment {data!r}: {exc}") from exc


@dataclass
class Schedule:
    """
    A complete candidate schedule (chromosome).

    assignments[i] is the gene for the i-th input work order. Genetic
    operators only ever touch fresh copies, never a parent's list.
    """

    assignments: List[ScheduleAssignment] = field(default_factory=list)

    def copy(self) -> 'Schedule':
        return Schedule(assignments=list(self.assignments))

    def __len__(self) -> int:
        return len(self.assignments)

    def work_order_ids(self) -> List[str]:
        return [a.work_order_id for a in self.assignments]

    def get_station_assignments(self, workstation_id: str) -> List[ScheduleAssignment]:
        """
        Get all assignments on a workstation, ordered by start time.

        Args:
            workstation_id: Workstation identifier

        Returns:
            List of assignments for that workstation
        """
        return sorted(
            (a for a in self.assignments if a.workstation_id == workstation_id),
            key=lambda a: (a.start, a.work_order_id),
        )

    def by_station(self) -> Dict[str, List[ScheduleAssignment]]:
        """Gene indices are lost here; use for read-only timeline checks."""
        stations: Dict[str, List[ScheduleAssignment]] = defaultdict(list)
        for assignment in self.assignments:
            stations[assignment.workstation_id].append(assignment)
        return dict(stations)

    def lanes(self) -> Dict[Tuple[str, int], List[ScheduleAssignment]]:
        """Assignments grouped per (workstation, slot), sorted by start."""
        grouped: Dict[Tuple[str, int], List[ScheduleAssignment]] = defaultdict(list)
        for assignment in self.assignments:
            grouped[(assignment.workstation_id, assignment.slot)].append(assignment)
        for timeline in grouped.values():
            timeline.sort(key=lambda a: (a.start, a.end))
        return dict(grouped)

    @property
    def earliest_start(self) -> float:
        return min((a.start for a in self.assignments), default=0.0)

    @property
    def latest_end(self) -> float:
        return max((a.end for a in self.assignments), default=0.0)

    @property
    def makespan(self) -> float:
        """Latest end minus earliest start, in minutes (0 when empty)."""
        if not self.assignments:
            return 0.0
        return self.latest_end - self.earliest_start

    def to_records(self, origin: Optional[datetime] = None) -> List[Dict[str, Any]]:
        return [a.to_dict(origin) for a in self.assignments]

    @classmethod
    def from_records(cls, records) -> 'Schedule':
        """Build a schedule from assignment dicts (or assignments)."""
        return cls(assignments=[
            r if isinstance(r, ScheduleAssignment) else ScheduleAssignment.from_dict(r)
            for r in records
        ])

    def to_dataframe(self, origin: Optional[datetime] = None) -> pd.DataFrame:
        """
        Export the schedule as a DataFrame, one row per assignment.

        Args:
            origin: Planning origin for datetime columns

        Returns:
            DataFrame sorted by workstation, slot and start
        """
        columns = ["work_order_id", "workstation_id", "slot", "start_minute",
                   "end_minute", "duration_minutes", "skill_violation"]
        if origin is not None:
            columns += ["start_time", "end_time"]

        df = pd.DataFrame(self.to_records(origin), columns=columns)
        if df.empty:
            return df
        return df.sort_values(["workstation_id", "slot", "start_minute"]).reset_index(drop=True)

    def __str__(self) -> str:
        return (f"Schedule({len(self.assignments)} assignments on "
                f"{len(self.by_station())} stations, makespan {self.makespan:.0f}min)")


@dataclass
class Individual:
    """A population member: a schedule and its fitness (None until evaluated)."""
    schedule: Schedule
    fitness: Optional[float] = None

    @property
    def evaluated(self) -> bool:
        return self.fitness is not None


@dataclass
class ScheduleMetrics:
    """
    Key performance indicators for a finished schedule.
    """

    makespan_minutes: float = 0.0
    average_utilization: float = 0.0      # Percent, mean over workstations
    on_time_rate: float = 100.0           # Percent of orders ending by their due date
    total_tardiness_minutes: float = 0.0
    time_conflicts: int = 0
    precedence_violations: int = 0
    skill_violations: int = 0
    maintenance_conflicts: int = 0
    unassignable_count: int = 0

    @property
    def constraint_violations(self) -> int:
        return (self.time_conflicts + self.precedence_violations +
                self.skill_violations + self.maintenance_conflicts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "makespan_minutes": round(self.makespan_minutes, 2),
            "average_utilization": round(self.average_utilization, 2),
            "on_time_rate": round(self.on_time_rate, 2),
            "total_tardiness_minutes": round(self.total_tardiness_minutes, 2),
            "time_conflicts": self.time_conflicts,
            "precedence_violations": self.precedence_violations,
            "skill_violations": self.skill_violations,
            "maintenance_conflicts": self.maintenance_conflicts,
            "constraint_violations": self.constraint_violations,
            "unassignable_count": self.unassignable_count,
        }

    def __str__(self) -> str:
        return (f"Metrics(Makespan: {self.makespan_minutes:.0f}min, "
                f"Utilization: {self.average_utilization:.1f}%, "
                f"On-time: {self.on_time_rate:.0f}%, "
                f"Violations: {self.constraint_violations})")
