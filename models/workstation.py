"""
Workstation Model - Represents production workstations

This module defines the Workstation class and its MaintenanceWindow periods.

Key Features:
    - Parallel job slots (capacity) and throughput efficiency
    - Skill sets for work order compatibility
    - Current load fraction for capacity analysis
    - Maintenance window management
"""

from datetime import datetime, timedelta
from typing import Any, Dict, FrozenSet, Optional, Tuple
from dataclasses import dataclass, field

from models.errors import ValidationError
from models.work_order import as_name_collection, is_finite_number, normalize_keys, parse_datetime


DEFAULT_MAINTENANCE_RATIO = 0.1

_WORKSTATION_ALIASES = {
    "id": "workstation_id",
    "workstationId": "workstation_id",
    "currentLoad": "current_load",
    "maintenanceWindows": "maintenance_windows",
    "maintenanceRatio": "maintenance_ratio",
    "requiredSkills": "required_skills",
}


@dataclass(frozen=True)
class MaintenanceWindow:
    """
    Represents a scheduled maintenance period for a workstation.
    """
    start: datetime
    end: datetime
    reason: str = "Maintenance"

    def __post_init__(self):
        object.__setattr__(self, "start", parse_datetime(self.start))
        object.__setattr__(self, "end", parse_datetime(self.end))
        if self.end <= self.start:
            raise ValidationError(f"Maintenance window ends before it starts: {self}")

    def overlap_hours(self, start: datetime, end: datetime) -> float:
        """Hours of this window that fall inside [start, end)."""
        lo = max(self.start, start)
        hi = min(self.end, end)
        if hi <= lo:
            return 0.0
        return (hi - lo).total_seconds() / 3600.0

    def offsets(self, origin: datetime) -> Tuple[float, float]:
        """Window as (start, end) minutes relative to a planning origin."""
        return (
            (self.start - origin).total_seconds() / 60.0,
            (self.end - origin).total_seconds() / 60.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "reason": self.reason,
        }

    def __str__(self) -> str:
        return f"Maintenance({self.start:%m-%d %H:%M}-{self.end:%m-%d %H:%M}: {self.reason})"


@dataclass(frozen=True)
class Workstation:
    """
    Represents a workstation with its capabilities and current load.

    Example:
        >>> station = Workstation(
        ...     workstation_id="WS-101",
        ...     capacity=2,
        ...     skills=frozenset({"assembly", "quality_check"}),
        ...     efficiency=1.2,
        ...     current_load=0.3,
        ... )
    """

    workstation_id: str                  # Unique identifier (e.g., "WS-101")
    capacity: int = 1                    # Parallel job slots
    skills: FrozenSet[str] = field(default_factory=frozenset)
    efficiency: float = 1.0              # Throughput multiplier
    current_load: float = 0.0            # Load fraction in [0, 1]
    maintenance_windows: Tuple[MaintenanceWindow, ...] = ()
    maintenance_ratio: float = DEFAULT_MAINTENANCE_RATIO  # Used when no windows are given
    required_skills: FrozenSet[str] = field(default_factory=frozenset)  # Skills demanded here
    name: Optional[str] = None

    def __post_init__(self):
        """Validate and normalize workstation data after initialization."""
        if not self.workstation_id:
            raise ValidationError("Workstation id must be a non-empty string")

        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int) or self.capacity < 1:
            raise ValidationError(
                f"Workstation {self.workstation_id}: capacity must be an integer >= 1, "
                f"got {self.capacity!r}"
            )

        if not is_finite_number(self.efficiency) or self.efficiency <= 0:
            raise ValidationError(
                f"Workstation {self.workstation_id}: efficiency must be > 0, got {self.efficiency!r}"
            )

        if not is_finite_number(self.current_load) or not 0.0 <= self.current_load <= 1.0:
            raise ValidationError(
                f"Workstation {self.workstation_id}: current_load must be in [0, 1], "
                f"got {self.current_load!r}"
            )

        if not is_finite_number(self.maintenance_ratio) or not 0.0 <= self.maintenance_ratio < 1.0:
            raise ValidationError(
                f"Workstation {self.workstation_id}: maintenance_ratio must be in [0, 1), "
                f"got {self.maintenance_ratio!r}"
            )

        object.__setattr__(self, "skills", frozenset(
            as_name_collection(self.skills, "skills", self.workstation_id)
        ))
        object.__setattr__(self, "required_skills", frozenset(
            as_name_collection(self.required_skills, "required_skills", self.workstation_id)
        ))
        object.__setattr__(self, "maintenance_windows", tuple(self.maintenance_windows or ()))

    @property
    def display_name(self) -> str:
        return self.name or self.workstation_id

    def can_perform(self, skills) -> bool:
        """
        Check if this workstation offers every skill in the given set.

        Args:
            skills: Required skills (e.g., a work order's required_skills)

        Returns:
            True if compatible, False otherwise
        """
        return frozenset(skills) <= self.skills

    def processing_minutes(self, estimated_minutes: float) -> float:
        """Wall-clock minutes this station needs for a job of the given size."""
        return estimated_minutes / self.efficiency

    def maintenance_ratio_for(self, origin: datetime, horizon_hours: float) -> float:
        """
        Fraction of the horizon lost to maintenance.

        Uses the maintenance windows overlapping [origin, origin + horizon)
        when any are defined, otherwise the configured maintenance_ratio.

        Args:
            origin: Start of the analysis horizon
            horizon_hours: Horizon length in hours

        Returns:
            Ratio in [0, 1]
        """
        if not self.maintenance_windows or horizon_hours <= 0:
            return self.maintenance_ratio

        end = origin + timedelta(hours=horizon_hours)
        down = sum(w.overlap_hours(origin, end) for w in self.maintenance_windows)
        return min(1.0, down / horizon_hours)

    def to_dict(self) -> Dict[str, Any]:
        """Convert workstation to dictionary."""
        return {
            "workstation_id": self.workstation_id,
            "name": self.name,
            "capacity": self.capacity,
            "skills": sorted(self.skills),
            "efficiency": self.efficiency,
            "current_load": self.current_load,
            "maintenance_ratio": self.maintenance_ratio,
            "maintenance_windows": [w.to_dict() for w in self.maintenance_windows],
            "required_skills": sorted(self.required_skills),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Workstation':
        """
        Create a Workstation from a dictionary (snake_case or camelCase keys).

        Args:
            data: Dictionary containing workstation data

        Returns:
            Workstation instance
        """
        if not isinstance(data, dict):
            raise ValidationError(f"Workstation must be a mapping, got {type(data).__name__}")

        values = normalize_keys(data, _WORKSTATION_ALIASES)
        if "workstation_id" not in values:
            raise ValidationError(f"Workstation is missing an id: {data!r}")

        windows = []
        for window in values.get("maintenance_windows") or ():
            if isinstance(window, MaintenanceWindow):
                windows.append(window)
                continue
            try:
                windows.append(MaintenanceWindow(
                    start=window["start"],
                    end=window["end"],
                    reason=window.get("reason", "Maintenance"),
                ))
            except (KeyError, TypeError, AttributeError) as exc:
                raise ValidationError(
                    f"Workstation {values['workstation_id']}: maintenance window needs 'start' and 'end', "
                    f"got {window!r}"
                ) from exc

        return cls(
            workstation_id=str(values["workstation_id"]),
            capacity=values.get("capacity", 1),
            skills=values.get("skills"),
            efficiency=values.get("efficiency", 1.0),
            current_load=values.get("current_load", 0.0),
            maintenance_windows=tuple(windows),
            maintenance_ratio=values.get("maintenance_ratio", DEFAULT_MAINTENANCE_RATIO),
            required_skills=values.get("required_skills"),
            name=values.get("name"),
        )

    def __str__(self) -> str:
        return (f"Workstation({self.workstation_id}: {', '.join(sorted(self.skills)) or '-'}, "
                f"x{self.capacity}, eff {self.efficiency:.2f}, "
                f"{len(self.maintenance_windows)} maintenance window(s))")


# Example usage
if __name__ == "__main__":
    station = Workstation(
        workstation_id="WS-101",
        capacity=2,
        skills=frozenset({"assembly", "quality_check"}),
        efficiency=1.2,
        current_load=0.3,
        maintenance_windows=(
            MaintenanceWindow(datetime(2024, 5, 1, 10, 0), datetime(2024, 5, 1, 14, 0), "Tool Change"),
        ),
    )

    print(station)
    print(f"Can perform assembly? {station.can_perform({'assembly'})}")
    print(f"120 min job takes {station.processing_minutes(120):.1f} min here")
    print(f"Maintenance ratio (1 day): {station.maintenance_ratio_for(datetime(2024, 5, 1), 24):.3f}")
