"""
Work Order Model - Represents a unit of production work to be scheduled

This module defines the WorkOrder class which encapsulates everything the
scheduler needs to know about a single order: how long it takes, when it is
due, which skills it needs and which orders must finish before it starts.

Key Attributes:
    - work_order_id: Unique identifier
    - estimated_minutes: Processing duration at efficiency 1.0
    - due_date: Deadline for completion
    - priority: Ordinal urgency (higher = more urgent)
    - required_skills: Skills a workstation must offer to run the order
    - dependencies: Predecessor work order ids (precedence constraints)
"""

from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple
from dataclasses import dataclass, field
import json
import math

from models.errors import ValidationError


MAX_COMPLEXITY = 3.0

# camelCase keys accepted from JSON payloads
_WORK_ORDER_ALIASES = {
    "id": "work_order_id",
    "workOrderId": "work_order_id",
    "estimatedTime": "estimated_minutes",
    "estimatedMinutes": "estimated_minutes",
    "dueDate": "due_date",
    "requiredSkills": "required_skills",
}


def parse_datetime(value: Any) -> datetime:
    """
    Parse a datetime or ISO-8601 string into a naive UTC datetime.

    Aware datetimes are converted to UTC and stripped of tzinfo so that all
    arithmetic inside a planning run happens on one naive timeline.

    Args:
        value: datetime instance or ISO string (a trailing "Z" is accepted)

    Returns:
        Naive datetime
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(f"Invalid datetime: {value!r}") from exc

    if not isinstance(value, datetime):
        raise ValidationError(f"Expected datetime, got {type(value).__name__}")

    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def normalize_keys(data: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    return {aliases.get(key, key): value for key, value in data.items()}


def is_finite_number(value: Any) -> bool:
    """True for int/float values that are not bool, NaN or infinite."""
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def as_name_collection(value: Any, field_name: str, owner: str) -> Tuple[str, ...]:
    """
    Validate a collection of skill names or ids.

    A bare string is rejected; iterating it would yield single characters.

    Args:
        value: List, tuple, set or None
        field_name: Field being validated (for the error message)
        owner: Id of the object being built

    Returns:
        Tuple of the items (empty for None)
    """
    if value is None:
        return ()
    if isinstance(value, (str, bytes, dict)) or not hasattr(value, "__iter__"):
        raise ValidationError(
            f"{owner}: {field_name} must be a list of strings, got {type(value).__name__}"
        )
    items = tuple(value)
    for item in items:
        if not isinstance(item, str) or not item:
            raise ValidationError(f"{owner}: {field_name} entries must be non-empty strings, got {item!r}")
    return items


@dataclass(frozen=True)
class WorkOrder:
    """
    Represents a single work order in a planning run.

    Work orders are immutable once passed into the scheduler.

    Example:
        >>> order = WorkOrder(
        ...     work_order_id="WO-001",
        ...     estimated_minutes=120,
        ...     due_date=datetime(2024, 5, 1, 17, 0),
        ...     priority=3,
        ...     required_skills=frozenset({"assembly"}),
        ... )
    """

    work_order_id: str                   # Unique identifier (e.g., "WO-001")
    estimated_minutes: float             # Duration at efficiency 1.0
    due_date: datetime                   # Deadline for completion
    priority: int = 1                    # Higher = more urgent
    required_skills: FrozenSet[str] = field(default_factory=frozenset)
    dependencies: Tuple[str, ...] = ()   # Predecessor work order ids
    name: Optional[str] = None

    def __post_init__(self):
        """Validate and normalize work order data after initialization."""
        if not self.work_order_id:
            raise ValidationError("Work order id must be a non-empty string")

        if isinstance(self.priority, bool) or not isinstance(self.priority, int) or self.priority < 1:
            raise ValidationError(
                f"Work order {self.work_order_id}: priority must be an integer >= 1, "
                f"got {self.priority!r}"
            )

        if not is_finite_number(self.estimated_minutes) or self.estimated_minutes <= 0:
            raise ValidationError(
                f"Work order {self.work_order_id}: estimated_minutes must be positive, "
                f"got {self.estimated_minutes!r}"
            )

        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "due_date", parse_datetime(self.due_date))
        object.__setattr__(self, "required_skills", frozenset(
            as_name_collection(self.required_skills, "required_skills", self.work_order_id)
        ))
        object.__setattr__(self, "dependencies", as_name_collection(
            self.dependencies, "dependencies", self.work_order_id
        ))

        if self.work_order_id in self.dependencies:
            raise ValidationError(f"Work order {self.work_order_id} cannot depend on itself")

    @property
    def complexity(self) -> float:
        """
        Complexity score, monotonic in skill count, duration and dependencies.

        Returns:
            Score in [1.0, 3.0]
        """
        score = 1.0
        score += len(self.required_skills) * 0.2
        if self.estimated_minutes > 120:
            score += 0.5
        score += len(self.dependencies) * 0.3
        return min(score, MAX_COMPLEXITY)

    def is_compatible_with(self, skills: Iterable[str]) -> bool:
        """Check whether a skill set covers every required skill."""
        return self.required_skills <= frozenset(skills)

    def missing_skills(self, skills: Iterable[str]) -> FrozenSet[str]:
        """Required skills not present in the given skill set."""
        return self.required_skills - frozenset(skills)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert work order to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the work order
        """
        return {
            "work_order_id": self.work_order_id,
            "name": self.name,
            "priority": self.priority,
            "estimated_minutes": self.estimated_minutes,
            "due_date": self.due_date.isoformat(),
            "required_skills": sorted(self.required_skills),
            "dependencies": list(self.dependencies),
            "complexity": round(self.complexity, 2),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WorkOrder':
        """
        Create a WorkOrder instance from a dictionary.

        Accepts both snake_case keys and the camelCase keys used by the
        planning API payloads. Unknown keys are ignored.

        Args:
            data: Dictionary containing work order data

        Returns:
            WorkOrder instance
        """
        if not isinstance(data, dict):
            raise ValidationError(f"Work order must be a mapping, got {type(data).__name__}")

        values = normalize_keys(data, _WORK_ORDER_ALIASES)
        if "work_order_id" not in values:
            raise ValidationError(f"Work order is missing an id: {data!r}")
        if "due_date" not in values:
            raise ValidationError(f"Work order {values['work_order_id']} is missing a due date")

        return cls(
            work_order_id=str(values["work_order_id"]),
            estimated_minutes=values.get("estimated_minutes", 60),
            due_date=values["due_date"],
            priority=values.get("priority", 1),
            required_skills=values.get("required_skills"),
            dependencies=values.get("dependencies"),
            name=values.get("name"),
        )

    def __str__(self) -> str:
        """String representation for logging and debugging."""
        return (f"WorkOrder({self.work_order_id}: {self.estimated_minutes}min, "
                f"P{self.priority}, due {self.due_date:%Y-%m-%d %H:%M})")


# Example usage and testing
if __name__ == "__main__":
    order = WorkOrder(
        work_order_id="WO-003",
        estimated_minutes=60,
        due_date=datetime(2024, 5, 1, 12, 0),
        priority=1,
        required_skills=frozenset({"quality_check"}),
        dependencies=("WO-001",),
    )

    print(order)
    print(f"Complexity: {order.complexity}")
    print(f"Runs on {{'quality_check'}}? {order.is_compatible_with({'quality_check'})}")

    order_dict = order.to_dict()
    print(f"\nAs dict: {json.dumps(order_dict, indent=2)}")
    print(f"\nReconstructed: {WorkOrder.from_dict(order_dict)}")
