"""
Scheduling Constraints - Explicit configuration for one optimization run

This module replaces free-form constraint dictionaries with typed structures:

- FitnessWeights: relative importance of the fitness sub-scores
- PenaltyWeights: independent weights for each constraint-violation category
- SchedulerConfig: GA parameters, stop rule, parallelism and objectives

Every recognized option has a documented default; values are validated on
construction so a bad option aborts the run before any computation starts.
"""

from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, Optional

from models.errors import ValidationError


PARALLEL_BACKENDS = ("thread", "process")


@dataclass(frozen=True)
class FitnessWeights:
    """
    Weights for the fitness sub-scores.

    They are renormalized to sum to 1 before use, so callers may pass any
    non-negative values.
    """

    on_time: float = 0.30        # Share of orders finishing before their due date
    utilization: float = 0.25    # Busy time vs. available time over the span
    load_balance: float = 0.20   # Evenness of per-station utilization
    priority: float = 0.25       # High priority early, skill compliance

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, (int, float)) or value < 0:
                raise ValidationError(f"Fitness weight '{f.name}' must be >= 0, got {value!r}")
        if sum(getattr(self, f.name) for f in fields(self)) <= 0:
            raise ValidationError("At least one fitness weight must be positive")

    def normalized(self) -> 'FitnessWeights':
        """Return a copy whose weights sum to exactly 1."""
        total = self.on_time + self.utilization + self.load_balance + self.priority
        return FitnessWeights(
            on_time=self.on_time / total,
            utilization=self.utilization / total,
            load_balance=self.load_balance / total,
            priority=self.priority / total,
        )

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class PenaltyWeights:
    """
    Independent penalty weights, subtracted from fitness.

    Time conflicts and precedence violations are heavy enough that one of
    them pushes a schedule below every feasible one.
    """

    time_conflict: float = 150.0   # Per overlapping pair on one station slot
    precedence: float = 100.0      # Per work order starting before a predecessor ends
    skill: float = 40.0            # Times the fraction of skill-violating assignments
    maintenance: float = 20.0      # Per assignment overlapping a maintenance window
    makespan: float = 50.0         # Times the relative overshoot of max_makespan (capped at 1)

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, (int, float)) or value < 0:
                raise ValidationError(f"Penalty weight '{f.name}' must be >= 0, got {value!r}")

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class SchedulerConfig:
    """
    Complete configuration for one genetic scheduling run.

    Example:
        >>> config = SchedulerConfig(population_size=80, generations=150, seed=7)
    """

    # Genetic algorithm
    population_size: int = 50
    generations: int = 100
    mutation_rate: float = 0.1
    crossover_rate: float = 0.8
    tournament_size: int = 3
    max_shift_minutes: float = 120.0     # Bound for the shift mutation

    # Objectives
    weights: FitnessWeights = field(default_factory=FitnessWeights)
    penalties: PenaltyWeights = field(default_factory=PenaltyWeights)
    target_utilization: float = 85.0     # Percent; reaching it earns a full utilization score
    load_balance_scale: float = 2.0      # Std-dev multiplier in the load balance score
    max_makespan: Optional[float] = None  # Minutes; exceeding it is penalized

    # Stop rule
    convergence_epsilon: float = 1e-3
    convergence_patience: int = 20       # Generations without improvement before stopping
    time_budget_seconds: Optional[float] = 30.0

    # Execution
    seed: Optional[int] = None
    max_workers: Optional[int] = None    # Defaults to os.cpu_count()
    parallel_backend: str = "thread"
    seed_with_baseline: bool = False

    def __post_init__(self):
        """Validate ranges; raise ValidationError on the first bad option."""
        if not isinstance(self.population_size, int) or not 2 <= self.population_size <= 500:
            raise ValidationError(f"population_size must be an integer in [2, 500], got {self.population_size!r}")
        if not isinstance(self.generations, int) or self.generations < 1:
            raise ValidationError(f"generations must be an integer >= 1, got {self.generations!r}")
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise ValidationError(f"mutation_rate must be in [0, 1], got {self.mutation_rate!r}")
        if not 0.0 <= self.crossover_rate <= 1.0:
            raise ValidationError(f"crossover_rate must be in [0, 1], got {self.crossover_rate!r}")
        if not isinstance(self.tournament_size, int) or self.tournament_size < 1:
            raise ValidationError(f"tournament_size must be an integer >= 1, got {self.tournament_size!r}")
        if self.max_shift_minutes <= 0:
            raise ValidationError(f"max_shift_minutes must be > 0, got {self.max_shift_minutes!r}")
        if not 0.0 < self.target_utilization <= 100.0:
            raise ValidationError(f"target_utilization must be in (0, 100], got {self.target_utilization!r}")
        if self.load_balance_scale < 0:
            raise ValidationError(f"load_balance_scale must be >= 0, got {self.load_balance_scale!r}")
        if self.max_makespan is not None and self.max_makespan <= 0:
            raise ValidationError(f"max_makespan must be > 0 minutes, got {self.max_makespan!r}")
        if self.convergence_epsilon < 0:
            raise ValidationError(f"convergence_epsilon must be >= 0, got {self.convergence_epsilon!r}")
        if not isinstance(self.convergence_patience, int) or self.convergence_patience < 1:
            raise ValidationError(f"convergence_patience must be an integer >= 1, got {self.convergence_patience!r}")
        if self.time_budget_seconds is not None and self.time_budget_seconds <= 0:
            raise ValidationError(f"time_budget_seconds must be > 0, got {self.time_budget_seconds!r}")
        if self.max_workers is not None and (not isinstance(self.max_workers, int) or self.max_workers < 1):
            raise ValidationError(f"max_workers must be an integer >= 1, got {self.max_workers!r}")
        if self.parallel_backend not in PARALLEL_BACKENDS:
            raise ValidationError(
                f"parallel_backend must be one of {PARALLEL_BACKENDS}, got {self.parallel_backend!r}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary (nested weights included)."""
        return asdict(self)

    def __str__(self) -> str:
        return (f"SchedulerConfig(pop={self.population_size}, gens={self.generations}, "
                f"pc={self.crossover_rate}, pm={self.mutation_rate}, seed={self.seed})")
