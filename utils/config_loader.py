"""
Configuration Loader - Load and manage scheduling policies

This module provides functions to load configuration from YAML/JSON files
and turn request constraint dictionaries into a validated SchedulerConfig.

Key Features:
    - Load default and custom policy configurations
    - Parse workstations (with maintenance windows) from configuration
    - Merge request overrides with defaults (camelCase keys accepted)
    - Ignore and log unknown keys, reject out-of-range values
"""

import yaml
import json
import logging
from dataclasses import fields
from functools import lru_cache
from pathlib import Path
from typing import Dict, Any, List, Optional

from models.constraints import FitnessWeights, PenaltyWeights, SchedulerConfig
from models.errors import ValidationError
from models.workstation import Workstation


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / 'config' / 'default_policy.yaml'

# camelCase keys accepted from API payloads
_SCHEDULER_ALIASES = {
    "populationSize": "population_size",
    "mutationRate": "mutation_rate",
    "crossoverRate": "crossover_rate",
    "tournamentSize": "tournament_size",
    "maxShiftMinutes": "max_shift_minutes",
    "targetUtilization": "target_utilization",
    "loadBalanceScale": "load_balance_scale",
    "maxMakespan": "max_makespan",
    "convergenceEpsilon": "convergence_epsilon",
    "convergencePatience": "convergence_patience",
    "timeBudgetSeconds": "time_budget_seconds",
    "maxWorkers": "max_workers",
    "parallelBackend": "parallel_backend",
    "seedWithBaseline": "seed_with_baseline",
}

_WEIGHT_ALIASES = {
    "onTime": "on_time",
    "loadBalance": "load_balance",
    "timeConflict": "time_conflict",
}


def load_yaml(file_path: str) -> Dict[str, Any]:
    """
    Load YAML configuration file.

    Args:
        file_path: Path to YAML file

    Returns:
        Dictionary with configuration data
    """
    with open(file_path, 'r') as f:
        return yaml.safe_load(f) or {}


def load_json(file_path: str) -> Dict[str, Any]:
    """
    Load JSON configuration file.

    Args:
        file_path: Path to JSON file

    Returns:
        Dictionary with configuration data
    """
    with open(file_path, 'r') as f:
        return json.load(f)


def load_raw_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Read a YAML or JSON policy file (the default policy when no path is given)."""
    path = str(config_path or DEFAULT_CONFIG_PATH)
    if path.endswith('.json'):
        return load_json(path)
    return load_yaml(path)


@lru_cache(maxsize=1)
def _default_raw_config() -> Dict[str, Any]:
    return load_raw_config()


def default_scheduler_settings() -> Dict[str, Any]:
    """Scheduler section of the bundled default policy (copied)."""
    return json.loads(json.dumps(_default_raw_config().get('scheduler', {})))


def default_analysis_settings() -> Dict[str, Any]:
    return dict(_default_raw_config().get('analysis', {}))


def _merge_section(
    name: str,
    base: Dict[str, Any],
    overrides: Optional[Dict[str, Any]],
    known: set,
) -> Dict[str, Any]:
    """Overlay recognized override keys on base; ignore and log the rest."""
    merged = {key: value for key, value in (base or {}).items() if key in known}
    if overrides is None:
        return merged
    if not isinstance(overrides, dict):
        raise ValidationError(f"'{name}' must be a mapping, got {type(overrides).__name__}")

    for key, value in overrides.items():
        key = _WEIGHT_ALIASES.get(key, key)
        if key in known:
            merged[key] = value
        else:
            logger.warning(f"Ignoring unknown {name} key: {key!r}")
    return merged


def parse_scheduler_config(
    constraints: Optional[Dict[str, Any]] = None,
    base: Optional[Dict[str, Any]] = None,
    **overrides,
) -> SchedulerConfig:
    """
    Build a validated SchedulerConfig from a constraint dictionary.

    Missing keys take the values of `base` (the default policy when
    omitted); unknown keys are ignored with a warning; out-of-range values
    raise ValidationError.

    Args:
        constraints: Request constraints (snake_case or camelCase keys)
        base: Scheduler settings to fall back on
        **overrides: Final keyword overrides (e.g. seed=7)

    Returns:
        SchedulerConfig

    Example:
        >>> parse_scheduler_config({"populationSize": 30, "weights": {"onTime": 0.6}})
    """
    if constraints is not None and not isinstance(constraints, dict):
        raise ValidationError(f"constraints must be a mapping, got {type(constraints).__name__}")

    base = default_scheduler_settings() if base is None else base
    known = {f.name for f in fields(SchedulerConfig)}

    values = {key: value for key, value in base.items() if key in known}
    for key, value in {**(constraints or {}), **overrides}.items():
        key = _SCHEDULER_ALIASES.get(key, key)
        if key in known:
            values[key] = value
        else:
            logger.warning(f"Ignoring unknown constraint key: {key!r}")

    weight_fields = {f.name for f in fields(FitnessWeights)}
    penalty_fields = {f.name for f in fields(PenaltyWeights)}
    weights = _merge_section("weights", base.get("weights", {}), (constraints or {}).get("weights"), weight_fields)
    penalties = _merge_section("penalties", base.get("penalties", {}), (constraints or {}).get("penalties"), penalty_fields)

    try:
        values["weights"] = FitnessWeights(**weights)
        values["penalties"] = PenaltyWeights(**penalties)
        return SchedulerConfig(**values)
    except TypeError as exc:
        raise ValidationError(f"Invalid scheduler configuration: {exc}") from exc


def load_workstations_from_config(config: Dict[str, Any]) -> List[Workstation]:
    """
    Create Workstation objects from configuration dictionary.

    Args:
        config: Configuration dictionary

    Returns:
        List of Workstation objects
    """
    return [Workstation.from_dict(item) for item in config.get('workstations', []) or []]


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load complete configuration from file.

    If no path provided, loads default_policy.yaml from config directory.

    Args:
        config_path: Optional path to config file

    Returns:
        Dictionary with scheduler settings, analysis settings and workstations
    """
    config_data = load_raw_config(config_path)
    return {
        'scheduler': config_data.get('scheduler', {}),
        'analysis': config_data.get('analysis', {}),
        'workstations': load_workstations_from_config(config_data),
        'raw_config': config_data,
    }


def save_config(config: SchedulerConfig, workstations: List[Workstation], output_path: str):
    """
    Save configuration to YAML file.

    Args:
        config: Scheduler configuration to save
        workstations: List of workstations to save
        output_path: Path to output file
    """
    data = {
        'scheduler': config.to_dict(),
        'workstations': [ws.to_dict() for ws in workstations],
    }

    with open(output_path, 'w') as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


# Example usage
if __name__ == "__main__":
    config = load_config()

    print("Loaded Configuration:")
    print(f"Scheduler: {parse_scheduler_config(config['scheduler'])}")
    print("Workstations:")
    for station in config['workstations']:
        print(f"  {station}")
