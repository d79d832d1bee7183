"""
Tests for policy loading and constraint parsing.
"""

import json
import logging
from datetime import datetime

import pytest

from models.constraints import SchedulerConfig
from models.errors import ValidationError
from models.workstation import MaintenanceWindow, Workstation
from utils.config_loader import (
    default_analysis_settings,
    load_config,
    parse_scheduler_config,
    save_config,
)


class TestDefaultPolicy:
    def test_bundled_policy(self):
        config = load_config()

        assert len(config["workstations"]) == 5
        assert config["scheduler"]["population_size"] == 50
        assert config["workstations"][1].required_skills == frozenset({"machining", "drilling", "grinding"})

    def test_analysis_defaults(self):
        assert default_analysis_settings() == {"time_horizon_days": 7, "mode": "detailed"}

    def test_defaults_match_dataclass(self):
        assert parse_scheduler_config() == SchedulerConfig()


class TestParseSchedulerConfig:
    def test_camel_case_and_nested_weights(self):
        config = parse_scheduler_config({"populationSize": 30, "weights": {"onTime": 0.6}})

        assert config.population_size == 30
        assert config.weights.on_time == 0.6
        assert config.weights.utilization == 0.25
        assert config.generations == 100

    def test_penalty_override(self):
        config = parse_scheduler_config({"penalties": {"timeConflict": 500}})

        assert config.penalties.time_conflict == 500
        assert config.penalties.precedence == 100

    def test_keyword_overrides_win(self):
        config = parse_scheduler_config({"seed": 1}, seed=7)
        assert config.seed == 7

    def test_explicit_base(self):
        config = parse_scheduler_config({}, base={"generations": 5})

        assert config.generations == 5
        assert config.population_size == 50

    def test_unknown_keys_are_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="utils.config_loader"):
            config = parse_scheduler_config({"turbo": True, "weights": {"speed": 1.0}})

        assert "turbo" in caplog.text
        assert "speed" in caplog.text
        assert config == SchedulerConfig()

    @pytest.mark.parametrize("constraints", [
        {"populationSize": "big"},
        {"tournament_size": 0},
        {"parallelBackend": "gpu"},
        {"timeBudgetSeconds": 0},
        {"penalties": {"skill": -1}},
        {"weights": {"onTime": 0, "utilization": 0, "loadBalance": 0, "priority": 0}},
        {"penalties": "strict"},
        ["populationSize", 30],
    ])
    def test_invalid_values(self, constraints):
        with pytest.raises(ValidationError):
            parse_scheduler_config(constraints)


class TestSaveAndLoad:
    def test_yaml_round_trip(self, tmp_path, workstations):
        stations = workstations + [Workstation(
            "WS-D",
            skills={"repair"},
            maintenance_windows=(MaintenanceWindow(datetime(2024, 5, 1, 10), datetime(2024, 5, 1, 12)),),
        )]
        config = SchedulerConfig(population_size=20, generations=10, seed=3)
        path = tmp_path / "policy.yaml"

        save_config(config, stations, str(path))
        loaded = load_config(str(path))

        assert parse_scheduler_config(loaded["scheduler"]) == config
        assert loaded["workstations"] == stations
        assert loaded["analysis"] == {}

    def test_json_policy(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({
            "scheduler": {"generations": 12},
            "workstations": [{"id": "WS-1", "capacity": 2, "skills": ["assembly"], "currentLoad": 0.4}],
        }))

        loaded = load_config(str(path))

        assert loaded["scheduler"] == {"generations": 12}
        assert loaded["workstations"][0].capacity == 2
        assert loaded["workstations"][0].current_load == 0.4

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        loaded = load_config(str(path))
        assert loaded["workstations"] == []
        assert loaded["scheduler"] == {}
