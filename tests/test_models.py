"""
Tests for the domain models: work orders, workstations, schedules and configuration.
"""

from datetime import datetime

import pytest

from models.capacity import AnalysisMode, BottleneckSeverity
from models.constraints import FitnessWeights, PenaltyWeights, SchedulerConfig
from models.errors import ValidationError
from models.schedule import Schedule, ScheduleAssignment
from models.work_order import WorkOrder, parse_datetime
from models.workstation import MaintenanceWindow, Workstation


class TestWorkOrder:
    """WorkOrder construction, validation and derived values."""

    def test_from_dict_accepts_camel_case(self):
        order = WorkOrder.from_dict({
            "id": "WO-7",
            "estimatedTime": 90,
            "dueDate": "2024-05-01T12:00:00Z",
            "requiredSkills": ["assembly"],
            "priority": 2,
        })

        assert order.work_order_id == "WO-7"
        assert order.estimated_minutes == 90
        assert order.due_date == datetime(2024, 5, 1, 12, 0)
        assert order.required_skills == frozenset({"assembly"})

    @pytest.mark.parametrize("field, value", [
        ("requiredSkills", "assembly"),
        ("dependencies", "WO-1"),
        ("estimatedTime", float("nan")),
    ])
    def test_from_dict_rejects_malformed_fields(self, field, value):
        data = {"id": "WO-7", "estimatedTime": 90, "dueDate": "2024-05-01T12:00:00"}
        data[field] = value
        with pytest.raises(ValidationError):
            WorkOrder.from_dict(data)

    def test_aware_due_date_is_converted_to_utc(self):
        assert parse_datetime("2024-05-01T14:00:00+02:00") == datetime(2024, 5, 1, 12, 0)

    @pytest.mark.parametrize("changes", [
        {"priority": 0},
        {"priority": True},
        {"estimated_minutes": 0},
        {"estimated_minutes": float("nan")},
        {"estimated_minutes": float("inf")},
        {"estimated_minutes": "60"},
        {"due_date": "not a date"},
        {"required_skills": "assembly"},
        {"required_skills": ["assembly", 7]},
        {"dependencies": "WO-0"},
    ])
    def test_invalid_values_rejected(self, changes):
        values = {"work_order_id": "WO-1", "estimated_minutes": 60,
                  "due_date": datetime(2024, 5, 1), "priority": 1}
        values.update(changes)
        with pytest.raises(ValidationError):
            WorkOrder(**values)

    def test_self_dependency_rejected(self):
        with pytest.raises(ValidationError):
            WorkOrder("WO-1", 60, datetime(2024, 5, 1), dependencies=("WO-1",))

    def test_missing_due_date_rejected(self):
        with pytest.raises(ValidationError):
            WorkOrder.from_dict({"id": "WO-1", "estimatedTime": 30})

    def test_complexity(self):
        order = WorkOrder("WO-1", 150, datetime(2024, 5, 1),
                          required_skills=frozenset({"a", "b"}), dependencies=("WO-0",))
        assert order.complexity == pytest.approx(2.2)

    def test_complexity_is_capped(self):
        order = WorkOrder("WO-1", 300, datetime(2024, 5, 1),
                          required_skills=frozenset(f"s{i}" for i in range(10)))
        assert order.complexity == 3.0

    def test_missing_skills(self):
        order = WorkOrder("WO-1", 60, datetime(2024, 5, 1), required_skills=frozenset({"a", "b"}))
        assert order.missing_skills({"a"}) == frozenset({"b"})
        assert order.is_compatible_with({"a", "b", "c"})


class TestWorkstation:
    """Workstation validation and capacity helpers."""

    @pytest.mark.parametrize("changes", [
        {"capacity": 0},
        {"efficiency": 0},
        {"efficiency": float("nan")},
        {"efficiency": float("inf")},
        {"current_load": 1.5},
        {"current_load": "0.5"},
        {"current_load": float("nan")},
        {"maintenance_ratio": 1.0},
        {"maintenance_ratio": None},
        {"skills": "assembly"},
        {"required_skills": b"welding"},
    ])
    def test_invalid_values_rejected(self, changes):
        with pytest.raises(ValidationError):
            Workstation("WS-1", **changes)

    def test_processing_minutes_uses_efficiency(self):
        station = Workstation("WS-1", efficiency=1.2)
        assert station.processing_minutes(120) == pytest.approx(100.0)

    def test_can_perform(self):
        station = Workstation("WS-1", skills={"assembly", "inspection"})
        assert station.can_perform({"assembly"})
        assert not station.can_perform({"assembly", "welding"})

    def test_maintenance_ratio_from_windows(self):
        station = Workstation("WS-1", maintenance_windows=(
            MaintenanceWindow(datetime(2024, 5, 1, 10), datetime(2024, 5, 1, 14)),
        ))
        assert station.maintenance_ratio_for(datetime(2024, 5, 1), 24) == pytest.approx(4 / 24)

    def test_maintenance_ratio_falls_back_to_configured(self):
        station = Workstation("WS-1", maintenance_ratio=0.2)
        assert station.maintenance_ratio_for(datetime(2024, 5, 1), 24) == 0.2

    def test_window_must_end_after_start(self):
        with pytest.raises(ValidationError):
            MaintenanceWindow(datetime(2024, 5, 1, 12), datetime(2024, 5, 1, 10))

    def test_from_dict_parses_windows(self):
        station = Workstation.from_dict({
            "workstationId": "WS-9",
            "capacity": 2,
            "skills": ["drilling"],
            "currentLoad": 0.4,
            "maintenanceWindows": [{"start": "2024-05-01T08:00:00", "end": "2024-05-01T09:00:00"}],
        })
        assert station.workstation_id == "WS-9"
        assert station.current_load == 0.4
        assert station.maintenance_windows[0].reason == "Maintenance"

    @pytest.mark.parametrize("windows", [
        [{"start": "2024-05-01T08:00:00"}],
        [{"end": "2024-05-01T09:00:00"}],
        ["2024-05-01T08:00:00"],
        "2024-05-01T08:00:00",
    ])
    def test_from_dict_rejects_malformed_windows(self, windows):
        with pytest.raises(ValidationError, match="maintenance window"):
            Workstation.from_dict({"id": "WS-9", "maintenanceWindows": windows})

    def test_from_dict_rejects_skill_string(self):
        with pytest.raises(ValidationError, match="skills"):
            Workstation.from_dict({"id": "WS-9", "skills": "assembly"})


class TestSchedule:
    """Schedule chromosome helpers."""

    def test_overlap_requires_same_slot(self):
        a = ScheduleAssignment("WO-1", "WS-1", 0, 60, slot=0)
        b = ScheduleAssignment("WO-2", "WS-1", 30, 90, slot=0)
        c = ScheduleAssignment("WO-3", "WS-1", 30, 90, slot=1)

        assert a.overlaps(b)
        assert not a.overlaps(c)

    def test_moved_keeps_duration(self):
        moved = ScheduleAssignment("WO-1", "WS-1", 10, 70).moved(100, slot=1)
        assert (moved.start, moved.end, moved.slot) == (100, 160, 1)

    def test_makespan(self):
        schedule = Schedule([
            ScheduleAssignment("WO-1", "WS-1", 30, 90),
            ScheduleAssignment("WO-2", "WS-2", 60, 200),
        ])
        assert schedule.makespan == 170
        assert Schedule().makespan == 0.0

    def test_to_dataframe_is_sorted_with_datetimes(self):
        schedule = Schedule([
            ScheduleAssignment("WO-2", "WS-2", 0, 60),
            ScheduleAssignment("WO-1", "WS-1", 60, 120),
            ScheduleAssignment("WO-3", "WS-1", 0, 60),
        ])
        df = schedule.to_dataframe(datetime(2024, 5, 1))

        assert list(df["work_order_id"]) == ["WO-3", "WO-1", "WO-2"]
        assert df.loc[0, "start_time"] == "2024-05-01T00:00:00"

    def test_from_records_accepts_duration(self):
        schedule = Schedule.from_records([
            {"work_order_id": "WO-1", "workstation_id": "WS-1", "start_minute": 10, "duration_minutes": 50},
        ])
        assert schedule.assignments[0].end == 60

    def test_from_records_rejects_incomplete_rows(self):
        with pytest.raises(ValidationError):
            Schedule.from_records([{"work_order_id": "WO-1", "start_minute": 0, "end_minute": 5}])


class TestSchedulerConfig:
    """Validated GA configuration."""

    @pytest.mark.parametrize("changes", [
        {"population_size": 1},
        {"population_size": 501},
        {"generations": 0},
        {"mutation_rate": 1.5},
        {"crossover_rate": -0.1},
        {"parallel_backend": "gpu"},
        {"time_budget_seconds": 0},
        {"max_makespan": -5},
    ])
    def test_out_of_range_rejected(self, changes):
        with pytest.raises(ValidationError):
            SchedulerConfig(**changes)

    def test_defaults(self):
        config = SchedulerConfig()
        assert config.population_size == 50
        assert config.tournament_size == 3
        assert config.penalties == PenaltyWeights()

    def test_weights_normalized(self):
        weights = FitnessWeights(on_time=2, utilization=1, load_balance=1, priority=0).normalized()
        assert weights.on_time == pytest.approx(0.5)
        assert sum(weights.to_dict().values()) == pytest.approx(1.0)

    def test_negative_weight_rejected(self):
        with pytest.raises(ValidationError):
            FitnessWeights(on_time=-1)


class TestCapacityEnums:
    def test_mode_parse(self):
        assert AnalysisMode.parse("BASIC") is AnalysisMode.BASIC
        assert AnalysisMode.parse(AnalysisMode.DETAILED) is AnalysisMode.DETAILED
        with pytest.raises(ValidationError):
            AnalysisMode.parse("full")

    @pytest.mark.parametrize("score, severity", [
        (100, BottleneckSeverity.CRITICAL),
        (70, BottleneckSeverity.CRITICAL),
        (69.9, BottleneckSeverity.POTENTIAL),
        (40, BottleneckSeverity.POTENTIAL),
        (39.9, BottleneckSeverity.NONE),
    ])
    def test_severity_tiers(self, score, severity):
        assert BottleneckSeverity.from_score(score) is severity
