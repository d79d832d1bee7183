"""
Tests for the capacity agent and the capacity analysis workflow.
"""

from datetime import datetime

import pytest
from langchain_core.language_models import FakeListChatModel

from agents.capacity_agent import CapacityAgent, categorize_efficiency
from agents.supervisor import SupervisorAgent
from models.capacity import AnalysisMode
from models.errors import ValidationError
from models.schedule import Schedule, ScheduleAssignment
from models.workstation import MaintenanceWindow, Workstation
from workflows.capacity_workflow import CapacityAnalysisWorkflow


@pytest.fixture
def uneven_stations():
    return [
        Workstation("WS-1", skills={"assembly"}, current_load=0.95),
        Workstation("WS-2", skills={"assembly", "inspection"}, current_load=0.20),
        Workstation("WS-3", skills={"packaging"}, current_load=0.10),
    ]


class TestCapacityAgent:
    """Capacity-hours, load distribution, efficiency and confidence."""

    def test_base_capacity(self):
        station = Workstation("WS-1", capacity=2, efficiency=0.9, maintenance_ratio=0.1)
        profile = CapacityAgent().calculate_base_capacity([station], horizon_days=7)
        entry = profile.stations[0]

        assert entry.base_hours == pytest.approx(302.4)
        assert entry.available_hours == pytest.approx(272.16)
        assert entry.utilization_limit == pytest.approx(272.16 * 0.85)

    def test_aggregate_is_sum_of_stations(self, workstations):
        profile = CapacityAgent().calculate_base_capacity(workstations, horizon_days=5)

        assert profile.total_hours == pytest.approx(sum(s.base_hours for s in profile.stations))
        assert profile.available_hours == pytest.approx(sum(s.available_hours for s in profile.stations))
        assert profile.utilization_limit == pytest.approx(sum(s.utilization_limit for s in profile.stations))

    def test_maintenance_windows_used_with_origin(self):
        station = Workstation("WS-1", maintenance_windows=(
            MaintenanceWindow(datetime(2024, 5, 1, 6), datetime(2024, 5, 1, 18)),
        ))
        agent = CapacityAgent()

        with_origin = agent.calculate_base_capacity([station], 1, origin=datetime(2024, 5, 1))
        without = agent.calculate_base_capacity([station], 1)

        assert with_origin.stations[0].maintenance_ratio == pytest.approx(0.5)
        assert without.stations[0].maintenance_ratio == pytest.approx(0.1)

    def test_uneven_load(self, uneven_stations):
        agent = CapacityAgent()
        utilization = agent.station_utilization(uneven_stations, 7)
        load = agent.analyze_workload(uneven_stations, utilization, 7)

        assert load.balance_index < 70
        assert load.critical_stations >= 1
        assert load.overloaded_stations == 1
        assert load.overload_risk_score == pytest.approx(7.5)
        assert load.average_utilization == pytest.approx(125 / 3)
        assert [r.risk_level for r in load.records] == ["critical", "low", "low"]

    def test_schedule_adds_busy_share(self):
        station = Workstation("WS-1", current_load=0.25)
        schedule = Schedule([ScheduleAssignment("WO-1", "WS-1", 0, 720)])

        utilization = CapacityAgent().station_utilization([station], 1, schedule)
        assert utilization["WS-1"] == pytest.approx(0.75)

    def test_empty_workload(self):
        load = CapacityAgent().analyze_workload([], {}, 7)
        assert load.records == ()
        assert load.balance_index == 100.0

    @pytest.mark.parametrize("pct, category", [
        (96, "excellent"), (95, "excellent"), (90, "good"), (70, "average"), (60, "poor"),
    ])
    def test_efficiency_categories(self, pct, category):
        assert categorize_efficiency(pct) == category

    def test_efficiency_analysis(self, workstations):
        analysis = CapacityAgent().analyze_efficiency(workstations)

        assert analysis.distribution == {"excellent": 2, "good": 0, "average": 1, "poor": 0}
        assert analysis.records[2].improvement_potential == pytest.approx(18.0)
        assert analysis.benchmarks["industry"] == 85.0

    @pytest.mark.parametrize("stations, days, completeness, expected", [
        (3, 7, 1.0, 100.0),
        (3, 20, 1.0, 80.0),
        (3, 40, 1.0, 48.0),
        (3, 7, 0.5, 50.0),
        (0, 7, 1.0, 0.0),
    ])
    def test_confidence(self, stations, days, completeness, expected):
        assert CapacityAgent().calculate_confidence(stations, days, completeness) == expected


class TestCapacityWorkflow:
    """The LangGraph capacity pipeline."""

    def test_detailed_report(self, uneven_stations):
        report = CapacityAnalysisWorkflow(seed=3).analyze(uneven_stations, horizon_days=7)

        assert report.mode is AnalysisMode.DETAILED
        assert report.detailed is not None
        assert set(report.detailed.bottleneck_factors) == {"WS-1", "WS-2", "WS-3"}
        assert len(report.forecast.days) == 7
        assert report.confidence == 100.0

        data = report.to_dict()
        assert data["metadata"]["analysis_mode"] == "detailed"
        assert "detailed" in data

    def test_basic_report_has_no_detail(self, uneven_stations):
        report = CapacityAnalysisWorkflow().analyze(uneven_stations, horizon_days=3, mode="basic")

        assert report.detailed is None
        assert "detailed" not in report.to_dict()

    def test_seeded_reports_match(self, uneven_stations):
        first = CapacityAnalysisWorkflow(seed=9).analyze(uneven_stations, 5).to_dict()
        second = CapacityAnalysisWorkflow(seed=9).analyze(uneven_stations, 5).to_dict()
        assert first == second

    @pytest.mark.parametrize("horizon", [0, -3, True, 2.5])
    def test_invalid_horizon(self, uneven_stations, horizon):
        with pytest.raises(ValidationError):
            CapacityAnalysisWorkflow().analyze(uneven_stations, horizon_days=horizon)

    def test_invalid_mode(self, uneven_stations):
        with pytest.raises(ValidationError):
            CapacityAnalysisWorkflow().analyze(uneven_stations, mode="exhaustive")

    def test_no_workstations(self):
        report = CapacityAnalysisWorkflow().analyze([], horizon_days=7, completeness=0.0)

        assert report.confidence == 0.0
        assert report.profile.total_hours == 0.0
        assert report.bottlenecks.records == ()

    def test_supervisor_narrative(self, uneven_stations):
        supervisor = SupervisorAgent(llm=FakeListChatModel(responses=["WS-1 is the constraint."]))
        report = CapacityAnalysisWorkflow(supervisor=supervisor).analyze(uneven_stations, 7)

        assert report.narrative == "WS-1 is the constraint."
        assert report.to_dict()["narrative"] == "WS-1 is the constraint."
