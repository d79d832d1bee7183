"""
Tests for the LangGraph genetic scheduling workflow.
"""

import pytest
from langchain_core.language_models import FakeListChatModel

from conftest import make_order
from agents.constraint_agent import ConstraintAgent
from agents.supervisor import SupervisorAgent
from genetic.fitness import FitnessEvaluator
from genetic.operators import GeneticOperators
from models.constraints import SchedulerConfig
from models.errors import InternalInvariantViolation, UnassignableWorkOrderWarning
from models.schedule import Schedule
from models.workstation import Workstation
from utils.baseline_scheduler import build_baseline_schedule
from workflows.orchestrator import SchedulerOrchestrator


def run(orders, stations, config, **kwargs):
    return SchedulerOrchestrator(orders, stations, config, **kwargs).optimize()


class TestSchedulerOrchestrator:
    """End-to-end GA runs on small problems."""

    def test_result_is_total_and_overlap_free(self, work_orders, workstations, fast_config, origin):
        orchestrator = SchedulerOrchestrator(work_orders, workstations, fast_config, origin=origin)
        result = orchestrator.optimize()

        assert result.schedule.work_order_ids() == [wo.work_order_id for wo in work_orders]
        counts = ConstraintAgent(orchestrator.context).count_violations(result.schedule)
        assert counts.time_conflicts == 0
        assert counts.slot_violations == 0
        for station in workstations:
            for assignment in result.schedule.get_station_assignments(station.workstation_id):
                assert 0 <= assignment.slot < station.capacity

    def test_history_is_monotonic(self, work_orders, workstations, fast_config):
        result = run(work_orders, workstations, fast_config)

        assert result.stop_reason in ("max_generations", "converged")
        assert result.generations_run <= fast_config.generations
        assert len(result.fitness_history) == result.generations_run + 1
        assert all(b >= a for a, b in zip(result.fitness_history, result.fitness_history[1:]))
        assert result.fitness == pytest.approx(result.fitness_history[-1])

    def test_seeded_runs_are_reproducible(self, work_orders, workstations, fast_config):
        first = run(work_orders, workstations, fast_config)
        second = run(work_orders, workstations, fast_config)

        assert first.schedule.assignments == second.schedule.assignments
        assert first.fitness_history == second.fitness_history

    def test_max_generations(self, work_orders, workstations):
        config = SchedulerConfig(population_size=6, generations=3, seed=1,
                                 convergence_patience=50, time_budget_seconds=None)
        result = run(work_orders, workstations, config)

        assert result.stop_reason == "max_generations"
        assert result.generations_run == 3
        assert not result.converged

    def test_convergence_stops_early(self, work_orders, workstations):
        config = SchedulerConfig(population_size=6, generations=50, seed=1,
                                 convergence_epsilon=1000.0, convergence_patience=1,
                                 time_budget_seconds=None)
        result = run(work_orders, workstations, config)

        assert result.stop_reason == "converged"
        assert result.converged
        assert result.generations_run == 1

    def test_timeout_returns_best_so_far(self, work_orders, workstations):
        config = SchedulerConfig(population_size=6, generations=50, seed=1, time_budget_seconds=1e-9)
        result = run(work_orders, workstations, config)

        assert result.stop_reason == "timeout"
        assert not result.converged
        assert len(result.schedule) == len(work_orders)

    def test_empty_work_orders(self, workstations, fast_config):
        result = run([], workstations, fast_config)

        assert result.schedule.assignments == []
        assert result.fitness == 100.0
        assert result.stop_reason == "empty"
        assert result.to_dict()["schedule"] == []

    def test_two_orders_on_one_station_do_not_overlap(self, fast_config, origin):
        orders = [make_order("WO-1", minutes=60), make_order("WO-2", minutes=90)]
        result = run(orders, [Workstation("WS-1")], fast_config, origin=origin)

        assert result.schedule.latest_end - result.schedule.earliest_start >= 150
        assert result.metrics.time_conflicts == 0

    def test_unsatisfiable_skill_is_reported(self, workstations, fast_config):
        orders = [make_order("WO-1", skills={"welding"}), make_order("WO-2", skills={"assembly"})]

        with pytest.warns(UnassignableWorkOrderWarning):
            result = run(orders, workstations, fast_config)

        assert result.metrics.unassignable_count >= 1
        assert result.unassignable[0]["work_order_id"] == "WO-1"
        assert len(result.schedule) == 2
        assert "closest match" in result.explanation

    def test_baseline_seed_is_kept_by_elitism(self, work_orders, workstations, fast_config):
        config = SchedulerConfig(population_size=8, generations=3, seed=5,
                                 seed_with_baseline=True, time_budget_seconds=None)
        orchestrator = SchedulerOrchestrator(work_orders, workstations, config)
        baseline_fitness = FitnessEvaluator(orchestrator.context, config)(
            build_baseline_schedule(orchestrator.context)
        )

        assert orchestrator.optimize().fitness >= baseline_fitness

    def test_process_backend(self, work_orders, workstations):
        config = SchedulerConfig(population_size=6, generations=2, seed=2, max_workers=2,
                                 parallel_backend="process", time_budget_seconds=None)
        result = run(work_orders, workstations, config)

        assert len(result.schedule) == len(work_orders)

    def test_broken_offspring_raise(self, monkeypatch, work_orders, workstations, fast_config):
        monkeypatch.setattr(GeneticOperators, "breed",
                            lambda self, population: [Schedule() for _ in population])

        with pytest.raises(InternalInvariantViolation):
            run(work_orders, workstations, fast_config)

    def test_supervisor_narrative(self, work_orders, workstations, fast_config):
        supervisor = SupervisorAgent(llm=FakeListChatModel(responses=["On track for all rush orders."]))
        result = run(work_orders, workstations, fast_config, supervisor=supervisor)

        assert result.narrative == "On track for all rush orders."
        assert result.to_dict()["narrative"] == "On track for all rush orders."

    def test_supervisor_reviews_request_first(self, work_orders, workstations, fast_config):
        supervisor = SupervisorAgent(llm=FakeListChatModel(
            responses=["Machining is the tight resource.", "All orders ship on time."]
        ))
        payload = run(work_orders, workstations, fast_config, supervisor=supervisor).to_dict()

        assert payload["planning_overview"] == "Machining is the tight resource."
        assert payload["narrative"] == "All orders ship on time."

    def test_no_overview_without_supervisor(self, work_orders, workstations, fast_config):
        result = run(work_orders, workstations, fast_config)

        assert result.planning_overview is None
        assert "planning_overview" not in result.to_dict()

    def test_result_payload(self, work_orders, workstations, fast_config):
        payload = run(work_orders, workstations, fast_config).to_dict()

        assert set(payload) >= {"schedule", "fitness", "metrics", "converged", "stop_reason",
                                "generations_run", "unassignable", "explanation"}
        assert payload["metrics"]["unassignable_count"] == 0
        assert payload["schedule"][0]["start_time"].startswith("2024-05-01")
