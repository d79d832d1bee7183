"""
Tests for the planning context and the population initializer.
"""

import random
from datetime import datetime

import pytest

from conftest import ORIGIN, make_order
from agents.constraint_agent import ConstraintAgent
from genetic.context import PlanningContext, default_origin
from genetic.initializer import PopulationInitializer, earliest_lane
from models.errors import UnassignableWorkOrderWarning, ValidationError
from models.workstation import MaintenanceWindow, Workstation


class TestPlanningContext:
    """Validation and lookups built once per run."""

    def test_duplicate_work_order_rejected(self, workstations):
        with pytest.raises(ValidationError, match="Duplicate work order"):
            PlanningContext([make_order("WO-1"), make_order("WO-1")], workstations)

    def test_duplicate_workstation_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate workstation"):
            PlanningContext([], [Workstation("WS-1"), Workstation("WS-1")])

    def test_unknown_dependency_rejected(self, workstations):
        with pytest.raises(ValidationError, match="unknown"):
            PlanningContext([make_order("WO-1", dependencies=["WO-9"])], workstations)

    def test_dependency_cycle_rejected(self, workstations):
        orders = [
            make_order("WO-1", dependencies=["WO-3"]),
            make_order("WO-2", dependencies=["WO-1"]),
            make_order("WO-3", dependencies=["WO-2"]),
        ]
        with pytest.raises(ValidationError, match="cycle"):
            PlanningContext(orders, workstations)

    def test_orders_without_workstations_rejected(self):
        with pytest.raises(ValidationError):
            PlanningContext([make_order("WO-1")], [])

    def test_empty_problem_is_valid(self):
        context = PlanningContext([], [])
        assert len(context) == 0
        assert context.origin == datetime(2000, 1, 1)

    def test_default_origin_is_midnight_of_earliest_due(self):
        orders = [make_order("WO-1", due_hours=30), make_order("WO-2", due_hours=13)]
        assert default_origin(orders) == ORIGIN

    def test_due_offsets_in_minutes(self, context):
        assert context.due_offsets["WO-1"] == 120.0

    def test_compatible_stations(self, context):
        assert context.compatible["WO-1"] == ("WS-A", "WS-C")
        assert context.compatible["WO-5"] == ("WS-A", "WS-B", "WS-C")
        assert context.unassignable == ()

    def test_dependency_depth(self, context):
        assert context.depth["WO-1"] == 0
        assert context.depth["WO-3"] == 1
        assert context.depth["WO-6"] == 2

    def test_least_incompatible_fallback(self, workstations):
        order = make_order("WO-1", skills={"assembly", "welding"})
        context = PlanningContext([order], workstations)

        # WS-A and WS-C both miss one skill; WS-A is more efficient
        assert context.fallback["WO-1"] == "WS-A"
        assert context.unassignable == ("WO-1",)
        assert context.candidate_stations("WO-1") == ("WS-A",)

    def test_clear_of_maintenance(self, origin):
        station = Workstation("WS-1", maintenance_windows=(
            MaintenanceWindow(datetime(2024, 5, 1, 1), datetime(2024, 5, 1, 2)),
        ))
        context = PlanningContext([make_order("WO-1")], [station], origin)

        assert context.clear_of_maintenance("WS-1", 30, 60) == 120
        assert context.clear_of_maintenance("WS-1", 0, 60) == 0
        assert context.clear_of_maintenance("WS-1", 130, 60) == 130


class TestPopulationInitializer:
    """Random schedules must be total, overlap-free and precedence-ordered."""

    def test_earliest_lane(self):
        assert earliest_lane([30.0, 10.0, 10.0]) == 1

    def test_population_size_and_totality(self, context):
        population = PopulationInitializer(context, random.Random(1)).initialize(20)

        assert len(population) == 20
        for individual in population:
            assert individual.schedule.work_order_ids() == list(context.order_ids)
            assert not individual.evaluated

    def test_members_are_feasible(self, context):
        agent = ConstraintAgent(context)
        population = PopulationInitializer(context, random.Random(7)).initialize(30)

        for individual in population:
            counts = agent.count_violations(individual.schedule)
            assert counts.time_conflicts == 0
            assert counts.precedence_violations == 0
            assert counts.skill_violations == 0
            assert counts.slot_violations == 0
            assert all(a.start >= 0 for a in individual.schedule.assignments)

    def test_initial_schedules_avoid_maintenance(self, origin):
        station = Workstation("WS-1", maintenance_windows=(
            MaintenanceWindow(datetime(2024, 5, 1, 0, 30), datetime(2024, 5, 1, 2)),
        ))
        orders = [make_order(f"WO-{i}", minutes=45) for i in range(4)]
        context = PlanningContext(orders, [station], origin)

        schedule = PopulationInitializer(context, random.Random(3)).random_schedule()
        assert ConstraintAgent(context).count_violations(schedule).maintenance_conflicts == 0

    def test_seed_schedule_is_member_zero(self, context):
        initializer = PopulationInitializer(context, random.Random(1))
        seed = initializer.random_schedule()
        population = initializer.initialize(5, seed_schedule=seed)

        assert population[0].schedule.assignments == seed.assignments
        assert population[0].schedule is not seed

    def test_same_seed_same_population(self, context):
        first = PopulationInitializer(context, random.Random(11)).initialize(5)
        second = PopulationInitializer(context, random.Random(11)).initialize(5)
        assert [i.schedule.assignments for i in first] == [i.schedule.assignments for i in second]

    def test_unassignable_orders_warn_and_are_flagged(self, workstations):
        orders = [make_order("WO-1", skills={"welding"}), make_order("WO-2", skills={"assembly"})]
        context = PlanningContext(orders, workstations)
        initializer = PopulationInitializer(context, random.Random(1))

        with pytest.warns(UnassignableWorkOrderWarning, match="WO-1"):
            items = initializer.warn_unassignable()

        assert [item["work_order_id"] for item in items] == ["WO-1"]
        assert items[0]["missing_skills"] == ["welding"]

        schedule = initializer.random_schedule()
        flagged = {a.work_order_id: a.skill_violation for a in schedule.assignments}
        assert flagged == {"WO-1": True, "WO-2": False}
