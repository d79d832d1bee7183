"""
LangGraph Orchestration - Genetic Scheduling Workflow

This module implements the LangGraph state machine that drives the genetic
algorithm from the first population to the best-of-run schedule.

Workflow Steps:
    1. initialize: build the planning context lookups and a random population
    2. evaluate: score pending schedules in a worker pool (one barrier per
       generation), apply elitist replacement, update best/history/stagnation
    3. evolve: selection, crossover and mutation produce the next offspring
    4. Loop 2-3 until converged, max generations or the time budget is hit
    5. finalize: metrics, validation report, explanation (and LLM narrative)

With a supervisor attached, step 1 also records its review of the request.

Uses LangGraph for state management and LangSmith for full traceability.
"""

import logging
import os
import random
import time as time_module
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypedDict

from langgraph.graph import StateGraph, END
from langsmith import traceable

from agents.constraint_agent import ConstraintAgent
from genetic.context import PlanningContext
from genetic.fitness import FitnessBreakdown, FitnessEvaluator
from genetic.initializer import PopulationInitializer
from genetic.operators import GeneticOperators, replace_population
from models.constraints import SchedulerConfig
from models.errors import InternalInvariantViolation
from models.schedule import Individual, Schedule, ScheduleMetrics
from models.work_order import WorkOrder
from models.workstation import Workstation
from utils.baseline_scheduler import build_baseline_schedule


logger = logging.getLogger(__name__)

STOP_CONVERGED = "converged"
STOP_MAX_GENERATIONS = "max_generations"
STOP_TIMEOUT = "timeout"
STOP_EMPTY = "empty"


@dataclass
class OptimizationResult:
    """Best-of-run schedule with its score, metrics and run metadata."""
    schedule: Schedule
    fitness: float
    breakdown: FitnessBreakdown
    metrics: ScheduleMetrics
    stop_reason: str
    generations_run: int
    fitness_history: List[float] = field(default_factory=list)
    unassignable: List[Dict[str, Any]] = field(default_factory=list)
    violations: List[str] = field(default_factory=list)
    explanation: str = ""
    planning_overview: Optional[str] = None
    narrative: Optional[str] = None
    elapsed_seconds: float = 0.0
    origin: Optional[datetime] = None

    @property
    def converged(self) -> bool:
        return self.stop_reason == STOP_CONVERGED

    def to_dict(self) -> Dict[str, Any]:
        """Plain result payload (JSON-serializable)."""
        data = {
            "schedule": self.schedule.to_records(self.origin),
            "fitness": round(self.fitness, 4),
            "fitness_breakdown": self.breakdown.to_dict(),
            "metrics": self.metrics.to_dict(),
            "converged": self.converged,
            "stop_reason": self.stop_reason,
            "generations_run": self.generations_run,
            "fitness_history": [round(f, 4) for f in self.fitness_history],
            "unassignable": list(self.unassignable),
            "violations": list(self.violations),
            "explanation": self.explanation,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "origin": self.origin.isoformat() if self.origin else None,
        }
        if self.planning_overview:
            data["planning_overview"] = self.planning_overview
        if self.narrative:
            data["narrative"] = self.narrative
        return data


class SchedulerState(TypedDict):
    """
    State object passed between nodes of the GA workflow.

    Populations are immutable tuples replaced once per generation.
    """
    # Search state
    population: Tuple[Individual, ...]
    pending: List[Schedule]          # Offspring waiting for evaluation
    best: Optional[Individual]       # Best ever seen
    generation: int                  # Completed evolve cycles
    stagnation: int                  # Generations without improvement > epsilon
    history: List[float]             # Best fitness after each evaluation

    # Output
    unassignable: List[Dict[str, Any]]
    planning_overview: Optional[str]  # Supervisor review of the request
    result: Optional[OptimizationResult]

    # Metadata
    started_at: float
    stop_reason: str                 # "" while running


class SchedulerOrchestrator:
    """
    LangGraph-based orchestrator for the genetic scheduling workflow.

    Example:
        >>> orchestrator = SchedulerOrchestrator(orders, stations, SchedulerConfig(seed=7))
        >>> result = orchestrator.optimize()
        >>> result.schedule.makespan
    """

    def __init__(
        self,
        work_orders: Sequence[WorkOrder],
        workstations: Sequence[Workstation],
        config: Optional[SchedulerConfig] = None,
        origin: Optional[datetime] = None,
        supervisor=None,
    ):
        """
        Initialize the orchestrator for one planning problem.

        Args:
            work_orders: Work orders to schedule (gene i <-> work_orders[i])
            workstations: Available workstations
            config: GA parameters; defaults when omitted
            origin: Planning origin (time zero)
            supervisor: Optional SupervisorAgent for an LLM request review and narrative
        """
        self.config = config or SchedulerConfig()
        self.context = PlanningContext(work_orders, workstations, origin)
        self.evaluator = FitnessEvaluator(self.context, self.config)
        self.constraint_agent = ConstraintAgent(self.context)
        self.supervisor = supervisor

        self.rng: Optional[random.Random] = None
        self.initializer: Optional[PopulationInitializer] = None
        self.operators: Optional[GeneticOperators] = None
        self._executor: Optional[Executor] = None

        self.workflow = self._build_workflow()

    def _build_workflow(self):
        """
        Build the LangGraph state graph of the GA loop.

        Returns:
            Compiled StateGraph
        """
        graph = StateGraph(SchedulerState)

        graph.add_node("initialize", self._initialize)
        graph.add_node("evaluate", self._evaluate)
        graph.add_node("evolve", self._evolve)
        graph.add_node("finalize", self._finalize)

        graph.set_entry_point("initialize")
        graph.add_edge("initialize", "evaluate")
        graph.add_conditional_edges(
            "evaluate",
            self._next_step,
            {"evolve": "evolve", "finalize": "finalize"},
        )
        graph.add_edge("evolve", "evaluate")
        graph.add_edge("finalize", END)

        return graph.compile()

    def _make_executor(self) -> Executor:
        workers = self.config.max_workers or os.cpu_count() or 1
        if self.config.parallel_backend == "process":
            return ProcessPoolExecutor(max_workers=workers)
        return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fitness")

    @traceable(name="GA Initialize")
    def _initialize(self, state: SchedulerState) -> SchedulerState:
        """
        Step 1: Build the initial population (all pending evaluation).
        """
        seed_schedule = None
        if self.config.seed_with_baseline and len(self.context):
            seed_schedule = build_baseline_schedule(self.context)

        population = self.initializer.initialize(self.config.population_size, seed_schedule)
        state["pending"] = [ind.schedule for ind in population]
        state["population"] = ()

        if self.supervisor is not None:
            state["planning_overview"] = self.supervisor.analyze_planning_request(
                self.context.work_orders, self.context.workstations, self.config
            )

        logger.info(f"Initialized {len(population)} schedules for {len(self.context)} work orders "
                    f"on {len(self.context.workstations)} workstations")
        return state

    @traceable(name="GA Evaluate")
    def _evaluate(self, state: SchedulerState) -> SchedulerState:
        """
        Step 2: Score pending offspring (barrier), replace, update the stop rule.
        """
        pending = state["pending"]
        try:
            for schedule in pending:
                self.constraint_agent.check_totality(schedule)
        except InternalInvariantViolation:
            logger.exception("Generated schedule broke totality")
            raise

        scores = list(self._executor.map(self.evaluator, pending))
        offspring = [Individual(schedule=s, fitness=f) for s, f in zip(pending, scores)]

        population = replace_population(state["population"], offspring, self.config.population_size)
        leader = population[0]

        previous = state["best"]
        if previous is None or leader.fitness > previous.fitness + self.config.convergence_epsilon:
            state["stagnation"] = 0
        else:
            state["stagnation"] += 1
        if previous is None or leader.fitness > previous.fitness:
            state["best"] = leader

        state["population"] = population
        state["pending"] = []
        state["history"] = state["history"] + [state["best"].fitness]

        generation = state["generation"]
        elapsed = time_module.monotonic() - state["started_at"]
        logger.debug(f"Generation {generation}: best={state['best'].fitness:.3f} "
                     f"stagnation={state['stagnation']} elapsed={elapsed:.2f}s")
        if generation and generation % 10 == 0:
            logger.info(f"Generation {generation}/{self.config.generations}: "
                        f"best fitness {state['best'].fitness:.3f}")

        budget = self.config.time_budget_seconds
        if not len(self.context):
            state["stop_reason"] = STOP_EMPTY
        elif state["stagnation"] >= self.config.convergence_patience:
            state["stop_reason"] = STOP_CONVERGED
        elif generation >= self.config.generations:
            state["stop_reason"] = STOP_MAX_GENERATIONS
        elif budget is not None and elapsed >= budget:
            state["stop_reason"] = STOP_TIMEOUT

        return state

    def _next_step(self, state: SchedulerState) -> str:
        return "finalize" if state["stop_reason"] else "evolve"

    @traceable(name="GA Evolve")
    def _evolve(self, state: SchedulerState) -> SchedulerState:
        """
        Step 3: Selection, crossover and mutation on fresh copies.
        """
        state["pending"] = self.operators.breed(state["population"])
        state["generation"] += 1
        return state

    @traceable(name="GA Finalize")
    def _finalize(self, state: SchedulerState) -> SchedulerState:
        """
        Step 5: Build the result from the best-ever individual.
        """
        best = state["best"]
        breakdown = self.evaluator.evaluate(best.schedule)
        metrics = self.evaluator.metrics(best.schedule, breakdown)
        _, violations, _ = self.constraint_agent.validate_schedule(best.schedule)

        result = OptimizationResult(
            schedule=best.schedule,
            fitness=breakdown.fitness,
            breakdown=breakdown,
            metrics=metrics,
            stop_reason=state["stop_reason"],
            generations_run=state["generation"],
            fitness_history=list(state["history"]),
            unassignable=state["unassignable"],
            violations=violations,
            planning_overview=state["planning_overview"],
            elapsed_seconds=time_module.monotonic() - state["started_at"],
            origin=self.context.origin,
        )
        result.explanation = self._explain(result)

        if self.supervisor is not None:
            result.narrative = self.supervisor.summarize_schedule(result)

        state["result"] = result
        return state

    def _explain(self, result: OptimizationResult) -> str:
        m = result.metrics
        if result.stop_reason == STOP_EMPTY:
            return "No work orders to schedule. Returned an empty schedule with baseline fitness."

        lines = [
            f"Best schedule after {result.generations_run} generation(s) "
            f"(stopped: {result.stop_reason}), fitness {result.fitness:.2f}.",
            f"Makespan {m.makespan_minutes:.0f} min, average utilization {m.average_utilization:.1f}%, "
            f"{m.on_time_rate:.0f}% on time (total tardiness {m.total_tardiness_minutes:.0f} min).",
        ]
        if m.constraint_violations:
            lines.append(f"{m.constraint_violations} constraint violation(s) remain: "
                         f"{m.time_conflicts} overlap, {m.precedence_violations} precedence, "
                         f"{m.skill_violations} skill, {m.maintenance_conflicts} maintenance.")
        else:
            lines.append("All hard constraints satisfied.")
        if m.unassignable_count:
            lines.append(f"{m.unassignable_count} work order(s) had no fully skilled workstation "
                         f"and were placed on the closest match.")
        return "\n".join(lines)

    @traceable(name="Genetic Schedule Optimization")
    def optimize(self) -> OptimizationResult:
        """
        Run the full GA workflow.

        Returns:
            OptimizationResult of the best-ever schedule

        Raises:
            InternalInvariantViolation: if a produced schedule is not total
        """
        self.rng = random.Random(self.config.seed)
        self.initializer = PopulationInitializer(self.context, self.rng)
        self.operators = GeneticOperators(self.context, self.config, self.rng)

        initial_state = SchedulerState(
            population=(),
            pending=[],
            best=None,
            generation=0,
            stagnation=0,
            history=[],
            unassignable=self.initializer.warn_unassignable(),
            planning_overview=None,
            result=None,
            started_at=time_module.monotonic(),
            stop_reason="",
        )

        logger.info(f"Starting GA optimization: {self.config}")
        with self._make_executor() as executor:
            self._executor = executor
            try:
                final_state = self.workflow.invoke(
                    initial_state,
                    config={"recursion_limit": 2 * self.config.generations + 10},
                )
            finally:
                self._executor = None

        result = final_state["result"]
        logger.info(f"GA finished ({result.stop_reason}) after {result.generations_run} generation(s): "
                    f"fitness {result.fitness:.3f} in {result.elapsed_seconds:.2f}s")
        return result


# Example usage and testing
if __name__ == "__main__":
    from utils.config_loader import load_config, parse_scheduler_config
    from utils.data_generator import generate_work_orders

    logging.basicConfig(level=logging.INFO)

    policy = load_config()
    stations = policy["workstations"]
    orders = generate_work_orders(20, stations, seed=3)

    orchestrator = SchedulerOrchestrator(
        orders, stations, parse_scheduler_config(policy["scheduler"], seed=3)
    )
    result = orchestrator.optimize()

    print(result.explanation)
    print(result.schedule.to_dataframe(result.origin).to_string())
