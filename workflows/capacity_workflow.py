"""
LangGraph Orchestration - Capacity Analysis Workflow

A linear pipeline over the capacity agents:

Workflow Steps:
    1. compute_capacity: base / available capacity-hours
    2. analyze_load: utilization, risk, trends, balance, overload risk
    3. analyze_efficiency: categories, improvement potential, benchmarks
    4. detect_bottlenecks: scores, tiers, ranked actions, skill gaps
    5. forecast: daily projection, trends, alerts
    6. recommend: top recommendations and potential improvement
    7. assemble: CapacityReport (+ detailed block, + optional narrative)

Every step is a pure function of the inputs; nothing is kept between calls.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Sequence, TypedDict

from langgraph.graph import StateGraph, END
from langsmith import traceable

from agents.bottleneck_agent import BottleneckAgent
from agents.capacity_agent import CapacityAgent
from agents.forecast_agent import ForecastAgent
from models.capacity import (
    AnalysisMode,
    BottleneckReport,
    CapacityProfile,
    CapacityReport,
    DetailedAnalysis,
    EfficiencyAnalysis,
    ForecastReport,
    LoadDistribution,
    RecommendationSet,
)
from models.errors import ValidationError
from models.schedule import Schedule
from models.work_order import WorkOrder
from models.workstation import Workstation


logger = logging.getLogger(__name__)


class CapacityState(TypedDict):
    """State object passed between nodes of the capacity pipeline."""
    # Inputs
    workstations: List[Workstation]
    horizon_days: int
    mode: AnalysisMode
    work_orders: Optional[List[WorkOrder]]
    schedule: Optional[Schedule]
    origin: Optional[datetime]
    completeness: float

    # Intermediate results
    profile: Optional[CapacityProfile]
    utilization: Dict[str, float]
    load: Optional[LoadDistribution]
    efficiency: Optional[EfficiencyAnalysis]
    bottlenecks: Optional[BottleneckReport]
    forecast: Optional[ForecastReport]
    recommendations: Optional[RecommendationSet]

    # Output
    report: Optional[CapacityReport]


class CapacityAnalysisWorkflow:
    """
    LangGraph-based capacity analysis pipeline.

    Example:
        >>> workflow = CapacityAnalysisWorkflow(seed=7)
        >>> report = workflow.analyze(stations, horizon_days=7)
        >>> report.load.balance_index
    """

    def __init__(self, seed: Optional[int] = None, supervisor=None):
        """
        Args:
            seed: Optional seed for reproducible forecast jitter
            supervisor: Optional SupervisorAgent for an LLM narrative
        """
        self.forecaster = ForecastAgent(seed)
        self.capacity_agent = CapacityAgent(self.forecaster)
        self.bottleneck_agent = BottleneckAgent()
        self.supervisor = supervisor
        self.workflow = self._build_workflow()

    def _build_workflow(self):
        graph = StateGraph(CapacityState)

        steps = [
            ("compute_capacity", self._compute_capacity),
            ("analyze_load", self._analyze_load),
            ("analyze_efficiency", self._analyze_efficiency),
            ("detect_bottlenecks", self._detect_bottlenecks),
            ("forecast", self._forecast),
            ("recommend", self._recommend),
            ("assemble", self._assemble),
        ]
        for name, node in steps:
            graph.add_node(name, node)

        graph.set_entry_point(steps[0][0])
        for (current, _), (following, _) in zip(steps, steps[1:]):
            graph.add_edge(current, following)
        graph.add_edge(steps[-1][0], END)

        return graph.compile()

    @traceable(name="Capacity Calculation")
    def _compute_capacity(self, state: CapacityState) -> CapacityState:
        state["profile"] = self.capacity_agent.calculate_base_capacity(
            state["workstations"], state["horizon_days"], state["origin"]
        )
        return state

    @traceable(name="Load Analysis")
    def _analyze_load(self, state: CapacityState) -> CapacityState:
        utilization = self.capacity_agent.station_utilization(
            state["workstations"], state["horizon_days"], state["schedule"]
        )
        state["utilization"] = utilization
        state["load"] = self.capacity_agent.analyze_workload(
            state["workstations"], utilization, state["horizon_days"]
        )
        return state

    @traceable(name="Efficiency Analysis")
    def _analyze_efficiency(self, state: CapacityState) -> CapacityState:
        state["efficiency"] = self.capacity_agent.analyze_efficiency(state["workstations"])
        return state

    @traceable(name="Bottleneck Detection")
    def _detect_bottlenecks(self, state: CapacityState) -> CapacityState:
        ratios = {s.workstation_id: s.maintenance_ratio for s in state["profile"].stations}
        state["bottlenecks"] = self.bottleneck_agent.identify_bottlenecks(
            state["workstations"],
            state["utilization"],
            ratios,
            schedule=state["schedule"],
            work_orders=state["work_orders"],
        )
        return state

    @traceable(name="Capacity Forecast")
    def _forecast(self, state: CapacityState) -> CapacityState:
        state["forecast"] = self.forecaster.forecast_capacity(
            state["workstations"], state["utilization"], state["horizon_days"], state["origin"]
        )
        return state

    @traceable(name="Recommendations")
    def _recommend(self, state: CapacityState) -> CapacityState:
        state["recommendations"] = self.forecaster.generate_recommendations(
            state["load"], state["bottlenecks"], state["forecast"]
        )
        return state

    @traceable(name="Capacity Report")
    def _assemble(self, state: CapacityState) -> CapacityState:
        detailed = None
        if state["mode"] == AnalysisMode.DETAILED:
            detailed = DetailedAnalysis(
                capacity=state["profile"],
                efficiency=state["efficiency"],
                bottleneck_factors={r.workstation_id: dict(r.sub_scores) for r in state["bottlenecks"].records},
            )

        report = CapacityReport(
            mode=state["mode"],
            profile=state["profile"],
            load=state["load"],
            efficiency=state["efficiency"],
            bottlenecks=state["bottlenecks"],
            forecast=state["forecast"],
            recommendations=state["recommendations"],
            confidence=self.capacity_agent.calculate_confidence(
                len(state["workstations"]), state["horizon_days"], state["completeness"]
            ),
            detailed=detailed,
        )
        if self.supervisor is not None:
            report = replace(report, narrative=self.supervisor.summarize_capacity(report))

        state["report"] = report
        return state

    @traceable(name="Capacity Analysis")
    def analyze(
        self,
        workstations: Sequence[Workstation],
        horizon_days: int = 7,
        mode=AnalysisMode.DETAILED,
        work_orders: Optional[Sequence[WorkOrder]] = None,
        schedule: Optional[Schedule] = None,
        origin: Optional[datetime] = None,
        completeness: float = 1.0,
    ) -> CapacityReport:
        """
        Run the full capacity analysis.

        Args:
            workstations: Workstations to analyze (may be empty)
            horizon_days: Horizon length in days (>= 1)
            mode: AnalysisMode or "basic" / "detailed"
            work_orders: Optional work orders (skill gaps)
            schedule: Optional produced schedule (adds load and required skills)
            origin: Start of the horizon (dates, maintenance windows)
            completeness: Fraction of stations with complete input data

        Returns:
            CapacityReport
        """
        if isinstance(horizon_days, bool) or not isinstance(horizon_days, int) or horizon_days < 1:
            raise ValidationError(f"time_horizon_days must be an integer >= 1, got {horizon_days!r}")
        mode = AnalysisMode.parse(mode)

        initial_state = CapacityState(
            workstations=list(workstations),
            horizon_days=horizon_days,
            mode=mode,
            work_orders=list(work_orders) if work_orders is not None else None,
            schedule=schedule,
            origin=origin,
            completeness=completeness,
            profile=None,
            utilization={},
            load=None,
            efficiency=None,
            bottlenecks=None,
            forecast=None,
            recommendations=None,
            report=None,
        )

        final_state = self.workflow.invoke(initial_state)
        report = final_state["report"]
        logger.info(f"Capacity analysis ({mode.value}, {horizon_days}d): "
                    f"{len(workstations)} station(s), utilization {report.load.average_utilization:.1f}%, "
                    f"{len(report.bottlenecks.critical)} critical bottleneck(s)")
        return report
