"""
Supervisor Agent - Planner-facing narrative of optimization and analysis results

This agent turns the numeric output of the genetic scheduler and the
capacity analyzer into short executive summaries for plant managers.

Key Responsibilities:
    - Review a planning request before optimization (challenges, priorities)
    - Summarize the best-of-run schedule (KPIs, violations, trade-offs)
    - Summarize a capacity report (bottlenecks, alerts, recommendations)

Uses Groq's llama-3.3-70b-versatile by default; any LangChain chat model can
be injected instead (tests use a fake model). The scheduler never depends on
the narrative: it is only produced when a supervisor is passed in.
"""

import logging
import os
from typing import Sequence

from dotenv import load_dotenv
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_groq import ChatGroq

from models.constraints import SchedulerConfig
from models.work_order import WorkOrder
from models.workstation import Workstation


logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama-3.3-70b-versatile"


class SupervisorAgent:
    """
    Supervisor Agent - writes executive summaries with an LLM.

    Example:
        >>> agent = SupervisorAgent()                      # ChatGroq from GROQ_API_KEY
        >>> agent = SupervisorAgent(llm=my_chat_model)     # any LangChain chat model
    """

    def __init__(self, groq_api_key: str = None, llm: BaseChatModel = None):
        """
        Initialize the Supervisor Agent.

        Args:
            groq_api_key: Groq API key (if not provided, reads from environment / .env)
            llm: Pre-built chat model; skips Groq setup when given
        """
        if llm is None:
            load_dotenv()
            if groq_api_key is None:
                groq_api_key = os.getenv('GROQ_API_KEY')

            if not groq_api_key:
                raise ValueError("Groq API key required. Set GROQ_API_KEY environment variable.")

            llm = ChatGroq(
                api_key=groq_api_key,
                model_name=os.getenv('GROQ_MODEL_SUPERVISOR', DEFAULT_MODEL),
                temperature=0.2,
                max_tokens=2048,
            )

        self.llm = llm
        self.system_prompt = """You are the Supervisor Agent in a production scheduling system.

A genetic algorithm assigns work orders to workstations, and a capacity
analyzer scores workstation load, bottlenecks and forecasts.

When reviewing results, consider:
- On-time completion and total tardiness
- Workstation utilization and load balance
- Constraint violations (overlaps, precedence, skills, maintenance)
- Work orders no workstation is fully skilled for
- Bottlenecks and forecast overload alerts

Provide concise, executive-level explanations that non-technical plant managers can understand."""

    def _ask(self, prompt: str) -> str:
        messages = [
            SystemMessage(content=self.system_prompt),
            HumanMessage(content=prompt),
        ]
        response = self.llm.invoke(messages)
        logger.debug(f"Supervisor response: {len(response.content)} chars")
        return response.content

    def analyze_planning_request(
        self,
        work_orders: Sequence[WorkOrder],
        workstations: Sequence[Workstation],
        config: SchedulerConfig,
    ) -> str:
        """
        Analyze a planning request and outline the main challenges.

        Args:
            work_orders: Work orders to schedule
            workstations: Available workstations
            config: Scheduler configuration

        Returns:
            LLM-generated strategic overview
        """
        skills = sorted({s for wo in work_orders for s in wo.required_skills})
        urgent = sum(1 for wo in work_orders if wo.priority >= 3)
        dependent = sum(1 for wo in work_orders if wo.dependencies)

        maintenance = []
        for station in workstations:
            for window in station.maintenance_windows:
                maintenance.append(f"  {station.workstation_id}: {window}")

        prompt = f"""Analyze this production scheduling request:

WORK ORDERS:
- Total: {len(work_orders)}
- High priority (>= 3): {urgent}
- With dependencies: {dependent}
- Required skills: {', '.join(skills) or 'none'}

WORKSTATIONS:
{chr(10).join(f'- {ws}' for ws in workstations) or '- none'}

MAINTENANCE:
{chr(10).join(maintenance) if maintenance else '  None scheduled'}

OBJECTIVE WEIGHTS: {config.weights.normalized().to_dict()}

Based on this, what are the key scheduling challenges and priorities?
Provide a brief strategic overview."""

        return self._ask(prompt)

    def summarize_schedule(self, result) -> str:
        """
        Generate an executive summary of an optimization result.

        Args:
            result: OptimizationResult from the orchestrator

        Returns:
            Executive summary text
        """
        m = result.metrics
        b = result.breakdown
        prompt = f"""Generate a brief executive summary for plant management:

OPTIMIZATION RESULTS:
- {len(result.schedule)} work orders scheduled
- Stopped after {result.generations_run} generations ({result.stop_reason})
- Fitness {result.fitness:.1f} (baseline 100, maximum 200)

PERFORMANCE:
- Makespan: {m.makespan_minutes:.0f} minutes
- On-time rate: {m.on_time_rate:.0f}% (total tardiness {m.total_tardiness_minutes:.0f} minutes)
- Average utilization: {m.average_utilization:.1f}%
- Load balance score: {b.load_balance:.1f}/100
- Constraint violations: {m.constraint_violations}
- Work orders without a fully skilled workstation: {m.unassignable_count}

Write 2-3 sentences suitable for a plant manager email.
Focus on business impact, not technical details."""

        return self._ask(prompt)

    def summarize_capacity(self, report) -> str:
        """
        Generate an executive summary of a capacity report.

        Args:
            report: CapacityReport from the capacity workflow

        Returns:
            Executive summary text
        """
        summary = report.summary()
        critical = ', '.join(r.workstation_id for r in report.bottlenecks.critical) or 'none'
        actions = '\n'.join(f"- {r.title}: {r.description}" for r in report.recommendations.recommendations)

        prompt = f"""Summarize this capacity analysis for plant management:

CAPACITY ({report.profile.horizon_days} days):
- Available: {summary['available_capacity']:.0f} of {summary['total_capacity']:.0f} capacity-hours
- Average utilization: {summary['utilization_rate']:.1f}%
- Load balance index: {summary['balance_index']:.1f}/100
- Critical bottlenecks: {critical}
- Skill gaps: {', '.join(report.bottlenecks.skill_gaps) or 'none'}
- Forecast alerts: {len(report.forecast.alerts)}

TOP RECOMMENDATIONS:
{actions or '- none'}

Write 2-3 sentences on the most important risk and the first action to take."""

        return self._ask(prompt)

    def __str__(self) -> str:
        return f"SupervisorAgent(model={getattr(self.llm, 'model_name', type(self.llm).__name__)})"


# Example usage
if __name__ == "__main__":
    from utils.config_loader import load_config, parse_scheduler_config
    from utils.data_generator import generate_work_orders

    policy = load_config()
    stations = policy["workstations"]
    orders = generate_work_orders(10, stations, seed=1)

    agent = SupervisorAgent()
    print(agent.analyze_planning_request(orders, stations, parse_scheduler_config(policy["scheduler"])))
