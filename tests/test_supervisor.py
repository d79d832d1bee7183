"""
Tests for the LLM supervisor, using a fake chat model.
"""

import pytest
from langchain_core.language_models import FakeListChatModel

from agents.supervisor import DEFAULT_MODEL, SupervisorAgent
from workflows.capacity_workflow import CapacityAnalysisWorkflow
from workflows.orchestrator import SchedulerOrchestrator


def fake_supervisor(*responses):
    return SupervisorAgent(llm=FakeListChatModel(responses=list(responses)))


class TestSupervisorAgent:
    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        monkeypatch.setattr("agents.supervisor.load_dotenv", lambda: None)

        with pytest.raises(ValueError, match="GROQ_API_KEY"):
            SupervisorAgent()

    def test_groq_model_from_key(self, monkeypatch):
        monkeypatch.delenv("GROQ_MODEL_SUPERVISOR", raising=False)
        monkeypatch.setattr("agents.supervisor.load_dotenv", lambda: None)

        agent = SupervisorAgent(groq_api_key="test-key")
        assert DEFAULT_MODEL in str(agent)

    def test_planning_request(self, work_orders, workstations, fast_config):
        agent = fake_supervisor("Machining is the tight resource.")
        overview = agent.analyze_planning_request(work_orders, workstations, fast_config)

        assert overview == "Machining is the tight resource."

    def test_schedule_summary(self, work_orders, workstations, fast_config):
        result = SchedulerOrchestrator(work_orders, workstations, fast_config).optimize()
        summary = fake_supervisor("All orders ship on time.").summarize_schedule(result)

        assert summary == "All orders ship on time."

    def test_capacity_summary(self, workstations):
        report = CapacityAnalysisWorkflow(seed=1).analyze(workstations, horizon_days=3)
        summary = fake_supervisor("WS-A needs relief.").summarize_capacity(report)

        assert summary == "WS-A needs relief."
