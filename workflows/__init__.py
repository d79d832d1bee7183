"""
Workflows package for LangGraph orchestration.

Contains the genetic scheduling orchestrator, the capacity analysis
pipeline and the service functions that wrap both:
- SchedulerOrchestrator: GA loop as a LangGraph state machine
- CapacityAnalysisWorkflow: capacity, bottleneck and forecast pipeline
- optimize_schedule / analyze_capacity: dict-in, dict-out entry points
"""

__all__ = ['SchedulerOrchestrator', 'CapacityAnalysisWorkflow', 'optimize_schedule', 'analyze_capacity']
