"""
Agent package for the Production Scheduling Optimizer.

This package contains all agent implementations:
- Supervisor Agent: LLM narrative of results
- Constraint Agent: Rule validation specialist
- Capacity Agent: Capacity, load and efficiency figures
- Bottleneck Agent: Bottleneck scoring and relief actions
- Forecast Agent: Load forecast, alerts and recommendations
"""

__all__ = ['SupervisorAgent', 'ConstraintAgent', 'CapacityAgent', 'BottleneckAgent', 'ForecastAgent']
