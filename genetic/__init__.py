"""
Genetic algorithm package for production scheduling.

This package contains the building blocks the orchestrator drives:
- PlanningContext: Per-run lookups (compatibility, due offsets, precedence)
- PopulationInitializer: Random total schedules respecting skills and lanes
- FitnessEvaluator: Deterministic multi-objective scoring with penalties
- GeneticOperators: Tournament selection, crossover, mutation, repair
"""

__all__ = ['PlanningContext', 'PopulationInitializer', 'FitnessEvaluator', 'GeneticOperators']
