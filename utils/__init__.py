"""
Utility functions package for the Production Scheduling Optimizer.

This package contains helper utilities:
- config_loader: Load policies and parse scheduler configurations
- data_generator: Generate work orders, workstations and test scenarios
- baseline_scheduler: Greedy scheduler for comparison and GA seeding
"""

__all__ = ['config_loader', 'data_generator', 'baseline_scheduler']
