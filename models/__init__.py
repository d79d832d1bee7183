"""
Core data models package for the Production Scheduling Optimizer.

This package contains all data structures used throughout the system:
- WorkOrder: A unit of production work to be scheduled
- Workstation: A production workstation with slots, skills and maintenance
- Schedule: A candidate schedule (chromosome) of ScheduleAssignments
- SchedulerConfig: Validated GA parameters, fitness weights and penalties
- CapacityReport: Result of a capacity/bottleneck analysis
"""

__all__ = ['WorkOrder', 'Workstation', 'MaintenanceWindow', 'Schedule', 'ScheduleAssignment',
           'ScheduleMetrics', 'Individual', 'SchedulerConfig', 'FitnessWeights',
           'PenaltyWeights', 'CapacityReport', 'AnalysisMode', 'ValidationError']
