"""Background auto-optimization scheduling"""

from okcomputer.optimization.scheduler import AutoOptimizationScheduler, SchedulerState

__all__ = ["AutoOptimizationScheduler", "SchedulerState"]
