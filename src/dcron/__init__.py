# src/dcron/__init__.py
"""
dcron: periodic task scheduler with optional cross-instance deduplication.

    from dcron import Scheduler, SchedulerConfig

    scheduler = Scheduler(SchedulerConfig(lock_store_url="redis://127.0.0.1:6379/0"))

    @scheduler.task("*/5 * * * * * *", name="report")
    def report(ctx):
        ...

    scheduler.start()
"""

from .domain import (
    ConfigurationError,
    ConflictError,
    DCronError,
    ExecutionContext,
    InvalidExpression,
    LockStoreError,
    SchedulerStateError,
    SchedulerStatus,
    ShutdownResult,
    Task,
    TaskStats,
)
from .engine import CronSchedule, Scheduler, SchedulerConfig

__all__ = [
    "Scheduler",
    "SchedulerConfig",
    "CronSchedule",
    "ExecutionContext",
    "Task",
    "TaskStats",
    "SchedulerStatus",
    "ShutdownResult",
    "DCronError",
    "ConfigurationError",
    "InvalidExpression",
    "ConflictError",
    "SchedulerStateError",
    "LockStoreError",
]
