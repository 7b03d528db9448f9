# src/dcron/engine/__init__.py
"""
Execution engine for dcron.

- schedule: cron expression parsing + next occurrence (croniter)
- loop: per-task timing loop, lock claiming, fault containment
- scheduler: registry, loop threads, signal watcher, shutdown protocol
"""

from .loop import ExecutionLoop, lock_key
from .schedule import CronSchedule
from .scheduler import Scheduler, SchedulerConfig

__all__ = ["CronSchedule", "ExecutionLoop", "Scheduler", "SchedulerConfig", "lock_key"]
