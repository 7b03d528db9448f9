# src/dcron/domain/task.py
from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Optional

from .states import LoopState

if TYPE_CHECKING:
    from dcron.engine.schedule import CronSchedule


@dataclass(frozen=True)
class ExecutionContext:
    """
    Passed to a task body for one firing.

    Bodies that run for a while should poll ``cancelled`` or sleep through
    ``wait`` so that shutdown does not have to abandon them.
    """
    task_name: str
    scheduled_at: datetime
    cancel_event: threading.Event = field(repr=False)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleeps up to ``seconds``; returns True if cancellation fired meanwhile."""
        return self.cancel_event.wait(timeout=max(0.0, seconds))


TaskBody = Callable[[ExecutionContext], Any]


@dataclass(frozen=True)
class Task:
    """
    Registered task. Immutable once created.

    ``name`` namespaces the distributed lock keys, so it must be identical
    for the same task across cooperating instances and distinct between
    different tasks.
    """
    name: str
    expression: str
    body: TaskBody = field(repr=False)
    schedule: "CronSchedule" = field(repr=False)


@dataclass(frozen=True)
class TaskStats:
    """Point-in-time snapshot of one execution loop's counters."""
    name: str
    expression: str
    state: LoopState = LoopState.COMPUTING
    runs: int = 0
    failures: int = 0
    skipped: int = 0
    lock_errors: int = 0
    misfires: int = 0
    next_fire_at: Optional[datetime] = None
    last_fired_at: Optional[datetime] = None
    last_error: Optional[str] = None


class StatsRecorder:
    """
    Thread-safe holder for a TaskStats value.

    Written by the owning loop thread, read by the API and by tests.
    """

    def __init__(self, task: Task) -> None:
        self._lock = threading.Lock()
        self._stats = TaskStats(name=task.name, expression=task.expression)

    def snapshot(self) -> TaskStats:
        with self._lock:
            return self._stats

    def update(self, **changes: Any) -> None:
        with self._lock:
            self._stats = replace(self._stats, **changes)

    def incr(self, counter: str, **changes: Any) -> None:
        with self._lock:
            value = getattr(self._stats, counter) + 1
            self._stats = replace(self._stats, **{counter: value}, **changes)
