from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .states import LoopState, SchedulerStatus
from .task import TaskStats


class TaskView(BaseModel):
    """
    API output model for a single registered task and its loop counters.
    """
    model_config = ConfigDict(extra="forbid")

    name: str
    expression: str
    state: LoopState

    runs: int
    failures: int
    skipped: int
    lock_errors: int
    misfires: int

    next_fire_at: Optional[datetime] = None
    last_fired_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @classmethod
    def from_stats(cls, stats: TaskStats) -> "TaskView":
        return cls(
            name=stats.name,
            expression=stats.expression,
            state=stats.state,
            runs=stats.runs,
            failures=stats.failures,
            skipped=stats.skipped,
            lock_errors=stats.lock_errors,
            misfires=stats.misfires,
            next_fire_at=stats.next_fire_at,
            last_fired_at=stats.last_fired_at,
            last_error=stats.last_error,
        )


class TaskListResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tasks: list[TaskView]
    total: int


class HealthResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ok: bool
    status: SchedulerStatus
    instance_id: str
    distributed: bool


class ErrorResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    error: str
    code: str
    details: dict = Field(default_factory=dict)
