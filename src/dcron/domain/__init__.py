"""
Domain layer for dcron.

- states: loop / scheduler / shutdown enums
- task: Task record, ExecutionContext, per-task stats
- models: Pydantic models for API output
- errors: domain-level exceptions
"""

from .states import FireOutcome, LoopState, SchedulerStatus, ShutdownResult
from .task import ExecutionContext, Task, TaskBody, TaskStats
from .models import ErrorResponse, HealthResponse, TaskListResponse, TaskView
from .errors import (
    DCronError,
    ConfigurationError,
    InvalidExpression,
    ConflictError,
    SchedulerStateError,
    LockStoreError,
    NotFoundError,
)

__all__ = [
    "FireOutcome",
    "LoopState",
    "SchedulerStatus",
    "ShutdownResult",
    "ExecutionContext",
    "Task",
    "TaskBody",
    "TaskStats",
    "TaskView",
    "TaskListResponse",
    "HealthResponse",
    "ErrorResponse",
    "DCronError",
    "ConfigurationError",
    "InvalidExpression",
    "ConflictError",
    "SchedulerStateError",
    "LockStoreError",
    "NotFoundError",
]
