# src/dcron/api/routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dcron.domain.errors import DCronError, NotFoundError
from dcron.domain.models import ErrorResponse, HealthResponse, TaskListResponse, TaskView
from dcron.engine import Scheduler

from .deps import get_scheduler

router = APIRouter()


def _error_response(err: DCronError, http_status: int) -> JSONResponse:
    payload = ErrorResponse(
        error=err.message,
        code=err.code,
        details=err.details or {},
    ).model_dump()
    return JSONResponse(status_code=http_status, content=payload)


@router.get("/healthz", response_model=HealthResponse)
def healthz(scheduler: Scheduler = Depends(get_scheduler)):
    return HealthResponse(
        ok=True,
        status=scheduler.status,
        instance_id=scheduler.instance_id,
        distributed=scheduler.distributed,
    )


@router.get("/tasks", response_model=TaskListResponse)
def list_tasks(scheduler: Scheduler = Depends(get_scheduler)):
    tasks = [TaskView.from_stats(s) for s in scheduler.stats()]
    return TaskListResponse(tasks=tasks, total=len(tasks))


@router.get("/tasks/{name}", response_model=TaskView)
def get_task(name: str, scheduler: Scheduler = Depends(get_scheduler)):
    for stats in scheduler.stats():
        if stats.name == name:
            return TaskView.from_stats(stats)
    return _error_response(NotFoundError(f"Task not found: {name}", details={"name": name}), 404)
