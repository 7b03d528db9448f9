# src/dcron/api/app.py
from __future__ import annotations

import threading
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from dcron.domain.errors import SchedulerStateError
from dcron.domain.states import SchedulerStatus
from dcron.engine import Scheduler
from dcron.logging import get_logger

from .routes import router

_LOG = get_logger(__name__)

_STARTUP_TIMEOUT_S = 5.0


def _start_in_background(scheduler: Scheduler) -> threading.Thread:
    if scheduler.status is not SchedulerStatus.NEW:
        raise SchedulerStateError(
            f"Scheduler cannot start from status {scheduler.status}",
            details={"status": str(scheduler.status)},
        )

    errors: list[BaseException] = []
    failed = threading.Event()

    def _run() -> None:
        try:
            scheduler.start()
        except Exception as e:
            errors.append(e)
            _LOG.exception("Scheduler failed to start.")
            failed.set()

    thread = threading.Thread(target=_run, name="dcron-main", daemon=True)
    thread.start()

    deadline = time.monotonic() + _STARTUP_TIMEOUT_S
    while scheduler.status is not SchedulerStatus.RUNNING and thread.is_alive() and time.monotonic() < deadline:
        if failed.wait(timeout=0.01):
            break
    if not thread.is_alive() or failed.is_set():
        thread.join(timeout=1.0)
    if errors:
        raise RuntimeError("Scheduler failed to start") from errors[0]
    return thread


def create_app(scheduler: Scheduler, *, title: Optional[str] = None) -> FastAPI:
    """
    Builds the status API around ``scheduler``.

    The lifespan runs the scheduler on a background thread (start() blocks)
    and shuts it down when the application stops.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.scheduler = scheduler
        thread = _start_in_background(scheduler)
        _LOG.info("Startup complete.")

        try:
            yield
        finally:
            result = scheduler.shutdown()
            thread.join(timeout=1.0)
            _LOG.info("Shutdown complete (%s).", result)

    app = FastAPI(
        title=title or "dcron scheduler",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app
