# src/dcron/api/deps.py
from __future__ import annotations

from fastapi import Request

from dcron.engine import Scheduler


def get_scheduler(request: Request) -> Scheduler:
    """
    Per-request access to the Scheduler stored on app.state by create_app.
    """
    return request.app.state.scheduler  # type: ignore[attr-defined]
