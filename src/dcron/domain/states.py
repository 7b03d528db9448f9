# src/dcron/domain/states.py
from __future__ import annotations

from enum import StrEnum


class LoopState(StrEnum):
    """
    States of a single task's execution loop.

      - COMPUTING: asking the schedule for the next instant
      - WAITING: suspended until the instant or cancellation
      - FIRING: lock attempt and body invocation for one instant
      - STOPPED: loop observed cancellation and returned
    """

    COMPUTING = "COMPUTING"
    WAITING = "WAITING"
    FIRING = "FIRING"
    STOPPED = "STOPPED"


class SchedulerStatus(StrEnum):
    NEW = "NEW"
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"


class ShutdownResult(StrEnum):
    """
    Outcome of a shutdown.

    TIMED_OUT is a reportable condition, not an error: loops still running
    after the grace timeout are abandoned.
    """

    GRACEFUL = "GRACEFUL"
    TIMED_OUT = "TIMED_OUT"


class FireOutcome(StrEnum):
    """What happened to one firing instant of one task."""

    RAN = "RAN"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"  # claimed by another instance
    LOCK_ERROR = "LOCK_ERROR"
    MISFIRED = "MISFIRED"
