# src/dcron/engine/loop.py
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from dcron.domain.states import FireOutcome, LoopState
from dcron.domain.task import ExecutionContext, StatsRecorder, Task
from dcron.storage import LockStore

from .schedule import UTC

LOCK_TIME_FORMAT = "%Y%m%d%H%M%S"


def lock_key(name_prefix: str, task_name: str, instant: datetime) -> str:
    """
    ``<prefix>_<task>_<YYYYMMDDhhmmss>`` with the firing instant in UTC.

    Keyed on the scheduled instant rather than the current time, so every
    instant gets its own key even when a body overruns into the next tick.
    """
    return f"{name_prefix}_{task_name}_{instant.astimezone(UTC).strftime(LOCK_TIME_FORMAT)}"


class ExecutionLoop:
    """
    Timing loop for one task: COMPUTING -> WAITING -> FIRING -> COMPUTING ...

    - The wait on the shared cancel event is the only suspension point.
    - One firing at a time; instant k+1 is computed after firing k returned.
    - Faults from the body or the lock store are logged and counted, never
      raised out of the loop.
    """

    def __init__(
        self,
        task: Task,
        *,
        cancel_event: threading.Event,
        clock: Callable[[], datetime],
        logger: logging.Logger,
        lock_store: Optional[LockStore] = None,
        name_prefix: str = "JOB",
        lock_ttl_ms: int = 5_000,
        misfire_grace_ms: int = 60_000,
        instance_id: str = "",
    ) -> None:
        self.task = task
        self.stats = StatsRecorder(task)

        self._cancel = cancel_event
        self._clock = clock
        self._log = logger
        self._lock_store = lock_store
        self._name_prefix = name_prefix
        self._lock_ttl_ms = lock_ttl_ms
        self._misfire_grace_ms = misfire_grace_ms
        self._instance_id = instance_id

    def run(self) -> None:
        self._log.debug("Loop for task %s started (%s)", self.task.name, self.task.expression)
        last: Optional[datetime] = None
        try:
            while not self._cancel.is_set():
                self.stats.update(state=LoopState.COMPUTING)
                try:
                    instant = self.next_instant(last)
                except ValueError as e:
                    # e.g. a year-bounded expression with no occurrences left
                    self._log.warning("Task %s has no further occurrences: %s", self.task.name, e)
                    return

                self.stats.update(state=LoopState.WAITING, next_fire_at=instant)
                if not self._wait_until(instant):
                    return

                last = instant
                self.stats.update(state=LoopState.FIRING)
                self.fire(instant)
        finally:
            self.stats.update(state=LoopState.STOPPED, next_fire_at=None)
            self._log.debug("Loop for task %s stopped", self.task.name)

    def next_instant(self, last: Optional[datetime] = None) -> datetime:
        """Next matching instant strictly after now (and after ``last``)."""
        base = self._clock()
        if last is not None and last > base:
            base = last
        return self.task.schedule.next_after(base)

    def _wait_until(self, instant: datetime) -> bool:
        """Returns False if cancelled before ``instant`` was reached."""
        while True:
            if self._cancel.is_set():
                return False
            remaining = (instant - self._clock()).total_seconds()
            if remaining <= 0:
                return True
            if self._cancel.wait(timeout=remaining):
                return False

    def fire(self, instant: datetime) -> FireOutcome:
        lateness_ms = (self._clock() - instant).total_seconds() * 1000.0
        if self._misfire_grace_ms and lateness_ms > self._misfire_grace_ms:
            self._log.warning(
                "Task %s skipped instant %s: %.0fms late (misfire grace %dms)",
                self.task.name,
                instant.isoformat(),
                lateness_ms,
                self._misfire_grace_ms,
            )
            self.stats.incr("misfires")
            return FireOutcome.MISFIRED

        if self._lock_store is not None:
            key = lock_key(self._name_prefix, self.task.name, instant)
            try:
                claimed = self._lock_store.try_set_if_absent(key, self._instance_id, self._lock_ttl_ms)
            except Exception as e:
                self._log.warning("Lock store error for task %s (key %s): %s", self.task.name, key, e)
                self.stats.incr("lock_errors", last_error=f"lock store: {e}")
                return FireOutcome.LOCK_ERROR
            if not claimed:
                self._log.debug("Task %s instant %s claimed by another instance", self.task.name, key)
                self.stats.incr("skipped")
                return FireOutcome.SKIPPED

        return self._invoke(instant)

    def _invoke(self, instant: datetime) -> FireOutcome:
        ctx = ExecutionContext(task_name=self.task.name, scheduled_at=instant, cancel_event=self._cancel)
        self.stats.incr("runs", last_fired_at=instant)
        try:
            result = self.task.body(ctx)
        except Exception as e:
            self._log.warning("Task %s failed at %s: %r", self.task.name, instant.isoformat(), e, exc_info=True)
            self.stats.incr("failures", last_error=repr(e))
            return FireOutcome.FAILED

        if isinstance(result, BaseException):
            self._log.warning("Task %s reported failure at %s: %r", self.task.name, instant.isoformat(), result)
            self.stats.incr("failures", last_error=repr(result))
            return FireOutcome.FAILED

        return FireOutcome.RAN
