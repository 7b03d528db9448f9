# tests/conftest.py
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, Optional

import pytest

from dcron import Scheduler, SchedulerConfig, SchedulerStatus
from dcron.storage import LockStore

UTC = timezone.utc

# Fast shutdown so a broken test cannot hang the suite for long.
FAST_CONFIG = dict(shutdown_grace_ms=2_000, misfire_grace_ms=0)


class FakeClock:
    """Manually advanced UTC clock for loop-level tests."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def wait_until(fn: Callable[[], bool], timeout_s: float = 5.0, poll_s: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if fn():
            return True
        time.sleep(poll_s)
    return False


def sleep_to_second_start(offset_s: float = 0.05) -> None:
    """Sleeps until ``offset_s`` past the next wall-clock second boundary."""
    now = time.time()
    time.sleep(1.0 - (now % 1.0) + offset_s)


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def scheduler_factory() -> Iterator[Callable[..., Scheduler]]:
    """
    Factory for schedulers with fast test defaults; all of them are shut
    down at teardown.

    Usage:
      scheduler = scheduler_factory(lock_store=store, name_prefix="T")
    """
    created: list[Scheduler] = []

    def _make(*, lock_store: Optional[LockStore] = None, logger=None, clock=None, **overrides) -> Scheduler:
        cfg = SchedulerConfig(**{**FAST_CONFIG, **overrides})
        scheduler = Scheduler(cfg, lock_store=lock_store, logger=logger, clock=clock)
        created.append(scheduler)
        return scheduler

    yield _make

    for scheduler in created:
        scheduler.shutdown()


@pytest.fixture()
def run_in_background():
    """
    Starts schedulers on background threads and waits until they report
    RUNNING. Returns the thread; start()'s result is kept on thread.result.
    """
    threads: list[threading.Thread] = []

    def _run(scheduler: Scheduler) -> threading.Thread:
        def _target() -> None:
            thread.result = scheduler.start()  # type: ignore[attr-defined]

        thread = threading.Thread(target=_target, daemon=True)
        thread.result = None  # type: ignore[attr-defined]
        thread.start()
        threads.append(thread)
        assert wait_until(lambda: scheduler.status is not SchedulerStatus.NEW, timeout_s=2.0)
        return thread

    yield _run

    for thread in threads:
        thread.join(timeout=5.0)


@pytest.fixture()
def client():
    """
    TestClient around a scheduler with two tasks. Entering the client runs
    the lifespan, so the scheduler is RUNNING for the duration of the test.
    """
    from fastapi.testclient import TestClient

    from dcron.api import create_app

    scheduler = Scheduler(SchedulerConfig(**FAST_CONFIG))
    scheduler.register("* * * * * * *", lambda ctx: None, name="tick")
    scheduler.register("@hourly", lambda ctx: None, name="report")

    with TestClient(create_app(scheduler)) as c:
        yield c

    assert scheduler.status is SchedulerStatus.STOPPED
