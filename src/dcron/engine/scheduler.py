# src/dcron/engine/scheduler.py
from __future__ import annotations

import logging
import os
import signal
import socket
import threading
import uuid
from concurrent.futures import Future, wait
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from dcron.domain.errors import ConfigurationError, ConflictError, SchedulerStateError
from dcron.domain.states import SchedulerStatus, ShutdownResult
from dcron.domain.task import Task, TaskBody, TaskStats
from dcron.logging import get_logger
from dcron.storage import LockStore, LockStoreAddress, open_lock_store, parse_lock_store_address

from .loop import ExecutionLoop
from .schedule import CronSchedule, now_utc, resolve_timezone

_LOG = get_logger(__name__)


_UNCATCHABLE = frozenset(s for s in (getattr(signal, "SIGKILL", None), getattr(signal, "SIGSTOP", None)) if s)


def _check_shutdown_signal(sig: object) -> None:
    try:
        valid = sig in signal.valid_signals() and sig not in _UNCATCHABLE
    except TypeError:
        valid = False
    if not valid:
        raise ConfigurationError(f"Cannot watch {sig!r} for shutdown", details={"signal": str(sig)})


@dataclass(frozen=True)
class SchedulerConfig:
    """
    Runtime config for a scheduler instance. Immutable after construction.
    """
    # Presence enables distributed mode (redis://, rediss://, unix://, sqlite:///)
    lock_store_url: Optional[str] = None
    name_prefix: str = "JOB"

    # Must exceed the expected task runtime, otherwise another instance can
    # claim the same instant again after expiry.
    lock_ttl_ms: int = 5_000
    shutdown_grace_ms: int = 10_000

    # Instants later than this when reached are skipped; 0 always fires.
    misfire_grace_ms: int = 60_000

    timezone: str = "UTC"

    # Empty means SIGTERM.
    shutdown_signals: tuple[signal.Signals, ...] = ()

    redis_socket_timeout_ms: int = 2_000

    def __post_init__(self) -> None:
        if not self.name_prefix:
            raise ConfigurationError("name_prefix must not be empty")
        if self.lock_ttl_ms <= 0:
            raise ConfigurationError("lock_ttl_ms must be > 0")
        if self.shutdown_grace_ms <= 0:
            raise ConfigurationError("shutdown_grace_ms must be > 0")
        if self.misfire_grace_ms < 0:
            raise ConfigurationError("misfire_grace_ms must be >= 0")
        if self.redis_socket_timeout_ms <= 0:
            raise ConfigurationError("redis_socket_timeout_ms must be > 0")
        resolve_timezone(self.timezone)
        for sig in self.shutdown_signals:
            _check_shutdown_signal(sig)

    @property
    def shutdown_grace_s(self) -> float:
        return self.shutdown_grace_ms / 1000.0

    @property
    def redis_socket_timeout_s(self) -> float:
        return self.redis_socket_timeout_ms / 1000.0

    @property
    def signals(self) -> tuple[signal.Signals, ...]:
        return tuple(self.shutdown_signals) or (signal.SIGTERM,)


class Scheduler:
    """
    Periodic task scheduler.

    - register() tasks against cron expressions while the scheduler is NEW
    - start() spawns one loop thread per task and blocks until shutdown
    - shutdown() cancels every loop and waits, bounded by the grace timeout

    In distributed mode each firing instant is claimed in the lock store
    first, so among instances sharing the store only one runs it.
    """

    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        *,
        lock_store: Optional[LockStore] = None,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._cfg = config or SchedulerConfig()
        self._log = logger or _LOG
        self._clock = clock or now_utc

        # Fails fast on a malformed address; the client itself is built by start().
        self._address: Optional[LockStoreAddress] = None
        if self._cfg.lock_store_url:
            self._address = parse_lock_store_address(self._cfg.lock_store_url)

        self._injected_store = lock_store
        self._lock_store: Optional[LockStore] = None

        self._tasks: list[Task] = []
        self._loops: list[ExecutionLoop] = []
        self._futures: list[Future[None]] = []

        self._cancel = threading.Event()
        self._stopped = threading.Event()
        self._state_lock = threading.Lock()
        self._status = SchedulerStatus.NEW
        self._result: Optional[ShutdownResult] = None

        self._instance_id = f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"
        self._previous_handlers: dict[signal.Signals, object] = {}
        self._signalled = False

    # -------------------------
    # Registration
    # -------------------------

    def register(self, expression: str, body: TaskBody, name: Optional[str] = None) -> Task:
        """
        Adds a task. Fails immediately with InvalidExpression if the
        expression does not parse, and with SchedulerStateError once the
        scheduler has started.
        """
        if not callable(body):
            raise ConfigurationError(f"Task body must be callable, got {type(body).__name__}")

        schedule = CronSchedule.parse(expression, self._cfg.timezone)

        with self._state_lock:
            if self._status is not SchedulerStatus.NEW:
                raise SchedulerStateError(
                    f"Cannot register tasks while scheduler is {self._status}",
                    details={"status": str(self._status)},
                )

            task_name = name if name is not None else f"task-{len(self._tasks) + 1}"
            if not task_name.strip():
                raise ConfigurationError("Task name must not be empty")
            if any(t.name == task_name for t in self._tasks):
                raise ConflictError(f"Task already registered: {task_name}", details={"name": task_name})

            task = Task(name=task_name, expression=expression, body=body, schedule=schedule)
            self._tasks.append(task)

        self._log.debug("Registered task %s (%s)", task.name, expression)
        return task

    def task(self, expression: str, name: Optional[str] = None) -> Callable[[TaskBody], TaskBody]:
        """Decorator form of register(); returns the function unchanged."""

        def decorator(fn: TaskBody) -> TaskBody:
            self.register(expression, fn, name=name)
            return fn

        return decorator

    # -------------------------
    # Introspection
    # -------------------------

    @property
    def config(self) -> SchedulerConfig:
        return self._cfg

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def status(self) -> SchedulerStatus:
        return self._status

    @property
    def instance_id(self) -> str:
        return self._instance_id

    @property
    def distributed(self) -> bool:
        return self._address is not None or self._injected_store is not None

    def stats(self) -> list[TaskStats]:
        if self._loops:
            return [loop.stats.snapshot() for loop in self._loops]
        return [TaskStats(name=t.name, expression=t.expression) for t in self._tasks]

    # -------------------------
    # Lifecycle
    # -------------------------

    def start(self) -> ShutdownResult:
        """
        Spawns the execution loops and blocks until shutdown completes.
        Can be called once.
        """
        with self._state_lock:
            if self._status is not SchedulerStatus.NEW:
                raise SchedulerStateError(
                    f"Scheduler cannot start from status {self._status}",
                    details={"status": str(self._status)},
                )

            self._lock_store = self._open_lock_store()
            self._loops = [self._build_loop(t) for t in self._tasks]
            self._futures = [self._spawn(loop) for loop in self._loops]
            self._status = SchedulerStatus.RUNNING

        self._log.info(
            "Running... (%d tasks, distributed=%s, instance=%s)",
            len(self._loops),
            self.distributed,
            self._instance_id,
        )

        try:
            self._install_signal_handlers()
            self._stopped.wait()
        except KeyboardInterrupt:
            self._log.info("Interrupted, shutting down...")
            self.shutdown()
            raise
        except Exception:
            self._log.exception("Scheduler failed while running, shutting down...")
            self.shutdown()
            raise
        finally:
            self._restore_signal_handlers()

        assert self._result is not None
        return self._result

    def shutdown(self) -> ShutdownResult:
        """
        Cancels all loops and waits for them, bounded by shutdown_grace_ms.

        Idempotent: later or concurrent callers do not repeat the teardown;
        they wait (bounded) for the first one and return its result.
        """
        with self._state_lock:
            status = self._status
            if status is SchedulerStatus.NEW:
                self._cancel.set()
                self._status = SchedulerStatus.STOPPED
                self._result = ShutdownResult.GRACEFUL
                self._stopped.set()
                self._log.info("Scheduler stopped before start.")
                return self._result
            if status is SchedulerStatus.RUNNING:
                self._status = SchedulerStatus.STOPPING

        if status is not SchedulerStatus.RUNNING:
            self._stopped.wait(timeout=self._cfg.shutdown_grace_s + 1.0)
            return self._result or ShutdownResult.TIMED_OUT

        return self._teardown()

    def _teardown(self) -> ShutdownResult:
        self._log.info("Shutdown... (%d tasks)", len(self._loops))
        self._cancel.set()

        # In-flight bodies are allowed to finish; nothing is force-killed.
        _, not_done = wait(self._futures, timeout=self._cfg.shutdown_grace_s)
        if not_done:
            pending = [loop.task.name for loop, fut in zip(self._loops, self._futures) if fut in not_done]
            self._log.warning(
                "Shutdown timed out after %dms; abandoning %d running task(s): %s",
                self._cfg.shutdown_grace_ms,
                len(pending),
                ", ".join(pending),
            )
            result = ShutdownResult.TIMED_OUT
        else:
            self._log.info("Graceful shutdown success!")
            result = ShutdownResult.GRACEFUL

        self._close_lock_store()

        with self._state_lock:
            self._result = result
            self._status = SchedulerStatus.STOPPED
        self._stopped.set()
        return result

    # -------------------------
    # Internals
    # -------------------------

    def _open_lock_store(self) -> Optional[LockStore]:
        if self._injected_store is not None:
            return self._injected_store
        if self._address is None:
            return None
        return open_lock_store(
            self._address,
            pool_size=len(self._tasks),
            socket_timeout_s=self._cfg.redis_socket_timeout_s,
        )

    def _close_lock_store(self) -> None:
        # An injected store belongs to the caller.
        if self._lock_store is None or self._lock_store is self._injected_store:
            return
        try:
            self._lock_store.close()
        except Exception:
            self._log.warning("Failed to close lock store.", exc_info=True)

    def _build_loop(self, task: Task) -> ExecutionLoop:
        return ExecutionLoop(
            task,
            cancel_event=self._cancel,
            clock=self._clock,
            logger=self._log,
            lock_store=self._lock_store,
            name_prefix=self._cfg.name_prefix,
            lock_ttl_ms=self._cfg.lock_ttl_ms,
            misfire_grace_ms=self._cfg.misfire_grace_ms,
            instance_id=self._instance_id,
        )

    def _spawn(self, loop: ExecutionLoop) -> Future[None]:
        fut: Future[None] = Future()

        def _run() -> None:
            try:
                loop.run()
            except Exception as e:
                self._log.exception("Loop for task %s crashed: %r", loop.task.name, e)
                fut.set_exception(e)
            finally:
                if not fut.done():
                    fut.set_result(None)

        # Daemon: a loop abandoned after the grace timeout must not keep the process alive.
        thread = threading.Thread(target=_run, name=f"dcron-{loop.task.name}", daemon=True)
        thread.start()
        return fut

    def _install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            self._log.debug("start() is not on the main thread; signal watcher not installed.")
            return
        for sig in self._cfg.signals:
            self._previous_handlers[sig] = signal.signal(sig, self._on_signal)

    def _restore_signal_handlers(self) -> None:
        for sig, previous in self._previous_handlers.items():
            if previous is not None:
                signal.signal(sig, previous)
        self._previous_handlers.clear()

    def _on_signal(self, signum: int, frame: object) -> None:
        if self._signalled:
            return
        self._signalled = True
        self._log.info("Received %s, shutting down...", signal.Signals(signum).name)
        # Teardown waits on loop threads; keep it off the signal handler.
        threading.Thread(target=self.shutdown, name="dcron-shutdown", daemon=True).start()
