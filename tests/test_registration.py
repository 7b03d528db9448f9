# tests/test_registration.py
import pytest

from dcron import (
    ConfigurationError,
    ConflictError,
    InvalidExpression,
    Scheduler,
    SchedulerConfig,
    SchedulerStateError,
    SchedulerStatus,
)


def _noop(ctx):
    return None


def test_malformed_expression_fails_before_start():
    scheduler = Scheduler()

    with pytest.raises(InvalidExpression) as exc:
        scheduler.register("not-a-cron", _noop)

    assert exc.value.code == "INVALID_EXPRESSION"
    assert exc.value.details == {"expression": "not-a-cron"}
    assert scheduler.tasks == ()
    assert scheduler.status is SchedulerStatus.NEW


def test_tasks_keep_registration_order_and_default_names():
    scheduler = Scheduler()
    a = scheduler.register("* * * * * * *", _noop)
    b = scheduler.register("*/5 * * * *", _noop, name="report")
    c = scheduler.register("@daily", _noop)

    assert [t.name for t in scheduler.tasks] == ["task-1", "report", "task-3"]
    assert scheduler.tasks == (a, b, c)
    assert b.expression == "*/5 * * * *"


def test_same_callable_can_back_several_tasks():
    scheduler = Scheduler()
    scheduler.register("* * * * * * *", _noop, name="fast")
    scheduler.register("@hourly", _noop, name="slow")

    assert {t.name for t in scheduler.tasks} == {"fast", "slow"}


def test_duplicate_names_conflict():
    scheduler = Scheduler()
    scheduler.register("* * * * * * *", _noop, name="sync")

    with pytest.raises(ConflictError) as exc:
        scheduler.register("@hourly", _noop, name="sync")
    assert exc.value.code == "CONFLICT"


def test_explicit_name_colliding_with_default_name_conflicts():
    scheduler = Scheduler()
    scheduler.register("* * * * * * *", _noop, name="task-2")

    with pytest.raises(ConflictError):
        scheduler.register("* * * * * * *", _noop)


@pytest.mark.parametrize("body", [None, "not callable", 42])
def test_body_must_be_callable(body):
    with pytest.raises(ConfigurationError):
        Scheduler().register("* * * * * * *", body)


def test_blank_name_rejected():
    with pytest.raises(ConfigurationError):
        Scheduler().register("* * * * * * *", _noop, name="  ")


def test_decorator_registers_and_returns_function():
    scheduler = Scheduler()

    @scheduler.task("*/10 * * * * * *", name="cleanup")
    def cleanup(ctx):
        return "done"

    assert cleanup(None) == "done"
    assert [t.name for t in scheduler.tasks] == ["cleanup"]
    assert scheduler.tasks[0].body is cleanup


def test_register_after_shutdown_fails():
    scheduler = Scheduler()
    scheduler.shutdown()

    with pytest.raises(SchedulerStateError) as exc:
        scheduler.register("* * * * * * *", _noop)
    assert exc.value.code == "INVALID_STATE"


def test_schedule_uses_configured_timezone():
    scheduler = Scheduler(SchedulerConfig(timezone="UTC"))
    task = scheduler.register("0 9 * * *", _noop)
    assert task.schedule.expression == "0 9 * * *"


def test_stats_before_start_are_zeroed():
    scheduler = Scheduler()
    scheduler.register("* * * * * * *", _noop, name="a")

    [stats] = scheduler.stats()
    assert stats.name == "a"
    assert stats.runs == 0
    assert stats.next_fire_at is None
