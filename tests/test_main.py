# tests/test_main.py
import textwrap
from pathlib import Path

import pytest

from dcron import Scheduler
from dcron.main import load_target, main

_JOBS = textwrap.dedent(
    """
    from dcron import Scheduler

    scheduler = Scheduler()
    scheduler.register("@hourly", lambda ctx: None, name="report")

    def build_scheduler():
        s = Scheduler()
        s.register("@daily", lambda ctx: None, name="cleanup")
        return s

    not_a_scheduler = 42
    """
)


@pytest.fixture()
def jobs_module(tmp_path: Path, monkeypatch) -> str:
    name = f"jobs_{tmp_path.name.replace('-', '_')}"
    (tmp_path / f"{name}.py").write_text(_JOBS)
    monkeypatch.syspath_prepend(str(tmp_path))
    return name


def test_load_instance(jobs_module):
    scheduler = load_target(f"{jobs_module}:scheduler")
    assert isinstance(scheduler, Scheduler)
    assert [t.name for t in scheduler.tasks] == ["report"]


def test_load_factory(jobs_module):
    scheduler = load_target(f"{jobs_module}:build_scheduler")
    assert [t.name for t in scheduler.tasks] == ["cleanup"]


def test_load_rejects_other_objects(jobs_module):
    with pytest.raises(TypeError):
        load_target(f"{jobs_module}:not_a_scheduler")


@pytest.mark.parametrize("target", ["no_colon", ":attr", "module:"])
def test_load_rejects_malformed_target(target):
    with pytest.raises(ValueError):
        load_target(target)


def test_main_returns_1_when_target_cannot_load(jobs_module, monkeypatch):
    monkeypatch.delenv("DCRON_LOG_LEVEL", raising=False)
    monkeypatch.setattr("dcron.main.configure_logging", lambda *args, **kwargs: None)
    assert main([f"{jobs_module}:missing"]) == 1
    assert main(["definitely_not_a_module_xyz:scheduler"]) == 1
