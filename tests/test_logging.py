# tests/test_logging.py
import io
import logging
import threading

import pytest

from dcron.logging import configure_logging, get_logger


@pytest.fixture()
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_records_carry_the_loop_thread_name(restore_root):
    out = io.StringIO()
    configure_logging("debug", stream=out)

    t = threading.Thread(target=lambda: get_logger("dcron.test").warning("tick failed"), name="dcron-report")
    t.start()
    t.join()

    line = out.getvalue().strip()
    assert "WARNING [dcron-report] dcron.test - tick failed" in line


def test_reconfiguring_replaces_only_its_own_handler(restore_root):
    foreign = logging.NullHandler()
    restore_root.addHandler(foreign)

    first = configure_logging("info", stream=io.StringIO())
    second = configure_logging("warning", fmt="%(message)s", stream=io.StringIO())

    assert first not in restore_root.handlers
    assert second in restore_root.handlers
    assert foreign in restore_root.handlers
    assert restore_root.level == logging.WARNING


def test_custom_format(restore_root):
    out = io.StringIO()
    configure_logging("info", fmt="%(threadName)s|%(message)s", stream=out)
    get_logger().info("hello")
    assert out.getvalue() == f"{threading.current_thread().name}|hello\n"


def test_unknown_level_falls_back_to_info(restore_root):
    configure_logging("loud", stream=io.StringIO())
    assert restore_root.level == logging.INFO
