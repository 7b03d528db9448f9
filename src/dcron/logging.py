from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

# Loop threads are named dcron-<task>, so the thread name identifies the task
# a record came from.
DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s - %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

_HANDLER_NAME = "dcron"


def configure_logging(
    log_level: str = "info",
    *,
    fmt: str = DEFAULT_FORMAT,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Configures root logging for a scheduler process.

    - one stream handler (stdout by default) with ``fmt``
    - calling it again replaces the handler installed by the previous call;
      handlers installed by anything else are left alone
    - uvicorn's loggers follow the level when the status API is served

    Returns the installed handler.
    """
    level = _parse_level(log_level)

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        if h.get_name() == _HANDLER_NAME:
            root.removeHandler(h)

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DEFAULT_DATEFMT))
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(max(level, logging.INFO))
    logging.getLogger("uvicorn.error").setLevel(level)
    return handler


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name if name else "dcron")


def _parse_level(log_level: str) -> int:
    mapping = {
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
        "warning": logging.WARNING,
        "warn": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG,
    }
    return mapping.get(log_level.lower().strip(), logging.INFO)
