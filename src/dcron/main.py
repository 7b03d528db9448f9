from __future__ import annotations

import argparse
import importlib
import sys
from typing import Sequence

from dcron.config import load_settings
from dcron.domain.errors import DCronError
from dcron.domain.states import ShutdownResult
from dcron.engine import Scheduler
from dcron.logging import configure_logging, get_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dcron", description="Run a dcron scheduler")
    parser.add_argument(
        "target",
        help="Scheduler to run, as 'package.module:attribute' (instance or zero-argument factory)",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Also expose the status API on DCRON_HOST:DCRON_PORT (runs under uvicorn)",
    )
    return parser


def load_target(target: str) -> Scheduler:
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Target must look like 'package.module:attribute', got {target!r}")

    obj: object = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)

    if not isinstance(obj, Scheduler) and callable(obj):
        obj = obj()
    if not isinstance(obj, Scheduler):
        raise TypeError(f"{target} is not a dcron Scheduler (got {type(obj).__name__})")
    return obj


def main(argv: Sequence[str] | None = None) -> int:
    """
    Programmatic entrypoint.

      python -m dcron.main myapp.jobs:scheduler
      python -m dcron.main myapp.jobs:build_scheduler --serve
    """
    args = build_parser().parse_args(argv)

    settings = load_settings()
    configure_logging(settings.log_level, fmt=settings.log_format)
    log = get_logger(__name__)

    # Import here so config/logging are set before the target module's side-effects.
    try:
        scheduler = load_target(args.target)
    except (ImportError, AttributeError, TypeError, ValueError, DCronError):
        log.exception("Failed to load scheduler %s.", args.target)
        return 1

    if not args.serve:
        result = scheduler.start()
        return 0 if result is ShutdownResult.GRACEFUL else 1

    try:
        import uvicorn
    except ImportError:
        log.error("uvicorn is not installed. Install with: pip install uvicorn")
        return 1

    from dcron.api import create_app

    log.info("Serving status API on %s:%d", settings.host, settings.port)
    uvicorn.run(
        create_app(scheduler),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
