# src/dcron/domain/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class DCronError(Exception):
    """
    Base scheduler error.

    Configuration-time errors propagate to the caller of ``Scheduler(...)``
    or ``register``; run-time errors stay inside the execution loop that
    raised them. The API layer maps these to HTTP responses.
    """
    message: str
    code: str = "DCRON_ERROR"
    details: Optional[dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message


@dataclass
class ConfigurationError(DCronError):
    code: str = "CONFIGURATION_ERROR"


@dataclass
class InvalidExpression(ConfigurationError):
    code: str = "INVALID_EXPRESSION"


@dataclass
class ConflictError(DCronError):
    code: str = "CONFLICT"


@dataclass
class SchedulerStateError(DCronError):
    code: str = "INVALID_STATE"


@dataclass
class LockStoreError(DCronError):
    code: str = "LOCK_STORE_ERROR"


@dataclass
class NotFoundError(DCronError):
    code: str = "NOT_FOUND"
