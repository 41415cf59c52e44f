"""Exception types raised by ngaudit."""

from __future__ import annotations

from typing import Optional, Tuple


class NgAuditError(RuntimeError):
    """Base class for ngaudit failures that abort an operation."""


class ConfigError(NgAuditError):
    """Raised when the configuration file cannot be parsed."""


class CheckLoadError(NgAuditError):
    """Raised when a check plugin cannot be loaded or is malformed."""


class UnknownCheckError(NgAuditError, ValueError):
    """Raised when a requested check or tier does not exist."""


class RunnerError(NgAuditError):
    """Raised when the check pool fails as a whole.

    A runner error means no result is returned: a crashed worker cannot be told
    apart from corrupted shared state, so partial output would under-report.
    """

    def __init__(self, message: str, work_item: Optional[Tuple[str, str]] = None) -> None:
        super().__init__(message)
        self.work_item = work_item


__all__ = [
    "CheckLoadError",
    "ConfigError",
    "NgAuditError",
    "RunnerError",
    "UnknownCheckError",
]
