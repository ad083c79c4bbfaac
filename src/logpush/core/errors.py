"""
Error hierarchy for logpush.

Every error carries a category and a severity so diagnostics can tell
operational failures (a Redis outage) apart from programming errors (sending
on a sink that was never started). Only misuse errors are ever raised to the
code that produces log records; everything else ends in a diagnostic.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    CONFIGURATION = "configuration"
    LIFECYCLE = "lifecycle"
    CONNECTION = "connection"
    TRANSPORT = "transport"
    SERIALIZATION = "serialization"
    SINK = "sink"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class LogpushError(Exception):
    """Base error with category, severity and free-form context."""

    default_category: ErrorCategory = ErrorCategory.SINK
    default_severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        severity: ErrorSeverity | None = None,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.severity = severity or self.default_severity
        self.context = context
        self.timestamp = time.time()
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp,
        }
        if self.context:
            data["context"] = dict(self.context)
        if self.__cause__ is not None:
            data["cause"] = f"{type(self.__cause__).__name__}: {self.__cause__}"
        return data


class ConfigurationError(LogpushError):
    default_category = ErrorCategory.CONFIGURATION
    default_severity = ErrorSeverity.HIGH


class LifecycleError(LogpushError):
    """An operation was invoked in a lifecycle state that does not allow it."""

    default_category = ErrorCategory.LIFECYCLE
    default_severity = ErrorSeverity.CRITICAL


class SinkMisuseError(LifecycleError):
    """Sending on a manager that is not started (or already stopped)."""


class ConnectionUnavailableError(LogpushError):
    """The pool could not hand out a connection (exhausted or unreachable)."""

    default_category = ErrorCategory.CONNECTION
    default_severity = ErrorSeverity.HIGH


class TransportError(LogpushError):
    default_category = ErrorCategory.TRANSPORT


class ConnectionFailure(TransportError):
    """The connection itself is unusable; abort the current unit of work."""

    default_category = ErrorCategory.CONNECTION
    default_severity = ErrorSeverity.HIGH


class PushError(TransportError):
    """A single push failed on an otherwise healthy connection."""

    default_severity = ErrorSeverity.LOW


class SinkWriteError(LogpushError):
    """Raised by adapters when an entry cannot be turned into a payload."""

    def __init__(
        self,
        message: str,
        *,
        sink_name: str | None = None,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message, cause=cause, sink_name=sink_name, **context)
        self.sink_name = sink_name


__all__ = [
    "ConfigurationError",
    "ConnectionFailure",
    "ConnectionUnavailableError",
    "ErrorCategory",
    "ErrorSeverity",
    "LifecycleError",
    "LogpushError",
    "PushError",
    "SinkMisuseError",
    "SinkWriteError",
    "TransportError",
]
