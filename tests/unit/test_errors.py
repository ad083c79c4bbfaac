from __future__ import annotations

from logpush.core.errors import (
    ConnectionFailure,
    ErrorCategory,
    ErrorSeverity,
    LifecycleError,
    LogpushError,
    PushError,
    SinkMisuseError,
    SinkWriteError,
    TransportError,
)


def test_defaults_come_from_subclass() -> None:
    err = ConnectionFailure("gone", endpoint="cache:6379")

    assert isinstance(err, TransportError)
    assert err.category is ErrorCategory.CONNECTION
    assert err.severity is ErrorSeverity.HIGH
    assert err.context == {"endpoint": "cache:6379"}


def test_push_error_is_low_severity_transport() -> None:
    err = PushError("WRONGTYPE")

    assert err.category is ErrorCategory.TRANSPORT
    assert err.severity is ErrorSeverity.LOW


def test_misuse_is_a_lifecycle_error() -> None:
    assert issubclass(SinkMisuseError, LifecycleError)


def test_to_dict_includes_cause_and_context() -> None:
    cause = OSError("broken pipe")
    err = LogpushError("push failed", cause=cause, key="logs")

    data = err.to_dict()

    assert err.__cause__ is cause
    assert data["error_type"] == "LogpushError"
    assert data["context"] == {"key": "logs"}
    assert data["cause"] == "OSError: broken pipe"


def test_sink_write_error_keeps_sink_name() -> None:
    err = SinkWriteError("cannot serialize", sink_name="redis")

    assert err.sink_name == "redis"
    assert err.to_dict()["context"]["sink_name"] == "redis"
