"""Core building blocks: errors, settings, pooling, diagnostics."""

from .cancellation import CancellationToken
from .errors import (
    ConfigurationError,
    ConnectionFailure,
    ConnectionUnavailableError,
    ErrorCategory,
    ErrorSeverity,
    LifecycleError,
    LogpushError,
    PushError,
    SinkMisuseError,
    SinkWriteError,
    TransportError,
)
from .layout import FormatterLayout, JsonLayout, Layout, render
from .resources import ConnectionPool, Lease, PoolStats
from .results import BulkResult, Delivered, DeliveryResult, Failed
from .settings import (
    Endpoint,
    PoolConfig,
    RedisSinkConfig,
    RetryPolicy,
    Settings,
    TlsConfig,
)

__all__ = [
    "BulkResult",
    "CancellationToken",
    "ConfigurationError",
    "ConnectionFailure",
    "ConnectionPool",
    "ConnectionUnavailableError",
    "Delivered",
    "DeliveryResult",
    "Endpoint",
    "ErrorCategory",
    "ErrorSeverity",
    "Failed",
    "FormatterLayout",
    "JsonLayout",
    "Layout",
    "Lease",
    "LifecycleError",
    "LogpushError",
    "PoolConfig",
    "PoolStats",
    "PushError",
    "RedisSinkConfig",
    "RetryPolicy",
    "Settings",
    "SinkMisuseError",
    "SinkWriteError",
    "TlsConfig",
    "TransportError",
    "render",
]
