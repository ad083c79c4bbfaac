"""
Public entrypoints for logpush.

Provides ``get_handler()`` for zero-config stdlib logging integration plus
the delivery engine and its collaborators for direct use.
"""

from __future__ import annotations

from ._version import __version__
from .core import diagnostics
from .core.cancellation import CancellationToken
from .core.errors import (
    ConnectionUnavailableError,
    LogpushError,
    SinkMisuseError,
)
from .core.layout import FormatterLayout, JsonLayout
from .core.settings import (
    Endpoint,
    PoolConfig,
    RedisSinkConfig,
    RetryPolicy,
    Settings,
    TlsConfig,
)
from .handler import RedisListHandler
from .manager import ManagerState, RedisManager
from .metrics.metrics import MetricsCollector
from .plugins.sinks.redis_list import RedisSink
from .pool import RedisPoolProvider

VERSION = __version__


def get_handler(
    *,
    settings: Settings | None = None,
    layout: JsonLayout | FormatterLayout | None = None,
) -> RedisListHandler:
    """Return a started ``RedisListHandler`` configured from the environment.

    Example:
        import logging
        from logpush import get_handler

        # LOGPUSH_REDIS__HOST=cache LOGPUSH_REDIS__KEYS='["app-logs"]'
        handler = get_handler()
        logging.getLogger().addHandler(handler)
        logging.getLogger("app").info("hello")
        handler.close()
    """
    cfg = settings or Settings()
    diagnostics.configure(
        enabled=cfg.core.internal_logging_enabled,
        rate_limit_seconds=cfg.core.diagnostics_rate_limit_seconds,
    )
    metrics = MetricsCollector(enabled=cfg.metrics.enabled)
    return RedisListHandler(cfg.redis, layout=layout, metrics=metrics)


__all__ = [
    "CancellationToken",
    "ConnectionUnavailableError",
    "Endpoint",
    "FormatterLayout",
    "JsonLayout",
    "LogpushError",
    "ManagerState",
    "MetricsCollector",
    "PoolConfig",
    "RedisListHandler",
    "RedisManager",
    "RedisPoolProvider",
    "RedisSink",
    "RedisSinkConfig",
    "RetryPolicy",
    "Settings",
    "SinkMisuseError",
    "TlsConfig",
    "VERSION",
    "__version__",
    "get_handler",
]
