"""
Stdlib ``logging`` integration.

``RedisListHandler`` is the host-side adapter: it renders each record with a
layout and hands the payload to a ``RedisManager``. Records emitted by
logpush itself or by redis-py are dropped, since shipping them would loop
back through the sink that is reporting the failure.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .core import diagnostics
from .core.layout import JsonLayout, Layout, render
from .core.settings import RedisSinkConfig
from .manager import RedisManager
from .metrics.metrics import MetricsCollector
from .plugins.utils import parse_plugin_config

_RECURSIVE_PREFIXES: tuple[str, ...] = ("logpush", "redis")


class RedisListHandler(logging.Handler):
    """Logging handler that appends every record to the configured Redis lists.

    Example:
        handler = RedisListHandler(host="cache", keys=["app-logs"])
        logging.getLogger().addHandler(handler)
        ...
        handler.close()
    """

    def __init__(
        self,
        config: RedisSinkConfig | Mapping[str, Any] | None = None,
        *,
        layout: Layout | None = None,
        manager: RedisManager | None = None,
        metrics: MetricsCollector | None = None,
        level: int = logging.NOTSET,
        start: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(level)
        self._config = parse_plugin_config(RedisSinkConfig, config, **kwargs)
        self._layout: Layout = layout or JsonLayout()
        self._manager = manager or RedisManager(self._config, metrics=metrics)
        if start:
            self._manager.startup()

    @property
    def manager(self) -> RedisManager:
        return self._manager

    def _is_recursive(self, record: logging.LogRecord) -> bool:
        name = record.name or ""
        return any(
            name == prefix or name.startswith(prefix + ".")
            for prefix in _RECURSIVE_PREFIXES
        )

    def emit(self, record: logging.LogRecord) -> None:
        if self._is_recursive(record):
            if record.name.startswith("logpush"):
                # Our own diagnostics; warning about them would recurse
                return
            diagnostics.warn(
                "redis-handler",
                "recursive logging dropped",
                logger=record.name,
                sink=self._manager.name,
                _rate_limit_key=f"redis-handler-recursive-{self._manager.name}",
            )
            return
        try:
            payload = render(self._layout, record, charset=self._config.charset)
            self._manager.send(payload)
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            self._manager.shutdown(self._config.shutdown_timeout_seconds)
        finally:
            super().close()

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} name={self._manager.name} "
            f"host={self._manager.host} port={self._manager.port} "
            f"keys={self._manager.keys_as_string}>"
        )


__all__ = ["RedisListHandler"]
