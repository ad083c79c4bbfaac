"""
Async sink that appends structured log entries to Redis lists.

Wraps the synchronous ``RedisManager`` for asyncio pipelines: every
blocking call (including retry delays) runs in a worker thread via
``asyncio.to_thread`` so the event loop is never stalled by a Redis outage.
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, Mapping

from ...core import diagnostics
from ...core.errors import LogpushError, SinkWriteError
from ...core.layout import JsonLayout, Layout, render
from ...core.results import BulkResult, DeliveryResult
from ...core.settings import RedisSinkConfig
from ...manager import RedisManager
from ...metrics.metrics import MetricsCollector
from ..utils import get_plugin_name, parse_plugin_config


class RedisSink:
    """Async sink with ``start/stop/write`` backed by a pooled RedisManager."""

    name = "redis"

    def __init__(
        self,
        config: RedisSinkConfig | Mapping[str, Any] | None = None,
        *,
        layout: Layout | None = None,
        manager: RedisManager | None = None,
        metrics: MetricsCollector | None = None,
        **kwargs: Any,
    ) -> None:
        cfg = parse_plugin_config(RedisSinkConfig, config, **kwargs)
        self._config = cfg
        self.name = cfg.name
        self._layout: Layout = layout or JsonLayout()
        self._manager = manager or RedisManager(cfg, metrics=metrics)

    @property
    def manager(self) -> RedisManager:
        return self._manager

    async def start(self) -> None:
        await asyncio.to_thread(self._manager.startup)

    async def stop(self) -> None:
        drained = await asyncio.to_thread(
            self._manager.shutdown, self._config.shutdown_timeout_seconds
        )
        if not drained:
            diagnostics.warn(
                "redis-sink",
                "connection pool did not drain before timeout",
                sink=get_plugin_name(self),
                timeout_seconds=self._config.shutdown_timeout_seconds,
            )

    def _payload(self, entry: Any) -> Any:
        try:
            return render(self._layout, entry, charset=self._config.charset)
        except LogpushError as exc:
            raise SinkWriteError(
                f"Failed to serialize entry in {get_plugin_name(self)}.write",
                sink_name=get_plugin_name(self),
                cause=exc,
            ) from exc

    async def write(self, entry: dict[str, Any]) -> list[DeliveryResult]:
        payload = self._payload(entry)
        return await asyncio.to_thread(self._manager.send, payload)

    async def write_serialized(self, data: bytes | str) -> list[DeliveryResult]:
        """Fast path for payloads that are already serialized."""
        return await asyncio.to_thread(self._manager.send, data)

    async def write_many(self, entries: Iterable[dict[str, Any]]) -> BulkResult:
        payloads = [self._payload(entry) for entry in entries]
        return await asyncio.to_thread(self._manager.send_bulk, payloads)

    async def health_check(self) -> bool:
        return await asyncio.to_thread(self._manager.health_check)


PLUGIN_METADATA = {
    "name": "redis",
    "version": "1.0.0",
    "plugin_type": "sink",
    "entry_point": "logpush.plugins.sinks.redis_list:RedisSink",
    "description": "Appends log entries to Redis lists over a pooled connection.",
    "author": "logpush",
    "api_version": "1.0",
    "dependencies": ["redis>=5.0"],
}


__all__ = ["PLUGIN_METADATA", "RedisSink"]
