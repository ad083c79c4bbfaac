"""
Root pytest configuration.

Provides an in-memory transport so the delivery engine can be exercised
without a Redis server. Outcomes are scripted per key: ``None`` means the
push succeeds, an exception instance is raised instead.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from collections.abc import Generator
from typing import Any

import pytest

from logpush.core import diagnostics
from logpush.core.settings import Endpoint, PoolConfig, RedisSinkConfig, RetryPolicy


class FakeConnection:
    def __init__(self, transport: FakeTransport, ident: int) -> None:
        self.transport = transport
        self.ident = ident
        self.closed = False
        self.resets = 0
        self.alive = True

    def push(self, key: str, payload: Any) -> int:
        return self.transport._push(self, key, payload)

    def ping(self) -> bool:
        return self.alive and not self.closed

    def reset(self) -> None:
        self.resets += 1

    def close(self) -> None:
        self.closed = True


class FakeTransport:
    """Scripted stand-in for ``RedisTransport``."""

    def __init__(self) -> None:
        self.lists: dict[str, list[Any]] = defaultdict(list)
        self.attempts: list[tuple[int, str, Any, float]] = []
        self.connections: list[FakeConnection] = []
        self.connect_error: BaseException | None = None
        self._scripts: dict[str, list[BaseException | None]] = {}
        self._always: dict[str, BaseException] = {}
        self._lock = threading.Lock()

    def script(self, key: str, *outcomes: BaseException | None) -> None:
        self._scripts[key] = list(outcomes)

    def always_fail(self, key: str, error: BaseException) -> None:
        self._always[key] = error

    def connect(self, endpoint: Endpoint) -> FakeConnection:
        if self.connect_error is not None:
            raise self.connect_error
        with self._lock:
            conn = FakeConnection(self, len(self.connections) + 1)
            self.connections.append(conn)
        return conn

    def attempts_for(self, key: str) -> list[tuple[int, str, Any, float]]:
        return [a for a in self.attempts if a[1] == key]

    def _push(self, conn: FakeConnection, key: str, payload: Any) -> int:
        with self._lock:
            self.attempts.append((conn.ident, key, payload, time.monotonic()))
            outcome: BaseException | None = None
            if key in self._always:
                outcome = self._always[key]
            elif self._scripts.get(key):
                outcome = self._scripts[key].pop(0)
            if outcome is not None:
                raise outcome
            self.lists[key].append(payload)
            return len(self.lists[key])


def make_config(
    *,
    keys: list[str] | None = None,
    retries: int = 3,
    delay_ms: int = 0,
    **pool: Any,
) -> RedisSinkConfig:
    pool.setdefault("eviction_interval_seconds", 0)
    return RedisSinkConfig(
        host="redis.test",
        port=6380,
        keys=keys or ["app-logs"],
        retry=RetryPolicy(max_retries_on_send=retries, ms_between_retries=delay_ms),
        pool=PoolConfig(**pool),
        shutdown_timeout_seconds=1.0,
    )


@pytest.fixture(autouse=True)
def reset_diagnostics() -> Generator[None, None, None]:
    """Restore the default diagnostics writer and clear rate-limit state."""
    diagnostics._reset_for_tests()
    yield
    diagnostics._reset_for_tests()


@pytest.fixture
def captured_diagnostics() -> list[dict[str, Any]]:
    captured: list[dict[str, Any]] = []
    diagnostics.set_writer_for_tests(captured.append)
    return captured


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def config_factory():
    return make_config
