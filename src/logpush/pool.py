"""
Connection pool provider for one Redis endpoint.

Binds the generic ``ConnectionPool`` to a ``Transport`` so the delivery
engine can borrow connections without knowing how they are opened,
validated or closed.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from .core.errors import LifecycleError
from .core.resources import ConnectionPool, Lease, PoolStats
from .core.settings import Endpoint, PoolConfig
from .transport import Connection, RedisTransport, Transport


class RedisPoolProvider:
    """Owns the pool of connections to a single endpoint.

    ``startup()`` must run before any other call; calling it again is a
    no-op. ``release(conn, healthy=False)`` discards the connection instead
    of recycling it.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        config: PoolConfig | None = None,
        *,
        transport: Transport | None = None,
        name: str = "redis",
    ) -> None:
        self._endpoint = endpoint
        self._config = config or PoolConfig()
        self._transport: Transport = transport or RedisTransport()
        self._name = name
        self._pool: ConnectionPool[Connection] | None = None

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def started(self) -> bool:
        return self._pool is not None

    def startup(self) -> None:
        if self._pool is not None:
            return
        pool: ConnectionPool[Connection] = ConnectionPool(
            name=f"{self._name}@{self._endpoint}",
            create_resource=self._open,
            close_resource=lambda conn: conn.close(),
            validate_resource=lambda conn: conn.ping(),
            reset_resource=lambda conn: conn.reset(),
            config=self._config,
        )
        pool.start()
        self._pool = pool

    def _open(self) -> Connection:
        return self._transport.connect(self._endpoint)

    def _require_pool(self) -> ConnectionPool[Connection]:
        if self._pool is None:
            raise LifecycleError(
                f"connection pool for {self._endpoint} used before startup()"
            )
        return self._pool

    def acquire(self, timeout: float | None = None) -> Connection:
        return self._require_pool().acquire(timeout)

    def release(self, connection: Connection, healthy: bool = True) -> None:
        self._require_pool().release(connection, healthy=healthy)

    @contextmanager
    def lease(self, timeout: float | None = None) -> Iterator[Lease[Connection]]:
        with self._require_pool().lease(timeout) as lease:
            yield lease

    def shutdown(self, timeout: float = 0.0) -> bool:
        if self._pool is None:
            return True
        return self._pool.shutdown(timeout)

    def stats(self) -> PoolStats:
        return self._require_pool().stats()


__all__ = ["RedisPoolProvider"]
