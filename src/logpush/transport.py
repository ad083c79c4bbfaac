"""
Redis transport facade.

The delivery engine only needs four operations: connect, push to a list,
ping and close. ``RedisTransport`` provides them on top of redis-py and maps
redis-py exceptions onto two outcomes the engine can act on:

``ConnectionFailure``
    The connection is unusable: ``redis.exceptions.ConnectionError``
    (including ``AuthenticationError``) and socket-level ``OSError``.
    Delivery of the current unit of work stops and the connection is
    discarded.

``PushError``
    One push failed on a connection that is otherwise fine: every other
    ``RedisError`` (``TimeoutError``, ``ResponseError`` such as WRONGTYPE,
    OOM or READONLY) and ``BusyLoadingError``, which redis-py files under
    ``ConnectionError`` but which clears once the server finishes loading.
    These count against the per-key retry budget.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import redis
from redis import exceptions as redis_errors
from redis.backoff import NoBackoff
from redis.retry import Retry

from .core.errors import ConnectionFailure, PushError, TransportError
from .core.layout import Payload
from .core.settings import Endpoint


@runtime_checkable
class Connection(Protocol):
    """A single connection able to append payloads to Redis lists."""

    def push(self, key: str, payload: Payload) -> int:  # pragma: no cover
        ...

    def ping(self) -> bool:  # pragma: no cover
        ...

    def reset(self) -> None:  # pragma: no cover
        ...

    def close(self) -> None:  # pragma: no cover
        ...


@runtime_checkable
class Transport(Protocol):
    def connect(self, endpoint: Endpoint) -> Connection:  # pragma: no cover
        ...


def classify_error(exc: BaseException, endpoint: Endpoint) -> TransportError:
    """Map a transport exception onto ``ConnectionFailure`` or ``PushError``."""
    if isinstance(exc, TransportError):
        return exc
    if isinstance(exc, redis_errors.BusyLoadingError):
        return PushError(str(exc), endpoint=str(endpoint), cause=exc)
    if isinstance(exc, (redis_errors.ConnectionError, OSError)):
        return ConnectionFailure(
            f"connection to {endpoint} is unusable: {exc}",
            endpoint=str(endpoint),
            cause=exc,
        )
    return PushError(str(exc), endpoint=str(endpoint), cause=exc)


class RedisConnection:
    """One dedicated redis-py connection."""

    def __init__(self, client: redis.Redis, endpoint: Endpoint) -> None:
        self._client = client
        self._endpoint = endpoint
        self.failed_pushes = 0

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    def push(self, key: str, payload: Payload) -> int:
        try:
            length = int(self._client.rpush(key, payload))
        except Exception as exc:
            self.failed_pushes += 1
            raise classify_error(exc, self._endpoint) from exc
        return length

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except Exception:
            return False

    def reset(self) -> None:
        self.failed_pushes = 0

    def close(self) -> None:
        self._client.close()


class RedisTransport:
    """Opens ``RedisConnection`` instances, optionally over TLS.

    redis-py's own command retries are switched off: one engine attempt is
    exactly one RPUSH on the wire, and every delay is the engine's
    cancellable wait.
    """

    def __init__(self, *, encoding: str = "utf-8"):
        self._encoding = encoding

    def client_kwargs(self, endpoint: Endpoint) -> dict[str, object]:
        kwargs: dict[str, object] = {
            "host": endpoint.host,
            "port": endpoint.port,
            "db": endpoint.db,
            "username": endpoint.username,
            "password": endpoint.password,
            "socket_connect_timeout": endpoint.connect_timeout_seconds,
            "socket_timeout": endpoint.socket_timeout_seconds,
            "encoding": self._encoding,
            "retry": Retry(NoBackoff(), 0),
            "single_connection_client": True,
        }
        if endpoint.tls is not None:
            tls = endpoint.tls
            kwargs.update(
                ssl=True,
                ssl_ca_certs=tls.ca_certs,
                ssl_certfile=tls.certfile,
                ssl_keyfile=tls.keyfile,
                ssl_cert_reqs=tls.cert_reqs,
                ssl_check_hostname=tls.check_hostname,
            )
        return kwargs

    def connect(self, endpoint: Endpoint) -> RedisConnection:
        client: redis.Redis | None = None
        try:
            # A single-connection client connects inside its constructor
            client = redis.Redis(**self.client_kwargs(endpoint))  # type: ignore[arg-type]
            client.ping()
        except Exception as exc:
            if client is not None:
                try:
                    client.close()
                except Exception:
                    pass
            raise classify_error(exc, endpoint) from exc
        return RedisConnection(client, endpoint)


__all__ = [
    "Connection",
    "Payload",
    "RedisConnection",
    "RedisTransport",
    "Transport",
    "classify_error",
]
