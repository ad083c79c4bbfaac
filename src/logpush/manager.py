"""
Delivery engine: appends formatted log payloads to Redis lists.

The manager runs on whichever thread produced the log record. Each payload
is pushed to every destination key in order; each key gets its own retry
budget, and retry delays block the calling thread so a sustained outage
throttles the producer instead of queueing without bound.

Failures never escape as exceptions. Exhausted keys, unusable connections
and cancelled retries end in a diagnostic and a ``Failed`` result. The one
exception is misuse: sending on a manager that is not started raises
``SinkMisuseError``.
"""

from __future__ import annotations

import threading
from collections import deque
from enum import Enum
from typing import Iterable

from .core import diagnostics
from .core.cancellation import CancellationToken
from .core.errors import (
    ConnectionFailure,
    ConnectionUnavailableError,
    LogpushError,
    SinkMisuseError,
)
from .core.results import BulkResult, Delivered, DeliveryResult, Failed
from .core.settings import Endpoint, RedisSinkConfig
from .metrics.metrics import MetricsCollector
from .pool import RedisPoolProvider
from .transport import Connection, Payload, Transport, classify_error

_COMPONENT = "redis-sink"


class ManagerState(str, Enum):
    CREATED = "created"
    STARTED = "started"
    STOPPED = "stopped"


class RedisManager:
    """Pushes payloads to every configured key over a pooled connection."""

    def __init__(
        self,
        config: RedisSinkConfig,
        *,
        transport: Transport | None = None,
        provider: RedisPoolProvider | None = None,
        metrics: MetricsCollector | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        self._config = config
        self._endpoint = config.endpoint
        self._keys = tuple(config.keys)
        self._retry = config.retry
        if provider is None:
            from .transport import RedisTransport

            provider = RedisPoolProvider(
                self._endpoint,
                config.pool,
                transport=transport or RedisTransport(encoding=config.charset),
                name=config.name,
            )
        self._provider = provider
        self._metrics = metrics or MetricsCollector(enabled=False)
        self._cancel = cancel_token or CancellationToken()
        self._state = ManagerState.CREATED
        self._state_lock = threading.Lock()
        self._wait_lock = threading.Lock()
        self._pending_waits = 0

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def host(self) -> str:
        return self._endpoint.host

    @property
    def port(self) -> int:
        return self._endpoint.port

    @property
    def keys(self) -> tuple[str, ...]:
        return self._keys

    @property
    def keys_as_string(self) -> str:
        return ",".join(self._keys)

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def provider(self) -> RedisPoolProvider:
        return self._provider

    def startup(self) -> None:
        with self._state_lock:
            if self._state is not ManagerState.CREATED:
                raise SinkMisuseError(
                    f"startup() on a manager in state {self._state.value!r}",
                    sink=self.name,
                )
            self._provider.startup()
            self._state = ManagerState.STARTED

    def shutdown(self, timeout: float | None = None) -> bool:
        """Stop accepting sends and drain the pool; the state is always STOPPED."""
        wait = self._config.shutdown_timeout_seconds if timeout is None else timeout
        with self._state_lock:
            previous = self._state
            self._state = ManagerState.STOPPED
        if previous is not ManagerState.STARTED:
            return True
        with self._wait_lock:
            self._cancel.cancel()
        try:
            return self._provider.shutdown(wait)
        except Exception as exc:
            diagnostics.error(
                _COMPONENT,
                "connection pool did not shut down cleanly",
                sink=self.name,
                endpoint=str(self._endpoint),
                error=str(exc),
            )
            return False

    def cancel_retries(self) -> None:
        """Abort the retry waits pending right now, on every thread.

        A cancel with no wait pending is a no-op; it never reaches a later send.
        """
        with self._wait_lock:
            if self._pending_waits:
                self._cancel.cancel()

    def _wait_before_retry(self, token: CancellationToken) -> bool:
        if token is not self._cancel:
            return token.wait(self._retry.delay_seconds)
        with self._wait_lock:
            self._pending_waits += 1
        try:
            return token.wait(self._retry.delay_seconds)
        finally:
            with self._wait_lock:
                self._pending_waits -= 1
                if not self._pending_waits and self._state is not ManagerState.STOPPED:
                    token.reset()

    def _require_started(self, operation: str) -> None:
        state = self._state
        if state is not ManagerState.STARTED:
            raise SinkMisuseError(
                f"{operation}() on a manager in state {state.value!r}",
                sink=self.name,
                state=state.value,
            )

    def send(
        self, payload: Payload, *, cancel: CancellationToken | None = None
    ) -> list[DeliveryResult]:
        """Push one payload to every key; never raises delivery failures."""
        self._require_started("send")
        try:
            conn = self._provider.acquire()
        except ConnectionUnavailableError as exc:
            self._report_connection_failure(exc)
            return [Failed(key, 0, "unavailable", exc) for key in self._keys]

        results: list[DeliveryResult] = []
        healthy = False
        try:
            self._send_to_keys(conn, payload, results, cancel)
            healthy = True
        except ConnectionFailure as exc:
            self._report_connection_failure(exc)
            self._fail_remaining(results, exc)
        finally:
            self._provider.release(conn, healthy=healthy)
        return results

    def send_bulk(
        self,
        payloads: Iterable[Payload],
        *,
        cancel: CancellationToken | None = None,
    ) -> BulkResult:
        """Drain ``payloads`` in order over one connection.

        A deque is consumed in place; payloads left behind after a
        connection failure stay in it. Any other iterable is copied first.
        """
        self._require_started("send_bulk")
        queue = payloads if isinstance(payloads, deque) else deque(payloads)
        outcome = BulkResult()
        if not queue:
            return outcome
        try:
            conn = self._provider.acquire()
        except ConnectionUnavailableError as exc:
            self._report_connection_failure(exc, batch_size=len(queue))
            outcome.abandoned = len(queue)
            self._metrics.record_abandoned(outcome.abandoned)
            return outcome

        healthy = False
        try:
            while queue:
                payload = queue.popleft()
                results: list[DeliveryResult] = []
                try:
                    self._send_to_keys(conn, payload, results, cancel)
                except ConnectionFailure as exc:
                    self._fail_remaining(results, exc)
                    outcome.results.extend(results)
                    outcome.failed += 1
                    outcome.abandoned = len(queue)
                    self._report_connection_failure(exc, abandoned=len(queue))
                    self._metrics.record_abandoned(outcome.abandoned)
                    break
                outcome.results.extend(results)
                if all(result.ok for result in results):
                    outcome.delivered += 1
                else:
                    outcome.failed += 1
            else:
                healthy = True
        finally:
            self._provider.release(conn, healthy=healthy)
        return outcome

    def health_check(self) -> bool:
        if self._state is not ManagerState.STARTED:
            return False
        try:
            with self._provider.lease() as lease:
                return bool(lease.resource.ping())
        except LogpushError:
            return False

    def _send_to_keys(
        self,
        conn: Connection,
        payload: Payload,
        results: list[DeliveryResult],
        cancel: CancellationToken | None,
    ) -> None:
        for key in self._keys:
            results.append(self._push_with_retry(conn, key, payload, cancel))

    def _fail_remaining(
        self, results: list[DeliveryResult], exc: ConnectionFailure
    ) -> None:
        for key in self._keys[len(results) :]:
            results.append(Failed(key, 0, "connection", exc))
            self._metrics.record_failed("connection")

    def _push_with_retry(
        self,
        conn: Connection,
        key: str,
        payload: Payload,
        cancel: CancellationToken | None,
    ) -> DeliveryResult:
        token = cancel or self._cancel
        max_attempts = self._retry.max_retries_on_send
        attempts = 0
        while True:
            try:
                conn.push(key, payload)
            except Exception as exc:
                error = classify_error(exc, self._endpoint)
                if isinstance(error, ConnectionFailure):
                    raise error from exc
                attempts += 1
                if attempts >= max_attempts:
                    diagnostics.error(
                        _COMPONENT,
                        "unable to send log event to redis after retries",
                        sink=self.name,
                        key=key,
                        attempts=attempts,
                        endpoint=str(self._endpoint),
                        error=str(exc),
                    )
                    self._metrics.record_failed("exhausted")
                    return Failed(key, attempts, "exhausted", error)
                diagnostics.warn(
                    _COMPONENT,
                    "failed to send value to redis, retrying",
                    sink=self.name,
                    key=key,
                    attempt=attempts,
                    error=str(exc),
                    _rate_limit_key=f"{_COMPONENT}-retry-{self.name}",
                )
                self._metrics.record_retry()
                if not self._wait_before_retry(token):
                    diagnostics.info(
                        _COMPONENT,
                        "retry wait cancelled, aborting remaining retries",
                        sink=self.name,
                        key=key,
                        attempts=attempts,
                    )
                    self._metrics.record_failed("cancelled")
                    return Failed(key, attempts, "cancelled", error)
                continue
            attempts += 1
            self._metrics.record_delivered()
            return Delivered(key, attempts)

    def _report_connection_failure(self, exc: LogpushError, **fields: object) -> None:
        self._metrics.record_connection_failure()
        diagnostics.error(
            _COMPONENT,
            "unable to connect to redis, please ensure it is running",
            sink=self.name,
            endpoint=str(self._endpoint),
            error=str(exc),
            error_type=type(exc).__name__,
            **fields,
        )

    def __repr__(self) -> str:
        return (
            f"RedisManager(name={self.name!r}, host={self.host!r}, "
            f"port={self.port}, keys={self.keys_as_string!r}, "
            f"state={self._state.value!r})"
        )


__all__ = ["ManagerState", "RedisManager"]
