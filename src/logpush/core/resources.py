"""
Thread-safe bounded resource pool.

``ConnectionPool`` hands out resources (Redis connections in practice) to
threads that log synchronously. The idle list and the in-use count are
guarded by one condition variable, so a resource is never handed to two
holders at once. Validation happens on borrow, on return and, through a
background evictor thread, while idle.

The pool does not retry anything: a failed create surfaces immediately as
``ConnectionUnavailableError``. Retry policy belongs to the caller.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, TypeVar

from . import diagnostics
from .errors import ConnectionUnavailableError, LifecycleError
from .settings import PoolConfig

T = TypeVar("T")


@dataclass
class PoolStats:
    created: int = 0
    destroyed: int = 0
    in_use: int = 0
    idle: int = 0
    borrowed: int = 0
    returned: int = 0
    validation_failures: int = 0


@dataclass
class _Idle(Generic[T]):
    resource: T
    since: float


class Lease(Generic[T]):
    """A borrowed resource. Call ``mark_broken()`` to have it discarded."""

    __slots__ = ("resource", "healthy")

    def __init__(self, resource: T) -> None:
        self.resource = resource
        self.healthy = True

    def mark_broken(self) -> None:
        self.healthy = False


class ConnectionPool(Generic[T]):
    """Bounded pool with validate-on-borrow/return and idle eviction.

    Usage:
        pool = ConnectionPool(
            name="redis",
            create_resource=connect,
            close_resource=lambda c: c.close(),
            validate_resource=lambda c: c.ping(),
            config=PoolConfig(max_total=4),
        )
        pool.start()
        with pool.lease() as lease:
            lease.resource.push("logs", b"...")
        pool.shutdown(timeout=5.0)
    """

    def __init__(
        self,
        *,
        name: str,
        create_resource: Callable[[], T],
        close_resource: Callable[[T], None],
        validate_resource: Callable[[T], bool] | None = None,
        reset_resource: Callable[[T], None] | None = None,
        config: PoolConfig | None = None,
    ) -> None:
        self._name = name
        self._create = create_resource
        self._close = close_resource
        self._validate = validate_resource
        self._reset = reset_resource
        self._config = config or PoolConfig()
        self._cond = threading.Condition(threading.Lock())
        # Newest idle resources on the right; the evictor scans from the left
        self._idle: deque[_Idle[T]] = deque()
        self._in_use = 0
        self._pending_creates = 0
        self._stats = PoolStats()
        self._started = False
        self._closed = False
        self._evictor: threading.Thread | None = None
        self._stop_evictor = threading.Event()

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> PoolConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        with self._cond:
            if self._started:
                return
            if self._closed:
                raise LifecycleError(f"pool {self._name!r} was already shut down")
            self._started = True
        self._ensure_min_idle()
        interval = self._config.eviction_interval_seconds
        if interval > 0:
            self._evictor = threading.Thread(
                target=self._evictor_loop,
                args=(interval,),
                name=f"logpush-evictor-{self._name}",
                daemon=True,
            )
            self._evictor.start()

    def _require_started(self) -> None:
        if not self._started:
            raise LifecycleError(f"pool {self._name!r} used before start()")

    def acquire(self, timeout: float | None = None) -> T:
        """Borrow a resource, blocking up to ``timeout`` when the pool is full."""
        self._require_started()
        wait_for = self._config.acquire_timeout_seconds if timeout is None else timeout
        deadline = time.monotonic() + wait_for
        while True:
            entry = self._claim(deadline, wait_for)
            if entry is None:
                return self._create_for_borrow()
            candidate = entry.resource
            if self._config.test_on_borrow and not self._is_valid(candidate):
                with self._cond:
                    self._in_use -= 1
                    self._cond.notify()
                self._destroy(candidate)
                continue
            with self._cond:
                self._stats.borrowed += 1
            return candidate

    def _claim(self, deadline: float, wait_for: float) -> _Idle[T] | None:
        """Pop the newest idle entry, or reserve a create slot and return None."""
        with self._cond:
            while True:
                if self._closed:
                    raise ConnectionUnavailableError(
                        f"pool {self._name!r} is shut down", pool=self._name
                    )
                if self._idle:
                    self._in_use += 1
                    return self._idle.pop()
                if self._total_locked() < self._config.max_total:
                    self._pending_creates += 1
                    return None
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ConnectionUnavailableError(
                        f"pool {self._name!r} exhausted after {wait_for:.3f}s",
                        pool=self._name,
                        max_total=self._config.max_total,
                    )
                self._cond.wait(remaining)

    def _create_for_borrow(self) -> T:
        try:
            resource = self._create()
        except Exception as exc:
            with self._cond:
                self._pending_creates -= 1
                self._cond.notify()
            raise ConnectionUnavailableError(
                f"pool {self._name!r} could not create a connection: {exc}",
                pool=self._name,
                cause=exc,
            ) from exc
        with self._cond:
            self._pending_creates -= 1
            self._in_use += 1
            self._stats.created += 1
            self._stats.borrowed += 1
        return resource

    def release(self, resource: T, healthy: bool = True) -> None:
        """Return a borrowed resource; unhealthy ones are closed, not recycled."""
        keep = healthy and not self._closed
        if keep and self._config.test_on_return:
            keep = self._is_valid(resource)
        if keep and self._reset is not None:
            try:
                self._reset(resource)
            except Exception as exc:
                diagnostics.warn(
                    "pool",
                    "connection reset failed; discarding",
                    pool=self._name,
                    error=str(exc),
                )
                keep = False
        with self._cond:
            self._in_use -= 1
            self._stats.returned += 1
            if keep and not self._closed and len(self._idle) < self._config.max_idle:
                self._idle.append(_Idle(resource, time.monotonic()))
                keep_idle = True
            else:
                keep_idle = False
            self._cond.notify()
        if not keep_idle:
            self._destroy(resource)

    @contextmanager
    def lease(self, timeout: float | None = None) -> Iterator[Lease[T]]:
        """Borrow for the duration of a ``with`` block; always releases."""
        resource = self.acquire(timeout)
        lease = Lease(resource)
        try:
            yield lease
        except BaseException:
            lease.mark_broken()
            raise
        finally:
            self.release(resource, healthy=lease.healthy)

    def evict(self) -> None:
        """Run one eviction pass over the oldest idle resources."""
        if self._closed:
            return
        now = time.monotonic()
        with self._cond:
            count = min(self._config.evictions_per_run, len(self._idle))
            examined = [self._idle.popleft() for _ in range(count)]
            self._in_use += len(examined)
        survivors: list[_Idle[T]] = []
        for entry in examined:
            expired = (now - entry.since) >= self._config.min_evictable_idle_seconds
            if expired or (
                self._config.test_while_idle and not self._is_valid(entry.resource)
            ):
                self._destroy(entry.resource)
            else:
                survivors.append(entry)
        with self._cond:
            self._in_use -= len(examined)
            if self._closed:
                leftover = survivors
            else:
                leftover = []
                for entry in reversed(survivors):
                    self._idle.appendleft(entry)
            self._cond.notify_all()
        for entry in leftover:
            self._destroy(entry.resource)
        self._ensure_min_idle()

    def _evictor_loop(self, interval: float) -> None:
        while not self._stop_evictor.wait(interval):
            try:
                self.evict()
            except Exception as exc:
                diagnostics.warn(
                    "pool",
                    "idle eviction failed",
                    pool=self._name,
                    error=str(exc),
                    _rate_limit_key=f"pool-evict-{self._name}",
                )

    def _ensure_min_idle(self) -> None:
        while True:
            with self._cond:
                if (
                    self._closed
                    or len(self._idle) >= self._config.min_idle
                    or self._total_locked() >= self._config.max_total
                ):
                    return
                self._pending_creates += 1
            try:
                resource = self._create()
            except Exception as exc:
                with self._cond:
                    self._pending_creates -= 1
                diagnostics.warn(
                    "pool",
                    "could not pre-create idle connection",
                    pool=self._name,
                    error=str(exc),
                    _rate_limit_key=f"pool-min-idle-{self._name}",
                )
                return
            with self._cond:
                self._pending_creates -= 1
                self._stats.created += 1
                self._idle.append(_Idle(resource, time.monotonic()))
                self._cond.notify()

    def shutdown(self, timeout: float = 0.0) -> bool:
        """Close every pooled resource; True if all leases came back in time."""
        with self._cond:
            already = self._closed
            self._closed = True
            self._cond.notify_all()
        if already:
            return True
        self._stop_evictor.set()
        if self._evictor is not None and self._evictor is not threading.current_thread():
            self._evictor.join(timeout=max(timeout, 0.0))

        deadline = time.monotonic() + max(timeout, 0.0)
        with self._cond:
            while self._in_use > 0 or self._pending_creates > 0:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._cond.wait(remaining)
            drained = self._in_use == 0 and self._pending_creates == 0
            idle = [entry.resource for entry in self._idle]
            self._idle.clear()
        for resource in idle:
            self._destroy(resource)
        return drained

    def stats(self) -> PoolStats:
        with self._cond:
            return PoolStats(
                created=self._stats.created,
                destroyed=self._stats.destroyed,
                in_use=self._in_use,
                idle=len(self._idle),
                borrowed=self._stats.borrowed,
                returned=self._stats.returned,
                validation_failures=self._stats.validation_failures,
            )

    def _total_locked(self) -> int:
        return self._in_use + len(self._idle) + self._pending_creates

    def _is_valid(self, resource: T) -> bool:
        if self._validate is None:
            return True
        try:
            ok = bool(self._validate(resource))
        except Exception:
            ok = False
        if not ok:
            with self._cond:
                self._stats.validation_failures += 1
        return ok

    def _destroy(self, resource: T) -> None:
        try:
            self._close(resource)
        except Exception as exc:
            diagnostics.debug(
                "pool", "error closing connection", pool=self._name, error=str(exc)
            )
        with self._cond:
            self._stats.destroyed += 1


__all__ = ["ConnectionPool", "Lease", "PoolStats"]
