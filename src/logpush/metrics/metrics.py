"""
Delivery metrics for logpush.

Implements a handful of Prometheus counters for the delivery engine.

Design goals:
- Thread-safe; the engine runs on the caller's thread
- Zero global state; each collector owns an isolated registry
- Safe no-op export when metrics are disabled, while still tracking
  in-memory counters for tests
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Any

from prometheus_client import CollectorRegistry, Counter


@dataclass
class DeliveryMetrics:
    """Captured delivery counters for quick assertions in tests."""

    pushes_delivered: int = 0
    pushes_failed: int = 0
    push_retries: int = 0
    connection_failures: int = 0
    payloads_abandoned: int = 0


class MetricsCollector:
    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = threading.Lock()
        self._state = DeliveryMetrics()

        self._c_pushes: Any | None = None
        self._c_retries: Any | None = None
        self._c_connection_failures: Any | None = None
        self._c_abandoned: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            self._registry = CollectorRegistry()
            self._c_pushes = Counter(
                "logpush_pushes_total",
                "Pushes to destination keys by final outcome",
                ["outcome"],
                registry=self._registry,
            )
            self._c_retries = Counter(
                "logpush_push_retries_total",
                "Push attempts that failed and were retried",
                registry=self._registry,
            )
            self._c_connection_failures = Counter(
                "logpush_connection_failures_total",
                "Units of work aborted because the connection was unusable",
                registry=self._registry,
            )
            self._c_abandoned = Counter(
                "logpush_payloads_abandoned_total",
                "Payloads never attempted because their batch was abandoned",
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    def snapshot(self) -> DeliveryMetrics:
        with self._lock:
            return replace(self._state)

    def record_delivered(self) -> None:
        with self._lock:
            self._state.pushes_delivered += 1
        if self._c_pushes is not None:
            self._c_pushes.labels(outcome="delivered").inc()

    def record_failed(self, reason: str) -> None:
        with self._lock:
            self._state.pushes_failed += 1
        if self._c_pushes is not None:
            self._c_pushes.labels(outcome=reason).inc()

    def record_retry(self) -> None:
        with self._lock:
            self._state.push_retries += 1
        if self._c_retries is not None:
            self._c_retries.inc()

    def record_connection_failure(self) -> None:
        with self._lock:
            self._state.connection_failures += 1
        if self._c_connection_failures is not None:
            self._c_connection_failures.inc()

    def record_abandoned(self, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._state.payloads_abandoned += count
        if self._c_abandoned is not None:
            self._c_abandoned.inc(count)


__all__ = ["DeliveryMetrics", "MetricsCollector"]
