"""
Internal diagnostics for sink failures.

The sink must never raise delivery problems into the application that is
logging, so every failure ends here instead. Diagnostics are structured
payloads handed to a writer; the default writer forwards them to the stdlib
logger ``logpush.diagnostics`` at the matching level.

Warnings can be throttled with ``_rate_limit_key`` so a long Redis outage
does not flood the host's own logs. Errors are never throttled.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Callable

import orjson

_LOGGER = logging.getLogger("logpush.diagnostics")

_LEVELS: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

_DEFAULT_RATE_LIMIT_SECONDS = 5.0

_lock = threading.Lock()
_last_emitted: dict[str, float] = {}
_enabled_override: bool | None = None
_rate_limit_override: float | None = None


def _default_writer(payload: dict[str, Any]) -> None:
    level = _LEVELS.get(str(payload.get("level")), logging.WARNING)
    if not _LOGGER.isEnabledFor(level):
        return
    exc = payload.pop("_exc_info", None)
    _LOGGER.log(
        level,
        "%s",
        orjson.dumps(payload, default=str).decode("utf-8"),
        exc_info=exc,
    )


_writer: Callable[[dict[str, Any]], None] = _default_writer


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _is_enabled() -> bool:
    if _enabled_override is not None:
        return _enabled_override
    return _env_flag("LOGPUSH_CORE__INTERNAL_LOGGING_ENABLED", True)


def _rate_limit_window() -> float:
    if _rate_limit_override is not None:
        return _rate_limit_override
    raw = os.getenv("LOGPUSH_CORE__DIAGNOSTICS_RATE_LIMIT_SECONDS")
    if not raw:
        return _DEFAULT_RATE_LIMIT_SECONDS
    try:
        return max(0.0, float(raw))
    except ValueError:
        return _DEFAULT_RATE_LIMIT_SECONDS


def _should_emit(key: str | None) -> bool:
    if key is None:
        return True
    window = _rate_limit_window()
    now = time.monotonic()
    with _lock:
        last = _last_emitted.get(key)
        if last is not None and (now - last) < window:
            return False
        _last_emitted[key] = now
    return True


def _emit(
    level: str,
    component: str,
    message: str,
    *,
    rate_limit_key: str | None,
    exc_info: BaseException | None,
    fields: dict[str, Any],
) -> None:
    if not _is_enabled():
        return
    if level != "ERROR" and not _should_emit(rate_limit_key):
        return
    payload: dict[str, Any] = {
        "ts": time.time(),
        "level": level,
        "component": component,
        "message": message,
    }
    payload.update(fields)
    if exc_info is not None:
        payload["_exc_info"] = exc_info
    try:
        _writer(payload)
    except Exception:
        # A broken writer must not turn a diagnostic into a crash
        pass


def debug(component: str, message: str, **fields: Any) -> None:
    _emit(
        "DEBUG",
        component,
        message,
        rate_limit_key=fields.pop("_rate_limit_key", None),
        exc_info=fields.pop("_exc_info", None),
        fields=fields,
    )


def info(component: str, message: str, **fields: Any) -> None:
    _emit(
        "INFO",
        component,
        message,
        rate_limit_key=fields.pop("_rate_limit_key", None),
        exc_info=fields.pop("_exc_info", None),
        fields=fields,
    )


def warn(component: str, message: str, **fields: Any) -> None:
    _emit(
        "WARN",
        component,
        message,
        rate_limit_key=fields.pop("_rate_limit_key", None),
        exc_info=fields.pop("_exc_info", None),
        fields=fields,
    )


def error(component: str, message: str, **fields: Any) -> None:
    fields.pop("_rate_limit_key", None)
    _emit(
        "ERROR",
        component,
        message,
        rate_limit_key=None,
        exc_info=fields.pop("_exc_info", None),
        fields=fields,
    )


def configure(
    *,
    enabled: bool | None = None,
    rate_limit_seconds: float | None = None,
) -> None:
    """Apply ``CoreSettings`` values; they take precedence over the environment.

    ``None`` leaves a value to the ``LOGPUSH_CORE__*`` environment variables.
    """
    global _enabled_override, _rate_limit_override
    _enabled_override = enabled
    _rate_limit_override = (
        None if rate_limit_seconds is None else max(0.0, rate_limit_seconds)
    )


def set_writer_for_tests(writer: Callable[[dict[str, Any]], None]) -> None:
    global _writer
    _writer = writer


def _reset_for_tests() -> None:
    global _writer, _enabled_override, _rate_limit_override
    _writer = _default_writer
    _enabled_override = None
    _rate_limit_override = None
    with _lock:
        _last_emitted.clear()


__all__ = ["configure", "debug", "error", "info", "set_writer_for_tests", "warn"]
