"""
Payload producers.

A layout turns a log event (a ``logging.LogRecord`` or a mapping) into the
opaque ``bytes``/``str`` payload the manager pushes. Layouts may expose a
``header`` and ``footer``; ``render`` then frames the body between them.
The manager itself never looks inside a payload.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, Union, runtime_checkable

import orjson

from .errors import ErrorCategory, ErrorSeverity, LogpushError

Payload = Union[bytes, str]


@runtime_checkable
class Layout(Protocol):
    def format(self, event: Any) -> Payload:  # pragma: no cover - protocol
        ...


def _default(obj: Any) -> Any:
    """Default serializer hook for unsupported types."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(exclude_none=True)
    if isinstance(obj, BaseException):
        return f"{type(obj).__name__}: {obj}"
    return str(obj)


def record_to_dict(record: logging.LogRecord) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "timestamp": record.created,
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
        "thread": record.threadName,
        "process": record.process,
    }
    if record.exc_info and record.exc_info[0] is not None:
        entry["exception"] = logging.Formatter().formatException(record.exc_info)
    elif record.exc_text:
        entry["exception"] = record.exc_text
    if record.stack_info:
        entry["stack"] = record.stack_info
    return entry


class JsonLayout:
    """One JSON document per event, serialized with orjson."""

    def __init__(
        self,
        *,
        header: bytes = b"",
        footer: bytes = b"",
        sort_keys: bool = True,
    ) -> None:
        self.header = header
        self.footer = footer
        self._option = orjson.OPT_SORT_KEYS if sort_keys else 0

    def format(self, event: Any) -> bytes:
        if isinstance(event, logging.LogRecord):
            data: Mapping[str, Any] = record_to_dict(event)
        elif isinstance(event, Mapping):
            data = event
        else:
            data = {"message": str(event)}
        try:
            return orjson.dumps(data, default=_default, option=self._option)
        except (TypeError, orjson.JSONEncodeError) as exc:
            raise LogpushError(
                "Serialization failed",
                category=ErrorCategory.SERIALIZATION,
                severity=ErrorSeverity.HIGH,
                cause=exc,
            ) from exc


class FormatterLayout:
    """Adapts a stdlib ``logging.Formatter`` into a text layout."""

    def __init__(
        self,
        formatter: logging.Formatter | None = None,
        *,
        header: str = "",
        footer: str = "",
    ) -> None:
        self._formatter = formatter or logging.Formatter()
        self.header = header
        self.footer = footer

    def format(self, event: Any) -> str:
        if isinstance(event, logging.LogRecord):
            return self._formatter.format(event)
        return str(event)


def _as_bytes(part: Payload, charset: str) -> bytes:
    return part if isinstance(part, bytes) else part.encode(charset)


def render(layout: Layout, event: Any, *, charset: str = "utf-8") -> Payload:
    """Produce the payload for ``event``, framed by header and footer if any."""
    body = layout.format(event)
    header = getattr(layout, "header", None) or b""
    footer = getattr(layout, "footer", None) or b""
    if not header and not footer:
        return body
    if isinstance(body, str) and isinstance(header, str) and isinstance(footer, str):
        return header + body + footer
    return _as_bytes(header, charset) + _as_bytes(body, charset) + _as_bytes(footer, charset)


__all__ = [
    "FormatterLayout",
    "JsonLayout",
    "Layout",
    "Payload",
    "record_to_dict",
    "render",
]
