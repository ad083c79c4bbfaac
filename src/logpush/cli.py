"""
Operator command line for logpush.

Reads the same ``LOGPUSH_`` environment settings as the library and offers
two checks against the configured Redis endpoint:

    logpush ping                 # can a pooled connection be opened?
    logpush send "hello" -k app  # push one payload with the retry policy
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from .core import diagnostics
from .core.errors import LogpushError
from .core.results import Failed
from .core.settings import Settings
from .manager import RedisManager


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logpush",
        description="Ship log payloads to Redis lists.",
    )
    parser.add_argument("--host", help="Redis host (default: LOGPUSH_REDIS__HOST)")
    parser.add_argument("--port", type=int, help="Redis port")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ping", help="Open a pooled connection and PING the server")

    send = sub.add_parser("send", help="Push one payload to the destination keys")
    send.add_argument("payload", help="Payload text to append")
    send.add_argument(
        "-k",
        "--key",
        dest="keys",
        action="append",
        help="Destination list (repeatable; default: configured keys)",
    )
    send.add_argument("--retries", type=int, help="Attempts per key")
    send.add_argument("--delay-ms", type=int, help="Milliseconds between attempts")
    return parser


def _manager_from_args(args: argparse.Namespace) -> RedisManager:
    settings = Settings()
    diagnostics.configure(
        enabled=settings.core.internal_logging_enabled,
        rate_limit_seconds=settings.core.diagnostics_rate_limit_seconds,
    )
    config = settings.redis
    overrides: dict[str, object] = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if getattr(args, "keys", None):
        overrides["keys"] = args.keys
    retry: dict[str, int] = {}
    if getattr(args, "retries", None) is not None:
        retry["max_retries_on_send"] = args.retries
    if getattr(args, "delay_ms", None) is not None:
        retry["ms_between_retries"] = args.delay_ms
    if retry:
        overrides["retry"] = {**config.retry.model_dump(), **retry}
    if overrides:
        config = config.model_validate({**config.model_dump(), **overrides})
    return RedisManager(config)


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        manager = _manager_from_args(args)
        manager.startup()
    except (LogpushError, ValueError) as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2
    try:
        if args.command == "ping":
            ok = manager.health_check()
            sys.stdout.write(f"{manager.endpoint}: {'PONG' if ok else 'unreachable'}\n")
            return 0 if ok else 1
        results = manager.send(args.payload)
        for result in results:
            if isinstance(result, Failed):
                status = f"failed ({result.reason})"
            else:
                status = "delivered"
            sys.stdout.write(
                f"{result.key}: {status} after {result.attempts} attempt(s)\n"
            )
        return 0 if all(result.ok for result in results) else 1
    finally:
        manager.shutdown()


if __name__ == "__main__":
    raise SystemExit(main())
