"""
Basic usage example for logpush.

Attaches a Redis list handler to the root logger and ships a few records,
then pushes a small batch directly through the manager.

Requires a Redis server; point LOGPUSH_REDIS__HOST/PORT at it first.
"""

import logging
from collections import deque

from logpush import RedisManager, RedisSinkConfig, get_handler


def main() -> None:
    handler = get_handler()
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(handler)
    try:
        logging.getLogger("example").info("Application started")
        logging.getLogger("example").warning("Cache miss ratio %.0f%%", 37.5)
    finally:
        root.removeHandler(handler)
        handler.close()

    manager = RedisManager(RedisSinkConfig(keys="example-batch"))
    manager.startup()
    try:
        outcome = manager.send_bulk(deque([b"one", b"two", b"three"]))
        print(f"delivered={outcome.delivered} failed={outcome.failed}")
    finally:
        manager.shutdown()


if __name__ == "__main__":
    main()
