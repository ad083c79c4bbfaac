"""
Round trip against a real Redis server.

Set ``LOGPUSH_TEST_REDIS_URL`` (for example ``redis://localhost:6379/15``)
to run these; they are skipped otherwise. The database is flushed.
"""

from __future__ import annotations

import logging
import os
import uuid

import orjson
import pytest
import redis

from logpush.core.settings import PoolConfig, RedisSinkConfig, RetryPolicy
from logpush.handler import RedisListHandler
from logpush.manager import RedisManager

REDIS_URL = os.getenv("LOGPUSH_TEST_REDIS_URL")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not REDIS_URL, reason="LOGPUSH_TEST_REDIS_URL not set"),
]


@pytest.fixture
def client():
    c = redis.Redis.from_url(REDIS_URL)
    c.flushdb()
    yield c
    c.flushdb()
    c.close()


@pytest.fixture
def config(client) -> RedisSinkConfig:
    kwargs = client.connection_pool.connection_kwargs
    return RedisSinkConfig(
        host=kwargs.get("host", "localhost"),
        port=kwargs.get("port", 6379),
        db=kwargs.get("db", 0),
        password=kwargs.get("password"),
        keys=["app-logs", "audit"],
        retry=RetryPolicy(max_retries_on_send=2, ms_between_retries=10),
        pool=PoolConfig(max_total=2, eviction_interval_seconds=0),
    )


def test_send_appends_to_every_list(client, config) -> None:
    manager = RedisManager(config)
    manager.startup()
    try:
        results = manager.send("hello")
    finally:
        assert manager.shutdown(1.0) is True

    assert all(r.ok for r in results)
    assert client.lrange("app-logs", -1, -1) == [b"hello"]
    assert client.lrange("audit", -1, -1) == [b"hello"]


def test_wrong_type_key_exhausts_retries(client, config) -> None:
    client.set("app-logs", "not a list")
    manager = RedisManager(config)
    manager.startup()
    try:
        first, second = manager.send("hello")
    finally:
        manager.shutdown(1.0)

    assert first.ok is False
    assert first.attempts == 2
    assert second.ok is True


def test_handler_ships_records(client, config) -> None:
    logger = logging.getLogger(f"roundtrip.{uuid.uuid4().hex}")
    logger.propagate = False
    handler = RedisListHandler(config)
    logger.addHandler(handler)
    try:
        logger.warning("disk %s%% full", 91)
    finally:
        logger.removeHandler(handler)
        handler.close()

    [raw] = client.lrange("app-logs", 0, -1)
    assert orjson.loads(raw)["message"] == "disk 91% full"
