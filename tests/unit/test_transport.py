from __future__ import annotations

from typing import Any

import pytest
import redis
from redis import exceptions as redis_errors
from redis.retry import Retry

from logpush import transport as transport_module
from logpush.core.errors import ConnectionFailure, PushError
from logpush.core.settings import Endpoint, TlsConfig
from logpush.transport import RedisConnection, RedisTransport, classify_error

ENDPOINT = Endpoint(host="cache", port=6379)


@pytest.mark.parametrize(
    "exc",
    [
        redis_errors.ConnectionError("refused"),
        redis_errors.AuthenticationError("bad password"),
        ConnectionResetError("reset"),
        OSError("network unreachable"),
    ],
)
def test_connection_level_errors(exc: BaseException) -> None:
    mapped = classify_error(exc, ENDPOINT)

    assert isinstance(mapped, ConnectionFailure)
    assert mapped.context["endpoint"] == "cache:6379"
    assert mapped.__cause__ is exc


@pytest.mark.parametrize(
    "exc",
    [
        redis_errors.ResponseError("WRONGTYPE"),
        redis_errors.TimeoutError("read timed out"),
        redis_errors.BusyLoadingError("loading"),
        redis_errors.ReadOnlyError("READONLY"),
        ValueError("unexpected"),
    ],
)
def test_push_level_errors(exc: BaseException) -> None:
    assert isinstance(classify_error(exc, ENDPOINT), PushError)


def test_classified_errors_pass_through() -> None:
    err = PushError("already mapped")

    assert classify_error(err, ENDPOINT) is err


class _StubClient:
    def __init__(self, outcome: Any = 1) -> None:
        self.outcome = outcome
        self.pushed: list[tuple[str, Any]] = []
        self.closed = False

    def rpush(self, key: str, payload: Any) -> int:
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        self.pushed.append((key, payload))
        return self.outcome

    def ping(self) -> bool:
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return True

    def close(self) -> None:
        self.closed = True


def test_connection_push_and_reset() -> None:
    client = _StubClient(outcome=3)
    conn = RedisConnection(client, ENDPOINT)  # type: ignore[arg-type]

    assert conn.push("logs", b"x") == 3
    assert client.pushed == [("logs", b"x")]
    assert conn.ping() is True


def test_connection_push_failure_is_classified() -> None:
    client = _StubClient(outcome=redis_errors.ConnectionError("gone"))
    conn = RedisConnection(client, ENDPOINT)  # type: ignore[arg-type]

    with pytest.raises(ConnectionFailure):
        conn.push("logs", b"x")
    assert conn.failed_pushes == 1
    assert conn.ping() is False

    conn.reset()
    assert conn.failed_pushes == 0
    conn.close()
    assert client.closed


class _RecordingRedis:
    instances: list[_RecordingRedis] = []
    fail_ping: BaseException | None = None
    fail_init: BaseException | None = None

    def __init__(self, **kwargs: Any) -> None:
        if _RecordingRedis.fail_init is not None:
            raise _RecordingRedis.fail_init
        self.kwargs = kwargs
        self.closed = False
        _RecordingRedis.instances.append(self)

    def ping(self) -> bool:
        if _RecordingRedis.fail_ping is not None:
            raise _RecordingRedis.fail_ping
        return True

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def recording_redis(monkeypatch):
    _RecordingRedis.instances = []
    _RecordingRedis.fail_ping = None
    _RecordingRedis.fail_init = None
    monkeypatch.setattr(transport_module.redis, "Redis", _RecordingRedis)
    return _RecordingRedis


def test_transport_opens_dedicated_connection(recording_redis) -> None:
    conn = RedisTransport(encoding="latin-1").connect(
        Endpoint(host="cache", port=6390, db=2, password="pw")
    )

    kwargs = recording_redis.instances[0].kwargs
    assert isinstance(conn, RedisConnection)
    assert kwargs["single_connection_client"] is True
    assert kwargs["host"] == "cache"
    assert kwargs["port"] == 6390
    assert kwargs["db"] == 2
    assert kwargs["encoding"] == "latin-1"
    assert "ssl" not in kwargs


def test_transport_passes_tls_material(recording_redis) -> None:
    tls = TlsConfig(ca_certs="/ca.pem", certfile="/c.pem", keyfile="/k.pem")

    RedisTransport().connect(Endpoint(host="cache", tls=tls))

    kwargs = recording_redis.instances[0].kwargs
    assert kwargs["ssl"] is True
    assert kwargs["ssl_ca_certs"] == "/ca.pem"
    assert kwargs["ssl_certfile"] == "/c.pem"
    assert kwargs["ssl_keyfile"] == "/k.pem"
    assert kwargs["ssl_cert_reqs"] == "required"


def test_transport_connect_failure_closes_client(recording_redis) -> None:
    recording_redis.fail_ping = redis_errors.ConnectionError("refused")

    with pytest.raises(ConnectionFailure):
        RedisTransport().connect(ENDPOINT)
    assert recording_redis.instances[0].closed


def test_constructor_connect_failure_is_classified(recording_redis) -> None:
    recording_redis.fail_init = redis_errors.ConnectionError("refused")

    with pytest.raises(ConnectionFailure) as exc_info:
        RedisTransport().connect(ENDPOINT)
    assert exc_info.value.context["endpoint"] == "cache:6379"
    assert recording_redis.instances == []


def test_client_retries_are_disabled(recording_redis) -> None:
    RedisTransport().connect(ENDPOINT)

    retry = recording_redis.instances[0].kwargs["retry"]
    assert isinstance(retry, Retry)
    assert retry.get_retries() == 0


def test_pooled_redis_connection_never_retries_commands() -> None:
    kwargs = RedisTransport().client_kwargs(ENDPOINT)
    kwargs["single_connection_client"] = False
    client = redis.Redis(**kwargs)  # type: ignore[arg-type]

    # make_connection builds the socket wrapper without dialing the server
    connection = client.connection_pool.make_connection()

    assert connection.retry.get_retries() == 0
    client.close()
