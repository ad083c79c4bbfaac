from __future__ import annotations

import pytest
from redis import exceptions as redis_errors

from logpush import cli
from logpush.manager import RedisManager


@pytest.fixture
def fake_cli(monkeypatch, fake_transport):
    monkeypatch.setenv("LOGPUSH_REDIS__POOL__EVICTION_INTERVAL_SECONDS", "0")
    monkeypatch.setenv("LOGPUSH_REDIS__RETRY__MS_BETWEEN_RETRIES", "0")
    monkeypatch.setattr(
        cli,
        "RedisManager",
        lambda config: RedisManager(config, transport=fake_transport),
    )
    return fake_transport


def test_ping_reports_pong(fake_cli, capsys) -> None:
    code = cli.main(["--host", "redis.test", "--port", "6380", "ping"])

    assert code == 0
    assert capsys.readouterr().out.strip() == "redis.test:6380: PONG"


def test_ping_unreachable_exits_nonzero(fake_cli, capsys) -> None:
    fake_cli.connect_error = redis_errors.ConnectionError("refused")

    code = cli.main(["ping"])

    assert code == 1
    assert "unreachable" in capsys.readouterr().out


def test_send_to_explicit_keys(fake_cli, capsys) -> None:
    code = cli.main(["send", "hello", "-k", "app-logs", "-k", "audit"])

    assert code == 0
    assert fake_cli.lists["app-logs"] == ["hello"]
    assert fake_cli.lists["audit"] == ["hello"]
    out = capsys.readouterr().out
    assert "app-logs: delivered after 1 attempt(s)" in out


def test_send_failure_reports_reason(fake_cli, capsys) -> None:
    fake_cli.always_fail("app-logs", redis_errors.ResponseError("WRONGTYPE"))

    code = cli.main(["send", "hello", "-k", "app-logs", "--retries", "2"])

    assert code == 1
    assert "app-logs: failed (exhausted) after 2 attempt(s)" in capsys.readouterr().out


def test_invalid_options_exit_with_usage_code(fake_cli, capsys) -> None:
    code = cli.main(["send", "hello", "--retries", "0"])

    assert code == 2
    assert capsys.readouterr().err.startswith("Error:")


def test_subcommand_is_required() -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main([])

    assert exc_info.value.code == 2
