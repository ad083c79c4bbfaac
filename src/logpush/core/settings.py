"""
Configuration models for logpush using Pydantic v2 Settings.

Every knob is static per sink instance: models are frozen and reject
unknown fields. ``Settings`` reads the same schema from the environment
(``LOGPUSH_`` prefix, ``__`` as nested delimiter), e.g.
``LOGPUSH_REDIS__HOST=cache.internal`` or
``LOGPUSH_REDIS__RETRY__MAX_RETRIES_ON_SEND=5``.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
import orjson
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from . import diagnostics

LATEST_CONFIG_SCHEMA_VERSION = "1.0"

_FROZEN = ConfigDict(frozen=True, extra="forbid", validate_default=True)


class TlsConfig(BaseModel):
    """Certificate and trust material for a TLS connection to Redis."""

    model_config = _FROZEN

    ca_certs: str | None = Field(default=None, description="Path to CA bundle")
    certfile: str | None = Field(default=None, description="Client certificate")
    keyfile: str | None = Field(default=None, description="Client private key")
    cert_reqs: Literal["required", "optional", "none"] = Field(
        default="required",
        description="Server certificate verification mode",
    )
    check_hostname: bool = Field(default=True)

    @model_validator(mode="after")
    def _keyfile_needs_certfile(self) -> TlsConfig:
        if self.keyfile and not self.certfile:
            raise ValueError("tls.keyfile requires tls.certfile")
        return self


class Endpoint(BaseModel):
    """One remote Redis instance. ``str()`` never includes credentials."""

    model_config = _FROZEN

    host: str = Field(default="localhost", min_length=1)
    port: int = Field(default=6379, ge=1, le=65535)
    db: int = Field(default=0, ge=0)
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    tls: TlsConfig | None = None
    connect_timeout_seconds: float = Field(default=2.0, gt=0.0)
    socket_timeout_seconds: float = Field(default=2.0, gt=0.0)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class PoolConfig(BaseModel):
    """Connection pool sizing and validation knobs.

    Defaults favour a small pool with frequent validation: a log sink must
    not exhaust the resources of the application it instruments.
    """

    model_config = _FROZEN

    max_total: int = Field(default=8, ge=1, description="Connections open at once")
    max_idle: int = Field(default=8, ge=0)
    min_idle: int = Field(default=0, ge=0)
    test_on_borrow: bool = True
    test_on_return: bool = True
    test_while_idle: bool = True
    evictions_per_run: int = Field(default=3, ge=1)
    eviction_interval_seconds: float = Field(
        default=30.0,
        description="Seconds between evictor runs; <= 0 disables the evictor",
    )
    min_evictable_idle_seconds: float = Field(default=60.0, ge=0.0)
    acquire_timeout_seconds: float = Field(default=2.0, gt=0.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> PoolConfig:
        if self.min_idle > self.max_idle:
            raise ValueError("pool.min_idle must be <= pool.max_idle")
        if self.min_idle > self.max_total:
            raise ValueError("pool.min_idle must be <= pool.max_total")
        return self


class RetryPolicy(BaseModel):
    """Per-key, per-payload push retry budget."""

    model_config = _FROZEN

    max_retries_on_send: int = Field(
        default=3,
        ge=1,
        description="Total push attempts per key before giving up",
    )
    ms_between_retries: int = Field(default=1000, ge=0)

    @property
    def delay_seconds(self) -> float:
        return self.ms_between_retries / 1000.0


def _normalize_keys(value: Any) -> tuple[str, ...]:
    if isinstance(value, str) and value.lstrip().startswith("["):
        try:
            value = orjson.loads(value)
        except orjson.JSONDecodeError as exc:
            raise ValueError(f"keys is not a valid JSON list: {exc}") from exc
        if not isinstance(value, list):
            raise ValueError("keys must be a JSON list of names")
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",")]
    else:
        items = [str(part).strip() for part in value]
    if not items or any(not item for item in items):
        raise ValueError("keys must be a non-empty list of non-empty names")
    unique = tuple(dict.fromkeys(items))
    if len(unique) != len(items):
        diagnostics.warn(
            "config",
            "duplicate destination keys removed",
            keys=list(items),
            kept=list(unique),
        )
    return unique


class RedisSinkConfig(BaseModel):
    """Full configuration for one Redis list sink."""

    model_config = _FROZEN

    name: str = Field(default="redis", min_length=1)
    host: str = Field(default="localhost", min_length=1)
    port: int = Field(default=6379, ge=1, le=65535)
    db: int = Field(default=0, ge=0)
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    tls: TlsConfig | None = None
    connect_timeout_seconds: float = Field(default=2.0, gt=0.0)
    socket_timeout_seconds: float = Field(default=2.0, gt=0.0)
    keys: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("logs",),
        description="Redis lists every payload is appended to, in order",
    )
    charset: str = Field(default="utf-8")
    shutdown_timeout_seconds: float = Field(default=5.0, ge=0.0)
    pool: PoolConfig = Field(default_factory=PoolConfig)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)

    @field_validator("keys", mode="before")
    @classmethod
    def _coerce_keys(cls, value: Any) -> tuple[str, ...]:
        return _normalize_keys(value)

    @field_validator("charset")
    @classmethod
    def _known_charset(cls, value: str) -> str:
        import codecs

        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"unknown charset {value!r}") from exc
        return value

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(
            host=self.host,
            port=self.port,
            db=self.db,
            username=self.username,
            password=self.password,
            tls=self.tls,
            connect_timeout_seconds=self.connect_timeout_seconds,
            socket_timeout_seconds=self.socket_timeout_seconds,
        )

    @property
    def keys_as_string(self) -> str:
        return ",".join(self.keys)


class CoreSettings(BaseModel):
    """Settings for the sink's own diagnostics."""

    internal_logging_enabled: bool = Field(
        default=True,
        description="Emit diagnostics for delivery failures",
    )
    diagnostics_rate_limit_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="Minimum seconds between repeated rate-limited warnings",
    )


class MetricsSettings(BaseModel):
    enabled: bool = Field(
        default=False,
        description="Export delivery counters to an isolated Prometheus registry",
    )


class Settings(BaseSettings):
    """Top-level configuration read from the environment."""

    schema_version: str = Field(default=LATEST_CONFIG_SCHEMA_VERSION)

    core: CoreSettings = Field(default_factory=CoreSettings)
    redis: RedisSinkConfig = Field(default_factory=RedisSinkConfig)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)

    model_config = SettingsConfigDict(
        env_prefix="LOGPUSH_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    def to_dict(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)


__all__ = [
    "CoreSettings",
    "Endpoint",
    "LATEST_CONFIG_SCHEMA_VERSION",
    "MetricsSettings",
    "PoolConfig",
    "RedisSinkConfig",
    "RetryPolicy",
    "Settings",
    "TlsConfig",
]
