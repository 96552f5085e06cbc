"""
=============================================================================
CONFIGURATION
=============================================================================

Two dataclasses, both built from environment variables and validated
before anything starts:

    ┌──────────────────────┬──────────────────┬───────────────────────────┐
    │ Variable             │ Default          │ Field                     │
    ├──────────────────────┼──────────────────┼───────────────────────────┤
    │ APP_HOST             │ 0.0.0.0          │ ServerConfig.host         │
    │ APP_PORT             │ 8080             │ ServerConfig.port         │
    │ APP_WORKERS          │ 16               │ ServerConfig.max_workers  │
    │ APP_TIMEOUT          │ 30               │ ServerConfig.timeout      │
    │ STATIC_DIR           │ ./static         │ ServerConfig.static_dir   │
    │ LOG_LEVEL            │ INFO             │ ServerConfig.log_level    │
    │ LOG_FORMAT           │ text             │ ServerConfig.log_format   │
    ├──────────────────────┼──────────────────┼───────────────────────────┤
    │ DB_HOST              │ (required)       │ DatabaseConfig.host       │
    │ DB_PORT              │ (required)       │ DatabaseConfig.port       │
    │ DB_USER              │ (required)       │ DatabaseConfig.user       │
    │ DB_PASSWORD          │ (required)       │ DatabaseConfig.password   │
    │ DB_NAME              │ (required)       │ DatabaseConfig.name       │
    │ DB_SSLMODE           │ disable          │ DatabaseConfig.sslmode    │
    │ DB_POOL_MIN          │ 1                │ DatabaseConfig.pool_min   │
    │ DB_POOL_MAX          │ 10               │ DatabaseConfig.pool_max   │
    │ DB_CONNECT_RETRIES   │ 15               │ connect_retries           │
    │ DB_CONNECT_DELAY     │ 5                │ connect_delay (seconds)   │
    └──────────────────────┴──────────────────┴───────────────────────────┘

Anything missing or malformed raises ConfigError at startup, naming every
offending variable at once, rather than failing on the first request.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


@dataclass
class ServerConfig:
    """
    Settings for the HTTP server itself.

    NETWORK     host, port, backlog, buffer_size, timeout
    HTTP        keep_alive, keep_alive_timeout, max_request_size
    THREADING   min_workers, max_workers, queue_size
    FRONTEND    static_dir, static_cache_max_age
    LOGGING     log_level, log_format
    """

    host: str = "0.0.0.0"
    port: int = 8080
    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100

    # None disables static file serving entirely.
    static_dir: Optional[str] = "./static"
    static_cache_max_age: int = 3600

    log_level: str = "INFO"
    log_format: str = "text"

    server_name: str = "userapi/1.0"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Build from APP_* / STATIC_DIR / LOG_* variables.

            APP_PORT=9000 LOG_LEVEL=DEBUG python -m userapi
        """
        env = os.environ if env is None else env
        max_workers = _env_int(env, "APP_WORKERS", 16)

        return cls(
            host=env.get("APP_HOST") or "0.0.0.0",
            port=_env_int(env, "APP_PORT", 8080),
            min_workers=min(4, max_workers),
            max_workers=max_workers,
            timeout=_env_float(env, "APP_TIMEOUT", 30.0),
            static_dir=env.get("STATIC_DIR") or "./static",
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
            log_format=(env.get("LOG_FORMAT") or "text").lower(),
        )

    def validate(self) -> None:
        """
        Fail fast on values the server cannot run with.

        Port 0 is accepted: the OS picks a free port (used by tests).
        """
        if not 0 <= self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.min_workers < 1:
            raise ConfigError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ConfigError("max_workers must be >= min_workers")
        if self.buffer_size < 1024:
            raise ConfigError("buffer_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout must be > 0")
        if self.log_format not in ("text", "json"):
            raise ConfigError(f"log_format must be 'text' or 'json', got {self.log_format!r}")


@dataclass
class DatabaseConfig:
    """
    PostgreSQL connection settings.

    The five connection fields have no defaults: a deployment that forgets
    one should not silently talk to the wrong database.
    """

    host: str
    port: int
    user: str
    password: str
    name: str
    sslmode: str = "disable"

    pool_min: int = 1
    pool_max: int = 10

    connect_retries: int = 15
    connect_delay: float = 5.0

    REQUIRED_VARS = ("DB_HOST", "DB_PORT", "DB_USER", "DB_PASSWORD", "DB_NAME")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DatabaseConfig":
        """
        Raises:
            ConfigError: Listing every required DB_* variable that is unset.
        """
        env = os.environ if env is None else env

        missing = [name for name in cls.REQUIRED_VARS if not env.get(name)]
        if missing:
            raise ConfigError(
                f"missing required environment variables: {', '.join(missing)}"
            )

        config = cls(
            host=env["DB_HOST"],
            port=_env_int(env, "DB_PORT", 5432),
            user=env["DB_USER"],
            password=env["DB_PASSWORD"],
            name=env["DB_NAME"],
            sslmode=env.get("DB_SSLMODE") or "disable",
            pool_min=_env_int(env, "DB_POOL_MIN", 1),
            pool_max=_env_int(env, "DB_POOL_MAX", 10),
            connect_retries=_env_int(env, "DB_CONNECT_RETRIES", 15),
            connect_delay=_env_float(env, "DB_CONNECT_DELAY", 5.0),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if not 0 < self.port < 65536:
            raise ConfigError(f"Invalid DB_PORT: {self.port}. Must be 1-65535.")
        if self.pool_min < 1 or self.pool_max < self.pool_min:
            raise ConfigError("DB_POOL_MIN must be >= 1 and <= DB_POOL_MAX")
        if self.connect_retries < 1:
            raise ConfigError("DB_CONNECT_RETRIES must be >= 1")
        if self.connect_delay < 0:
            raise ConfigError("DB_CONNECT_DELAY must be >= 0")

    @property
    def dsn(self) -> str:
        """
        libpq keyword/value connection string.

            host='db' port=5432 user='app' password='s3cr3t' dbname='users' sslmode='disable'

        Values are single-quoted with backslash escapes, so passwords
        containing spaces or quotes survive.
        """
        return (
            f"host={_quote(self.host)} port={self.port} user={_quote(self.user)} "
            f"password={_quote(self.password)} dbname={_quote(self.name)} "
            f"sslmode={_quote(self.sslmode)}"
        )

    def __repr__(self) -> str:
        return (
            f"DatabaseConfig(host={self.host!r}, port={self.port}, user={self.user!r}, "
            f"password='***', name={self.name!r}, sslmode={self.sslmode!r})"
        )
