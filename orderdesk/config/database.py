"""
orderdesk.config.database – database connection config (dataclass + validators).

Env vars: DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT, DB_POOL_RECYCLE,
DB_ECHO, DB_APPLICATION_NAME.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

_POSTGRES_PREFIXES = ("postgresql://", "postgres://", "postgresql+asyncpg://")
_SQLITE_PREFIX = "sqlite+aiosqlite://"


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ValueError("DATABASE_URL is required and must be non-empty")
    if not (url.startswith(_POSTGRES_PREFIXES) or url.startswith(_SQLITE_PREFIX)):
        raise ValueError(
            "DATABASE_URL must start with postgresql:// or postgres:// "
            "(or postgresql+asyncpg://, or sqlite+aiosqlite:// for local use)"
        )
    return url


def _validate_positive_int(value: int, name: str, min_val: int = 1) -> int:
    if not isinstance(value, int) or value < min_val:
        raise ValueError(f"{name} must be an integer >= {min_val}, got {value!r}")
    return value


def _validate_nonnegative_int(value: int, name: str) -> int:
    if not isinstance(value, int) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
    return value


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database connection and pool configuration.

    All fields are validated on construction. Use load_database_config()
    to build from environment variables.
    """

    url: str
    """DSN. postgres URLs are converted to postgresql+asyncpg in the engine."""

    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    """Seconds to wait for a connection from the pool."""

    pool_recycle: int = 1800
    echo: bool = False
    application_name: str = "orderdesk"
    """server_settings.application_name (postgres only)."""

    def __post_init__(self) -> None:
        _validate_url(self.url)
        _validate_positive_int(self.pool_size, "pool_size")
        _validate_nonnegative_int(self.max_overflow, "max_overflow")
        _validate_positive_int(self.pool_timeout, "pool_timeout")
        _validate_positive_int(self.pool_recycle, "pool_recycle")
        if not isinstance(self.echo, bool):
            raise ValueError("echo must be a boolean")
        if not isinstance(self.application_name, str) or not self.application_name.strip():
            raise ValueError("application_name must be a non-empty string")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith(_SQLITE_PREFIX)

    @classmethod
    def from_env(cls, **overrides: object) -> DatabaseConfig:
        """
        Build config from environment variables.

        Env:
            DATABASE_URL          – default postgresql://localhost/orderdesk
            DB_POOL_SIZE          – default 10
            DB_MAX_OVERFLOW       – default 20
            DB_POOL_TIMEOUT       – default 30
            DB_POOL_RECYCLE       – default 1800
            DB_ECHO               – "1" / "true" / "yes" → True
            DB_APPLICATION_NAME   – default orderdesk

        Overrides (keyword args) take precedence over env.
        """
        raw_url = overrides.get("url")
        if raw_url is None:
            raw_url = os.environ.get("DATABASE_URL", "postgresql://localhost/orderdesk")
        url = _validate_url(str(raw_url))

        _env_int = {
            "pool_size": "DB_POOL_SIZE",
            "max_overflow": "DB_MAX_OVERFLOW",
            "pool_timeout": "DB_POOL_TIMEOUT",
            "pool_recycle": "DB_POOL_RECYCLE",
        }

        def _int(attr: str, default: int) -> int:
            v = overrides.get(attr)
            if v is not None:
                return int(v)
            return int(os.environ.get(_env_int[attr], default))

        echo = overrides.get("echo")
        if echo is None:
            echo = os.environ.get("DB_ECHO", "").strip().lower() in ("1", "true", "yes")

        app_name = overrides.get("application_name") or os.environ.get("DB_APPLICATION_NAME", "orderdesk")
        return cls(
            url=url,
            pool_size=_int("pool_size", 10),
            max_overflow=_int("max_overflow", 20),
            pool_timeout=_int("pool_timeout", 30),
            pool_recycle=_int("pool_recycle", 1800),
            echo=bool(echo),
            application_name=str(app_name),
        )


def load_database_config(**overrides: object) -> DatabaseConfig:
    """
    Load and validate database config from environment (with optional overrides).

    Raises ValueError on invalid env/values.
    """
    return DatabaseConfig.from_env(**overrides)
