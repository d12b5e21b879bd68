"""
orderdesk.infra.database.engine – Async SQLAlchemy 2.0 engine, session factory, session_scope.

Accepts DatabaseConfig; if not provided, loads from env via load_database_config().

Postgres (asyncpg) is the production target. sqlite+aiosqlite is supported for
local use and tests: SAVEPOINTs are made to work (the order-number retry relies
on them) and ``:memory:`` databases share one connection.

On first run, ensure_database_exists() can create the target postgres database
(connects to "postgres", then CREATE DATABASE).
"""
from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import urlparse, urlunparse

import asyncpg
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

# Ensure all ORM models are registered with Base.metadata before create_all()
import orderdesk.infra.database.models  # noqa: F401
from orderdesk.infra.database.models.base import Base

if TYPE_CHECKING:
    from orderdesk.config import DatabaseConfig

logger = logging.getLogger(__name__)

# Allowed characters for a database name created by ensure_database_exists
_DBNAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _make_async_url(url: str) -> str:
    """Convert postgresql:// or postgres:// to postgresql+asyncpg://."""
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix) and "+asyncpg" not in url:
            return url.replace(prefix, "postgresql+asyncpg://", 1)
    return url


def _asyncpg_url(url: str) -> str:
    """asyncpg.connect() wants a plain postgresql:// DSN."""
    return url.replace("postgresql+asyncpg://", "postgresql://", 1)


def _parse_db_name_and_postgres_url(url: str) -> tuple[str, str]:
    """Target database name and a DSN for the maintenance 'postgres' database."""
    parsed = urlparse(_asyncpg_url(url))
    path = (parsed.path or "/postgres").strip("/")
    dbname = (path.split("?")[0] or "postgres").strip()
    postgres_url = urlunparse((parsed.scheme, parsed.netloc, "/postgres", parsed.params, parsed.query, parsed.fragment))
    return dbname, postgres_url


def _load_config(config: Optional["DatabaseConfig"]) -> "DatabaseConfig":
    if config is None:
        from orderdesk.config import load_database_config
        config = load_database_config()
    return config


async def ensure_database_exists(config: Optional["DatabaseConfig"] = None) -> None:
    """
    Create the target postgres database if missing. No-op for sqlite.
    dbname must match [a-zA-Z_][a-zA-Z0-9_]* to be created.
    """
    config = _load_config(config)
    if config.is_sqlite:
        return
    dbname, postgres_url = _parse_db_name_and_postgres_url(config.url)
    if dbname == "postgres":
        return
    if not _DBNAME_PATTERN.match(dbname):
        logger.warning("ensure_database_exists: skipping unsafe dbname %r", dbname)
        return
    try:
        conn = await asyncpg.connect(postgres_url)
    except (OSError, asyncpg.PostgresError) as e:
        logger.debug("ensure_database_exists: cannot reach postgres (%s), skipping", e)
        return
    try:
        row = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", dbname)
        if row is None:
            await conn.execute(f'CREATE DATABASE "{dbname}"')
            logger.info("Database created: %s", dbname)
    finally:
        await conn.close()


def _install_sqlite_savepoint_hooks(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINT/ROLLBACK TO work under aiosqlite."""

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def build_engine(
    config: Optional["DatabaseConfig"] = None,
    *,
    echo: Optional[bool] = None,
    use_null_pool: bool = False,
) -> AsyncEngine:
    """
    Create and cache the async SQLAlchemy engine.

    Args:
        config: DatabaseConfig (url, pool_size, etc.). If None, loaded from env.
        echo: Override SQL echo (default: use config.echo).
        use_null_pool: Use NullPool (e.g. for one-shot scripts).
    """
    global _engine
    if _engine is not None:
        return _engine

    config = _load_config(config)
    do_echo = echo if echo is not None else config.echo

    if config.is_sqlite:
        kwargs: dict[str, Any] = {"echo": do_echo, "connect_args": {"check_same_thread": False}}
        if ":memory:" in config.url:
            kwargs["poolclass"] = StaticPool
        _engine = create_async_engine(config.url, **kwargs)
        _install_sqlite_savepoint_hooks(_engine)
        logger.info("AsyncEngine created for sqlite (%s)", config.url)
        return _engine

    url = _make_async_url(config.url)
    connect_args: dict = {
        "server_settings": {
            "application_name": config.application_name,
            "jit": "off",
        }
    }
    if use_null_pool:
        _engine = create_async_engine(
            url,
            echo=do_echo,
            poolclass=NullPool,
            connect_args=connect_args,
        )
        logger.info("AsyncEngine created with NullPool")
    else:
        _engine = create_async_engine(
            url,
            echo=do_echo,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        logger.info(
            "AsyncEngine created: pool_size=%d max_overflow=%d",
            config.pool_size, config.max_overflow,
        )
    return _engine


def build_session_factory(
    engine: Optional[AsyncEngine] = None,
) -> async_sessionmaker[AsyncSession]:
    """Create async session factory bound to engine."""
    global _session_factory
    if _session_factory is not None:
        return _session_factory
    if engine is None:
        engine = build_engine()
    _session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    logger.debug("AsyncSessionFactory created")
    return _session_factory


@asynccontextmanager
async def session_scope(
    config: Optional["DatabaseConfig"] = None,
) -> AsyncIterator[AsyncSession]:
    """Transactional AsyncSession: commit on success, rollback on error.

    Services flush but never commit; one scope is one unit of work.
    """
    session_factory = build_session_factory(build_engine(config))
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(
    config: Optional["DatabaseConfig"] = None,
    *,
    drop_all: bool = False,
) -> None:
    """Create all ORM tables. For dev/test; use migrations in production."""
    engine = build_engine(config)
    async with engine.begin() as conn:
        if drop_all:
            logger.warning("Dropping all ORM tables (drop_all=True)")
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Creating ORM tables")
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialised successfully")


async def close_engine() -> None:
    """Dispose the connection pool. Call on shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("AsyncEngine disposed")
        _engine = None
        _session_factory = None
