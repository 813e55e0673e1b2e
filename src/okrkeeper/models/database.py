"""Engine and session factory for the SQL repositories.

One engine per process. ``init_db`` is called from the API lifespan (or a
test fixture) and hands back the factory the repositories are built with;
``close_db`` disposes the pool again.
"""

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base shared by every OKR Keeper table."""


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

_NOT_READY = "Database engine is not set up; call init_db() first"


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    # SQLite ignores REFERENCES clauses unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_db(database_url: str, **engine_kwargs: Any) -> async_sessionmaker[AsyncSession]:
    """Create the engine and return a session factory bound to it.

    Args:
        database_url: Async URL (postgresql+asyncpg://..., sqlite+aiosqlite://...)
        **engine_kwargs: Passed through to create_async_engine (echo, pool_size, ...)
    """
    global _engine, _session_factory

    engine_kwargs.setdefault("echo", False)
    engine_kwargs.setdefault("pool_pre_ping", True)

    _engine = create_async_engine(database_url, **engine_kwargs)
    if _engine.dialect.name == "sqlite":
        event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    # Rows are converted to schemas after commit, so keep attributes loaded
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)
    return _session_factory


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError(_NOT_READY)
    return _session_factory


async def create_all() -> None:
    """Create every table registered on ``Base.metadata``.

    Used for SQLite runs and tests; PostgreSQL deployments apply the
    Alembic revisions instead.
    """
    from . import okr, team, user  # noqa: F401  (registers the tables)

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the connection pool and forget the engine."""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
