"""
Inkwell Backend — Database Session Management
==============================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system and by
       the trash sweeper, which opens its own session per sweep.
When:  Engine is created at module import; sessions are created per-request.

Consistency Model:
    Every note operation is a single read-modify-write inside the request's
    session. There is no version check, so two editors saving the same note
    concurrently resolve as last-write-wins. Bulk operations wrap each item in
    a SAVEPOINT (session.begin_nested()) so one failing item does not discard
    the others.

SQLite:
    The pysqlite/aiosqlite drivers defer BEGIN and mishandle SAVEPOINT unless
    the driver's own transaction handling is switched off. enable_sqlite_savepoints()
    installs the two event hooks SQLAlchemy documents for this.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def engine_options() -> Dict[str, Any]:
    """Engine keyword arguments for the configured database URL."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if settings.is_sqlite:
        return options
    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
    )
    return options


def enable_sqlite_savepoints(async_engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN/SAVEPOINT emission on a SQLite engine."""

    @event.listens_for(async_engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **engine_options())
if settings.is_sqlite:
    enable_sqlite_savepoints(engine)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: ORM objects stay readable after commit; async
# sessions cannot lazy-load expired attributes outside an await
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models share this metadata object; Alembic and the test suite build
    the schema from it.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back the transaction and re-raises
        5. Always: closes the session (returns connection to pool)

    A PermissionDeniedError raised after a partial write therefore leaves
    nothing behind; services raise before mutating, but the rollback is what
    the "no mutation performed" guarantee ultimately rests on.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Gracefully closes all connections in the pool (application shutdown)."""
    await engine.dispose()
