"""
Inkwell Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite,
       StaticPool so all sessions share the one connection) with the schema
       built from Base.metadata. Endpoint tests drive a freshly built app
       through httpx's ASGITransport with get_db_session overridden.

Fixture Hierarchy (all function-scoped):
    ├── db_engine:     in-memory engine with SAVEPOINT support enabled
    ├── db:            one AsyncSession on that engine
    ├── alice/bob/carol/dave: Actors
    ├── mock_db_session: AsyncMock session for pure unit tests
    └── api_client:    HTTPX AsyncClient bound to the app
"""

import os
import uuid
from typing import Dict
from unittest.mock import AsyncMock, MagicMock

# Settings are read at import time; set these BEFORE any app import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["TRASH_SWEEP_INTERVAL_SECONDS"] = "0"
os.environ["TRASH_RETENTION_DAYS"] = "30"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base, enable_sqlite_savepoints, get_db_session
from app.models.enums import TeamRole
from app.schemas.actor import Actor
from app.services.note_service import note_service
from app.services.team_service import team_service


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    """A session for service-level tests. Nothing is committed."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession for tests that must not touch a database.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = row
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Actors
# ══════════════════════════════════════════════════════════════════════════

def _actor(name: str) -> Actor:
    return Actor(id=uuid.uuid4(), email=f"{name}@example.com")


@pytest.fixture
def alice() -> Actor:
    return _actor("alice")


@pytest.fixture
def bob() -> Actor:
    return _actor("bob")


@pytest.fixture
def carol() -> Actor:
    return _actor("carol")


@pytest.fixture
def dave() -> Actor:
    return _actor("dave")


# ══════════════════════════════════════════════════════════════════════════
# Builders
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_note(db):
    """
    Create an active note through NoteService.

    Usage:
        note = await make_note(alice, folder="Work")
    """
    async def _make(owner: Actor, title: str = "Meeting notes", **fields):
        return await note_service.create_note(db, owner, title=title, **fields)
    return _make


@pytest.fixture
def make_team(db):
    """
    Create a team owned by `owner`, with extra members at the given roles.

    Usage:
        team = await make_team(alice, {bob: TeamRole.VIEWER})
    """
    async def _make(owner: Actor, members: Dict[Actor, TeamRole] = None, name: str = "Design"):
        team = await team_service.create_team(db, owner, name)
        for actor, role in (members or {}).items():
            await team_service.add_member(db, team.id, owner, actor.id, role)
        return team
    return _make


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def api_client(session_factory):
    """
    HTTPX AsyncClient for endpoint tests.

    Each request gets its own session committing on success, like
    get_db_session does in production. The lifespan does not run, so the
    background sweeper is never started.
    """
    from app.main import create_app

    application = create_app()

    async def _test_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = _test_session
    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
