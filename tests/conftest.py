"""Shared fixtures: in-memory store, SQLite-backed SQLAlchemy store, API client."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from healthops.models.tables import Base
from healthops.store.memory import InMemoryStore
from healthops.store.sql import SQLAlchemyStore


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def sql_store(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield SQLAlchemyStore(session)


@pytest_asyncio.fixture
async def client(store):
    """HTTPX async client against the app, wired to the in-memory store."""
    from healthops.api.deps import get_store
    from healthops.main import app

    async def override_get_store():
        return store

    app.dependency_overrides[get_store] = override_get_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
