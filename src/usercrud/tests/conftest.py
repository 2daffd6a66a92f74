"""
Core pytest configuration for the entire test suite.

Provides the database setup (one fresh database per test), the application
wired to that database, and an HTTP client for it. Domain fixtures live in
tests/test_fixtures/ and are imported at the bottom of this module so every
test module can use them without importing.

Database selection:
  1. `TEST_DATABASE_URL` environment variable (CI against Postgres)
  2. otherwise an on-disk SQLite file (aiosqlite) in the test's tmp_path

A file rather than `:memory:` because the API tests open several sessions
(one per request) that must see the same data.
"""
from __future__ import annotations

import os
import logging
from pathlib import Path
from typing import AsyncGenerator
from urllib.parse import urlparse

# Silence chatty third-party loggers before anything configures them
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "asyncio",
    "httpx",
    "aiosqlite",
    "alembic",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from usercrud.config.settings import Settings
from usercrud.core.logging.builder import setup_logging
from usercrud.database.base import Base
from usercrud.database.session import build_session_maker
from usercrud.main import create_app
from usercrud.tests.test_fixtures.settings import make_test_settings
from usercrud.models import user  # noqa: F401 – import to register models with Base.metadata

logger = logging.getLogger(__name__)


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Install the application's logging configuration once for the session."""
    setup_logging(make_test_settings())
    yield


def safe_log_db_url(db_url: str) -> str:
    # Drop credentials before logging a URL
    parsed = urlparse(db_url)
    return f"{parsed.scheme}://{parsed.hostname or ''}:{parsed.port or ''}/{parsed.path.lstrip('/')}"


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    if test_url := os.getenv("TEST_DATABASE_URL"):
        return test_url
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture()
def settings(database_url: str) -> Settings:
    return make_test_settings(DATABASE_URL_OVERRIDE=database_url)


@pytest.fixture()
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Engine with a freshly created schema; everything is dropped afterwards."""
    logger.debug("Using test DB: %s", safe_log_db_url(database_url))
    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
def session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(async_engine)


@pytest.fixture()
async def db_session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture()
def app(settings: Settings, session_maker: async_sessionmaker[AsyncSession]) -> FastAPI:
    return create_app(settings=settings, session_maker=session_maker)


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


# Register domain fixtures globally (see tests/test_fixtures/)
from .test_fixtures.repository_fixtures import (  # noqa: E402,F401
    base_repo,
    user_repository,
    sample_user_data,
    create_user,
    created_user,
    multiple_users,
)
from .test_fixtures.service_fixtures import (  # noqa: E402,F401
    user_mapper,
    user_service,
    create_request,
)
