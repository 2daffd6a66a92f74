"""
Application factory.

    uvicorn usercrud.main:create_app --factory

Everything the request path needs (settings, engine, session factory, mapper)
is built here and passed down explicitly. Tests call `create_app` with their
own settings and session factory.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from usercrud.api.v1.health import router as health_router
from usercrud.api.v1.users import create_user_router
from usercrud.config.settings import Settings, get_settings
from usercrud.core.logging import setup_logging, RequestIDMiddleware
from usercrud.database.session import build_engine, build_session_maker
from usercrud.mappers.user_mapper import UserMapper
from usercrud.utils.logging import get_project_name, get_project_version

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: defaults to the cached environment settings.
        session_maker: when omitted, an engine is created from
            `settings.DATABASE_URL` and disposed on shutdown. A caller that
            passes its own factory keeps ownership of its engine.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    engine: AsyncEngine | None = None
    if session_maker is None:
        engine = build_engine(settings)
        session_maker = build_session_maker(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("app.startup", extra={"env": settings.ENV})
        yield
        if engine is not None:
            await engine.dispose()
        logger.info("app.shutdown")

    app = FastAPI(title=get_project_name(), version=get_project_version(), lifespan=lifespan)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health_router)
    app.include_router(create_user_router(session_maker, UserMapper()))
    return app
