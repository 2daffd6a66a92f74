from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)

from usercrud.config.settings import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the AsyncEngine for the configured database."""
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.SQLALCHEMY_ECHO,   # keep False in production
        pool_pre_ping=True,              # connection health checks
    )


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Return the session factory handed to the HTTP layer at startup.

    expire_on_commit=False keeps attributes readable after commit; with async
    sessions an expired attribute would otherwise trigger lazy IO on access.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )