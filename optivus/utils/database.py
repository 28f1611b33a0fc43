"""
Database engine and session factory.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from optivus.config.settings import settings
from optivus.models.base import Base


def create_engine(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """
    Create async engine.

    Args:
        url: Database URL (defaults to settings.database_url)
        echo: Echo SQL (defaults to settings.database_echo)

    Returns:
        Async engine
    """
    return create_async_engine(
        url or settings.database_url,
        echo=settings.database_echo if echo is None else echo,
        pool_pre_ping=True,
    )


def create_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to engine."""
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    # Import models so every table is registered on Base.metadata
    import optivus.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
