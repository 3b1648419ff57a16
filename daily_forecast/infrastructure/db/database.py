"""
Database Configuration
Async SQLAlchemy setup for the volume store
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from daily_forecast.config import settings


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


def create_engine(database_url: str = settings.DATABASE_URL) -> AsyncEngine:
    """
    Create the async engine

    SQLite engines keep the driver's default pool; server databases get a
    sized connection pool.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=settings.DB_ECHO)

    return create_async_engine(
        database_url.replace("postgresql://", "postgresql+asyncpg://"),
        echo=settings.DB_ECHO,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=3600
    )


engine = create_engine()

# Create async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def init_db(target: AsyncEngine | None = None):
    """Initialize database (create tables)"""
    async with (target or engine).begin() as conn:
        # Import models so they're registered on Base.metadata
        from daily_forecast.infrastructure.db import models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections"""
    await engine.dispose()
