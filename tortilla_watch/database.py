"""
Database connection and session management.
Uses SQLAlchemy async (asyncpg in production, aiosqlite in tests).
"""
from typing import AsyncGenerator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from tortilla_watch.config import settings

# Create async engine
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.APP_DEBUG,
    poolclass=NullPool,
)

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """Initialize database tables and the availability singleton."""
    # Register models on Base.metadata
    from tortilla_watch.models.database_models import AvailabilityState
    from tortilla_watch import time_windows

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        result = await session.execute(select(AvailabilityState.id).limit(1))
        if result.scalar_one_or_none() is None:
            session.add(AvailabilityState(
                is_available=False,
                available_votes=0,
                unavailable_votes=0,
                last_updated=time_windows.utcnow(),
            ))
            await session.commit()


async def close_db():
    """Close database connections."""
    await engine.dispose()
