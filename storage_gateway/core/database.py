"""
Database session management with async SQLAlchemy 2.0.

The relational store holds admin accounts, quota policies, usage counters
and file metadata. Usage counters are maintained by triggers on the
``file_metadata`` table (see ``storage_gateway.models.triggers``).
"""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from storage_gateway.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class DatabaseManager:
    """
    Manages database engine and session lifecycle.

    One engine per process; sessions are per request.
    """

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def init(self, database_url: str | None = None) -> None:
        """
        Initialize database engine and session factory.

        Called during application startup (lifespan event).
        """
        logger.info("Initializing database connection...")

        engine_kwargs: dict = {"pool_pre_ping": True}
        if settings.is_development:
            engine_kwargs["poolclass"] = NullPool
            engine_kwargs["echo"] = settings.db_echo
        else:
            engine_kwargs["pool_size"] = settings.db_pool_size
            engine_kwargs["max_overflow"] = settings.db_max_overflow

        self._engine = create_async_engine(
            database_url or str(settings.database_url),
            **engine_kwargs,
        )

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        logger.info("Database connection initialized successfully")

    async def close(self) -> None:
        """Close database connections (lifespan shutdown)."""
        if self._engine:
            logger.info("Closing database connections...")
            await self._engine.dispose()
            logger.info("Database connections closed")

    @property
    def engine(self) -> AsyncEngine:
        """Get the database engine."""
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    async def create_schema(self) -> None:
        """Create all tables, plus the usage triggers for the active dialect."""
        # Importing the models registers tables and trigger DDL on Base.metadata
        import storage_gateway.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Yield a session with automatic rollback on error.

        Writes are committed explicitly by the component that performs them,
        so a failed metadata insert is detected before a response is sent.
        """
        if not self._session_factory:
            raise RuntimeError("Database not initialized. Call init() first.")

        async with self._session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise


# Global instance
db_manager = DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        from storage_gateway.core.database import get_db

        @router.get("/usage")
        async def usage(db: AsyncSession = Depends(get_db)):
            ...
    """
    async for session in db_manager.get_session():
        yield session
