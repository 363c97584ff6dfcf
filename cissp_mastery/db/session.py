"""Database connection and session management."""
import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from cissp_mastery.core.config import Settings
from cissp_mastery.db.base import Base

logger = logging.getLogger(__name__)


class Database:
    """Engine plus session factory, built once per application."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.sessionmaker = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        engine_kwargs = {"echo": settings.db_echo}
        if settings.database_url.startswith("postgresql"):
            engine_kwargs.update(pool_pre_ping=True, pool_recycle=300)
        return cls(create_async_engine(settings.database_url, **engine_kwargs))

    async def create_all(self) -> None:
        """Create tables directly; production schemas are managed out of band."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting a request-scoped database session."""
    database: Database = request.app.state.db
    async with database.sessionmaker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
