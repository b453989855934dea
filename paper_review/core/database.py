"""Async SQLAlchemy engine, session factory and database client.

The Artifact Store runs on an embedded SQLite database through aiosqlite by
default. A PostgreSQL URL switches it to asyncpg with a connection pool.
"""

from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from paper_review.core.config import settings
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def build_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> AsyncEngine:
    """Create an async engine for the given URL (defaults to settings).

    In-memory SQLite URLs share a single connection so every session sees
    the same database.
    """
    url = url or settings.database_url
    echo = settings.db.echo if echo is None else echo

    if url.startswith("sqlite"):
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            return create_async_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        pool_size=settings.db.pool_size,
        max_overflow=settings.db.max_overflow,
        echo=echo,
        future=True,
    )


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()

async_session_maker = build_session_maker(engine)


class DatabaseClient:
    """Connection check and schema management for one engine."""

    def __init__(self, engine: AsyncEngine):
        """Initialize database client.

        Args:
            engine: SQLAlchemy async engine
        """
        self.engine = engine

    async def connect(self) -> None:
        """Test the database connection.

        Raises:
            SQLAlchemyError: If the database cannot be reached
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            LOGGER.info("Database connection successful", extra={"database": self.engine.dialect.name})
        except SQLAlchemyError:
            LOGGER.error("Database connection failed", exc_info=True)
            raise

    async def create_tables(self) -> None:
        """Create all Artifact Store tables that do not exist yet."""
        # Import models so they register on Base.metadata
        from paper_review.database import models  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            LOGGER.info("Database tables created/verified successfully")

        except SQLAlchemyError as e:
            LOGGER.error(
                "Failed to create database tables",
                exc_info=True,
                extra={"error": str(e)}
            )
            raise

    async def disconnect(self) -> None:
        """Dispose of the engine and its pooled connections."""
        await self.engine.dispose()
        LOGGER.info("Database connection closed")
