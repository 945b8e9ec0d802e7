"""
Database access object: owns the engine and its connection pool and hands out
one transactional session per unit of work.

Usage:
    async with database.session() as db:
        await reservation_service.create_reservation(db, ...)

The session commits when the block exits normally and rolls back on any
exception, so a failed request never leaves partial writes behind.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from zoo_api.core.config import Settings, get_settings
from zoo_api.core.logging import get_logger

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    def __init__(self, url: str, settings: Optional[Settings] = None, echo: bool = False):
        settings = settings or get_settings()
        self.url = url
        engine_kwargs = {"echo": echo, "pool_pre_ping": True}

        backend = make_url(url).get_backend_name()
        if backend != "sqlite":
            engine_kwargs.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
            )

        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        if backend == "sqlite":
            # SQLite ignores REFERENCES clauses unless asked per connection
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Provide a transactional scope, committing on success and rolling back otherwise."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.info("transaction_rolled_back", error_type=type(e).__name__)
            raise
        finally:
            await session.close()

    async def create_all(self) -> None:
        """Create every mapped table. Used by tests and local development; production uses alembic."""
        from zoo_api.db.base import Base
        import zoo_api.models  # noqa: F401 - register models on the metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        from zoo_api.db.base import Base
        import zoo_api.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
