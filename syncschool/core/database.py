from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from syncschool.core.config import settings
from syncschool.models.base import Base


class Database:
    """
    Owns the process-wide engine and session factory.
    Created once when the application starts and disposed on shutdown.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = url or settings.DATABASE_URL
        engine_kwargs = {
            "echo": settings.DB_ECHO if echo is None else echo,
            "pool_pre_ping": True,
        }
        if not self.url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=settings.DB_POOL_SIZE,          # Maximum number of connections in the pool
                max_overflow=settings.DB_MAX_OVERFLOW,    # Connections allowed beyond pool_size
                pool_timeout=settings.DB_POOL_TIMEOUT,    # Seconds to wait on checkout
                pool_recycle=settings.DB_POOL_RECYCLE,    # Recycle connections after 30 minutes
            )
        self.engine: AsyncEngine = create_async_engine(self.url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session for work outside a request (startup seeding, scripts).
        Commits on success, rolls back on error.
        """
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def init_models(self) -> None:
        """Create missing tables. Migrations are the path for schema changes."""
        import syncschool.models  # noqa: F401  registers every model on the metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_models(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async database session.
    Usage: db: AsyncSession = Depends(get_db)
    """
    session = get_database(request).session_factory()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
