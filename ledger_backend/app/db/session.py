"""
Database session configuration.

One async engine per process and a session per request. Accounting
services only flush inside the caller's transaction; endpoints commit,
and a request that fails is rolled back before its session closes.
"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from ledger_backend.app.core.config import settings


def engine_options(database_url: str) -> dict:
    """Keyword arguments for `create_async_engine` suited to the backend."""
    options = {"echo": settings.db_echo, "future": True}
    # SQLite pools (local development) take no sizing
    if make_url(database_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
        )
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """FastAPI dependency yielding a session for one request."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
