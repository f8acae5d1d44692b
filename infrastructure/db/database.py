"""
Async SQLAlchemy engine and session factory for the installment store.

The URL comes from DATABASE_URL, or is assembled from the DB_* variables.
Tables are created at startup by init_models(); there is no migration tool.
"""
import os
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Models must be registered on Base.metadata before create_all runs
from infrastructure.db.models import Base, InstallmentModel  # noqa: F401


def database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "postgres")
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")
    name = os.getenv("DB_NAME", "installments")
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{name}"


DATABASE_URL = database_url()

engine = create_async_engine(
    DATABASE_URL,
    echo=os.getenv("DB_ECHO", "") == "1",
    pool_pre_ping=True,
)

# Objects stay usable after commit; the store converts them to entities anyway
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_models() -> None:
    """Create the installment table and its indexes when missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request, rolled back if the handler fails."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
