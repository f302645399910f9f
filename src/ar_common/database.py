"""Async engine and the per-request session dependency.

Routers own the transaction: they commit once after the service call and roll
back on any exception. Services never commit; where part of a call must fail
without undoing the rest (one account or one trade in the system rebalance)
they open a savepoint with session.begin_nested().
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request; closing it discards any uncommitted work."""
    async with async_session_factory() as session:
        yield session
