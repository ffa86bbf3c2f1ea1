from typing import AsyncGenerator

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from cloudwarden.core.config import get_settings

logger = structlog.get_logger()
settings = get_settings()

# Pool Configuration: Use NullPool for testing to avoid connection leaks across loops
pool_args: dict = {}
if settings.TESTING or settings.DATABASE_URL.startswith("sqlite"):
    from sqlalchemy.pool import NullPool
    pool_args["poolclass"] = NullPool
else:
    pool_args["pool_size"] = settings.DB_POOL_SIZE
    pool_args["max_overflow"] = settings.DB_MAX_OVERFLOW

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    **pool_args
)

# - expire_on_commit=False: objects remain accessible after commit without re-querying
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that provides a database session per request."""
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()
