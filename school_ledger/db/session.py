from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from school_ledger.core.config import settings

# Idle connections may be closed by the database; ping before use and recycle after
# DATABASE_POOL_RECYCLE seconds.
engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,
    pool_recycle=settings.database_pool_recycle,
)

# Ledger services read the arrear back after commit to build the response
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; each ledger operation commits or rolls back inside it."""
    async with AsyncSessionLocal() as session:
        yield session
