from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool
from bakerypos.core.config import settings
import logging

logger = logging.getLogger(__name__)

# Synchronous engine for development table creation and seed scripts
sync_engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    echo=settings.DEBUG and settings.ENVIRONMENT != "test"
)

# Async engine for application use
_async_engine_options = {"pool_pre_ping": True, "echo": settings.DEBUG and settings.ENVIRONMENT != "test"}
if settings.ENVIRONMENT == "test":
    _async_engine_options["poolclass"] = NullPool
else:
    _async_engine_options.update(pool_size=10, max_overflow=20)

async_engine = create_async_engine(settings.async_database_url, **_async_engine_options)

# Sync session for setup scripts
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=sync_engine)

# Async session for application
AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)

Base = declarative_base()


async def get_async_db() -> AsyncSession:
    """Async session dependency for endpoints."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            logger.error(f"Database error: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()
