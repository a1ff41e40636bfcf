"""
Database configuration and session management
"""

from datetime import datetime, timezone

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
import structlog

from housekeeping.core.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

# Create async engine
async_engine = create_async_engine(
    settings.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://"),
    echo=False,
    future=True,
)

# Create async session factory
async_session_maker = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp, the format every table stores"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Read a stored timestamp as aware UTC

    SQLite drops the offset on the way back, so naive values are taken as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day() -> datetime:
    """Midnight of the current UTC day"""
    return utcnow().replace(hour=0, minute=0, second=0, microsecond=0)


async def init_db():
    """Initialize database tables"""
    # Register every table on the metadata before create_all
    import housekeeping.models  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables created")


async def get_session():
    """Dependency to get database session"""
    async with async_session_maker() as session:
        yield session
