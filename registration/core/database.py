"""Registration service database configuration - async SQLAlchemy."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from registration.core.config import Settings, settings


def build_engine(config: Settings) -> AsyncEngine:
    """Create the async engine with pool settings from configuration.

    SQLite gets no pool sizing; its dialect picks its own pool class.
    """
    kwargs: dict[str, Any] = {
        "pool_pre_ping": True,
        # Only echo SQL when debug is explicitly enabled
        "echo": config.debug and config.log_level == "DEBUG",
    }
    if not config.is_sqlite:
        kwargs.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_timeout=config.db_pool_timeout,
            pool_recycle=config.db_pool_recycle,
        )
    return create_async_engine(config.database_url, **kwargs)


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings)
async_session_maker = build_session_maker(engine)

# Base class for models
Base = declarative_base()


async def create_tables(bind: AsyncEngine) -> None:
    """Create all tables registered on Base (no migration tooling)."""
    # Import models so they register with Base.metadata
    import registration.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db_connection(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> bool:
    """Check if database is reachable."""
    maker = session_maker or async_session_maker
    try:
        async with maker() as session:
            await session.execute(text("SELECT 1"))
            return True
    except (OSError, ConnectionError) as e:
        from registration.core.logging import get_logger

        get_logger("database").debug(f"Database connection check failed: {e}")
        return False
    except Exception as e:
        from registration.core.logging import get_logger

        get_logger("database").warning(f"Unexpected error checking database connection: {e}")
        return False
