"""Database engine setup: shared metadata and the aiosqlite engine."""

from pathlib import Path
from typing import Optional

from sqlalchemy import MetaData, event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from mailsync.core.database.config import DatabaseConfig, get_config
from mailsync.utils.logging import get_logger

logger = get_logger(__name__)

# Shared metadata for all tables
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def create_engine(
    db_path: Path,
    config: Optional[DatabaseConfig] = None,
) -> AsyncEngine:
    """Create async SQLAlchemy engine for a SQLite file.

    Args:
        db_path: Path to SQLite database file
        config: Database configuration (uses singleton if None)

    Returns:
        Configured async engine
    """
    if config is None:
        config = get_config()

    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        echo=config.echo,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_recycle=config.pool_recycle,
        pool_pre_ping=True,
        connect_args={
            "timeout": config.query_timeout,
            "check_same_thread": False,
        },
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Set SQLite pragmas for concurrent readers and safe writes."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA temp_store=MEMORY")
        cursor.close()

    logger.info(
        f"Database engine created: {db_path} "
        f"(pool_size={config.pool_size}, max_overflow={config.max_overflow})"
    )

    return engine


async def dispose_engine(engine: AsyncEngine) -> None:
    """Dispose of engine and close all connections."""
    await engine.dispose()
    logger.info("Database engine disposed")
