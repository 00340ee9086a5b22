"""Engine manager wrapping SQLAlchemy connection pool."""

import asyncio
from pathlib import Path
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from mailsync.core.database.base import create_engine, dispose_engine, metadata
from mailsync.core.database.config import DatabaseConfig, get_config
from mailsync.utils.errors import DatabaseConnectionError
from mailsync.utils.logging import get_logger
from mailsync.utils.paths import DATABASE_PATH

logger = get_logger(__name__)


class EngineManager:
    """Manages SQLAlchemy async engine lifecycle and schema."""

    def __init__(
        self,
        db_path: Optional[Path] = None,
        config: Optional[DatabaseConfig] = None,
    ) -> None:
        """Initialise engine manager.

        Args:
            db_path: Path to SQLite database file (defaults to DATABASE_PATH)
            config: Database configuration (uses singleton if None)
        """
        self.db_path = db_path or DATABASE_PATH
        self.config = config or get_config()

        self._engine: Optional[AsyncEngine] = None
        self._schema_ready = False
        self._lock = asyncio.Lock()

    async def get_engine(self) -> AsyncEngine:
        """Get or create the async engine, creating missing tables once.

        Returns:
            AsyncEngine instance with connection pooling

        Raises:
            DatabaseConnectionError: If engine creation fails
        """
        async with self._lock:
            if self._engine is None:
                try:
                    self._engine = create_engine(self.db_path, config=self.config)
                    logger.info(f"Engine initialised: {self.db_path}")
                except Exception as e:
                    raise DatabaseConnectionError(
                        "Failed to create database engine",
                        details={"db_path": str(self.db_path), "error": str(e)},
                    ) from e

            if not self._schema_ready:
                try:
                    async with self._engine.begin() as conn:
                        await conn.run_sync(metadata.create_all)
                except Exception as e:
                    raise DatabaseConnectionError(
                        "Failed to create database schema",
                        details={"db_path": str(self.db_path), "error": str(e)},
                    ) from e
                self._schema_ready = True

        return self._engine

    async def close(self) -> None:
        """Dispose of engine and close all pooled connections."""
        if self._engine:
            try:
                await dispose_engine(self._engine)
                self._engine = None
                self._schema_ready = False
                logger.info("Engine disposed")
            except Exception as e:
                logger.error(f"Error disposing engine: {e}")

    async def health_check(self) -> bool:
        """Run ``SELECT 1`` against the database.

        Returns:
            True if healthy, False otherwise
        """
        try:
            engine = await self.get_engine()
            async with engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                row = result.fetchone()
            healthy = row is not None and row[0] == 1

        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

        if healthy:
            logger.debug("Database health check: OK")
        else:
            logger.warning("Database health check: FAILED")
        return healthy

    # Context manager support
    async def __aenter__(self):
        """Context manager entry."""
        await self.get_engine()

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Context manager exit."""
        try:
            await self.close()
        except Exception as e:
            if exc_type is None:
                raise
            logger.error(f"Error closing engine: {e}")
        return False
