"""PostgreSQL client lifecycle: connection check, schema creation, health."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from duri_tracking.database.base import Base, engine
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DatabaseClient:
    """Owns the async engine for the lifetime of the application."""

    def __init__(self, engine: AsyncEngine):
        """Initialize database client.

        Args:
            engine: SQLAlchemy async engine
        """
        self.engine = engine

    async def connect(self) -> bool:
        """Open one connection and run ``SELECT 1``.

        Raises:
            Exception: Propagates the driver error when the database is unreachable
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            LOGGER.error("Database connection failed", exc_info=True)
            raise

        LOGGER.info("Database connection successful")
        return True

    async def disconnect(self) -> None:
        """Dispose of the connection pool."""
        await self.engine.dispose()
        LOGGER.info("Database connection closed")

    async def create_tables(self) -> None:
        """Create missing tables from the ORM metadata without dropping any."""
        # Register models on Base.metadata before create_all.
        from duri_tracking.database import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        LOGGER.info(
            "Database tables created/verified",
            extra={"tables": sorted(Base.metadata.tables)},
        )

    async def health_check(self) -> dict[str, Any]:
        """Check database health.

        Returns:
            dict: ``status`` is ``healthy`` or ``unhealthy``
        """
        try:
            async with self.engine.connect() as conn:
                value = await conn.scalar(text("SELECT 1"))
        except Exception as e:
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "connected": False, "error": str(e)}

        return {
            "status": "healthy" if value == 1 else "unhealthy",
            "connected": True,
            "database": "postgresql",
        }


# Global database client instance
db_client = DatabaseClient(engine)


async def init_database(create_tables: bool = True) -> None:
    """Verify the connection and optionally create missing tables.

    Args:
        create_tables: Run ``create_all`` after connecting. Production
            deployments apply the Alembic migrations instead.
    """
    LOGGER.info("Initializing database connection...")
    await db_client.connect()
    if create_tables:
        await db_client.create_tables()
    LOGGER.info("Database initialization completed")


async def close_database() -> None:
    """Close database connection."""
    LOGGER.info("Closing database connection...")
    await db_client.disconnect()
