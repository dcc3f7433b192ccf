"""Database session dependency for FastAPI."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from duri_tracking.database.base import async_session_maker


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session.

    Services commit explicitly; anything left uncommitted when the request
    fails is rolled back here.

    Yields:
        AsyncSession: Database session
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
