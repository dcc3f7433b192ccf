"""Repository for company data access operations."""

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from duri_tracking.database.models import Company
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)


class CompanyRepository:
    """Repository for Company entity operations.

    Writes are flushed, never committed; the calling service owns the
    transaction boundary.
    """

    def __init__(self, db_session: AsyncSession):
        """Initialize repository with database session.

        Args:
            db_session: SQLAlchemy async session
        """
        self.db_session = db_session

    async def list_companies(self, active_only: bool = False) -> list[Company]:
        stmt = select(Company).order_by(Company.name)
        if active_only:
            stmt = stmt.where(Company.active.is_(True))
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, company_id: UUID) -> Optional[Company]:
        stmt = select(Company).where(Company.id == company_id)
        result = await self.db_session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Optional[Company]:
        """Get company by exact canonical name."""
        stmt = select(Company).where(Company.name == name)
        result = await self.db_session.execute(stmt)
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str) -> bool:
        stmt = select(func.count()).select_from(Company).where(Company.slug == slug)
        return (await self.db_session.scalar(stmt) or 0) > 0

    async def create(self, name: str, display_name: str, slug: str, active: bool = True) -> Company:
        """Insert a company and flush to obtain its id.

        Returns:
            Created Company instance
        """
        company = Company(name=name, display_name=display_name, slug=slug, active=active)
        self.db_session.add(company)
        await self.db_session.flush()

        LOGGER.info(f"Created company: {company.name} ({company.slug})")
        return company

    async def reactivate(self, company: Company, display_name: str) -> Company:
        company.active = True
        company.display_name = display_name
        await self.db_session.flush()
        return company

    async def deactivate_all(self) -> int:
        """Mark every active company inactive in one statement.

        Returns:
            int: Number of rows changed
        """
        stmt = update(Company).where(Company.active.is_(True)).values(active=False)
        result = await self.db_session.execute(stmt)
        LOGGER.info("Deactivated active companies", extra={"rows": result.rowcount})
        return result.rowcount or 0

    async def count_by_active(self, active: bool) -> int:
        stmt = select(func.count()).select_from(Company).where(Company.active.is_(active))
        return await self.db_session.scalar(stmt) or 0

    def savepoint(self) -> AsyncSessionTransaction:
        """Nested transaction for one item of a batch write."""
        return self.db_session.begin_nested()

    async def commit(self) -> None:
        await self.db_session.commit()

    async def rollback(self) -> None:
        await self.db_session.rollback()
