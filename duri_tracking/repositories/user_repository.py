"""Repository for user profile data access operations.

This module provides data access operations for user management,
following the repository pattern for clean separation of concerns.
"""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from duri_tracking.database.models import UserProfile
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)


class UserRepository:
    """Repository for UserProfile entity operations."""

    def __init__(self, db_session: AsyncSession):
        """Initialize repository with database session.

        Args:
            db_session: SQLAlchemy async session
        """
        self.db_session = db_session

    async def get_by_id(self, user_id: UUID) -> Optional[UserProfile]:
        """Get user by ID.

        Args:
            user_id: Profile ID (same as the identity provider's user ID)

        Returns:
            UserProfile instance or None if not found
        """
        stmt = select(UserProfile).where(UserProfile.id == user_id)
        result = await self.db_session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[UserProfile]:
        """Get user by email address, case-insensitively.

        Args:
            email: User email address

        Returns:
            UserProfile instance or None if not found
        """
        stmt = select(UserProfile).where(func.lower(UserProfile.email) == email.strip().lower())
        result = await self.db_session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_users(self) -> list[UserProfile]:
        stmt = select(UserProfile).order_by(UserProfile.created_at.desc())
        result = await self.db_session.execute(stmt)
        return list(result.scalars().unique().all())

    async def create(
        self,
        user_id: UUID,
        email: str,
        full_name: str,
        role: str,
        company_id: UUID,
    ) -> UserProfile:
        """Create a new user profile.

        Returns:
            Created UserProfile instance
        """
        user = UserProfile(
            id=user_id,
            email=email.strip().lower(),
            full_name=full_name.strip(),
            role=role,
            company_id=company_id,
            active=True,
        )
        self.db_session.add(user)
        await self.db_session.flush()
        await self.db_session.refresh(user, ["company"])

        LOGGER.info(f"Created user: {user.id} ({user.email})")
        return user

    async def update(self, user: UserProfile, changes: dict[str, Any]) -> UserProfile:
        """Apply field changes to a loaded profile.

        Args:
            user: Profile to modify
            changes: Column name -> new value

        Returns:
            Updated UserProfile instance
        """
        for name, value in changes.items():
            setattr(user, name, value)
        await self.db_session.flush()
        if "company_id" in changes:
            await self.db_session.refresh(user, ["company"])

        LOGGER.info(f"Updated user: {user.id}", extra={"fields": sorted(changes)})
        return user

    async def delete(self, user: UserProfile) -> None:
        await self.db_session.delete(user)
        await self.db_session.flush()
        LOGGER.info(f"Deleted user: {user.id}")

    async def count_active_admins(self) -> int:
        stmt = (
            select(func.count())
            .select_from(UserProfile)
            .where(UserProfile.role == "admin", UserProfile.active.is_(True))
        )
        return await self.db_session.scalar(stmt) or 0

    async def commit(self) -> None:
        await self.db_session.commit()

    async def rollback(self) -> None:
        await self.db_session.rollback()
