"""Centralized dependency injection for the FastAPI application.

Factories build repositories and services per request. The long-lived
stores (response cache, notification watermarks, account states) are created in the
application lifespan and read from ``app.state``.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from duri_tracking.config import settings
from duri_tracking.database.session import get_async_session
from duri_tracking.repositories.company_repository import CompanyRepository
from duri_tracking.repositories.user_repository import UserRepository
from duri_tracking.services.cache import TTLCache, WatermarkStore
from duri_tracking.services.company_service import CompanyService
from duri_tracking.services.company_sync_service import CompanySyncService
from duri_tracking.services.identity_provider import IdentityProvider
from duri_tracking.services.notification_service import NotificationService
from duri_tracking.services.source.task_source_client import TaskSourceClient
from duri_tracking.services.tracking_service import TrackingService
from duri_tracking.services.user_service import UserService


def get_response_cache(request: Request) -> TTLCache:
    """Get the shared response cache created at startup."""
    return request.app.state.response_cache


def get_watermark_store(request: Request) -> WatermarkStore:
    """Get the notification watermark store created at startup."""
    return request.app.state.watermarks


async def get_task_source_client() -> TaskSourceClient:
    """Get task source client instance.

    Returns:
        TaskSourceClient: Client configured from settings
    """
    return TaskSourceClient.from_settings(settings)


async def get_identity_provider() -> IdentityProvider:
    return IdentityProvider.from_settings(settings)


async def get_company_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> CompanyRepository:
    """Get company repository instance.

    Args:
        db_session: Database session from dependency injection

    Returns:
        CompanyRepository: Repository for company CRUD operations
    """
    return CompanyRepository(db_session)


async def get_user_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> UserRepository:
    """Get user profile repository instance.

    Args:
        db_session: Database session from dependency injection

    Returns:
        UserRepository: Repository for user profile operations
    """
    return UserRepository(db_session)


async def get_company_service(
    repository: Annotated[CompanyRepository, Depends(get_company_repository)]
) -> CompanyService:
    return CompanyService(repository)


async def get_company_sync_service(
    repository: Annotated[CompanyRepository, Depends(get_company_repository)],
    source: Annotated[TaskSourceClient, Depends(get_task_source_client)],
) -> CompanySyncService:
    """Get company sync service instance.

    Returns:
        CompanySyncService: Replace-all company sweep
    """
    return CompanySyncService(repository, source)


async def get_tracking_service(
    source: Annotated[TaskSourceClient, Depends(get_task_source_client)],
    cache: Annotated[TTLCache, Depends(get_response_cache)],
) -> TrackingService:
    """Get tracking service instance.

    Returns:
        TrackingService: Read service backed by the shared response cache
    """
    return TrackingService(source, cache)


async def get_notification_service(
    tracking_service: Annotated[TrackingService, Depends(get_tracking_service)],
    source: Annotated[TaskSourceClient, Depends(get_task_source_client)],
    watermarks: Annotated[WatermarkStore, Depends(get_watermark_store)],
) -> NotificationService:
    return NotificationService(
        tracking_service,
        source,
        watermarks,
        lookback_hours=settings.notification_lookback_hours,
    )


async def get_user_service(
    repository: Annotated[UserRepository, Depends(get_user_repository)],
    company_service: Annotated[CompanyService, Depends(get_company_service)],
    identity: Annotated[IdentityProvider, Depends(get_identity_provider)],
) -> UserService:
    """Get user service instance.

    Returns:
        UserService: Service for user administration
    """
    return UserService(repository, company_service, identity)


def get_account_states(request: Request) -> TTLCache:
    """Get the per-session account state machines created at startup."""
    return request.app.state.account_states
