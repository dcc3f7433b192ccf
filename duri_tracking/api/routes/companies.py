"""Company synchronization and administration endpoints (admin only)."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from duri_tracking.api.errors import to_http_exception
from duri_tracking.core.auth import require_admin
from duri_tracking.core.exceptions import AppError
from duri_tracking.dependencies import (
    get_company_service,
    get_company_sync_service,
    get_response_cache,
)
from duri_tracking.schemas.auth import CurrentUser
from duri_tracking.schemas.common import ErrorDetail
from duri_tracking.schemas.company import (
    CompanyCreate,
    CompanyListResponse,
    CompanyResponse,
    SyncReport,
    SyncStatus,
)
from duri_tracking.services.cache import TTLCache
from duri_tracking.services.company_service import CompanyService
from duri_tracking.services.company_sync_service import CompanySyncService
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/sync-companies",
    response_model=SyncReport,
    responses={
        401: {"description": "Task source not configured", "model": ErrorDetail},
        500: {"description": "Sweep rolled back", "model": ErrorDetail},
    },
    summary="Synchronize companies from task titles",
    description="Deactivate every company, then reactivate or create one per company found in the source",
    operation_id="sync_companies",
)
async def sync_companies(
    current_user: Annotated[CurrentUser, Depends(require_admin)],
    sync_service: Annotated[CompanySyncService, Depends(get_company_sync_service)],
    cache: Annotated[TTLCache, Depends(get_response_cache)],
) -> SyncReport:
    """Run the replace-all company sweep.

    Raises:
        HTTPException: When the source cannot be read (nothing is written) or
            the sweep transaction fails
    """
    LOGGER.info("Company sync requested", extra={"user_id": str(current_user.id)})
    try:
        report = await sync_service.sync()
    except AppError as e:
        LOGGER.error("Company sync failed", extra={"error": str(e)})
        raise to_http_exception(e) from e

    cache.invalidate()
    return report


@router.get(
    "/sync-companies",
    response_model=SyncStatus,
    summary="Company synchronization status",
    operation_id="get_company_sync_status",
)
async def sync_status(
    current_user: Annotated[CurrentUser, Depends(require_admin)],
    sync_service: Annotated[CompanySyncService, Depends(get_company_sync_service)],
) -> SyncStatus:
    return await sync_service.status()


@router.get(
    "/admin/companies",
    response_model=CompanyListResponse,
    summary="List active companies",
    description="Provisions the default company when no active company exists",
    operation_id="list_companies",
)
async def list_companies(
    current_user: Annotated[CurrentUser, Depends(require_admin)],
    company_service: Annotated[CompanyService, Depends(get_company_service)],
) -> CompanyListResponse:
    companies, created_default = await company_service.list_active()
    return CompanyListResponse(companies=companies, created_default=created_default)


@router.post(
    "/admin/companies",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Duplicate name", "model": ErrorDetail}},
    summary="Create company",
    operation_id="create_company",
)
async def create_company(
    payload: CompanyCreate,
    current_user: Annotated[CurrentUser, Depends(require_admin)],
    company_service: Annotated[CompanyService, Depends(get_company_service)],
) -> CompanyResponse:
    try:
        company = await company_service.create(payload)
    except AppError as e:
        raise to_http_exception(e) from e

    LOGGER.info("Company created", extra={"company": company.name})
    return company
