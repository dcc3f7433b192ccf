"""Tracking dashboard endpoints.

All variants share one ``TrackingService``; the variant only selects the
shape of the response.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from duri_tracking.api.errors import to_http_exception
from duri_tracking.core.auth import company_scope, get_current_user
from duri_tracking.core.exceptions import AppError, ValidationError
from duri_tracking.dependencies import get_tracking_service
from duri_tracking.schemas.auth import CurrentUser
from duri_tracking.schemas.common import ErrorDetail
from duri_tracking.schemas.tracking import (
    AttachmentListResponse,
    CommentListResponse,
    Tracking,
    TrackingListResponse,
)
from duri_tracking.services.tracking_service import TrackingFilters, TrackingService
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "/comments",
    response_model=CommentListResponse,
    summary="Client comments of a task",
    description="Stories whose text starts with the client marker, newest first",
    operation_id="list_task_comments",
)
async def list_comments(
    task_id: Annotated[str, Query(min_length=1)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    tracking_service: Annotated[TrackingService, Depends(get_tracking_service)],
) -> CommentListResponse:
    try:
        if not current_user.is_admin:
            scope = company_scope(current_user, None)
            await tracking_service.get_tracking(task_id, scope)
        comments = await tracking_service.get_comments(task_id)
    except AppError as e:
        raise to_http_exception(e) from e
    return CommentListResponse(task_id=task_id, comments=comments)


@router.get(
    "/attachments",
    response_model=AttachmentListResponse,
    responses={400: {"description": "Missing task_id", "model": ErrorDetail}},
    summary="Files attached to a task",
    description="Attachments newest first, with file type and readable size",
    operation_id="list_task_attachments",
)
async def list_attachments(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    tracking_service: Annotated[TrackingService, Depends(get_tracking_service)],
    task_id: Optional[str] = None,
) -> AttachmentListResponse:
    """List the attachments of one task the caller may see.

    Raises:
        HTTPException: 400 when ``task_id`` is missing or blank
    """
    task_id = (task_id or "").strip()
    try:
        if not task_id:
            raise ValidationError("task_id é obrigatório")
        if not current_user.is_admin:
            scope = company_scope(current_user, None)
            await tracking_service.get_tracking(task_id, scope)
        attachments = await tracking_service.get_attachments(task_id)
    except AppError as e:
        raise to_http_exception(e) from e
    return AttachmentListResponse(
        task_id=task_id,
        total=len(attachments),
        total_size=sum(a.size for a in attachments),
        attachments=attachments,
    )


@router.get(
    "/trackings/{tracking_id}",
    response_model=Tracking,
    responses={404: {"model": ErrorDetail}},
    summary="Single tracking",
    operation_id="get_tracking",
)
async def get_tracking(
    tracking_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    tracking_service: Annotated[TrackingService, Depends(get_tracking_service)],
    company: Optional[str] = None,
) -> Tracking:
    """Get one tracking by slug or source id within the caller's company."""
    scope = company_scope(current_user, company)
    try:
        return await tracking_service.get_tracking(tracking_id, scope)
    except AppError as e:
        raise to_http_exception(e) from e


@router.get(
    "/{variant}",
    response_model=TrackingListResponse,
    responses={
        401: {"description": "Task source not configured", "model": ErrorDetail},
        404: {"description": "Unknown variant or project", "model": ErrorDetail},
    },
    summary="List trackings",
    description=(
        "Variants: unified/trackings (data and metrics), enhanced (adds custom "
        "field analysis), unmatched (tasks without an attributable company)"
    ),
    operation_id="list_trackings",
)
async def list_trackings(
    variant: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    tracking_service: Annotated[TrackingService, Depends(get_tracking_service)],
    company: Optional[str] = None,
    status: Optional[str] = None,
    exporter: Optional[str] = None,
    product: Optional[str] = None,
    agency: Optional[str] = None,
    search: Optional[str] = None,
    refresh: bool = False,
) -> TrackingListResponse:
    """List trackings for one dashboard variant.

    Transient source failures are reported in the body with
    ``success=false`` rather than as an HTTP error.

    Raises:
        HTTPException: 401 when the source token is missing, 404 for an
            unknown variant or project
    """
    scope = company_scope(current_user, company)
    filters = TrackingFilters(
        status=status, exporter=exporter, product=product, agency=agency, search=search
    )
    try:
        response = await tracking_service.list_trackings(variant, scope, filters, refresh)
    except AppError as e:
        LOGGER.warning(
            "Tracking list failed",
            extra={"variant": variant, "company": scope, "error": str(e)},
        )
        raise to_http_exception(e) from e

    LOGGER.info(
        "Tracking list served",
        extra={"variant": variant, "company": scope, "kept": response.meta.kept},
    )
    return response
