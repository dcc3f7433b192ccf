"""Notification feed and watermark endpoints."""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, status

from duri_tracking.api.errors import http_error
from duri_tracking.core.auth import company_scope, get_current_user
from duri_tracking.dependencies import get_notification_service
from duri_tracking.schemas.auth import CurrentUser
from duri_tracking.schemas.notification import (
    NotificationListResponse,
    WatermarkResponse,
    WatermarkUpdate,
)
from duri_tracking.services.notification_service import NotificationService

router = APIRouter()


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="Recent client comments",
    description="Comments on the company's trackings, flagged as new after the caller's watermark",
    operation_id="list_notifications",
)
async def list_notifications(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
    user_id: Optional[str] = None,
    company: Optional[str] = None,
    last_checked: Optional[datetime] = None,
) -> NotificationListResponse:
    """List notifications. Reading never moves the watermark."""
    owner = user_id if current_user.is_admin and user_id else str(current_user.id)
    return await notification_service.list_notifications(
        owner, company_scope(current_user, company), last_checked
    )


@router.post(
    "",
    response_model=WatermarkResponse,
    summary="Mark notifications as read",
    operation_id="mark_notifications_checked",
)
async def mark_checked(
    payload: WatermarkUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
) -> WatermarkResponse:
    """Move the caller's watermark to ``timestamp`` (default now).

    Raises:
        HTTPException: 400 without ``userId``; 403 when a non-admin moves
            someone else's watermark
    """
    if not payload.user_id:
        raise http_error(status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "userId é obrigatório")
    if payload.user_id != str(current_user.id) and not current_user.is_admin:
        raise http_error(
            status.HTTP_403_FORBIDDEN, "FORBIDDEN", "Não é permitido alterar outro usuário"
        )
    return notification_service.mark_checked(payload.user_id, payload.timestamp)
