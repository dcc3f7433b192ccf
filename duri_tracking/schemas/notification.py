"""Notification schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from duri_tracking.schemas.common import CamelModel


class Notification(CamelModel):
    id: str
    task_id: str
    task_title: str
    company_name: str
    text: str
    author: str = ""
    created_at: datetime
    is_new: bool = False


class NotificationListResponse(CamelModel):
    success: bool = True
    notifications: list[Notification] = Field(default_factory=list)
    new_count: int = 0
    last_checked: datetime
    message: Optional[str] = None


class WatermarkUpdate(CamelModel):
    user_id: Optional[str] = Field(None, description="User whose watermark moves")
    timestamp: Optional[datetime] = Field(None, description="Defaults to now")


class WatermarkResponse(CamelModel):
    success: bool = True
    user_id: str
    last_checked: datetime
