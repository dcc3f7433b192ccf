"""Comment notifications for a company's trackings."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from duri_tracking.core.exceptions import AppError
from duri_tracking.schemas.notification import (
    Notification,
    NotificationListResponse,
    WatermarkResponse,
)
from duri_tracking.services.cache import WatermarkStore
from duri_tracking.services.source.task_source_client import TaskSourceClient
from duri_tracking.services.tracking_service import TrackingService
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

MAX_NOTIFICATIONS = 50


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class NotificationService:
    """Builds the notification feed and manages per-user watermarks.

    Reading the feed never moves a watermark; only ``mark_checked`` does.
    """

    def __init__(
        self,
        tracking_service: TrackingService,
        source: TaskSourceClient,
        watermarks: WatermarkStore,
        lookback_hours: int = 24,
        limit: int = MAX_NOTIFICATIONS,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.tracking_service = tracking_service
        self.source = source
        self.watermarks = watermarks
        self.lookback = timedelta(hours=lookback_hours)
        self.limit = limit
        self._now = now

    def resolve_watermark(
        self, user_id: Optional[str], last_checked: Optional[datetime] = None
    ) -> datetime:
        """Explicit ``last_checked``, else the stored mark, else the lookback window."""
        if last_checked is not None:
            return _as_utc(last_checked)
        if user_id:
            stored = self.watermarks.get(user_id)
            if stored is not None:
                return _as_utc(stored)
        return self._now() - self.lookback

    async def list_notifications(
        self,
        user_id: Optional[str],
        company: Optional[str],
        last_checked: Optional[datetime] = None,
    ) -> NotificationListResponse:
        """Collect client comments on ``company``'s trackings, newest first.

        Upstream failures produce an empty, ``success=False`` feed instead of
        an error.
        """
        watermark = self.resolve_watermark(user_id, last_checked)

        if not self.source.is_configured:
            return NotificationListResponse(
                success=False,
                last_checked=watermark,
                message="Fonte de tarefas não configurada",
            )

        try:
            trackings = await self.tracking_service.trackings_for_company(company)
            comments = await self.source.fetch_comments_batched(
                [t.source_id for t in trackings]
            )
        except AppError as e:
            LOGGER.warning(
                "Notifications unavailable",
                extra={"company": company, "error": str(e)},
            )
            return NotificationListResponse(
                success=False, last_checked=watermark, message=e.message
            )

        notifications: list[Notification] = []
        for tracking in trackings:
            for comment in comments.get(tracking.source_id, []):
                if comment.created_at is None:
                    continue
                created_at = _as_utc(comment.created_at)
                notifications.append(
                    Notification(
                        id=comment.id or f"{tracking.source_id}-{created_at.isoformat()}",
                        task_id=tracking.source_id,
                        task_title=tracking.title,
                        company_name=tracking.company_name,
                        text=comment.text,
                        author=comment.author,
                        created_at=created_at,
                        is_new=created_at > watermark,
                    )
                )

        notifications.sort(key=lambda n: n.created_at, reverse=True)
        notifications = notifications[: self.limit]
        return NotificationListResponse(
            notifications=notifications,
            new_count=sum(1 for n in notifications if n.is_new),
            last_checked=watermark,
        )

    def mark_checked(self, user_id: str, timestamp: Optional[datetime] = None) -> WatermarkResponse:
        mark = self.watermarks.set(user_id, _as_utc(timestamp) if timestamp else None)
        LOGGER.debug("Watermark moved", extra={"user_id": user_id})
        return WatermarkResponse(user_id=user_id, last_checked=mark)
