"""HTTP client for the task source (Asana REST API)."""

import asyncio
from typing import Any, Optional, Sequence

import httpx
from httpx import HTTPStatusError, TimeoutException, TransportError

from duri_tracking.config import PLACEHOLDER_TOKENS, Settings
from duri_tracking.core.exceptions import (
    APIClientError,
    APITimeoutError,
    AppError,
    ConfigurationError,
    NotFoundError,
    RateLimitError,
)
from duri_tracking.schemas.tracking import RawExternalTask, TaskAttachment, TaskComment
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

TASK_OPT_FIELDS = ",".join(
    [
        "name",
        "notes",
        "completed",
        "assignee.name",
        "due_on",
        "created_at",
        "modified_at",
        "parent.resource_type",
        "custom_fields.name",
        "custom_fields.display_value",
        "custom_fields.text_value",
        "custom_fields.number_value",
        "custom_fields.enum_value.name",
        "custom_fields.multi_enum_values.name",
        "custom_fields.date_value",
    ]
)
STORY_OPT_FIELDS = "text,created_at,created_by.name"
ATTACHMENT_OPT_FIELDS = "name,download_url,size,content_type,created_at"

# Comments addressed to clients start with this marker.
CLIENT_COMMENT_MARKER = "&"


class TaskSourceClient:
    """Read-only client for the operational project in the task source.

    Handles bearer authentication, sequential offset pagination bounded by a
    page ceiling, retry with exponential backoff for rate limits, 5xx,
    timeouts and network failures, and bounded fan-out for per-task comments.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = "https://app.asana.com/api/1.0",
        timeout: float = 10.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        page_limit: int = 100,
        max_pages: int = 50,
        comment_batch_size: int = 5,
        project_keyword: str = "operacional",
        workspace_gid: str = "",
        project_gid: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            access_token: Bearer token; blank or placeholder means "not configured"
            base_url: API root
            timeout: Per-request timeout in seconds
            max_retries: Attempts per request, including the first one
            retry_delay: Base delay for exponential backoff
            page_limit: Page size requested from the API
            max_pages: Hard ceiling on pages fetched per sweep
            comment_batch_size: Comment requests issued concurrently
            project_keyword: Substring identifying the tracked project
            workspace_gid: Optional workspace override
            project_gid: Optional project override
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.access_token = (access_token or "").strip()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.page_limit = page_limit
        self.max_pages = max_pages
        self.comment_batch_size = max(1, comment_batch_size)
        self.project_keyword = project_keyword.lower()
        self.workspace_gid = workspace_gid
        self.project_gid = project_gid
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "TaskSourceClient":
        return cls(
            access_token=settings.asana_access_token,
            base_url=settings.asana_base_url,
            timeout=settings.source_timeout,
            max_retries=settings.source_max_retries,
            retry_delay=settings.retry_delay,
            page_limit=settings.source_page_limit,
            max_pages=settings.source_max_pages,
            comment_batch_size=settings.comment_batch_size,
            project_keyword=settings.asana_project_keyword,
            workspace_gid=settings.asana_workspace_gid,
            project_gid=settings.asana_project_gid,
        )

    @property
    def is_configured(self) -> bool:
        return self.access_token not in PLACEHOLDER_TOKENS

    def _ensure_configured(self) -> None:
        if not self.is_configured:
            raise ConfigurationError("Task source access token is not configured")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Accept": "application/json",
            },
            transport=self._transport,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_tasks(self) -> list[RawExternalTask]:
        """Fetch every task of the operational project.

        Returns:
            list[RawExternalTask]: Tasks in source order

        Raises:
            ConfigurationError: Token missing or rejected
            NotFoundError: No project matches the configured keyword
            APIClientError: Source failure after retries
        """
        self._ensure_configured()
        async with self._client() as client:
            project_gid = await self._resolve_project_gid(client)
            payloads = await self._paginate(
                client,
                "/tasks",
                {"project": project_gid, "opt_fields": TASK_OPT_FIELDS},
            )

        tasks = [RawExternalTask.from_payload(p) for p in payloads if isinstance(p, dict)]
        LOGGER.info(
            "Fetched tasks from source",
            extra={"project_gid": project_gid, "task_count": len(tasks)},
        )
        return tasks

    async def fetch_comments(self, task_id: str) -> list[TaskComment]:
        """Fetch the client-facing comments of one task, newest first."""
        self._ensure_configured()
        async with self._client() as client:
            return await self._comments(client, task_id)

    async def fetch_comments_batched(self, task_ids: Sequence[str]) -> dict[str, list[TaskComment]]:
        """Fetch comments for many tasks, ``comment_batch_size`` at a time.

        Each batch completes before the next one starts. A task whose comments
        cannot be fetched maps to an empty list.
        """
        self._ensure_configured()
        results: dict[str, list[TaskComment]] = {}
        async with self._client() as client:
            for start in range(0, len(task_ids), self.comment_batch_size):
                batch = task_ids[start:start + self.comment_batch_size]
                fetched = await asyncio.gather(
                    *(self._comments_or_empty(client, task_id) for task_id in batch)
                )
                results.update(zip(batch, fetched))
        return results

    async def fetch_attachments(self, task_id: str) -> list[TaskAttachment]:
        """Fetch the files attached to one task, newest first.

        Args:
            task_id: Source task gid

        Returns:
            list[TaskAttachment]: Attachments with derived file type and size label

        Raises:
            ConfigurationError: Token missing or rejected
            NotFoundError: Unknown task
            APIClientError: Source failure after retries
        """
        self._ensure_configured()
        async with self._client() as client:
            payloads = await self._paginate(
                client,
                "/attachments",
                {"parent": task_id, "opt_fields": ATTACHMENT_OPT_FIELDS},
            )

        attachments = [TaskAttachment.from_payload(p) for p in payloads if isinstance(p, dict)]
        attachments.sort(
            key=lambda a: a.created_at.timestamp() if a.created_at else 0.0, reverse=True
        )
        LOGGER.info(
            "Fetched task attachments",
            extra={"task_id": task_id, "attachment_count": len(attachments)},
        )
        return attachments

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _resolve_project_gid(self, client: httpx.AsyncClient) -> str:
        if self.project_gid:
            return self.project_gid

        workspace_gid = self.workspace_gid
        if not workspace_gid:
            workspaces = (await self._request(client, "/workspaces")).get("data") or []
            if not workspaces:
                raise NotFoundError("No workspace available for the configured token")
            workspace_gid = workspaces[0]["gid"]

        projects = await self._paginate(
            client, "/projects", {"workspace": workspace_gid, "opt_fields": "name"}
        )
        for project in projects:
            if self.project_keyword in (project.get("name") or "").lower():
                return project["gid"]

        raise NotFoundError(
            f"No project containing '{self.project_keyword}' in workspace {workspace_gid}"
        )

    async def _paginate(
        self, client: httpx.AsyncClient, path: str, params: dict[str, Any]
    ) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        query = {**params, "limit": self.page_limit}
        pages = 0

        while True:
            body = await self._request(client, path, query)
            items.extend(body.get("data") or [])
            pages += 1

            offset = (body.get("next_page") or {}).get("offset")
            if not offset:
                break
            if pages >= self.max_pages:
                LOGGER.warning(
                    "Page ceiling reached, stopping pagination",
                    extra={"path": path, "pages": pages, "items": len(items)},
                )
                break
            query["offset"] = offset

        return items

    async def _comments(self, client: httpx.AsyncClient, task_id: str) -> list[TaskComment]:
        body = await self._request(
            client, f"/tasks/{task_id}/stories", {"opt_fields": STORY_OPT_FIELDS}
        )
        comments = []
        for story in body.get("data") or []:
            text = (story.get("text") or "").strip()
            if not text.startswith(CLIENT_COMMENT_MARKER):
                continue
            author = story.get("created_by") or {}
            comments.append(
                TaskComment(
                    id=str(story.get("gid") or ""),
                    text=text[len(CLIENT_COMMENT_MARKER):].strip(),
                    created_at=story.get("created_at"),
                    author=(author.get("name") or "") if isinstance(author, dict) else "",
                )
            )
        comments.sort(key=lambda c: c.created_at.timestamp() if c.created_at else 0.0, reverse=True)
        return comments

    async def _comments_or_empty(self, client: httpx.AsyncClient, task_id: str) -> list[TaskComment]:
        try:
            return await self._comments(client, task_id)
        except AppError as e:
            LOGGER.warning(
                "Failed to fetch comments",
                extra={"task_id": task_id, "error": str(e)},
            )
            return []

    async def _request(
        self, client: httpx.AsyncClient, path: str, params: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """GET ``path`` with retry logic.

        Raises:
            ConfigurationError: 401/403 from the source
            NotFoundError: 404 from the source
            RateLimitError: Still rate limited after retries
            APITimeoutError: Timed out on every attempt
            APIClientError: Any other failure
        """
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                response = await client.get(path, params=params)
                response.raise_for_status()
                return response.json()

            except HTTPStatusError as e:
                status_code = e.response.status_code
                LOGGER.warning(
                    f"Source HTTP error (Attempt {attempt + 1}/{self.max_retries})",
                    extra={"path": path, "status_code": status_code},
                )
                if status_code in (401, 403):
                    raise ConfigurationError(
                        f"Task source rejected the access token ({status_code})", e
                    ) from e
                if status_code == 404:
                    raise NotFoundError(f"Source resource not found: {path}", e) from e
                if 400 <= status_code < 500 and status_code != 429:
                    raise APIClientError(f"Source client error {status_code}", e) from e
                if last_attempt:
                    if status_code == 429:
                        raise RateLimitError("Source rate limit persisted after retries", e) from e
                    raise APIClientError(f"Source error {status_code} after retries", e) from e

            except TimeoutException as e:
                LOGGER.warning(
                    f"Source timeout (Attempt {attempt + 1}/{self.max_retries})",
                    extra={"path": path},
                )
                if last_attempt:
                    raise APITimeoutError(
                        f"Source timed out after {self.max_retries} attempts", e
                    ) from e

            except TransportError as e:
                LOGGER.warning(
                    f"Source network error (Attempt {attempt + 1}/{self.max_retries})",
                    extra={"path": path, "error": str(e)},
                )
                if last_attempt:
                    raise APIClientError(f"Source unreachable: {e}", e) from e

            except ValueError as e:
                raise APIClientError(f"Source returned invalid JSON for {path}", e) from e

            await self._wait_before_retry(attempt)

        raise APIClientError(f"Failed to call source {path} after {self.max_retries} attempts")

    async def _wait_before_retry(self, attempt: int) -> None:
        """Exponential backoff wait."""
        await asyncio.sleep(self.retry_delay * (2 ** attempt))
