"""Tracking read service shared by every dashboard variant."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from duri_tracking.core.exceptions import APIClientError, NotFoundError
from duri_tracking.schemas.tracking import (
    RawExternalTask,
    TaskAttachment,
    TaskComment,
    Tracking,
    TrackingListResponse,
    TrackingMeta,
    TrackingMetrics,
)
from duri_tracking.services.cache import TTLCache, make_cache_key
from duri_tracking.services.normalization.metrics_aggregator import (
    aggregate,
    analyze_custom_fields,
)
from duri_tracking.services.normalization.record_assembler import (
    AssemblyResult,
    RecordAssembler,
)
from duri_tracking.services.source.task_source_client import TaskSourceClient
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

VARIANTS = ("unified", "trackings", "enhanced", "unmatched")


@dataclass(frozen=True)
class TrackingFilters:
    """Optional list filters; blank values are ignored."""

    status: Optional[str] = None
    exporter: Optional[str] = None
    product: Optional[str] = None
    agency: Optional[str] = None
    search: Optional[str] = None

    def as_params(self) -> dict[str, Optional[str]]:
        return {
            "status": self.status,
            "exporter": self.exporter,
            "product": self.product,
            "agency": self.agency,
            "search": self.search,
        }

    def matches(self, tracking: Tracking) -> bool:
        if self.status and tracking.status.casefold() != self.status.strip().casefold():
            return False
        if self.exporter and self.exporter.casefold() not in tracking.transport.exporter.casefold():
            return False
        if self.product:
            needle = self.product.casefold()
            if not any(needle in item.casefold() for item in tracking.transport.products):
                return False
        if self.agency and self.agency.strip().upper() not in tracking.regulatory.agencies:
            return False
        if self.search:
            needle = self.search.strip().casefold()
            haystack = " ".join(
                [
                    tracking.title,
                    tracking.sequence_ref,
                    tracking.transport.exporter,
                    tracking.transport.vessel,
                    tracking.transport.bill_of_lading,
                    tracking.transport.carrier_company,
                    *tracking.transport.containers,
                    *tracking.transport.products,
                ]
            ).casefold()
            if needle not in haystack:
                return False
        return True


@dataclass
class SourceSnapshot:
    """Raw tasks plus their assembly, cached as one unit."""

    raws: list[RawExternalTask] = field(default_factory=list)
    assembly: AssemblyResult = field(default_factory=AssemblyResult)


class TrackingService:
    """Loads tasks from the source, assembles and filters trackings.

    Upstream reads go through the injected ``TTLCache`` so repeated dashboard
    requests within the TTL reuse the last good snapshot and response.
    """

    def __init__(
        self,
        source: TaskSourceClient,
        cache: TTLCache,
        assembler: Optional[RecordAssembler] = None,
    ):
        self.source = source
        self.cache = cache
        self.assembler = assembler or RecordAssembler()

    async def load_snapshot(self, refresh: bool = False) -> tuple[SourceSnapshot, bool]:
        """Fetch and assemble all tasks, reusing the cached snapshot.

        Returns:
            tuple: ``(snapshot, served_from_cache)``
        """
        key = make_cache_key("snapshot")
        if not refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return cached, True

        raws = await self.source.fetch_tasks()
        snapshot = SourceSnapshot(raws=raws, assembly=self.assembler.assemble_many(raws))
        self.cache.set(key, snapshot)
        return snapshot, False

    async def list_trackings(
        self,
        variant: str,
        company: Optional[str] = None,
        filters: Optional[TrackingFilters] = None,
        refresh: bool = False,
    ) -> TrackingListResponse:
        """Build the response for one dashboard variant.

        Args:
            variant: ``unified``/``trackings``, ``enhanced`` or ``unmatched``
            company: Company scope; None means every company
            filters: Optional list filters
            refresh: Bypass the cache

        Returns:
            TrackingListResponse: ``success=False`` with empty data when the
            source fails transiently

        Raises:
            NotFoundError: Unknown variant or missing project
            ConfigurationError: Source token missing or rejected
        """
        if variant not in VARIANTS:
            raise NotFoundError(f"Unknown tracking variant: {variant}")

        filters = filters or TrackingFilters()
        company = company.strip().upper() if company else None
        response_key = make_cache_key("response", variant, company=company, **filters.as_params())

        if not refresh:
            cached = self.cache.get(response_key)
            if cached is not None:
                return cached.model_copy(
                    update={"meta": cached.meta.model_copy(update={"cached": True})}
                )

        try:
            snapshot, from_cache = await self.load_snapshot(refresh=refresh)
        except APIClientError as e:
            LOGGER.error(
                "Failed to load trackings from source",
                extra={"variant": variant, "company": company, "error": str(e)},
            )
            return TrackingListResponse(
                success=False,
                error=e.code,
                details=e.message,
                metrics=TrackingMetrics(),
                meta=self._meta(variant, company, SourceSnapshot(), 0, False),
            )

        if variant == "unmatched":
            response = TrackingListResponse(
                unmatched=snapshot.assembly.unmatched,
                meta=self._meta(variant, company, snapshot, 0, from_cache),
            )
        else:
            selected = [
                t
                for t in snapshot.assembly.trackings
                if (company is None or t.company_name == company) and filters.matches(t)
            ]
            response = TrackingListResponse(
                data=selected,
                metrics=aggregate(selected),
                meta=self._meta(variant, company, snapshot, len(selected), from_cache),
            )
            if variant == "enhanced":
                wanted = {t.source_id for t in selected}
                response.custom_fields_analysis = analyze_custom_fields(
                    [raw for raw in snapshot.raws if raw.gid in wanted]
                )

        self.cache.set(response_key, response)
        return response

    async def get_tracking(self, tracking_id: str, company: Optional[str] = None) -> Tracking:
        """Find one tracking by its id or source id within ``company``.

        Raises:
            NotFoundError: No such tracking in scope
        """
        snapshot, _ = await self.load_snapshot()
        scope = company.strip().upper() if company else None
        for tracking in snapshot.assembly.trackings:
            if tracking_id in (tracking.id, tracking.source_id) and (
                scope is None or tracking.company_name == scope
            ):
                return tracking
        raise NotFoundError(f"Tracking not found: {tracking_id}")

    async def trackings_for_company(self, company: Optional[str]) -> list[Tracking]:
        snapshot, _ = await self.load_snapshot()
        if not company:
            return list(snapshot.assembly.trackings)
        scope = company.strip().upper()
        return [t for t in snapshot.assembly.trackings if t.company_name == scope]

    async def get_comments(self, task_id: str) -> list[TaskComment]:
        return await self.source.fetch_comments(task_id)

    async def get_attachments(self, task_id: str) -> list[TaskAttachment]:
        return await self.source.fetch_attachments(task_id)

    @staticmethod
    def _meta(
        variant: str,
        company: Optional[str],
        snapshot: SourceSnapshot,
        kept: int,
        cached: bool,
    ) -> TrackingMeta:
        return TrackingMeta(
            variant=variant,
            company=company,
            total_tasks=len(snapshot.raws),
            kept=kept,
            unmatched=len(snapshot.assembly.unmatched),
            skipped=snapshot.assembly.skipped,
            cached=cached,
            generated_at=datetime.now(timezone.utc),
        )
