"""Replace-all synchronization of companies from source task titles."""

from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from duri_tracking.core.exceptions import AppError, DatabaseError
from duri_tracking.repositories.company_repository import CompanyRepository
from duri_tracking.schemas.company import (
    CompanyResponse,
    SkippedTask,
    SyncErrorDetail,
    SyncReport,
    SyncStats,
    SyncStatus,
)
from duri_tracking.schemas.tracking import RawExternalTask
from duri_tracking.services.company_service import format_display_name, unique_slug
from duri_tracking.services.normalization.text_utils import collapse_whitespace, normalize_key
from duri_tracking.services.normalization.title_parser import TitleParser, is_attributable
from duri_tracking.services.source.task_source_client import TaskSourceClient
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

COMPANY_FIELD_KEYS = frozenset({"empresa", "company"})


class CompanySyncService:
    """Rebuilds the active company set from the task source.

    The sweep fetches every task first; nothing is written when the source
    cannot be read. Deactivation and re-activation then run in a single
    transaction with one savepoint per company, so a failing company is
    reported without aborting the sweep and a crash mid-sweep rolls back
    to the previous state.
    """

    def __init__(
        self,
        repository: CompanyRepository,
        source: TaskSourceClient,
        title_parser: Optional[TitleParser] = None,
    ):
        self.repository = repository
        self.source = source
        self.title_parser = title_parser or TitleParser()

    def collect_candidates(
        self, raws: Iterable[RawExternalTask]
    ) -> tuple[list[str], list[SkippedTask]]:
        """Derive the de-duplicated company names from titles and EMPRESA fields.

        Returns:
            tuple: ``(sorted candidate names, tasks that yielded no company)``
        """
        names: set[str] = set()
        skipped: list[SkippedTask] = []

        for raw in raws:
            if raw.is_subtask or not raw.title.strip():
                continue

            found = False
            parsed = self.title_parser.parse(raw.title)
            if is_attributable(parsed.company_name):
                names.add(parsed.company_name)
                found = True

            for entry in raw.custom_fields:
                if normalize_key(entry.name) not in COMPANY_FIELD_KEYS:
                    continue
                value = collapse_whitespace(entry.as_text()).upper()
                if 2 <= len(value) <= 50 and is_attributable(value):
                    names.add(value)
                    found = True

            if not found:
                skipped.append(
                    SkippedTask(
                        source_id=raw.gid,
                        title=raw.title,
                        reason="Nenhuma empresa identificada no título",
                    )
                )

        return sorted(names), skipped

    async def sync(self) -> SyncReport:
        """Run one replace-all sweep.

        Returns:
            SyncReport: Counts, resulting company names and per-item errors

        Raises:
            ConfigurationError: Source token missing (nothing written)
            APIClientError: Source unreachable (nothing written)
            DatabaseError: The transaction itself failed and was rolled back
        """
        raws = await self.source.fetch_tasks()
        candidates, skipped = self.collect_candidates(raws)
        LOGGER.info(
            "Starting company sync",
            extra={"tasks": len(raws), "candidates": len(candidates), "skipped": len(skipped)},
        )

        stats = SyncStats(total_processed=len(candidates))
        synced: list[str] = []
        errors: list[SyncErrorDetail] = []

        try:
            await self.repository.deactivate_all()

            for name in candidates:
                try:
                    async with self.repository.savepoint():
                        existing = await self.repository.get_by_name(name)
                        if existing is not None:
                            await self.repository.reactivate(existing, format_display_name(name))
                            stats.updated += 1
                        else:
                            await self.repository.create(
                                name=name,
                                display_name=format_display_name(name),
                                slug=await unique_slug(self.repository, name),
                            )
                            stats.created += 1
                    synced.append(name)
                except (SQLAlchemyError, DatabaseError) as e:
                    LOGGER.warning(
                        "Failed to sync company",
                        extra={"company": name, "error": str(e)},
                    )
                    errors.append(SyncErrorDetail(company=name, error=str(e)))

            stats.deactivated = await self.repository.count_by_active(False)
            await self.repository.commit()

        except SQLAlchemyError as e:
            LOGGER.error("Company sync transaction failed", exc_info=True)
            await self.repository.rollback()
            raise DatabaseError("Falha ao sincronizar empresas; nenhuma alteração aplicada", e) from e

        stats.errors = len(errors)
        LOGGER.info("Company sync finished", extra={"sync_stats": stats.model_dump()})

        return SyncReport(
            success=True,
            message=(
                f"Sincronização concluída: {stats.created} criadas, "
                f"{stats.updated} reativadas, {stats.errors} erros"
            ),
            stats=stats,
            companies=synced,
            error_details=errors,
            skipped_tasks=skipped,
        )

    async def status(self) -> SyncStatus:
        """Compare persisted companies with the current source, without writing."""
        companies = await self.repository.list_companies()
        active = {c.name for c in companies if c.active}

        report = SyncStatus(
            companies_in_database=len(companies),
            active_companies=len(active),
            inactive_companies=len(companies) - len(active),
            companies=[CompanyResponse.model_validate(c) for c in companies],
        )

        try:
            candidates, _ = self.collect_candidates(await self.source.fetch_tasks())
        except AppError as e:
            LOGGER.warning("Source unavailable for sync status", extra={"error": str(e)})
            report.source_error = e.message
            return report

        report.companies_in_source = len(candidates)
        report.missing_in_database = sorted(set(candidates) - active)
        report.stale_in_database = sorted(active - set(candidates))
        report.needs_sync = bool(report.missing_in_database or report.stale_in_database)
        return report
