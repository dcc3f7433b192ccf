"""Builds canonical ``Tracking`` records from raw source tasks."""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from duri_tracking.schemas.tracking import (
    DocumentationInfo,
    FinancialInfo,
    RawExternalTask,
    RegulatoryInfo,
    ScheduleInfo,
    Tracking,
    TransportInfo,
    UnmatchedTask,
)
from duri_tracking.services.normalization.constants import (
    KNOWN_REGULATORY_AGENCIES,
    MARITIME_STAGES,
    NOTES_PATTERNS,
    STAGE_FINISHED,
    STATUS_ALIASES,
    STATUS_COMPLETED,
    STATUS_DELAYED,
    STATUS_IN_PROGRESS,
    UNASSIGNED_RESPONSIBLE,
)
from duri_tracking.services.normalization.field_resolver import (
    FieldAliasResolver,
    split_values,
)
from duri_tracking.services.normalization.text_utils import (
    normalize_key,
    parse_date,
    slugify,
)
from duri_tracking.services.normalization.title_parser import (
    TitleParser,
    is_attributable,
)
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

_NOTES_REGEXES = tuple(
    (key, re.compile(pattern, re.MULTILINE | re.IGNORECASE)) for key, pattern in NOTES_PATTERNS
)
_AGENCY_REGEXES = tuple(
    (agency, re.compile(rf"\b{agency}\b", re.IGNORECASE)) for agency in KNOWN_REGULATORY_AGENCIES
)
_STAGE_KEYS = {normalize_key(stage): stage for stage in MARITIME_STAGES}


@dataclass
class AssemblyResult:
    """Outcome of assembling a batch of raw tasks."""

    trackings: list[Tracking] = field(default_factory=list)
    unmatched: list[UnmatchedTask] = field(default_factory=list)
    skipped: int = 0


class RecordAssembler:
    """Combines the title parser and alias resolver into ``Tracking`` records.

    Pure apart from the reference date used for the overdue check, which can
    be pinned at construction.
    """

    def __init__(
        self,
        title_parser: Optional[TitleParser] = None,
        resolver: Optional[FieldAliasResolver] = None,
        reference_date: Optional[date] = None,
    ):
        self.title_parser = title_parser or TitleParser()
        self.resolver = resolver or FieldAliasResolver()
        self.reference_date = reference_date

    def assemble(self, raw: RawExternalTask) -> Optional[Tracking]:
        """Assemble one task.

        Returns:
            Tracking, or None when the task is skipped or cannot be attributed
        """
        tracking, _reason, _candidate = self._assemble(raw)
        return tracking

    def assemble_many(self, raws: Iterable[RawExternalTask]) -> AssemblyResult:
        """Assemble a batch, separating unattributed tasks.

        Tracking ids are made unique within the batch by suffixing ``-2``,
        ``-3``... to repeated title slugs, in input order.
        """
        result = AssemblyResult()
        seen_ids: dict[str, int] = {}

        for raw in raws:
            tracking, reason, candidate = self._assemble(raw)
            if tracking is not None:
                count = seen_ids.get(tracking.id, 0) + 1
                seen_ids[tracking.id] = count
                if count > 1:
                    tracking = tracking.model_copy(update={"id": f"{tracking.id}-{count}"})
                result.trackings.append(tracking)
            elif reason in ("empty_title", "subtask"):
                result.skipped += 1
            else:
                result.unmatched.append(
                    UnmatchedTask(
                        source_id=raw.gid,
                        title=raw.title,
                        reason=reason,
                        candidate=candidate,
                    )
                )

        LOGGER.debug(
            "Assembled trackings",
            extra={
                "kept": len(result.trackings),
                "unmatched": len(result.unmatched),
                "skipped": result.skipped,
            },
        )
        return result

    def _assemble(self, raw: RawExternalTask) -> tuple[Optional[Tracking], str, str]:
        title = raw.title.strip()
        if not title:
            return None, "empty_title", ""
        if raw.is_subtask:
            return None, "subtask", ""

        parsed = self.title_parser.parse(title)
        if not is_attributable(parsed.company_name):
            return None, "no_company", parsed.company_name

        custom_fields = self.flatten_custom_fields(raw)
        merged = dict(custom_fields)
        for key, value in self.extract_from_notes(raw.notes).items():
            merged.setdefault(key, value)

        resolve = self.resolver.resolve
        resolve_array = self.resolver.resolve_array

        bill_of_lading = resolve(merged, "bill_of_lading")
        products = resolve_array(merged, "products") or split_values(resolve(merged, "commodity"))
        responsible = raw.assignee.strip() or resolve(merged, "responsible") or UNASSIGNED_RESPONSIBLE
        # "eta" sits inside "etapa", stage keys must match exactly
        stage = self.derive_stage(resolve(merged, "stage", containment=False), raw.completed)

        return (
            Tracking(
                id=slugify(title, fallback=raw.gid),
                source_id=raw.gid,
                title=title,
                company_name=parsed.company_name,
                sequence_ref=parsed.sequence_ref,
                status=self.derive_status(resolve(merged, "status"), raw),
                stage=stage,
                completed=raw.completed,
                created_at=raw.created_at,
                modified_at=raw.modified_at,
                transport=TransportInfo(
                    exporter=resolve(merged, "exporter") or parsed.company_name,
                    carrier_company=resolve(merged, "carrier_company"),
                    vessel=resolve(merged, "vessel"),
                    bill_of_lading=bill_of_lading,
                    containers=resolve_array(merged, "containers"),
                    terminal=resolve(merged, "terminal"),
                    products=products,
                    forwarder=resolve(merged, "forwarder"),
                    customs_broker=resolve(merged, "customs_broker"),
                    transporter=resolve(merged, "transporter"),
                ),
                schedule=ScheduleInfo(
                    etd=resolve(merged, "etd"),
                    eta=resolve(merged, "eta"),
                    freetime_end=resolve(merged, "freetime_end"),
                    storage_end=resolve(merged, "storage_end"),
                    responsible=responsible,
                    stage=stage,
                    due_date=raw.due_date or "",
                ),
                regulatory=RegulatoryInfo(agencies=self.extract_agencies(merged)),
                documentation=DocumentationInfo(
                    invoice=resolve(merged, "invoice"),
                    bill_of_lading=bill_of_lading,
                ),
                financial=FinancialInfo(
                    currency=resolve(merged, "currency"),
                    value=resolve(merged, "value"),
                    fiscal_benefit=resolve(merged, "fiscal_benefit"),
                    advance=resolve(merged, "advance"),
                ),
                custom_fields=custom_fields,
            ),
            "",
            parsed.company_name,
        )

    @staticmethod
    def flatten_custom_fields(raw: RawExternalTask) -> dict[str, str]:
        """Map each custom field's original name and normalized key to its text."""
        flat: dict[str, str] = {}
        for entry in raw.custom_fields:
            text = entry.as_text()
            if not text:
                continue
            flat.setdefault(entry.name, text)
            normalized = normalize_key(entry.name)
            if normalized:
                flat.setdefault(normalized, text)
        return flat

    @staticmethod
    def extract_from_notes(notes: str) -> dict[str, str]:
        """Pull ``key: value`` lines out of free-text notes."""
        found: dict[str, str] = {}
        if not notes:
            return found
        for key, regex in _NOTES_REGEXES:
            match = regex.search(notes)
            if match and match.group(1).strip():
                found[key] = match.group(1).strip()
        return found

    def extract_agencies(self, merged: dict[str, str]) -> list[str]:
        agencies: dict[str, None] = {}
        for agency in self.resolver.resolve_array(merged, "regulatory_agencies"):
            agencies.setdefault(agency.upper(), None)
        for value in merged.values():
            for agency, regex in _AGENCY_REGEXES:
                if regex.search(value):
                    agencies.setdefault(agency, None)
        return list(agencies)

    def derive_status(self, explicit: str, raw: RawExternalTask) -> str:
        """Explicit status field, else completion, else overdue, else in progress."""
        if explicit:
            return STATUS_ALIASES.get(normalize_key(explicit), explicit.strip())
        if raw.completed:
            return STATUS_COMPLETED
        due = parse_date(raw.due_date or "")
        if due is not None and due < (self.reference_date or date.today()):
            return STATUS_DELAYED
        return STATUS_IN_PROGRESS

    @staticmethod
    def derive_stage(explicit: str, completed: bool) -> str:
        if explicit:
            key = normalize_key(explicit)
            if key in _STAGE_KEYS:
                return _STAGE_KEYS[key]
            for stage_key, stage in _STAGE_KEYS.items():
                if f"_{stage_key}_" in f"_{key}_":
                    return stage
            return explicit.strip()
        if completed:
            return STAGE_FINISHED
        return ""
