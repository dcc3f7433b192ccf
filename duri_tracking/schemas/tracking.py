"""Schemas for raw source tasks and canonical tracking records."""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from duri_tracking.schemas.common import CamelModel


# ---------------------------------------------------------------------------
# Custom field values
# ---------------------------------------------------------------------------


class _CustomFieldBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str


class DisplayFieldValue(_CustomFieldBase):
    kind: Literal["display"] = "display"
    value: str

    def as_text(self) -> str:
        return self.value.strip()


class TextFieldValue(_CustomFieldBase):
    kind: Literal["text"] = "text"
    value: str

    def as_text(self) -> str:
        return self.value.strip()


class NumberFieldValue(_CustomFieldBase):
    kind: Literal["number"] = "number"
    value: float

    def as_text(self) -> str:
        if self.value.is_integer():
            return str(int(self.value))
        return str(self.value)


class EnumFieldValue(_CustomFieldBase):
    kind: Literal["enum"] = "enum"
    value: str

    def as_text(self) -> str:
        return self.value.strip()


class MultiEnumFieldValue(_CustomFieldBase):
    kind: Literal["multi_enum"] = "multi_enum"
    value: tuple[str, ...]

    def as_text(self) -> str:
        return ", ".join(v.strip() for v in self.value if v.strip())


class DateFieldValue(_CustomFieldBase):
    kind: Literal["date"] = "date"
    value: str

    def as_text(self) -> str:
        return self.value.strip()


CustomFieldEntry = Annotated[
    Union[
        DisplayFieldValue,
        TextFieldValue,
        NumberFieldValue,
        EnumFieldValue,
        MultiEnumFieldValue,
        DateFieldValue,
    ],
    Field(discriminator="kind"),
]

_custom_field_adapter: TypeAdapter[CustomFieldEntry] = TypeAdapter(CustomFieldEntry)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def custom_field_from_payload(payload: dict[str, Any]) -> Optional[CustomFieldEntry]:
    """Pick the single populated value variant of a source custom field.

    Precedence when several variants are present: display value, text,
    number, enum name, joined multi-enum names, date.

    Args:
        payload: One element of the source task's ``custom_fields`` list

    Returns:
        The typed entry, or None when the field has no name or no value
    """
    name = (payload.get("name") or "").strip()
    if not name:
        return None

    enum_value = payload.get("enum_value") or {}
    multi_enum = [
        item.get("name", "")
        for item in payload.get("multi_enum_values") or []
        if isinstance(item, dict) and item.get("name")
    ]
    date_value = payload.get("date_value") or {}

    candidates: list[tuple[str, Any]] = [
        ("display", payload.get("display_value")),
        ("text", payload.get("text_value")),
        ("number", payload.get("number_value")),
        ("enum", enum_value.get("name") if isinstance(enum_value, dict) else None),
        ("multi_enum", tuple(multi_enum) or None),
        (
            "date",
            (date_value.get("date_time") or date_value.get("date"))
            if isinstance(date_value, dict)
            else None,
        ),
    ]
    for kind, value in candidates:
        if not _blank(value):
            return _custom_field_adapter.validate_python(
                {"kind": kind, "name": name, "value": value}
            )
    return None


# ---------------------------------------------------------------------------
# Raw source task
# ---------------------------------------------------------------------------


class TaskParent(BaseModel):
    gid: str = ""
    resource_type: str = ""


class RawExternalTask(BaseModel):
    """One task as received from the source API."""

    model_config = ConfigDict(frozen=True)

    gid: str
    title: str = ""
    notes: str = ""
    completed: bool = False
    assignee: str = ""
    due_date: Optional[str] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    parent: Optional[TaskParent] = None
    custom_fields: tuple[CustomFieldEntry, ...] = ()

    @property
    def is_subtask(self) -> bool:
        return self.parent is not None and self.parent.resource_type == "task"

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "RawExternalTask":
        """Build a task from the source JSON shape.

        Args:
            payload: Task object as returned by ``GET /tasks``

        Returns:
            RawExternalTask: Typed task with empty-field entries dropped
        """
        assignee = payload.get("assignee") or {}
        parent = payload.get("parent")
        entries = []
        for field in payload.get("custom_fields") or []:
            if isinstance(field, dict):
                entry = custom_field_from_payload(field)
                if entry is not None:
                    entries.append(entry)

        return cls(
            gid=str(payload.get("gid") or ""),
            title=(payload.get("name") or "").strip(),
            notes=payload.get("notes") or "",
            completed=bool(payload.get("completed")),
            assignee=(assignee.get("name") or "") if isinstance(assignee, dict) else "",
            due_date=payload.get("due_on") or payload.get("due_date"),
            created_at=payload.get("created_at"),
            modified_at=payload.get("modified_at"),
            parent=(
                TaskParent(
                    gid=str(parent.get("gid") or ""),
                    resource_type=parent.get("resource_type") or "",
                )
                if isinstance(parent, dict)
                else None
            ),
            custom_fields=tuple(entries),
        )


# ---------------------------------------------------------------------------
# Canonical tracking
# ---------------------------------------------------------------------------


class ParsedTitle(CamelModel):
    sequence_ref: str = ""
    company_name: str = ""


class TransportInfo(CamelModel):
    exporter: str = ""
    carrier_company: str = ""
    vessel: str = ""
    bill_of_lading: str = ""
    containers: list[str] = Field(default_factory=list)
    terminal: str = ""
    products: list[str] = Field(default_factory=list)
    forwarder: str = ""
    customs_broker: str = ""
    transporter: str = ""


class ScheduleInfo(CamelModel):
    etd: str = ""
    eta: str = ""
    freetime_end: str = ""
    storage_end: str = ""
    responsible: str = ""
    stage: str = ""
    due_date: str = ""


class RegulatoryInfo(CamelModel):
    agencies: list[str] = Field(default_factory=list)


class DocumentationInfo(CamelModel):
    invoice: str = ""
    bill_of_lading: str = ""


class FinancialInfo(CamelModel):
    currency: str = ""
    value: str = ""
    fiscal_benefit: str = ""
    advance: str = ""


class Tracking(CamelModel):
    """Canonical shipment record."""

    id: str
    source_id: str
    title: str
    company_name: str
    sequence_ref: str = ""
    status: str
    stage: str = ""
    completed: bool = False
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    transport: TransportInfo = Field(default_factory=TransportInfo)
    schedule: ScheduleInfo = Field(default_factory=ScheduleInfo)
    regulatory: RegulatoryInfo = Field(default_factory=RegulatoryInfo)
    documentation: DocumentationInfo = Field(default_factory=DocumentationInfo)
    financial: FinancialInfo = Field(default_factory=FinancialInfo)
    custom_fields: dict[str, str] = Field(default_factory=dict)


class UnmatchedTask(CamelModel):
    """Task that could not be attributed to a company."""

    source_id: str
    title: str
    reason: str
    candidate: str = ""


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class TimelineBucket(CamelModel):
    month: str = Field(..., description="Bucket key, YYYY-MM", examples=["2025-03"])
    count: int


class TrackingMetrics(CamelModel):
    total_operations: int = 0
    completed_operations: int = 0
    active_operations: int = 0
    effective_rate: int = 0
    delayed: int = 0
    total_containers: int = 0
    unique_exporters: int = 0
    unique_carriers: int = 0
    unique_terminals: int = 0
    status_distribution: dict[str, int] = Field(default_factory=dict)
    company_distribution: dict[str, int] = Field(default_factory=dict)
    exporter_distribution: dict[str, int] = Field(default_factory=dict)
    carrier_distribution: dict[str, int] = Field(default_factory=dict)
    vessel_distribution: dict[str, int] = Field(default_factory=dict)
    terminal_distribution: dict[str, int] = Field(default_factory=dict)
    product_distribution: dict[str, int] = Field(default_factory=dict)
    regulatory_agency_distribution: dict[str, int] = Field(default_factory=dict)
    responsible_distribution: dict[str, int] = Field(default_factory=dict)
    etd_timeline: list[TimelineBucket] = Field(default_factory=list)
    eta_timeline: list[TimelineBucket] = Field(default_factory=list)


class FieldPopularity(CamelModel):
    name: str
    count: int
    percentage: int


class CustomFieldAnalysis(CamelModel):
    total_tasks: int = 0
    tasks_with_custom_fields: int = 0
    average_fields_per_task: float = 0.0
    most_popular_fields: list[FieldPopularity] = Field(default_factory=list)
    field_kind_distribution: dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# API responses
# ---------------------------------------------------------------------------


class TrackingMeta(CamelModel):
    variant: str
    company: Optional[str] = None
    total_tasks: int = 0
    kept: int = 0
    unmatched: int = 0
    skipped: int = 0
    cached: bool = False
    generated_at: datetime


class TrackingListResponse(CamelModel):
    success: bool = True
    data: list[Tracking] = Field(default_factory=list)
    metrics: TrackingMetrics = Field(default_factory=TrackingMetrics)
    meta: Optional[TrackingMeta] = None
    unmatched: list[UnmatchedTask] = Field(default_factory=list)
    custom_fields_analysis: Optional[CustomFieldAnalysis] = None
    error: Optional[str] = None
    details: Optional[str] = None


class TaskComment(CamelModel):
    id: str
    text: str
    created_at: Optional[datetime] = None
    author: str = ""


class CommentListResponse(CamelModel):
    success: bool = True
    task_id: str
    comments: list[TaskComment] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------

_TYPES_BY_EXTENSION = {
    "pdf": "pdf",
    **dict.fromkeys(("jpg", "jpeg", "png", "gif", "bmp", "svg", "webp"), "image"),
    **dict.fromkeys(("doc", "docx", "txt", "rtf"), "document"),
    **dict.fromkeys(("xls", "xlsx", "csv"), "spreadsheet"),
    **dict.fromkeys(("ppt", "pptx"), "presentation"),
    **dict.fromkeys(("zip", "rar", "7z", "tar", "gz"), "archive"),
}

# Checked in order against the content type; OOXML types all carry
# "officedocument", so sheets and slides go before documents
_TYPES_BY_CONTENT = (
    (("pdf",), "pdf"),
    (("sheet", "excel"), "spreadsheet"),
    (("presentation", "powerpoint"), "presentation"),
    (("word", "document"), "document"),
    (("zip", "archive"), "archive"),
)


def file_extension(name: str) -> str:
    """Lowercased extension after the last dot, "" when there is none."""
    stem, dot, extension = (name or "").rpartition(".")
    return extension.lower() if dot and stem else ""


def file_type(content_type: str, extension: str) -> str:
    """Coarse file category, by content type first and extension second.

    Returns:
        str: One of pdf, image, document, spreadsheet, presentation,
        archive or file
    """
    content_type = (content_type or "").lower()
    if content_type.startswith("image/"):
        return "image"
    for needles, kind in _TYPES_BY_CONTENT:
        if any(needle in content_type for needle in needles):
            return kind
    return _TYPES_BY_EXTENSION.get(extension, "file")


def format_file_size(size: int) -> str:
    """Human readable size in 1024 steps, one decimal at most (``1.5 MB``)."""
    if size <= 0:
        return "0 B"
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            break
        value /= 1024
    else:
        unit = "GB"
    return f"{round(value, 1):g} {unit}"


class TaskAttachment(CamelModel):
    id: str
    name: str
    download_url: str = ""
    size: int = 0
    content_type: str = "application/octet-stream"
    created_at: Optional[datetime] = None
    file_extension: str = ""
    file_type: str = "file"
    size_formatted: str = "0 B"

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TaskAttachment":
        """Build an attachment from ``GET /tasks/{gid}/attachments`` JSON.

        The category and the readable size are derived here so every
        consumer sees the same values.
        """
        name = (payload.get("name") or "").strip() or "Arquivo sem nome"
        content_type = payload.get("content_type") or "application/octet-stream"
        size = int(payload.get("size") or 0)
        extension = file_extension(name)
        return cls(
            id=str(payload.get("gid") or ""),
            name=name,
            download_url=payload.get("download_url") or "",
            size=size,
            content_type=content_type,
            created_at=payload.get("created_at"),
            file_extension=extension,
            file_type=file_type(content_type, extension),
            size_formatted=format_file_size(size),
        )


class AttachmentListResponse(CamelModel):
    success: bool = True
    task_id: str
    total: int = 0
    total_size: int = 0
    attachments: list[TaskAttachment] = Field(default_factory=list)
