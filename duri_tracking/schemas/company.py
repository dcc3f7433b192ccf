"""Company schemas and synchronization reports."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from duri_tracking.schemas.common import CamelModel


class CompanyCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100, description="Company name")
    display_name: Optional[str] = Field(None, description="Name shown in the UI")


class CompanyResponse(CamelModel):
    """Company response model with database fields."""

    id: UUID
    name: str
    display_name: str
    slug: str
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CompanyListResponse(CamelModel):
    success: bool = True
    companies: list[CompanyResponse] = Field(default_factory=list)
    created_default: bool = False


class SyncStats(CamelModel):
    total_processed: int = 0
    created: int = 0
    updated: int = 0
    deactivated: int = 0
    errors: int = 0


class SyncErrorDetail(CamelModel):
    company: str
    error: str


class SkippedTask(CamelModel):
    source_id: str
    title: str
    reason: str


class SyncReport(CamelModel):
    """Outcome of one replace-all company sweep."""

    success: bool = True
    message: str = ""
    stats: SyncStats = Field(default_factory=SyncStats)
    companies: list[str] = Field(default_factory=list)
    error_details: list[SyncErrorDetail] = Field(default_factory=list)
    skipped_tasks: list[SkippedTask] = Field(default_factory=list)


class SyncStatus(CamelModel):
    """Persisted company state compared with what the source currently yields."""

    success: bool = True
    companies_in_database: int = 0
    active_companies: int = 0
    inactive_companies: int = 0
    companies_in_source: int = 0
    needs_sync: bool = False
    missing_in_database: list[str] = Field(default_factory=list)
    stale_in_database: list[str] = Field(default_factory=list)
    companies: list[CompanyResponse] = Field(default_factory=list)
    source_error: Optional[str] = None
