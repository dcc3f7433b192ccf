"""Pytest configuration and shared fixtures."""

import uuid
from datetime import date
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from duri_tracking.core.auth import get_current_user
from duri_tracking.main import app, init_stores
from duri_tracking.schemas.auth import CurrentUser
from duri_tracking.schemas.tracking import RawExternalTask
from duri_tracking.services.normalization.record_assembler import RecordAssembler


@pytest.fixture
def test_client() -> TestClient:
    """Create FastAPI test client.

    The lifespan does not run without a context manager, so the shared
    stores are created here.

    Returns:
        TestClient: FastAPI test client instance
    """
    init_stores(app)
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}


@pytest.fixture
def admin_user() -> CurrentUser:
    return CurrentUser(
        id=uuid.uuid4(),
        email="admin@duri.com.br",
        full_name="Admin",
        role="admin",
        company_id=None,
        company_name=None,
    )


@pytest.fixture
def viewer_user() -> CurrentUser:
    return CurrentUser(
        id=uuid.uuid4(),
        email="cliente@wcb.com.br",
        full_name="Cliente WCB",
        role="viewer",
        company_id=uuid.uuid4(),
        company_name="WCB",
    )


@pytest.fixture
def as_admin(admin_user: CurrentUser) -> CurrentUser:
    """Authenticate every request as an admin."""
    app.dependency_overrides[get_current_user] = lambda: admin_user
    return admin_user


@pytest.fixture
def as_viewer(viewer_user: CurrentUser) -> CurrentUser:
    """Authenticate every request as a company viewer."""
    app.dependency_overrides[get_current_user] = lambda: viewer_user
    return viewer_user


def make_task_payload(
    gid: str,
    name: str,
    custom_fields: Optional[list[dict[str, Any]]] = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a task object in the source API's JSON shape."""
    payload: dict[str, Any] = {
        "gid": gid,
        "name": name,
        "notes": "",
        "completed": False,
        "assignee": None,
        "due_on": None,
        "created_at": "2025-03-01T12:00:00.000Z",
        "modified_at": "2025-03-02T12:00:00.000Z",
        "parent": None,
        "custom_fields": custom_fields or [],
    }
    payload.update(extra)
    return payload


def text_field(name: str, value: str) -> dict[str, Any]:
    return {"name": name, "display_value": value, "text_value": value}


@pytest.fixture
def sample_task_payloads() -> list[dict[str, Any]]:
    """Three operational tasks, one unattributable title and one subtask."""
    return [
        make_task_payload(
            "1001",
            "122º WCB",
            [
                text_field("EXPORTADOR", "Green Farms Ltd"),
                text_field("Armador", "MSC"),
                text_field("Navio", "MSC AURORA"),
                text_field("Container", "MSCU1234567, MSCU7654321"),
                text_field("ETD", "2025-02-10"),
                text_field("ETA", "15/03/2025"),
                text_field("Produto", "Maçã; Pera"),
                text_field("Órgãos Anuentes", "MAPA"),
            ],
        ),
        make_task_payload(
            "1002",
            "17º AMZ (IMPORTAÇÃO)",
            [text_field("Status", "concluido"), text_field("Terminal", "Portonave")],
            completed=True,
        ),
        make_task_payload(
            "1003",
            "EXPOFRUT (IMPORTAÇÃO DIRETA 01.2025)",
            notes="Navio: MAERSK SANTOS\nAnuentes: ANVISA",
            assignee={"name": "Maria"},
        ),
        make_task_payload("1004", "---"),
        make_task_payload(
            "1005",
            "Conferir documentos",
            parent={"gid": "1001", "resource_type": "task"},
        ),
    ]


@pytest.fixture
def sample_raw_tasks(sample_task_payloads: list[dict[str, Any]]) -> list[RawExternalTask]:
    return [RawExternalTask.from_payload(p) for p in sample_task_payloads]


@pytest.fixture
def assembler() -> RecordAssembler:
    """Assembler pinned to a fixed reference date."""
    return RecordAssembler(reference_date=date(2025, 3, 10))
