"""Tests for API endpoints."""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

from fastapi.testclient import TestClient

from duri_tracking.core.auth import get_token_claims
from duri_tracking.core.exceptions import (
    APIClientError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
)
from duri_tracking.dependencies import (
    get_company_sync_service,
    get_identity_provider,
    get_notification_service,
    get_tracking_service,
    get_user_repository,
    get_user_service,
)
from duri_tracking.main import app
from duri_tracking.schemas.auth import JWTClaims, UserResponse
from duri_tracking.schemas.company import SyncReport, SyncStats
from duri_tracking.schemas.notification import NotificationListResponse, WatermarkResponse
from duri_tracking.schemas.tracking import (
    TaskAttachment,
    Tracking,
    TrackingListResponse,
    TrackingMeta,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _profile(active: bool = True, role: str = "viewer") -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid.uuid4(),
        email="cliente@wcb.com.br",
        full_name="Cliente WCB",
        role=role,
        active=active,
        company_id=uuid.uuid4(),
        company_name="WCB",
        created_at=None,
        updated_at=None,
    )


def _tracking_response(company=None) -> TrackingListResponse:
    return TrackingListResponse(
        data=[
            Tracking(
                id="122-wcb",
                source_id="1001",
                title="122º WCB",
                company_name="WCB",
                status="Em Progresso",
            )
        ],
        meta=TrackingMeta(variant="unified", company=company, kept=1, generated_at=NOW),
    )


class TestRoot:
    def test_root(self, test_client: TestClient) -> None:
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"


class TestAuthentication:
    """Bearer token and account checks on protected routes."""

    def test_missing_token(self, test_client: TestClient) -> None:
        app.dependency_overrides[get_user_repository] = lambda: AsyncMock()

        response = test_client.get("/api/v1/asana/unified")

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "UNAUTHENTICATED"

    def test_invalid_token(self, test_client: TestClient) -> None:
        app.dependency_overrides[get_user_repository] = lambda: AsyncMock()

        response = test_client.get(
            "/api/v1/asana/unified", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "INVALID_TOKEN"

    def test_deleted_account_is_rejected(self, test_client: TestClient) -> None:
        repository = AsyncMock()
        repository.get_by_id.return_value = None
        app.dependency_overrides[get_user_repository] = lambda: repository
        app.dependency_overrides[get_token_claims] = lambda: JWTClaims(
            sub=str(uuid.uuid4()), exp=2_000_000_000
        )

        response = test_client.get("/api/v1/asana/unified")

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "USER_DELETED"

    def test_inactive_account_is_rejected(self, test_client: TestClient) -> None:
        repository = AsyncMock()
        repository.get_by_id.return_value = _profile(active=False)
        app.dependency_overrides[get_user_repository] = lambda: repository
        app.dependency_overrides[get_token_claims] = lambda: JWTClaims(
            sub=str(uuid.uuid4()), exp=2_000_000_000
        )

        response = test_client.get("/api/v1/asana/unified")

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "USER_INACTIVE"


class TestLogin:
    def test_login_success(self, test_client: TestClient) -> None:
        identity = AsyncMock()
        identity.sign_in.return_value = {
            "access_token": "token",
            "token_type": "bearer",
            "expires_in": 3600,
            "refresh_token": "refresh",
        }
        repository = AsyncMock()
        repository.get_by_email.return_value = _profile()
        app.dependency_overrides[get_identity_provider] = lambda: identity
        app.dependency_overrides[get_user_repository] = lambda: repository

        response = test_client.post(
            "/api/v1/auth/login", json={"email": "cliente@wcb.com.br", "password": "segredo1"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["accessToken"] == "token"
        assert data["user"]["companyName"] == "WCB"

    def test_login_inactive_profile(self, test_client: TestClient) -> None:
        identity = AsyncMock()
        identity.sign_in.return_value = {"access_token": "token", "expires_in": 3600}
        repository = AsyncMock()
        repository.get_by_email.return_value = _profile(active=False)
        app.dependency_overrides[get_identity_provider] = lambda: identity
        app.dependency_overrides[get_user_repository] = lambda: repository

        response = test_client.post(
            "/api/v1/auth/login", json={"email": "cliente@wcb.com.br", "password": "segredo1"}
        )

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "USER_INACTIVE"


class TestValidateActive:
    """Account validity polling keeps an invalid session invalid until logout."""

    def test_invalid_state_is_sticky_until_logout(self, test_client: TestClient) -> None:
        profile = _profile(active=False)
        repository = AsyncMock()
        repository.get_by_id.return_value = profile
        app.dependency_overrides[get_user_repository] = lambda: repository
        app.dependency_overrides[get_token_claims] = lambda: JWTClaims(
            sub=str(profile.id), exp=2_000_000_000, session_id="session-1"
        )

        first = test_client.post("/api/v1/auth/validate-active")
        assert first.status_code == 403
        assert first.json()["shouldLogout"] is True
        assert first.json()["code"] == "USER_INACTIVE"

        profile.active = True
        second = test_client.post("/api/v1/auth/validate-active")
        assert second.status_code == 403
        assert second.json()["state"] == "invalid_pending_logout"

        assert test_client.post("/api/v1/auth/logout").status_code == 204

        third = test_client.post("/api/v1/auth/validate-active")
        assert third.status_code == 200
        assert third.json()["valid"] is True

    def test_deleted_profile(self, test_client: TestClient) -> None:
        repository = AsyncMock()
        repository.get_by_id.return_value = None
        app.dependency_overrides[get_user_repository] = lambda: repository
        app.dependency_overrides[get_token_claims] = lambda: JWTClaims(
            sub=str(uuid.uuid4()), exp=2_000_000_000
        )

        response = test_client.post("/api/v1/auth/validate-active")

        assert response.status_code == 404
        assert response.json()["code"] == "USER_DELETED"


class TestTrackingEndpoints:
    def test_admin_lists_all_companies(self, test_client: TestClient, as_admin) -> None:
        service = AsyncMock()
        service.list_trackings.return_value = _tracking_response()
        app.dependency_overrides[get_tracking_service] = lambda: service

        response = test_client.get("/api/v1/asana/unified")

        assert response.status_code == 200
        data = response.json()
        assert data["data"][0]["companyName"] == "WCB"
        assert data["meta"]["kept"] == 1
        variant, company, filters, refresh = service.list_trackings.call_args.args
        assert (variant, company, refresh) == ("unified", None, False)

    def test_viewer_is_scoped_to_own_company(self, test_client: TestClient, as_viewer) -> None:
        service = AsyncMock()
        service.list_trackings.return_value = _tracking_response("WCB")
        app.dependency_overrides[get_tracking_service] = lambda: service

        response = test_client.get("/api/v1/asana/unified?company=AMZ&exporter=green")

        assert response.status_code == 200
        _, company, filters, _ = service.list_trackings.call_args.args
        assert company == "WCB"
        assert filters.exporter == "green"

    def test_missing_source_token(self, test_client: TestClient, as_admin) -> None:
        service = AsyncMock()
        service.list_trackings.side_effect = ConfigurationError("Token da fonte ausente")
        app.dependency_overrides[get_tracking_service] = lambda: service

        response = test_client.get("/api/v1/asana/unified")

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "SOURCE_NOT_CONFIGURED"

    def test_comments_require_ownership(self, test_client: TestClient, as_viewer) -> None:
        service = AsyncMock()
        service.get_tracking.side_effect = NotFoundError("Tracking not found: 2002")
        app.dependency_overrides[get_tracking_service] = lambda: service

        response = test_client.get("/api/v1/asana/comments?task_id=2002")

        assert response.status_code == 404
        service.get_comments.assert_not_awaited()

    def test_attachments_require_task_id(self, test_client: TestClient, as_admin) -> None:
        service = AsyncMock()
        app.dependency_overrides[get_tracking_service] = lambda: service

        response = test_client.get("/api/v1/asana/attachments")

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "VALIDATION_ERROR"
        service.get_attachments.assert_not_awaited()

    def test_attachments_listed_for_own_task(self, test_client: TestClient, as_viewer) -> None:
        service = AsyncMock()
        service.get_attachments.return_value = [
            TaskAttachment.from_payload(
                {"gid": "a1", "name": "invoice.pdf", "size": 2048, "content_type": "application/pdf"}
            ),
            TaskAttachment.from_payload({"gid": "a2", "name": "foto.jpg", "size": 512}),
        ]
        app.dependency_overrides[get_tracking_service] = lambda: service

        response = test_client.get("/api/v1/asana/attachments?task_id=1001")

        assert response.status_code == 200
        body = response.json()
        assert body["taskId"] == "1001"
        assert body["total"] == 2
        assert body["totalSize"] == 2560
        assert body["attachments"][0]["fileType"] == "pdf"
        assert body["attachments"][0]["sizeFormatted"] == "2 KB"
        assert body["attachments"][1]["fileType"] == "image"
        service.get_tracking.assert_awaited_once_with("1001", "WCB")

    def test_attachments_require_ownership(self, test_client: TestClient, as_viewer) -> None:
        service = AsyncMock()
        service.get_tracking.side_effect = NotFoundError("Tracking not found: 2002")
        app.dependency_overrides[get_tracking_service] = lambda: service

        response = test_client.get("/api/v1/asana/attachments?task_id=2002")

        assert response.status_code == 404
        service.get_attachments.assert_not_awaited()


class TestCompanySyncEndpoints:
    def test_requires_admin(self, test_client: TestClient, as_viewer) -> None:
        app.dependency_overrides[get_company_sync_service] = lambda: AsyncMock()

        response = test_client.post("/api/v1/sync-companies")

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "ADMIN_REQUIRED"

    def test_sync_invalidates_response_cache(self, test_client: TestClient, as_admin) -> None:
        service = AsyncMock()
        service.sync.return_value = SyncReport(
            stats=SyncStats(total_processed=2, created=2), companies=["AMZ", "WCB"]
        )
        app.dependency_overrides[get_company_sync_service] = lambda: service
        app.state.response_cache.set("stale", "value")

        response = test_client.post("/api/v1/sync-companies")

        assert response.status_code == 200
        assert response.json()["stats"]["created"] == 2
        assert app.state.response_cache.get("stale") is None

    def test_source_failure(self, test_client: TestClient, as_admin) -> None:
        service = AsyncMock()
        service.sync.side_effect = APIClientError("Fonte indisponível")
        app.dependency_overrides[get_company_sync_service] = lambda: service

        response = test_client.post("/api/v1/sync-companies")

        assert response.status_code == 502


class TestNotificationEndpoints:
    def test_viewer_reads_own_feed(self, test_client: TestClient, as_viewer) -> None:
        service = AsyncMock()
        service.list_notifications.return_value = NotificationListResponse(last_checked=NOW)
        app.dependency_overrides[get_notification_service] = lambda: service

        response = test_client.get(f"/api/v1/notifications?user_id={uuid.uuid4()}")

        assert response.status_code == 200
        service.list_notifications.assert_awaited_once_with(str(as_viewer.id), "WCB", None)

    def test_mark_requires_user_id(self, test_client: TestClient, as_viewer) -> None:
        app.dependency_overrides[get_notification_service] = lambda: Mock()

        response = test_client.post("/api/v1/notifications", json={})

        assert response.status_code == 400

    def test_viewer_cannot_move_other_watermark(self, test_client: TestClient, as_viewer) -> None:
        app.dependency_overrides[get_notification_service] = lambda: Mock()

        response = test_client.post(
            "/api/v1/notifications", json={"userId": str(uuid.uuid4())}
        )

        assert response.status_code == 403

    def test_mark_own_watermark(self, test_client: TestClient, as_viewer) -> None:
        service = Mock()
        service.mark_checked.return_value = WatermarkResponse(
            user_id=str(as_viewer.id), last_checked=NOW
        )
        app.dependency_overrides[get_notification_service] = lambda: service

        response = test_client.post("/api/v1/notifications", json={"userId": str(as_viewer.id)})

        assert response.status_code == 200
        assert response.json()["lastChecked"].startswith("2025-03-10T12:00:00")


class TestUserEndpoints:
    def _payload(self) -> dict:
        return {
            "email": "novo@wcb.com.br",
            "password": "segredo1",
            "confirmPassword": "segredo1",
            "fullName": "Novo Usuário",
            "role": "viewer",
            "companyId": str(uuid.uuid4()),
        }

    def test_create_user(self, test_client: TestClient, as_admin) -> None:
        service = AsyncMock()
        service.create_user.return_value = UserResponse.model_validate(_profile())
        app.dependency_overrides[get_user_service] = lambda: service

        response = test_client.post("/api/v1/admin/users", json=self._payload())

        assert response.status_code == 201
        assert response.json()["message"] == "Usuário criado com sucesso"

    def test_duplicate_email(self, test_client: TestClient, as_admin) -> None:
        service = AsyncMock()
        service.create_user.side_effect = ConflictError("Já existe um usuário com o e-mail")
        app.dependency_overrides[get_user_service] = lambda: service

        response = test_client.post("/api/v1/admin/users", json=self._payload())

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "CONFLICT"

    def test_viewer_cannot_manage_users(self, test_client: TestClient, as_viewer) -> None:
        app.dependency_overrides[get_user_service] = lambda: AsyncMock()

        response = test_client.get("/api/v1/admin/users")

        assert response.status_code == 403

    def test_hard_delete(self, test_client: TestClient, as_admin) -> None:
        service = AsyncMock()
        service.delete_user.return_value = UserResponse.model_validate(_profile())
        app.dependency_overrides[get_user_service] = lambda: service
        user_id = uuid.uuid4()

        response = test_client.delete(f"/api/v1/admin/users/{user_id}?hard=true")

        assert response.status_code == 200
        assert response.json()["message"] == "Usuário excluído permanentemente"
        service.delete_user.assert_awaited_once_with(user_id, hard=True)
