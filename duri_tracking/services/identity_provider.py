"""Client for the authentication provider (Supabase GoTrue REST API).

Two credential tiers are used: the restricted anon key for end-user
sign-in, and the service-role key for administrative user provisioning.
"""

from typing import Any, Optional
from uuid import UUID

import httpx
from httpx import HTTPStatusError, TimeoutException, TransportError

from duri_tracking.config import Settings
from duri_tracking.core.exceptions import (
    APIClientError,
    APITimeoutError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
)
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

# A ban this long stands in for "signed out everywhere until reactivated".
REVOKE_BAN_DURATION = "876000h"


class IdentityProvider:
    """Provision, update and authenticate identities."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        service_role_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.auth_url = f"{base_url.rstrip('/')}/auth/v1"
        self.anon_key = anon_key
        self.service_role_key = service_role_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityProvider":
        return cls(
            base_url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            service_role_key=settings.supabase_service_role_key,
            timeout=settings.source_timeout,
        )

    async def create_user(self, email: str, password: str, full_name: str) -> UUID:
        """Create a confirmed identity.

        Returns:
            UUID: The new identity's id

        Raises:
            ConflictError: Email already registered with the provider
            APIClientError: Provider failure
        """
        body = await self._admin_request(
            "POST",
            "/admin/users",
            {
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"full_name": full_name},
            },
        )
        user_id = UUID(str(body["id"]))
        LOGGER.info("Created identity", extra={"user_id": str(user_id)})
        return user_id

    async def update_user(
        self,
        user_id: UUID,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {}
        if email:
            payload["email"] = email
            payload["email_confirm"] = True
        if password:
            payload["password"] = password
        if payload:
            await self._admin_request("PUT", f"/admin/users/{user_id}", payload)

    async def revoke_sessions(self, user_id: UUID) -> None:
        """Block the identity so existing and new sessions stop working."""
        await self._admin_request(
            "PUT", f"/admin/users/{user_id}", {"ban_duration": REVOKE_BAN_DURATION}
        )
        LOGGER.info("Revoked identity sessions", extra={"user_id": str(user_id)})

    async def restore_access(self, user_id: UUID) -> None:
        await self._admin_request("PUT", f"/admin/users/{user_id}", {"ban_duration": "none"})

    async def delete_user(self, user_id: UUID) -> None:
        await self._admin_request("DELETE", f"/admin/users/{user_id}")
        LOGGER.info("Deleted identity", extra={"user_id": str(user_id)})

    async def sign_in(self, email: str, password: str) -> dict[str, Any]:
        """Password sign-in with the restricted key.

        Returns:
            dict: Provider session (``access_token``, ``expires_in``, ``user``...)

        Raises:
            AuthorizationError: Wrong credentials
        """
        if not self.anon_key:
            raise ConfigurationError("Identity provider anon key is not configured")
        try:
            return await self._request(
                "POST",
                "/token",
                self.anon_key,
                {"email": email, "password": password},
                params={"grant_type": "password"},
            )
        except HTTPStatusError as e:
            if e.response.status_code in (400, 401):
                raise AuthorizationError(
                    "E-mail ou senha inválidos", code="INVALID_CREDENTIALS", status_code=401
                ) from e
            raise APIClientError(f"Sign-in failed ({e.response.status_code})", e) from e

    async def _admin_request(
        self, method: str, path: str, payload: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        if not self.service_role_key:
            raise ConfigurationError("Identity provider service role key is not configured")
        try:
            return await self._request(method, path, self.service_role_key, payload)
        except HTTPStatusError as e:
            status_code = e.response.status_code
            detail = e.response.text[:300]
            LOGGER.warning(
                "Identity provider request failed",
                extra={"path": path, "status_code": status_code, "error_body": detail},
            )
            if status_code == 422 or "already" in detail.lower():
                raise ConflictError("E-mail já cadastrado no provedor de autenticação", e) from e
            raise APIClientError(f"Identity provider error {status_code}", e) from e

    async def _request(
        self,
        method: str,
        path: str,
        key: str,
        payload: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        # Writes are not idempotent, so a single attempt with a timeout.
        headers = {"apikey": key, "Authorization": f"Bearer {key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(
                    method, f"{self.auth_url}{path}", headers=headers, json=payload, params=params
                )
                response.raise_for_status()
                return response.json() if response.content else {}
        except TimeoutException as e:
            raise APITimeoutError("Identity provider timed out", e) from e
        except TransportError as e:
            raise APIClientError(f"Identity provider unreachable: {e}", e) from e
