"""Authentication dependencies: bearer token, current user and admin guard.

Every protected route resolves the caller's profile on each request, so a
deactivated or deleted account is rejected immediately even while its
token is still valid.
"""

from typing import Annotated, Optional
from uuid import UUID

import jwt
from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from duri_tracking.api.errors import http_error
from duri_tracking.core.jwt import JWTVerifier, jwt_verifier
from duri_tracking.dependencies import get_user_repository
from duri_tracking.repositories.user_repository import UserRepository
from duri_tracking.schemas.auth import CurrentUser, JWTClaims
from duri_tracking.services.account_status import AccountStatusMachine
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_jwt_verifier() -> JWTVerifier:
    return jwt_verifier


async def get_token_claims(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    verifier: Annotated[JWTVerifier, Depends(get_jwt_verifier)],
) -> JWTClaims:
    """Extract and verify the bearer token.

    Raises:
        HTTPException: 401 when the header is missing or the token is invalid
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise http_error(
            status.HTTP_401_UNAUTHORIZED, "UNAUTHENTICATED", "Token de acesso ausente"
        )
    try:
        return verifier.verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise http_error(
            status.HTTP_401_UNAUTHORIZED, "INVALID_TOKEN", "Token de acesso inválido", str(e)
        ) from e


async def get_current_user(
    claims: Annotated[JWTClaims, Depends(get_token_claims)],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> CurrentUser:
    """Resolve the caller's profile.

    Raises:
        HTTPException: 403 ``USER_DELETED`` or ``USER_INACTIVE`` when the
            account can no longer be used
    """
    try:
        user_id = UUID(claims.sub)
    except ValueError as e:
        raise http_error(
            status.HTTP_401_UNAUTHORIZED, "INVALID_TOKEN", "Token de acesso inválido", str(e)
        ) from e

    profile = await repository.get_by_id(user_id)

    validation = AccountStatusMachine().evaluate(profile)
    if not validation.valid:
        LOGGER.warning(
            "Rejected request from unusable account",
            extra={"user_id": claims.sub, "code": validation.code},
        )
        raise http_error(status.HTTP_403_FORBIDDEN, validation.code or "FORBIDDEN", validation.message)

    return CurrentUser.model_validate(profile)


async def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    if not current_user.is_admin:
        raise http_error(
            status.HTTP_403_FORBIDDEN,
            "ADMIN_REQUIRED",
            "Acesso restrito a administradores",
        )
    return current_user


def company_scope(current_user: CurrentUser, requested: Optional[str]) -> Optional[str]:
    """Company a caller may read.

    Admins read the requested company, or every company when none is given.
    Everyone else is pinned to their own company.

    Raises:
        HTTPException: 403 when a non-admin has no company assigned
    """
    if current_user.is_admin:
        return requested.strip().upper() if requested and requested.strip() else None
    if not current_user.company_name:
        raise http_error(
            status.HTTP_403_FORBIDDEN,
            "NO_COMPANY",
            "Usuário sem empresa associada",
        )
    return current_user.company_name.upper()
