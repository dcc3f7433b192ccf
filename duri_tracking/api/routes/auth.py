"""Authentication endpoints: login, current profile and account validity."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from duri_tracking.api.errors import http_error, to_http_exception
from duri_tracking.core.auth import get_current_user, get_token_claims
from duri_tracking.core.exceptions import AppError
from duri_tracking.dependencies import (
    get_account_states,
    get_identity_provider,
    get_user_repository,
)
from duri_tracking.repositories.user_repository import UserRepository
from duri_tracking.schemas.auth import (
    AccountValidation,
    CurrentUser,
    JWTClaims,
    LoginRequest,
    TokenResponse,
    UserResponse,
)
from duri_tracking.schemas.common import ErrorDetail
from duri_tracking.services.account_status import AccountEvent, AccountStatusMachine
from duri_tracking.services.cache import TTLCache
from duri_tracking.services.identity_provider import IdentityProvider
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()

STATUS_BY_ACCOUNT_CODE = {
    "USER_DELETED": status.HTTP_404_NOT_FOUND,
    "USER_INACTIVE": status.HTTP_403_FORBIDDEN,
}


def _session_key(claims: JWTClaims) -> str:
    return claims.session_id or claims.sub


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        401: {"description": "Wrong credentials", "model": ErrorDetail},
        403: {"description": "Account deactivated", "model": ErrorDetail},
    },
    summary="Sign in with email and password",
    operation_id="login",
)
async def login(
    payload: LoginRequest,
    identity: Annotated[IdentityProvider, Depends(get_identity_provider)],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> TokenResponse:
    """Sign in through the identity provider and check the profile.

    Raises:
        HTTPException: 401 on wrong credentials, 403 ``USER_INACTIVE`` or
            ``USER_DELETED`` when the profile cannot log in
    """
    try:
        session = await identity.sign_in(str(payload.email).strip().lower(), payload.password)
    except AppError as e:
        raise to_http_exception(e) from e

    profile = await repository.get_by_email(str(payload.email))
    validation = AccountStatusMachine().evaluate(profile)
    if not validation.valid:
        LOGGER.warning("Login refused", extra={"code": validation.code})
        raise http_error(status.HTTP_403_FORBIDDEN, validation.code or "FORBIDDEN", validation.message)

    return TokenResponse(
        access_token=session["access_token"],
        token_type=session.get("token_type", "bearer"),
        expires_in=int(session.get("expires_in", 3600)),
        refresh_token=session.get("refresh_token") or "",
        user=UserResponse.model_validate(profile),
    )


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user profile",
    operation_id="get_current_user_profile",
)
async def me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserResponse:
    profile = await repository.get_by_id(current_user.id)
    if profile is None:
        raise http_error(status.HTTP_404_NOT_FOUND, "USER_DELETED", "Perfil não encontrado")
    return UserResponse.model_validate(profile)


@router.post(
    "/validate-active",
    response_model=AccountValidation,
    responses={
        403: {"description": "Account deactivated", "model": AccountValidation},
        404: {"description": "Account deleted", "model": AccountValidation},
    },
    summary="Check that the signed-in account is still usable",
    description="Once invalid, the session stays invalid until /auth/logout is called",
    operation_id="validate_active_account",
)
async def validate_active(
    claims: Annotated[JWTClaims, Depends(get_token_claims)],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
    account_states: Annotated[TTLCache, Depends(get_account_states)],
):
    key = _session_key(claims)
    machine = account_states.get(key) or AccountStatusMachine()

    try:
        profile = await repository.get_by_id(UUID(claims.sub))
    except ValueError:
        profile = None

    validation = machine.evaluate(profile)
    account_states.set(key, machine)

    if validation.valid:
        return validation
    return JSONResponse(
        status_code=STATUS_BY_ACCOUNT_CODE.get(validation.code or "", status.HTTP_403_FORBIDDEN),
        content=validation.model_dump(mode="json", by_alias=True),
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Forget this session's account state",
    operation_id="logout",
)
async def logout(
    claims: Annotated[JWTClaims, Depends(get_token_claims)],
    account_states: Annotated[TTLCache, Depends(get_account_states)],
) -> None:
    key = _session_key(claims)
    machine = account_states.get(key)
    if machine is not None:
        machine.fire(AccountEvent.LOGGED_OUT)
    account_states.invalidate(key)

