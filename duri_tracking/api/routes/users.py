"""User administration endpoints (admin only)."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from duri_tracking.api.errors import to_http_exception
from duri_tracking.core.auth import require_admin
from duri_tracking.core.exceptions import AppError
from duri_tracking.dependencies import get_user_service
from duri_tracking.schemas.auth import (
    CurrentUser,
    UserCreate,
    UserListResponse,
    UserMutationResponse,
    UserUpdate,
)
from duri_tracking.schemas.common import ErrorDetail
from duri_tracking.services.user_service import UserService
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"description": "Invalid input", "model": ErrorDetail},
    404: {"description": "User or company not found", "model": ErrorDetail},
    409: {"description": "Duplicate email or last active admin", "model": ErrorDetail},
}


@router.post(
    "",
    response_model=UserMutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Create user",
    description="Provision the login identity, then the profile",
    operation_id="create_user",
)
async def create_user(
    payload: UserCreate,
    current_user: Annotated[CurrentUser, Depends(require_admin)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> UserMutationResponse:
    try:
        user = await user_service.create_user(payload)
    except AppError as e:
        LOGGER.warning("User creation rejected", extra={"code": e.code, "error": e.message})
        raise to_http_exception(e) from e

    LOGGER.info(
        "User created",
        extra={"user_id": str(user.id), "created_by": str(current_user.id)},
    )
    return UserMutationResponse(message="Usuário criado com sucesso", user=user)


@router.get(
    "",
    response_model=UserListResponse,
    summary="List users",
    operation_id="list_users",
)
async def list_users(
    current_user: Annotated[CurrentUser, Depends(require_admin)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> UserListResponse:
    return UserListResponse(users=await user_service.list_users())


@router.patch(
    "/{user_id}",
    response_model=UserMutationResponse,
    responses=ERROR_RESPONSES,
    summary="Update user",
    operation_id="update_user",
)
async def update_user(
    user_id: UUID,
    payload: UserUpdate,
    current_user: Annotated[CurrentUser, Depends(require_admin)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> UserMutationResponse:
    try:
        user = await user_service.update_user(user_id, payload)
    except AppError as e:
        raise to_http_exception(e) from e
    return UserMutationResponse(message="Usuário atualizado com sucesso", user=user)


@router.delete(
    "/{user_id}",
    response_model=UserMutationResponse,
    responses=ERROR_RESPONSES,
    summary="Deactivate or delete user",
    description="Soft delete by default; hard=true removes identity and profile",
    operation_id="delete_user",
)
async def delete_user(
    user_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_admin)],
    user_service: Annotated[UserService, Depends(get_user_service)],
    hard: bool = False,
) -> UserMutationResponse:
    try:
        user = await user_service.delete_user(user_id, hard=hard)
    except AppError as e:
        raise to_http_exception(e) from e

    message = "Usuário excluído permanentemente" if hard else "Usuário desativado"
    return UserMutationResponse(message=message, user=user)
