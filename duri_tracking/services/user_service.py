"""User administration business logic.

Profiles live in the database; credentials live with the identity
provider. Every operation keeps the two in step: the identity is created
first and removed again if the profile cannot be stored.
"""

import re
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from duri_tracking.core.exceptions import (
    AppError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from duri_tracking.database.models import UserProfile
from duri_tracking.repositories.user_repository import UserRepository
from duri_tracking.schemas.auth import ROLES, UserCreate, UserResponse, UserUpdate
from duri_tracking.services.company_service import CompanyService
from duri_tracking.services.identity_provider import IdentityProvider
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"A senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres"
        )


def _validate_role(role: str) -> None:
    if role not in ROLES:
        raise ValidationError(f"Perfil inválido: {role}. Use um de: {', '.join(ROLES)}")


class UserService:
    """Service for user business logic operations."""

    def __init__(
        self,
        repository: UserRepository,
        company_service: CompanyService,
        identity: IdentityProvider,
    ):
        """Initialize service.

        Args:
            repository: User profile repository
            company_service: Used to check the owning company
            identity: Identity provider client
        """
        self.repository = repository
        self.company_service = company_service
        self.identity = identity

    async def list_users(self) -> list[UserResponse]:
        return [UserResponse.model_validate(u) for u in await self.repository.list_users()]

    async def create_user(self, data: UserCreate) -> UserResponse:
        """Provision an identity and its profile.

        Args:
            data: Creation payload

        Returns:
            UserResponse: The stored profile

        Raises:
            ValidationError: Missing fields, weak or mismatched password, bad role
            NotFoundError: Company missing or inactive
            ConflictError: Email already in use
            DatabaseError: Profile could not be stored (identity removed again)
        """
        email = str(data.email).strip().lower()
        full_name = data.full_name.strip()
        if not full_name:
            raise ValidationError("Nome completo é obrigatório")
        if not _EMAIL_PATTERN.match(email):
            raise ValidationError("E-mail inválido")
        _validate_password(data.password)
        if data.password != data.confirm_password:
            raise ValidationError("As senhas não coincidem")
        _validate_role(data.role)

        await self.company_service.get_active(data.company_id)
        if await self.repository.get_by_email(email) is not None:
            raise ConflictError(f"Já existe um usuário com o e-mail {email}")

        user_id = await self.identity.create_user(email, data.password, full_name)
        try:
            user = await self.repository.create(
                user_id=user_id,
                email=email,
                full_name=full_name,
                role=data.role,
                company_id=data.company_id,
            )
            await self.repository.commit()
        except SQLAlchemyError as e:
            await self.repository.rollback()
            LOGGER.error(
                "Profile insert failed, removing identity",
                exc_info=True,
                extra={"user_id": str(user_id)},
            )
            await self._delete_identity_quietly(user_id)
            raise DatabaseError("Falha ao salvar o perfil do usuário", e) from e

        return UserResponse.model_validate(user)

    async def update_user(self, user_id: UUID, data: UserUpdate) -> UserResponse:
        """Apply a partial update.

        Raises:
            NotFoundError: User or target company missing
            ValidationError: Bad role or password
            ConflictError: Email taken, or the change would leave no active admin
        """
        user = await self._require(user_id)
        changes: dict[str, Any] = {}
        fields = data.model_dump(exclude_unset=True)

        if fields.get("full_name") is not None:
            full_name = fields["full_name"].strip()
            if not full_name:
                raise ValidationError("Nome completo é obrigatório")
            changes["full_name"] = full_name

        if fields.get("role") is not None:
            _validate_role(fields["role"])
            changes["role"] = fields["role"]

        if fields.get("company_id") is not None:
            if await self.company_service.get(fields["company_id"]) is None:
                raise NotFoundError("Empresa não encontrada")
            changes["company_id"] = fields["company_id"]

        new_email: Optional[str] = None
        if fields.get("email") is not None:
            email = str(fields["email"]).strip().lower()
            if email != user.email:
                existing = await self.repository.get_by_email(email)
                if existing is not None and existing.id != user.id:
                    raise ConflictError(f"Já existe um usuário com o e-mail {email}")
                changes["email"] = new_email = email

        password = fields.get("password")
        if password:
            _validate_password(password)

        if fields.get("active") is not None and fields["active"] != user.active:
            changes["active"] = fields["active"]

        demoted = changes.get("role", user.role) != "admin" or not changes.get("active", user.active)
        if user.role == "admin" and user.active and demoted:
            await self._ensure_not_last_admin()

        try:
            await self.repository.update(user, changes)
            if new_email or password:
                await self.identity.update_user(user.id, email=new_email, password=password)
            if changes.get("active") is False:
                await self.identity.revoke_sessions(user.id)
            elif changes.get("active") is True:
                await self.identity.restore_access(user.id)
            await self.repository.commit()
        except (SQLAlchemyError, AppError):
            await self.repository.rollback()
            raise

        LOGGER.info("User updated", extra={"user_id": str(user.id), "fields": sorted(changes)})
        return UserResponse.model_validate(user)

    async def delete_user(self, user_id: UUID, hard: bool = False) -> UserResponse:
        """Deactivate (default) or permanently delete a user.

        Raises:
            NotFoundError: User missing
            ConflictError: User is the last active admin
        """
        user = await self._require(user_id)
        if user.role == "admin" and user.active:
            await self._ensure_not_last_admin()

        snapshot = UserResponse.model_validate(user)
        try:
            if hard:
                await self.identity.revoke_sessions(user.id)
                await self.identity.delete_user(user.id)
                await self.repository.delete(user)
            else:
                await self.repository.update(user, {"active": False})
                await self.identity.revoke_sessions(user.id)
                snapshot = UserResponse.model_validate(user)
            await self.repository.commit()
        except (SQLAlchemyError, AppError):
            await self.repository.rollback()
            raise

        LOGGER.info("User removed", extra={"user_id": str(user_id), "hard": hard})
        return snapshot

    async def _require(self, user_id: UUID) -> UserProfile:
        user = await self.repository.get_by_id(user_id)
        if user is None:
            raise NotFoundError("Usuário não encontrado")
        return user

    async def _ensure_not_last_admin(self) -> None:
        if await self.repository.count_active_admins() <= 1:
            raise ConflictError("Não é possível remover o último administrador ativo")

    async def _delete_identity_quietly(self, user_id: UUID) -> None:
        try:
            await self.identity.delete_user(user_id)
        except AppError:
            LOGGER.error(
                "Orphaned identity left behind",
                exc_info=True,
                extra={"user_id": str(user_id)},
            )
