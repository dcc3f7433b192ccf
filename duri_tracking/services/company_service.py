"""Company administration: listing, creation, naming rules."""

from typing import Optional
from uuid import UUID

from duri_tracking.core.exceptions import ConflictError, NotFoundError, ValidationError
from duri_tracking.database.models import Company
from duri_tracking.repositories.company_repository import CompanyRepository
from duri_tracking.schemas.company import CompanyCreate, CompanyResponse
from duri_tracking.services.normalization.text_utils import collapse_whitespace, slugify
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_COMPANY_NAME = "EMPRESA_PADRAO"


def format_display_name(name: str) -> str:
    """Human-friendly company name.

    Short names (up to 6 characters) are acronyms and stay as they are.
    Otherwise each word is capitalized, keeping words of up to 3 characters
    uppercase: ``"UNIVAR SOLUTIONS DO BR"`` -> ``"Univar Solutions DO BR"``.
    """
    name = collapse_whitespace(name)
    if len(name) <= 6:
        return name
    return " ".join(
        word.upper() if len(word) <= 3 else word[:1].upper() + word[1:].lower()
        for word in name.split(" ")
    )


async def unique_slug(repository: CompanyRepository, name: str) -> str:
    """First free slug among ``base``, ``base-2``, ``base-3``..."""
    base = slugify(name, fallback="company")
    slug = base
    suffix = 1
    while await repository.slug_exists(slug):
        suffix += 1
        slug = f"{base}-{suffix}"
    return slug


class CompanyService:
    """Service for company business logic operations."""

    def __init__(self, repository: CompanyRepository):
        self.repository = repository

    async def list_active(self, ensure_default: bool = True) -> tuple[list[CompanyResponse], bool]:
        """List active companies, provisioning a default one when none exist.

        Returns:
            tuple: ``(companies, created_default)``
        """
        companies = await self.repository.list_companies(active_only=True)
        if companies or not ensure_default:
            return [CompanyResponse.model_validate(c) for c in companies], False

        default = await self.repository.get_by_name(DEFAULT_COMPANY_NAME)
        if default is None:
            default = await self.repository.create(
                name=DEFAULT_COMPANY_NAME,
                display_name="Empresa Padrão",
                slug=await unique_slug(self.repository, DEFAULT_COMPANY_NAME),
            )
        else:
            await self.repository.reactivate(default, default.display_name)
        await self.repository.commit()

        LOGGER.warning("No active companies; provisioned default company")
        return [CompanyResponse.model_validate(default)], True

    async def create(self, data: CompanyCreate) -> CompanyResponse:
        """Create a company with a unique slug.

        Raises:
            ValidationError: Name blank after normalization
            ConflictError: A company with that name already exists
        """
        name = collapse_whitespace(data.name).upper()
        if len(name) < 2:
            raise ValidationError("Nome da empresa é obrigatório")
        if await self.repository.get_by_name(name) is not None:
            raise ConflictError(f"Empresa já existe: {name}")

        company = await self.repository.create(
            name=name,
            display_name=(data.display_name or "").strip() or format_display_name(name),
            slug=await unique_slug(self.repository, name),
        )
        await self.repository.commit()
        return CompanyResponse.model_validate(company)

    async def get_active(self, company_id: UUID) -> Company:
        """Get an active company.

        Raises:
            NotFoundError: Missing or inactive company
        """
        company = await self.repository.get_by_id(company_id)
        if company is None or not company.active:
            raise NotFoundError("Empresa não encontrada ou inativa")
        return company

    async def get(self, company_id: UUID) -> Optional[Company]:
        return await self.repository.get_by_id(company_id)
