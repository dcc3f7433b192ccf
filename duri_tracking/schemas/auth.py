"""Authentication and user administration schemas.

This module defines Pydantic models for JWT claims, the authenticated
caller, user profile CRUD payloads and account-validity responses.
"""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from duri_tracking.schemas.common import CamelModel

Role = Literal["admin", "manager", "operator", "viewer"]
ROLES: tuple[str, ...] = ("admin", "manager", "operator", "viewer")


class UserCreate(CamelModel):
    """Administrative user creation payload.

    Password rules and role membership are checked by ``UserService`` so the
    caller gets a displayable message instead of a schema error.
    """

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="Initial password")
    confirm_password: str = Field(..., description="Must equal password")
    full_name: str = Field(..., description="User's full name")
    role: str = Field(..., description="admin, manager, operator or viewer")
    company_id: UUID = Field(..., description="Owning company")


class UserUpdate(CamelModel):
    """User update model with optional fields."""

    email: Optional[EmailStr] = Field(None, description="User email address")
    full_name: Optional[str] = Field(None, description="User's full name")
    role: Optional[str] = Field(None, description="New role")
    company_id: Optional[UUID] = Field(None, description="New owning company")
    active: Optional[bool] = Field(None, description="Activate or deactivate the account")
    password: Optional[str] = Field(None, description="New password")


class UserResponse(CamelModel):
    """User response model with database fields."""

    id: UUID = Field(..., description="User ID (same as the identity provider's)")
    email: str
    full_name: str
    role: str
    active: bool
    company_id: Optional[UUID] = None
    company_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserListResponse(CamelModel):
    success: bool = True
    users: list[UserResponse] = Field(default_factory=list)


class UserMutationResponse(CamelModel):
    success: bool = True
    message: str
    user: Optional[UserResponse] = None


class JWTClaims(BaseModel):
    """JWT claims extracted from an identity provider access token."""

    sub: str = Field(..., description="Subject (user ID)")
    email: Optional[str] = Field(None, description="User email")
    role: str = Field(default="authenticated", description="Token role")
    exp: int = Field(..., description="Expiration timestamp")
    iat: Optional[int] = Field(None, description="Issued at timestamp")
    aud: Optional[str] = Field(None, description="Audience")
    session_id: Optional[str] = Field(None, description="Session ID")


class CurrentUser(CamelModel):
    """Authenticated caller, resolved from the token and the profile table."""

    id: UUID
    email: str
    full_name: str = ""
    role: str = "viewer"
    active: bool = True
    company_id: Optional[UUID] = None
    company_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(CamelModel):
    """Session issued by the identity provider."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token expiration time in seconds")
    refresh_token: str = Field(default="", description="Refresh token")
    user: UserResponse


class AccountValidation(CamelModel):
    """Result of the account-validity check the client polls."""

    valid: bool
    state: str = Field(..., examples=["valid", "invalid_pending_logout"])
    should_logout: bool = False
    code: Optional[str] = Field(None, examples=["USER_INACTIVE", "USER_DELETED"])
    message: str = ""
    user: Optional[UserResponse] = None


__all__ = [
    "Role",
    "ROLES",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "UserListResponse",
    "UserMutationResponse",
    "JWTClaims",
    "CurrentUser",
    "LoginRequest",
    "TokenResponse",
    "AccountValidation",
]
