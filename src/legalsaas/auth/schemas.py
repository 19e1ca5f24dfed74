"""Pydantic schemas for authentication endpoints and account records."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, EmailStr, Field

from src.legalsaas.admin.schemas import AccountType
from src.legalsaas.pipeline.records import UtcDatetime, utcnow


class UserAccount(BaseModel):
    """Tenant user."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: str
    email: str
    name: str
    hashed_password: str
    account_type: AccountType = AccountType.SIMPLES
    is_active: bool = True
    created_at: UtcDatetime = Field(default_factory=utcnow)


class AdminAccount(BaseModel):
    """Back-office administrator."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    email: str
    name: str
    hashed_password: str
    role: str = "admin"
    is_active: bool = True
    created_at: UtcDatetime = Field(default_factory=utcnow)


class LoginRequest(BaseModel):
    """Request schema for user login."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")


class RegisterRequest(BaseModel):
    """Self-service registration with a registration key."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=200)
    key: str = Field(..., min_length=1, description="Registration key issued by an administrator")
    tenant_name: str | None = Field(
        default=None,
        max_length=200,
        description="Name for the new tenant when the key is not bound to one",
    )


class TokenResponse(BaseModel):
    """Response schema with access and refresh tokens."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefreshRequest(BaseModel):
    """Request schema to refresh an access token."""

    refresh_token: str = Field(..., description="Valid refresh token")


class UserResponse(BaseModel):
    """Response schema for current user info."""

    id: str
    email: str
    name: str
    account_type: AccountType
    tenant_id: str
    tenant_name: str | None = None


class AdminResponse(BaseModel):
    id: str
    email: str
    name: str
    role: str


class RegisterResponse(TokenResponse):
    user: UserResponse
    is_new_tenant: bool
