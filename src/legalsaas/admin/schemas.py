"""Pydantic schemas for the admin back-office: tenants, registration keys, API configs."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.legalsaas.pipeline.records import UtcDatetime, utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


def schema_name_for(tenant_id: str) -> str:
    """Logical schema name derived from the tenant id, e.g. ``tenant_3f9c0a1b2c4d``."""
    return f"tenant_{uuid.UUID(tenant_id).hex[:12]}"


# ── Tenants ─────────────────────────────────────────────────────────────────


class Tenant(BaseModel):
    """Stored tenant."""

    id: str = Field(default_factory=_new_id)
    name: str
    schema_name: str = ""
    plan_type: str
    is_active: bool = True
    max_users: int = Field(..., ge=1)
    max_storage: int = Field(..., ge=0)
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _derive_schema_name(self) -> Tenant:
        if not self.schema_name:
            self.schema_name = schema_name_for(self.id)
        return self


class TenantCreate(BaseModel):
    """Request schema for creating a tenant; omitted limits use the configured defaults."""

    name: str = Field(..., min_length=1, max_length=200, examples=["Silva & Associados"])
    plan_type: str | None = Field(default=None, examples=["basic", "pro"])
    max_users: int | None = Field(default=None, ge=1)
    max_storage: int | None = Field(default=None, ge=0)


class TenantUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    plan_type: str | None = None
    max_users: int | None = Field(default=None, ge=1)
    max_storage: int | None = Field(default=None, ge=0)


class TenantStatusUpdate(BaseModel):
    is_active: bool


class TenantStats(BaseModel):
    """Record counts per module for one tenant."""

    users: int = 0
    clients: int = 0
    deals: int = 0
    projects: int = 0
    tasks: int = 0
    documents: int = 0
    transactions: int = 0


class TenantResponse(BaseModel):
    """Response schema for tenant data."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    schema_name: str
    plan_type: str
    is_active: bool = True
    max_users: int
    max_storage: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    stats: TenantStats | None = None


# ── Registration keys ───────────────────────────────────────────────────────


class AccountType(str, Enum):
    SIMPLES = "SIMPLES"
    COMPOSTA = "COMPOSTA"
    GERENCIAL = "GERENCIAL"


class KeyUsage(BaseModel):
    email: str
    used_at: UtcDatetime = Field(default_factory=utcnow)


class RegistrationKey(BaseModel):
    """Stored registration key. Only the prefix and bcrypt hash of the key are kept."""

    id: str = Field(default_factory=_new_id)
    key_prefix: str
    key_hash: str
    tenant_id: str | None = None
    account_type: AccountType = AccountType.SIMPLES
    uses_allowed: int = Field(default=1, ge=1)
    uses_left: int = Field(default=1, ge=0)
    single_use: bool = True
    expires_at: UtcDatetime | None = None
    revoked: bool = False
    used_logs: list[KeyUsage] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_by: str | None = None
    created_at: UtcDatetime = Field(default_factory=utcnow)

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at is not None and self.expires_at <= (now or utcnow())

    def is_usable(self, now: datetime | None = None) -> bool:
        return not self.revoked and not self.is_expired(now) and self.uses_left > 0


class RegistrationKeyCreate(BaseModel):
    """Request schema for generating a registration key.

    ``single_use`` forces ``uses_allowed`` to 1.
    """

    tenant_id: str | None = None
    account_type: AccountType = AccountType.SIMPLES
    uses_allowed: int = Field(default=1, ge=1, le=1000)
    single_use: bool = True
    expires_at: UtcDatetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class RegistrationKeyResponse(BaseModel):
    """Key as shown to administrators; never includes the hash."""

    id: str
    key_prefix: str
    tenant_id: str | None = None
    account_type: AccountType
    uses_allowed: int
    uses_left: int
    single_use: bool
    expires_at: datetime | None = None
    revoked: bool
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_by: str | None = None
    created_at: datetime

    @classmethod
    def from_key(cls, key: RegistrationKey) -> RegistrationKeyResponse:
        return cls.model_validate(key.model_dump(exclude={"key_hash", "used_logs"}))


class GeneratedKeyResponse(RegistrationKeyResponse):
    """Returned once at generation time with the plaintext key."""

    key: str


class KeyUsageResponse(BaseModel):
    id: str
    key_prefix: str
    uses_allowed: int
    uses_left: int
    used_logs: list[KeyUsage]


# ── API configurations ──────────────────────────────────────────────────────


class ApiConfig(BaseModel):
    """Per-tenant third-party integration settings (stored with secrets)."""

    tenant_id: str
    whatsapp_api_key: str | None = None
    whatsapp_phone_number: str | None = None
    resend_api_key: str | None = None
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    codilo_api_key: str | None = None
    n8n_webhook_url: str | None = None
    settings: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)


class ApiConfigCreate(BaseModel):
    tenant_id: str
    whatsapp_api_key: str | None = None
    whatsapp_phone_number: str | None = None
    resend_api_key: str | None = None
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    codilo_api_key: str | None = None
    n8n_webhook_url: str | None = None
    settings: dict[str, Any] = Field(default_factory=dict)


class ApiConfigUpdate(BaseModel):
    whatsapp_api_key: str | None = None
    whatsapp_phone_number: str | None = None
    resend_api_key: str | None = None
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    codilo_api_key: str | None = None
    n8n_webhook_url: str | None = None
    settings: dict[str, Any] | None = None


class ApiConfigStatusUpdate(BaseModel):
    is_active: bool


class ApiConfigResponse(BaseModel):
    """API config view with ``has_*`` flags in place of secrets."""

    tenant_id: str
    tenant_name: str | None = None
    whatsapp_phone_number: str | None = None
    n8n_webhook_url: str | None = None
    has_whatsapp_config: bool
    has_resend_config: bool
    has_stripe_config: bool
    has_codilo_config: bool
    settings: dict[str, Any]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_config(cls, config: ApiConfig, tenant_name: str | None = None) -> ApiConfigResponse:
        return cls(
            tenant_id=config.tenant_id,
            tenant_name=tenant_name,
            whatsapp_phone_number=config.whatsapp_phone_number,
            n8n_webhook_url=config.n8n_webhook_url,
            has_whatsapp_config=bool(config.whatsapp_api_key and config.whatsapp_phone_number),
            has_resend_config=bool(config.resend_api_key),
            has_stripe_config=bool(config.stripe_secret_key),
            has_codilo_config=bool(config.codilo_api_key),
            settings=config.settings,
            is_active=config.is_active,
            created_at=config.created_at,
            updated_at=config.updated_at,
        )


# ── Metrics ─────────────────────────────────────────────────────────────────


class GlobalMetrics(BaseModel):
    total_tenants: int
    active_tenants: int
    total_users: int
    keys_by_account_type: dict[str, int]
