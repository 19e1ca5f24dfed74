"""Admin back-office service: tenant lifecycle, registration keys, API configs.

Holds the shared (non tenant-scoped) state. Tenant data belonging to the
business modules is dropped by the workspace when a tenant is deleted.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime

import structlog

from src.legalsaas.admin.schemas import (
    ApiConfig,
    ApiConfigCreate,
    ApiConfigUpdate,
    GlobalMetrics,
    KeyUsage,
    RegistrationKey,
    RegistrationKeyCreate,
    Tenant,
    TenantCreate,
    TenantUpdate,
)
from src.legalsaas.config import Settings, get_settings
from src.legalsaas.core.monitoring import active_tenants
from src.legalsaas.core.security import (
    REGISTRATION_KEY_PREFIX_LENGTH,
    generate_registration_key,
    verify_password,
)
from src.legalsaas.pipeline.records import utcnow

logger = structlog.get_logger(__name__)


class AdminError(ValueError):
    """Base class for admin back-office errors."""


class TenantNotFoundError(AdminError):
    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"Tenant not found: {tenant_id}")
        self.tenant_id = tenant_id


class RegistrationKeyNotFoundError(AdminError):
    def __init__(self, key_id: str) -> None:
        super().__init__(f"Registration key not found: {key_id}")
        self.key_id = key_id


class RegistrationKeyError(AdminError):
    """The presented registration key cannot be used."""


class ApiConfigNotFoundError(AdminError):
    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"API config not found for tenant: {tenant_id}")
        self.tenant_id = tenant_id


class ApiConfigExistsError(AdminError):
    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"API config already exists for tenant: {tenant_id}")
        self.tenant_id = tenant_id


class AdminService:
    """In-memory tenants, registration keys and per-tenant API configs."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._tenants: dict[str, Tenant] = {}
        self._keys: dict[str, RegistrationKey] = {}
        self._api_configs: dict[str, ApiConfig] = {}

    # ── Tenants ──────────────────────────────────────────────────────────

    def _refresh_gauge(self) -> None:
        active_tenants.set(sum(1 for tenant in self._tenants.values() if tenant.is_active))

    def create_tenant(self, data: TenantCreate) -> Tenant:
        """Create a tenant, filling plan and limits from the configured defaults."""
        tenant = Tenant(
            name=data.name.strip(),
            plan_type=data.plan_type or self.settings.DEFAULT_PLAN_TYPE,
            max_users=data.max_users or self.settings.DEFAULT_MAX_USERS,
            max_storage=data.max_storage if data.max_storage is not None else self.settings.DEFAULT_MAX_STORAGE,
        )
        self._tenants[tenant.id] = tenant
        self._refresh_gauge()
        logger.info("tenant.created", tenant_id=tenant.id, schema_name=tenant.schema_name)
        return tenant

    def get_tenant(self, tenant_id: str) -> Tenant:
        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant

    def find_tenant(self, tenant_id: str) -> Tenant | None:
        return self._tenants.get(tenant_id)

    def list_tenants(self, *, active: bool | None = None, search: str = "") -> list[Tenant]:
        """Tenants newest first, optionally filtered by status and name."""
        needle = search.strip().lower()
        tenants = [
            tenant for tenant in self._tenants.values()
            if (active is None or tenant.is_active == active)
            and (not needle or needle in tenant.name.lower())
        ]
        return sorted(tenants, key=lambda tenant: tenant.created_at, reverse=True)

    def update_tenant(self, tenant_id: str, data: TenantUpdate) -> Tenant:
        current = self.get_tenant(tenant_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        tenant = Tenant.model_validate({**current.model_dump(), **changes, "updated_at": utcnow()})
        self._tenants[tenant_id] = tenant
        logger.info("tenant.updated", tenant_id=tenant_id, fields=sorted(changes))
        return tenant

    def set_tenant_status(self, tenant_id: str, is_active: bool) -> Tenant:
        current = self.get_tenant(tenant_id)
        tenant = current.model_copy(update={"is_active": is_active, "updated_at": utcnow()})
        self._tenants[tenant_id] = tenant
        self._refresh_gauge()
        logger.info("tenant.status_changed", tenant_id=tenant_id, is_active=is_active)
        return tenant

    def delete_tenant(self, tenant_id: str) -> Tenant:
        """Remove the tenant with its bound registration keys and API config."""
        tenant = self.get_tenant(tenant_id)
        del self._tenants[tenant_id]
        self._api_configs.pop(tenant_id, None)
        self._keys = {key_id: key for key_id, key in self._keys.items() if key.tenant_id != tenant_id}
        self._refresh_gauge()
        logger.info("tenant.deleted", tenant_id=tenant_id)
        return tenant

    # ── Registration keys ────────────────────────────────────────────────

    def generate_key(self, data: RegistrationKeyCreate, created_by: str | None = None) -> tuple[RegistrationKey, str]:
        """Generate a registration key.

        Returns:
            Tuple of (stored key, plaintext key). The plaintext is not kept.

        Raises:
            TenantNotFoundError: If the key is bound to an unknown tenant.
        """
        if data.tenant_id is not None:
            self.get_tenant(data.tenant_id)
        raw_key, prefix, key_hash = generate_registration_key()
        uses = 1 if data.single_use else data.uses_allowed
        key = RegistrationKey(
            key_prefix=prefix,
            key_hash=key_hash,
            tenant_id=data.tenant_id,
            account_type=data.account_type,
            uses_allowed=uses,
            uses_left=uses,
            single_use=data.single_use,
            expires_at=data.expires_at,
            metadata=data.metadata,
            created_by=created_by,
        )
        self._keys[key.id] = key
        logger.info(
            "registration_key.generated",
            key_id=key.id,
            tenant_id=key.tenant_id,
            account_type=key.account_type.value,
            uses_allowed=uses,
        )
        return key, raw_key

    def get_key(self, key_id: str) -> RegistrationKey:
        key = self._keys.get(key_id)
        if key is None:
            raise RegistrationKeyNotFoundError(key_id)
        return key

    def list_keys(self, tenant_id: str | None = None, include_revoked: bool = True) -> list[RegistrationKey]:
        keys = [
            key for key in self._keys.values()
            if (tenant_id is None or key.tenant_id == tenant_id)
            and (include_revoked or not key.revoked)
        ]
        return sorted(keys, key=lambda key: key.created_at, reverse=True)

    def revoke_key(self, key_id: str) -> RegistrationKey:
        key = self.get_key(key_id).model_copy(update={"revoked": True})
        self._keys[key_id] = key
        logger.info("registration_key.revoked", key_id=key_id)
        return key

    def verify_key(self, raw_key: str, now: datetime | None = None) -> RegistrationKey:
        """Find the stored key matching raw_key and check that it can be used.

        Does not consume a use.

        Raises:
            RegistrationKeyError: If the key is unknown, revoked, expired or used up.
        """
        prefix = raw_key[:REGISTRATION_KEY_PREFIX_LENGTH]
        match = next(
            (
                key for key in self._keys.values()
                if key.key_prefix == prefix and verify_password(raw_key, key.key_hash)
            ),
            None,
        )
        if match is None:
            raise RegistrationKeyError("Invalid registration key")
        if match.revoked:
            raise RegistrationKeyError("Registration key has been revoked")
        if match.is_expired(now):
            raise RegistrationKeyError("Registration key has expired")
        if match.uses_left <= 0:
            raise RegistrationKeyError("Registration key has no uses left")
        return match

    def consume_key(self, key_id: str, email: str) -> RegistrationKey:
        """Use one registration of the key and log who used it.

        Raises:
            RegistrationKeyError: If the key can no longer be used.
        """
        key = self.get_key(key_id)
        if not key.is_usable():
            raise RegistrationKeyError("Registration key cannot be used")
        key = key.model_copy(update={
            "uses_left": key.uses_left - 1,
            "used_logs": [*key.used_logs, KeyUsage(email=email)],
        })
        self._keys[key_id] = key
        logger.info("registration_key.consumed", key_id=key_id, uses_left=key.uses_left)
        return key

    # ── API configurations ───────────────────────────────────────────────

    def create_api_config(self, data: ApiConfigCreate) -> ApiConfig:
        self.get_tenant(data.tenant_id)
        if data.tenant_id in self._api_configs:
            raise ApiConfigExistsError(data.tenant_id)
        config = ApiConfig(**data.model_dump())
        self._api_configs[config.tenant_id] = config
        logger.info("api_config.created", tenant_id=config.tenant_id)
        return config

    def get_api_config(self, tenant_id: str) -> ApiConfig:
        config = self._api_configs.get(tenant_id)
        if config is None:
            raise ApiConfigNotFoundError(tenant_id)
        return config

    def list_api_configs(self) -> list[ApiConfig]:
        return sorted(self._api_configs.values(), key=lambda config: config.created_at, reverse=True)

    def update_api_config(self, tenant_id: str, data: ApiConfigUpdate) -> ApiConfig:
        current = self.get_api_config(tenant_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        config = current.model_copy(update={**changes, "updated_at": utcnow()})
        self._api_configs[tenant_id] = config
        logger.info("api_config.updated", tenant_id=tenant_id, fields=sorted(changes))
        return config

    def set_api_config_status(self, tenant_id: str, is_active: bool) -> ApiConfig:
        config = self.get_api_config(tenant_id).model_copy(update={"is_active": is_active, "updated_at": utcnow()})
        self._api_configs[tenant_id] = config
        logger.info("api_config.status_changed", tenant_id=tenant_id, is_active=is_active)
        return config

    def delete_api_config(self, tenant_id: str) -> None:
        self.get_api_config(tenant_id)
        del self._api_configs[tenant_id]
        logger.info("api_config.deleted", tenant_id=tenant_id)

    # ── Metrics ──────────────────────────────────────────────────────────

    def global_metrics(self, total_users: int) -> GlobalMetrics:
        by_type = Counter(key.account_type.value for key in self._keys.values())
        return GlobalMetrics(
            total_tenants=len(self._tenants),
            active_tenants=sum(1 for tenant in self._tenants.values() if tenant.is_active),
            total_users=total_users,
            keys_by_account_type=dict(by_type),
        )
