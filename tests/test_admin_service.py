"""Admin back-office tests: tenants, registration keys and API configs."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.legalsaas.admin.schemas import (
    AccountType,
    ApiConfigCreate,
    ApiConfigResponse,
    ApiConfigUpdate,
    RegistrationKeyCreate,
    TenantCreate,
    TenantUpdate,
)
from src.legalsaas.admin.service import (
    AdminService,
    ApiConfigExistsError,
    ApiConfigNotFoundError,
    RegistrationKeyError,
    RegistrationKeyNotFoundError,
    TenantNotFoundError,
)
from src.legalsaas.config import get_settings


@pytest.fixture
def admin():
    return AdminService()


@pytest.fixture
def tenant(admin):
    return admin.create_tenant(TenantCreate(name="Silva Advogados"))


# ── Tenants ───────────────────────────────────────────────────────────────────


class TestTenants:
    def test_create_uses_configured_defaults(self, admin):
        settings = get_settings()
        tenant = admin.create_tenant(TenantCreate(name="  Silva Advogados "))
        assert tenant.name == "Silva Advogados"
        assert tenant.plan_type == settings.DEFAULT_PLAN_TYPE
        assert tenant.max_users == settings.DEFAULT_MAX_USERS
        assert tenant.max_storage == settings.DEFAULT_MAX_STORAGE
        assert tenant.is_active is True

    def test_schema_name_is_derived_from_id(self, tenant):
        assert tenant.schema_name.startswith("tenant_")
        assert len(tenant.schema_name) == 19
        assert tenant.schema_name[7:] == tenant.id.replace("-", "")[:12]

    def test_explicit_limits(self, admin):
        tenant = admin.create_tenant(TenantCreate(name="Costa", plan_type="pro", max_users=20, max_storage=0))
        assert (tenant.plan_type, tenant.max_users, tenant.max_storage) == ("pro", 20, 0)

    def test_list_filters(self, admin, tenant):
        other = admin.create_tenant(TenantCreate(name="Costa Juridico"))
        admin.set_tenant_status(other.id, False)
        assert [t.id for t in admin.list_tenants(active=True)] == [tenant.id]
        assert [t.id for t in admin.list_tenants(search="costa")] == [other.id]
        assert len(admin.list_tenants()) == 2

    def test_update_ignores_nulls(self, admin, tenant):
        updated = admin.update_tenant(tenant.id, TenantUpdate(name=None, max_users=10))
        assert updated.name == "Silva Advogados"
        assert updated.max_users == 10
        assert updated.schema_name == tenant.schema_name

    def test_deactivate(self, admin, tenant):
        assert admin.set_tenant_status(tenant.id, False).is_active is False
        assert admin.get_tenant(tenant.id).is_active is False

    def test_unknown_tenant(self, admin):
        with pytest.raises(TenantNotFoundError, match="Tenant not found"):
            admin.get_tenant("missing")
        assert admin.find_tenant("missing") is None

    def test_delete_cascades_keys_and_config(self, admin, tenant):
        admin.generate_key(RegistrationKeyCreate(tenant_id=tenant.id))
        unbound, _ = admin.generate_key(RegistrationKeyCreate())
        admin.create_api_config(ApiConfigCreate(tenant_id=tenant.id, resend_api_key="re_123"))

        admin.delete_tenant(tenant.id)

        with pytest.raises(TenantNotFoundError):
            admin.get_tenant(tenant.id)
        assert [key.id for key in admin.list_keys()] == [unbound.id]
        with pytest.raises(ApiConfigNotFoundError):
            admin.get_api_config(tenant.id)


# ── Registration keys ─────────────────────────────────────────────────────────


class TestRegistrationKeys:
    def test_single_use_forces_one_use(self, admin):
        key, raw_key = admin.generate_key(RegistrationKeyCreate(single_use=True, uses_allowed=5))
        assert key.uses_allowed == key.uses_left == 1
        assert key.key_prefix == raw_key[:8]
        assert raw_key not in key.key_hash

    def test_multi_use_key(self, admin, tenant):
        key, _ = admin.generate_key(
            RegistrationKeyCreate(
                tenant_id=tenant.id,
                single_use=False,
                uses_allowed=3,
                account_type=AccountType.GERENCIAL,
            ),
            created_by="admin@legalsaas.dev",
        )
        assert key.uses_left == 3
        assert key.account_type == AccountType.GERENCIAL
        assert key.created_by == "admin@legalsaas.dev"

    def test_key_for_unknown_tenant(self, admin):
        with pytest.raises(TenantNotFoundError):
            admin.generate_key(RegistrationKeyCreate(tenant_id="missing"))

    def test_verify_key(self, admin):
        key, raw_key = admin.generate_key(RegistrationKeyCreate())
        assert admin.verify_key(raw_key).id == key.id

    def test_verify_rejects_unknown_key(self, admin):
        admin.generate_key(RegistrationKeyCreate())
        with pytest.raises(RegistrationKeyError, match="Invalid"):
            admin.verify_key("0" * 64)

    def test_verify_rejects_revoked_key(self, admin):
        key, raw_key = admin.generate_key(RegistrationKeyCreate())
        admin.revoke_key(key.id)
        with pytest.raises(RegistrationKeyError, match="revoked"):
            admin.verify_key(raw_key)

    def test_verify_rejects_expired_key(self, admin):
        expires = datetime(2025, 3, 1, tzinfo=timezone.utc)
        _, raw_key = admin.generate_key(RegistrationKeyCreate(expires_at=expires))
        assert admin.verify_key(raw_key, now=expires - timedelta(days=1))
        with pytest.raises(RegistrationKeyError, match="expired"):
            admin.verify_key(raw_key, now=expires + timedelta(seconds=1))

    def test_consume_logs_email_until_used_up(self, admin):
        key, raw_key = admin.generate_key(RegistrationKeyCreate(single_use=False, uses_allowed=2))
        admin.consume_key(key.id, "ana@silva-advogados.com.br")
        used = admin.consume_key(key.id, "bruno@silva-advogados.com.br")
        assert used.uses_left == 0
        assert [log.email for log in used.used_logs] == [
            "ana@silva-advogados.com.br",
            "bruno@silva-advogados.com.br",
        ]
        with pytest.raises(RegistrationKeyError, match="no uses left"):
            admin.verify_key(raw_key)
        with pytest.raises(RegistrationKeyError):
            admin.consume_key(key.id, "carla@silva-advogados.com.br")

    def test_list_keys(self, admin, tenant):
        bound, _ = admin.generate_key(RegistrationKeyCreate(tenant_id=tenant.id))
        revoked, _ = admin.generate_key(RegistrationKeyCreate())
        admin.revoke_key(revoked.id)
        assert [key.id for key in admin.list_keys(tenant_id=tenant.id)] == [bound.id]
        assert [key.id for key in admin.list_keys(include_revoked=False)] == [bound.id]

    def test_unknown_key(self, admin):
        with pytest.raises(RegistrationKeyNotFoundError):
            admin.revoke_key("missing")


# ── API configurations ────────────────────────────────────────────────────────


class TestApiConfigs:
    def test_one_config_per_tenant(self, admin, tenant):
        admin.create_api_config(ApiConfigCreate(tenant_id=tenant.id))
        with pytest.raises(ApiConfigExistsError):
            admin.create_api_config(ApiConfigCreate(tenant_id=tenant.id))

    def test_config_for_unknown_tenant(self, admin):
        with pytest.raises(TenantNotFoundError):
            admin.create_api_config(ApiConfigCreate(tenant_id="missing"))

    def test_response_hides_secrets(self, admin, tenant):
        config = admin.create_api_config(ApiConfigCreate(
            tenant_id=tenant.id,
            whatsapp_api_key="wa-secret",
            stripe_secret_key="sk_test_123",
        ))
        response = ApiConfigResponse.from_config(config, tenant_name=tenant.name)
        dumped = response.model_dump()
        assert "wa-secret" not in dumped.values()
        assert "sk_test_123" not in dumped.values()
        assert response.has_stripe_config is True
        # WhatsApp needs both the key and the phone number
        assert response.has_whatsapp_config is False
        assert response.tenant_name == "Silva Advogados"

    def test_update_and_status(self, admin, tenant):
        admin.create_api_config(ApiConfigCreate(tenant_id=tenant.id, resend_api_key="re_1"))
        updated = admin.update_api_config(
            tenant.id,
            ApiConfigUpdate(whatsapp_api_key="wa", whatsapp_phone_number="+5511999990000", resend_api_key=None),
        )
        assert updated.resend_api_key == "re_1"
        assert ApiConfigResponse.from_config(updated).has_whatsapp_config is True
        assert admin.set_api_config_status(tenant.id, False).is_active is False

    def test_delete(self, admin, tenant):
        admin.create_api_config(ApiConfigCreate(tenant_id=tenant.id))
        admin.delete_api_config(tenant.id)
        with pytest.raises(ApiConfigNotFoundError):
            admin.delete_api_config(tenant.id)


def test_global_metrics(admin, tenant):
    admin.create_tenant(TenantCreate(name="Costa Juridico"))
    admin.set_tenant_status(tenant.id, False)
    admin.generate_key(RegistrationKeyCreate())
    admin.generate_key(RegistrationKeyCreate(account_type=AccountType.COMPOSTA))
    admin.generate_key(RegistrationKeyCreate(account_type=AccountType.COMPOSTA))

    metrics = admin.global_metrics(total_users=4)
    assert metrics.total_tenants == 2
    assert metrics.active_tenants == 1
    assert metrics.total_users == 4
    assert metrics.keys_by_account_type == {"SIMPLES": 1, "COMPOSTA": 2}
