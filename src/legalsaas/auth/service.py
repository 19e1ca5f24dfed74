"""Account registry, credential checks and JWT issuance.

Tenant users register with a registration key issued by an administrator.
Administrators are seeded from settings at startup. Refresh tokens rotate:
every refresh or logout revokes the presented token's ``jti``.
"""

from __future__ import annotations

import structlog

from src.legalsaas.admin.schemas import Tenant, TenantCreate
from src.legalsaas.admin.service import AdminService
from src.legalsaas.auth.schemas import AdminAccount, RegisterRequest, TokenResponse, UserAccount
from src.legalsaas.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

logger = structlog.get_logger(__name__)

TENANT_SCOPE = "tenant"
ADMIN_SCOPE = "admin"


class AuthError(ValueError):
    """Base class for authentication errors."""


class InvalidCredentialsError(AuthError):
    """Wrong e-mail or password, or an invalid / revoked token."""


class DuplicateEmailError(AuthError):
    def __init__(self, email: str) -> None:
        super().__init__(f"E-mail already registered: {email}")
        self.email = email


class InactiveTenantError(AuthError):
    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"Tenant is inactive: {tenant_id}")
        self.tenant_id = tenant_id


class UserLimitError(AuthError):
    def __init__(self, tenant_id: str, max_users: int) -> None:
        super().__init__(f"Tenant {tenant_id} reached its limit of {max_users} users")
        self.tenant_id = tenant_id
        self.max_users = max_users


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """In-memory user and admin accounts with token issuance and revocation."""

    def __init__(self, admin: AdminService) -> None:
        self.admin = admin
        self._users: dict[str, UserAccount] = {}
        self._admins: dict[str, AdminAccount] = {}
        self._revoked_jtis: set[str] = set()

    # ── Accounts ─────────────────────────────────────────────────────────

    def seed_admin(self, email: str, password: str, name: str) -> AdminAccount:
        """Create the administrator account unless one with that e-mail exists."""
        email = _normalize_email(email)
        existing = next((a for a in self._admins.values() if a.email == email), None)
        if existing is not None:
            return existing
        account = AdminAccount(email=email, name=name, hashed_password=hash_password(password))
        self._admins[account.id] = account
        logger.info("admin.seeded", admin_id=account.id)
        return account

    def _find_user(self, email: str) -> UserAccount | None:
        email = _normalize_email(email)
        return next((u for u in self._users.values() if u.email == email), None)

    def register(self, data: RegisterRequest) -> tuple[UserAccount, Tenant, bool]:
        """Register a tenant user with a registration key.

        A key bound to a tenant adds the user to that tenant; an unbound key
        creates a new tenant for the user. The key is consumed only after
        every other check passed.

        Returns:
            Tuple of (user, tenant, is_new_tenant).

        Raises:
            DuplicateEmailError: If the e-mail is already registered.
            RegistrationKeyError: If the key is invalid, revoked, expired or used up.
            InactiveTenantError: If the key's tenant is deactivated.
            UserLimitError: If the key's tenant has no free user seats.
        """
        email = _normalize_email(data.email)
        if self._find_user(email) is not None:
            raise DuplicateEmailError(email)

        key = self.admin.verify_key(data.key)

        is_new_tenant = key.tenant_id is None
        if is_new_tenant:
            tenant = self.admin.create_tenant(TenantCreate(name=data.tenant_name or data.name))
        else:
            tenant = self.admin.get_tenant(key.tenant_id)
            if not tenant.is_active:
                raise InactiveTenantError(tenant.id)
            if self.count_users(tenant.id) >= tenant.max_users:
                raise UserLimitError(tenant.id, tenant.max_users)

        self.admin.consume_key(key.id, email)
        user = UserAccount(
            tenant_id=tenant.id,
            email=email,
            name=data.name.strip(),
            hashed_password=hash_password(data.password),
            account_type=key.account_type,
        )
        self._users[user.id] = user
        logger.info(
            "user.registered",
            user_id=user.id,
            tenant_id=tenant.id,
            is_new_tenant=is_new_tenant,
            account_type=user.account_type.value,
        )
        return user, tenant, is_new_tenant

    def authenticate_user(self, email: str, password: str) -> UserAccount:
        """Check a tenant user's credentials.

        Raises:
            InvalidCredentialsError: On unknown e-mail, wrong password or disabled user.
            InactiveTenantError: If the user's tenant is deactivated or gone.
        """
        user = self._find_user(email)
        if user is None or not user.is_active or not verify_password(password, user.hashed_password):
            logger.warning("auth.login_failed", scope=TENANT_SCOPE)
            raise InvalidCredentialsError("Invalid email or password")
        tenant = self.admin.find_tenant(user.tenant_id)
        if tenant is None or not tenant.is_active:
            raise InactiveTenantError(user.tenant_id)
        return user

    def authenticate_admin(self, email: str, password: str) -> AdminAccount:
        email = _normalize_email(email)
        account = next((a for a in self._admins.values() if a.email == email), None)
        if account is None or not account.is_active or not verify_password(password, account.hashed_password):
            logger.warning("auth.login_failed", scope=ADMIN_SCOPE)
            raise InvalidCredentialsError("Invalid admin credentials")
        return account

    def get_user(self, user_id: str) -> UserAccount | None:
        return self._users.get(user_id)

    def get_admin(self, admin_id: str) -> AdminAccount | None:
        return self._admins.get(admin_id)

    def count_users(self, tenant_id: str | None = None) -> int:
        if tenant_id is None:
            return len(self._users)
        return sum(1 for user in self._users.values() if user.tenant_id == tenant_id)

    def remove_tenant_users(self, tenant_id: str) -> int:
        doomed = [user_id for user_id, user in self._users.items() if user.tenant_id == tenant_id]
        for user_id in doomed:
            del self._users[user_id]
        return len(doomed)

    # ── Tokens ───────────────────────────────────────────────────────────

    @staticmethod
    def _claims(account: UserAccount | AdminAccount) -> dict:
        if isinstance(account, UserAccount):
            return {
                "sub": account.id,
                "email": account.email,
                "scope": TENANT_SCOPE,
                "tenant_id": account.tenant_id,
                "account_type": account.account_type.value,
            }
        return {
            "sub": account.id,
            "email": account.email,
            "scope": ADMIN_SCOPE,
            "role": account.role,
        }

    def issue_tokens(self, account: UserAccount | AdminAccount) -> TokenResponse:
        claims = self._claims(account)
        return TokenResponse(
            access_token=create_access_token(claims),
            refresh_token=create_refresh_token(claims),
        )

    def refresh(self, refresh_token: str, scope: str) -> TokenResponse:
        """Exchange a refresh token for a new token pair, revoking the old one.

        Raises:
            InvalidCredentialsError: If the token is invalid, revoked, of the
                wrong scope, or its account no longer exists.
        """
        payload = decode_token(refresh_token)
        if (
            payload is None
            or payload.get("type") != "refresh"
            or payload.get("scope") != scope
            or payload.get("jti") in self._revoked_jtis
        ):
            raise InvalidCredentialsError("Invalid refresh token")

        account: UserAccount | AdminAccount | None
        if scope == ADMIN_SCOPE:
            account = self.get_admin(payload.get("sub", ""))
        else:
            account = self.get_user(payload.get("sub", ""))
            if account is not None:
                tenant = self.admin.find_tenant(account.tenant_id)
                if tenant is None or not tenant.is_active:
                    raise InactiveTenantError(account.tenant_id)
        if account is None or not account.is_active:
            raise InvalidCredentialsError("Account not found or inactive")

        self._revoked_jtis.add(payload["jti"])
        logger.info("auth.token_refreshed", scope=scope, subject=account.id)
        return self.issue_tokens(account)

    def logout(self, refresh_token: str) -> None:
        """Revoke a refresh token. Invalid tokens are ignored."""
        payload = decode_token(refresh_token)
        if payload is None or payload.get("type") != "refresh" or not payload.get("jti"):
            return
        self._revoked_jtis.add(payload["jti"])
        logger.info("auth.logged_out", scope=payload.get("scope"), subject=payload.get("sub"))

    def is_revoked(self, jti: str) -> bool:
        return jti in self._revoked_jtis
