"""Per-request tenant context.

TenantAuthMiddleware opens a ``tenant_scope()`` for every request carrying a
tenant token. Code further down the stack (route dependencies, Sentry
tagging) reads it back with ``get_current_tenant()`` instead of passing the
tenant around.
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

# ── Tenant Context ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TenantContext:
    """The tenant a request acts for."""

    tenant_id: str
    tenant_name: str
    schema_name: str  # "tenant_" + first 12 hex chars of the id


_current: contextvars.ContextVar[TenantContext | None] = contextvars.ContextVar(
    "legalsaas_tenant", default=None
)


def get_current_tenant() -> TenantContext:
    """Tenant of the running request.

    Raises:
        RuntimeError: Outside a tenant scope (public, admin or anonymous requests).
    """
    ctx = _current.get()
    if ctx is None:
        raise RuntimeError("No tenant context set -- request is not tenant-scoped")
    return ctx


@contextmanager
def tenant_scope(ctx: TenantContext) -> Iterator[TenantContext]:
    """Make ``ctx`` the current tenant until the block exits."""
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


# ── Public paths ────────────────────────────────────────────────────────────

# Prefixes served without tenant resolution; admin routes use their own token scope
SKIP_TENANT_PATHS = (
    "/health",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api/admin",
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/refresh",
    "/api/auth/logout",
)
