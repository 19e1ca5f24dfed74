"""Tenant resolution middleware.

Resolves the tenant from the tenant-scoped JWT in the Authorization header,
checks that the tenant exists and is active, and sets TenantContext in
contextvars for the request scope.

Requests without a usable token pass through without a context; the route
dependencies then answer 401. Tokens for unknown or deactivated tenants are
rejected here with 403.
"""

from __future__ import annotations

import logging

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.legalsaas.core.security import decode_token
from src.legalsaas.core.tenant import SKIP_TENANT_PATHS, TenantContext, tenant_scope

logger = logging.getLogger(__name__)


class TenantAuthMiddleware(BaseHTTPMiddleware):
    """Middleware that resolves the tenant from JWT claims.

    Paths in SKIP_TENANT_PATHS are excluded from tenant resolution.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if any(path.startswith(skip) for skip in SKIP_TENANT_PATHS):
            return await call_next(request)

        tenant_id = self._tenant_id_from_jwt(request)
        if tenant_id is None:
            return await call_next(request)

        workspace = getattr(request.app.state, "workspace", None)
        tenant = workspace.admin.find_tenant(tenant_id) if workspace is not None else None
        if tenant is None or not tenant.is_active:
            logger.warning("Rejected request for unknown or inactive tenant %s", tenant_id)
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"detail": "Tenant not found or inactive"},
            )

        request.state.tenant_id = tenant.id
        ctx = TenantContext(tenant_id=tenant.id, tenant_name=tenant.name, schema_name=tenant.schema_name)
        with tenant_scope(ctx):
            return await call_next(request)

    @staticmethod
    def _tenant_id_from_jwt(request: Request) -> str | None:
        """Extract tenant_id from a tenant-scoped access token, if any."""
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return None

        payload = decode_token(auth_header[7:])
        if payload is None or payload.get("type") != "access" or payload.get("scope") != "tenant":
            return None
        return payload.get("tenant_id") or None
