"""API middleware package."""

from src.legalsaas.api.middleware.logging import LoggingMiddleware
from src.legalsaas.api.middleware.tenant import TenantAuthMiddleware

__all__ = ["LoggingMiddleware", "TenantAuthMiddleware"]
