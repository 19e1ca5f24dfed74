"""Request-scoped structured logging.

``configure_structlog()`` wires structlog on top of the stdlib root logger
and merges contextvars into every event, so anything bound for the current
request (request id, tenant, route) shows up in service logs as well.

``LoggingMiddleware`` binds that context and writes one ``http.request``
event per request. Probe and scrape paths log at debug level only.
"""

from __future__ import annotations

import logging
import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.legalsaas.config import Environment, Settings, get_settings
from src.legalsaas.core.security import decode_token

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

QUIET_PATHS = ("/health", "/metrics")


def configure_structlog(settings: Settings | None = None) -> None:
    """Configure structlog: JSON lines in production, console output elsewhere."""
    settings = settings or get_settings()
    logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL.upper())

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.ENVIRONMENT == Environment.production
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _token_subject(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    claims = decode_token(token)
    return claims.get("sub") if claims else None


class LoggingMiddleware(BaseHTTPMiddleware):
    """Bind request context for structlog and log the request outcome.

    The incoming X-Request-ID is reused when present, otherwise a new one is
    generated; either way it is echoed on the response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            user_id=_token_subject(request),
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "http.request_failed",
                tenant_id=getattr(request.state, "tenant_id", None),
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request_id

        if request.url.path.startswith(QUIET_PATHS):
            log = logger.debug
        elif response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        route = request.scope.get("route")
        log(
            "http.request",
            route=getattr(route, "path", None),
            status_code=response.status_code,
            tenant_id=getattr(request.state, "tenant_id", None),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response
