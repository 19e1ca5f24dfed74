"""ASGI entry point: ``create_app()`` builds the service, ``app`` is what uvicorn serves.

Request path through the middleware stack, outermost first:
metrics -> request logging -> CORS -> tenant resolution -> routes.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.legalsaas.api.middleware import LoggingMiddleware, TenantAuthMiddleware
from src.legalsaas.api.middleware.logging import configure_structlog
from src.legalsaas.api.routes.router import router as api_router
from src.legalsaas.config import Settings, get_settings
from src.legalsaas.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.legalsaas.workspace import Workspace, build_workspace


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    configure_structlog(settings)
    if settings.SENTRY_DSN:
        init_sentry(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT.value,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        )

    log = structlog.get_logger(__name__)
    log.info("app.started", environment=settings.ENVIRONMENT.value, sentry=bool(settings.SENTRY_DSN))
    yield
    log.info("app.stopped")


def create_app(settings: Settings | None = None, workspace: Workspace | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to use; the cached environment settings when omitted.
        workspace: Pre-built services; a fresh in-memory workspace when omitted.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="LegalSaaS API",
        version="0.1.0",
        description="Multi-tenant back office for law firms: CRM, projects, tasks, billing and cash flow",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.workspace = workspace or build_workspace(settings)

    # add_middleware prepends, so the last one added runs first
    app.add_middleware(TenantAuthMiddleware)
    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Credentials only with an explicit origin list
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware)

    app.include_router(api_router)
    app.add_api_route("/metrics", get_metrics_response, methods=["GET"], include_in_schema=False)

    return app


app = create_app()
