"""Prometheus metrics and Sentry error reporting.

HTTP traffic is labelled by route template, never by raw path, so record
ids in URLs do not create new series. Domain counters cover the pipeline
boards; the active-tenant gauge is kept current by the admin service.
"""

from __future__ import annotations

import time

import sentry_sdk
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Gauge, Histogram, generate_latest
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.legalsaas.core.tenant import get_current_tenant

UNMATCHED_ROUTE = "<unmatched>"

# ── HTTP ─────────────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "legalsaas_http_requests_total",
    "HTTP requests served, by route template and status",
    ["method", "route", "status_code", "tenant_id"],
)

http_request_duration_seconds = Histogram(
    "legalsaas_http_request_duration_seconds",
    "HTTP request latency by route template",
    ["method", "route"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

# ── Domain ───────────────────────────────────────────────────────────────────

pipeline_stage_moves_total = Counter(
    "legalsaas_pipeline_stage_moves_total",
    "Records moved between pipeline stages",
    ["entity", "from_stage", "to_stage"],
)

active_tenants = Gauge(
    "legalsaas_active_tenants",
    "Tenants currently allowed to use the API",
)


def record_stage_move(entity: str, from_stage: str, to_stage: str) -> None:
    pipeline_stage_moves_total.labels(entity=entity, from_stage=from_stage, to_stage=to_stage).inc()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count and time every request except scrapes of /metrics.

    Requests that raise are counted as 500 before the error propagates.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = getattr(request.scope.get("route"), "path", UNMATCHED_ROUTE)
            http_requests_total.labels(
                method=request.method,
                route=route,
                status_code=str(status_code),
                tenant_id=getattr(request.state, "tenant_id", None) or "none",
            ).inc()
            http_request_duration_seconds.labels(method=request.method, route=route).observe(
                time.perf_counter() - started
            )


# ── Sentry ───────────────────────────────────────────────────────────────────


def _tag_tenant(event: dict, hint: dict) -> dict:
    """before_send hook: attach the tenant of the failing request, if any."""
    try:
        tenant = get_current_tenant()
    except RuntimeError:
        return event
    tags = event.setdefault("tags", {})
    tags["tenant_id"] = tenant.tenant_id
    tags["tenant_name"] = tenant.tenant_name
    return event


def init_sentry(dsn: str, environment: str, traces_sample_rate: float = 0.0) -> None:
    """Start the Sentry SDK for this process.

    Args:
        dsn: Project DSN; callers skip this function when it is empty.
        environment: Deployment environment reported with every event.
        traces_sample_rate: Share of requests traced for performance data.
    """
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=traces_sample_rate,
        send_default_pii=False,
        integrations=[StarletteIntegration(), FastApiIntegration()],
        before_send=_tag_tenant,
    )


def get_metrics_response() -> Response:
    """Current registry in the Prometheus text exposition format."""
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
