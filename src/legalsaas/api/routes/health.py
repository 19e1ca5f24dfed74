"""Liveness and readiness probes."""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request):
    """The process is up and answering requests."""
    return {"status": "ok", "environment": request.app.state.settings.ENVIRONMENT.value}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """200 once the service workspace is wired onto the app, 503 before that."""
    ready = getattr(request.app.state, "workspace", None) is not None
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "starting",
            "checks": {"workspace": "ok" if ready else "missing"},
        },
    )
