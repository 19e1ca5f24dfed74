"""API router -- aggregates all endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.legalsaas.api.routes import (
    admin,
    auth,
    clients,
    dashboard,
    deals,
    health,
    invoices,
    notifications,
    projects,
    tasks,
    transactions,
)

router = APIRouter()

router.include_router(health.router)
router.include_router(auth.router)
router.include_router(admin.router)
router.include_router(clients.router)
router.include_router(deals.router)
router.include_router(projects.router)
router.include_router(tasks.router)
router.include_router(invoices.router)
router.include_router(transactions.router)
router.include_router(notifications.router)
router.include_router(dashboard.router)
