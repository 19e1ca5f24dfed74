"""Service container for one running application.

The FastAPI app keeps a single Workspace on ``app.state``; route
dependencies pull services from it. Tests build their own isolated
workspace per app.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from src.legalsaas.admin.schemas import TenantStats
from src.legalsaas.admin.service import AdminService
from src.legalsaas.auth.service import AuthService
from src.legalsaas.billing.service import BillingService
from src.legalsaas.cashflow.service import CashFlowService
from src.legalsaas.config import Settings, get_settings
from src.legalsaas.crm.schemas import Deal
from src.legalsaas.crm.service import ClientService, create_deal_pipeline
from src.legalsaas.notifications.service import NotificationService
from src.legalsaas.pipeline.service import PipelineService
from src.legalsaas.projects.schemas import Project
from src.legalsaas.projects.service import create_project_pipeline
from src.legalsaas.tasks.service import TaskService

logger = structlog.get_logger(__name__)


@dataclass
class Workspace:
    settings: Settings
    admin: AdminService
    auth: AuthService
    clients: ClientService
    deals: PipelineService[Deal]
    projects: PipelineService[Project]
    tasks: TaskService
    billing: BillingService
    cashflow: CashFlowService
    notifications: NotificationService

    def tenant_stats(self, tenant_id: str) -> TenantStats:
        return TenantStats(
            users=self.auth.count_users(tenant_id),
            clients=self.clients.count(tenant_id),
            deals=self.deals.count(tenant_id),
            projects=self.projects.count(tenant_id),
            tasks=self.tasks.count(tenant_id),
            documents=self.billing.count(tenant_id),
            transactions=self.cashflow.count(tenant_id),
        )

    def drop_tenant(self, tenant_id: str) -> None:
        """Delete a tenant and everything stored under it.

        Raises:
            TenantNotFoundError: If the tenant does not exist.
        """
        self.admin.delete_tenant(tenant_id)
        users = self.auth.remove_tenant_users(tenant_id)
        services = (
            self.clients, self.deals, self.projects, self.tasks,
            self.billing, self.cashflow, self.notifications,
        )
        for service in services:
            service.drop_tenant(tenant_id)
        logger.info("workspace.tenant_dropped", tenant_id=tenant_id, users=users)


def build_workspace(settings: Settings | None = None) -> Workspace:
    """Wire every service and seed the administrator account."""
    settings = settings or get_settings()
    admin = AdminService(settings)
    auth = AuthService(admin)
    auth.seed_admin(settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD, settings.ADMIN_NAME)
    return Workspace(
        settings=settings,
        admin=admin,
        auth=auth,
        clients=ClientService(),
        deals=create_deal_pipeline(),
        projects=create_project_pipeline(),
        tasks=TaskService(),
        billing=BillingService(),
        cashflow=CashFlowService(),
        notifications=NotificationService(),
    )
