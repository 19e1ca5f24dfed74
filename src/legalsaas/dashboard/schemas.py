"""Pydantic models for the dashboard overview endpoints."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from src.legalsaas.admin.schemas import AccountType
from src.legalsaas.cashflow.schemas import CategoryStats
from src.legalsaas.pipeline.records import Money, UtcDatetime

FINANCE_UNAVAILABLE = "Financial data not available for this account type"


class DashboardMetrics(BaseModel):
    """Headline figures; the money fields stay zero for SIMPLES accounts."""

    revenue: Money = Decimal("0")
    expenses: Money = Decimal("0")
    balance: Money = Decimal("0")
    clients: int = 0
    projects: int = 0
    tasks: int = 0
    revenue_growth: float | None = 0.0  # None once finance is visible but there is no baseline
    client_growth: float | None = None


class MetricsResponse(BaseModel):
    metrics: DashboardMetrics
    account_type: AccountType
    timestamp: UtcDatetime


class MonthlyTrend(BaseModel):
    month: str  # "YYYY-MM"
    revenue: Money = Decimal("0")
    expenses: Money = Decimal("0")
    balance: Money = Decimal("0")


class FinancialOverview(BaseModel):
    """Current-month totals, monthly trend and category split.

    ``available`` is False, with every figure zeroed and ``message`` set,
    for accounts without access to financial data.
    """

    available: bool = True
    revenue: Money = Decimal("0")
    expenses: Money = Decimal("0")
    balance: Money = Decimal("0")
    transaction_count: int = 0
    trends: list[MonthlyTrend] = Field(default_factory=list)
    income_categories: list[CategoryStats] = Field(default_factory=list)
    expense_categories: list[CategoryStats] = Field(default_factory=list)
    message: str | None = None


class ClientMetrics(BaseModel):
    total_clients: int = 0
    new_this_month: int = 0
    growth_percentage: float | None = None  # new this month vs clients before it
    by_status: dict[str, int] = Field(default_factory=dict)


class ProjectMetrics(BaseModel):
    total_projects: int = 0
    active_projects: int = 0
    overdue_projects: int = 0
    average_progress: int = 0
    total_revenue: Money = Decimal("0")
