"""Dashboard aggregation over the tenant's clients, projects, tasks and transactions.

Financial figures are confirmed transactions only, the same basis as the
cash-flow stats. Accounts that may not see cash flow get the zeroed
variants from ``restricted_*``.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from src.legalsaas.admin.schemas import AccountType
from src.legalsaas.cashflow.schemas import Transaction, TransactionStatus, TransactionType
from src.legalsaas.cashflow.service import cashflow_stats, category_breakdown
from src.legalsaas.crm.schemas import Client
from src.legalsaas.dashboard.schemas import (
    FINANCE_UNAVAILABLE,
    ClientMetrics,
    DashboardMetrics,
    FinancialOverview,
    MonthlyTrend,
    ProjectMetrics,
)
from src.legalsaas.pipeline.records import utcnow
from src.legalsaas.projects.schemas import Project
from src.legalsaas.projects.service import project_stats
from src.legalsaas.tasks.schemas import COMPLETED, Task

FINANCE_ACCOUNT_TYPES = frozenset({AccountType.COMPOSTA, AccountType.GERENCIAL})

TREND_MONTHS = 6

ZERO = Decimal("0")


def sees_finance(account_type: AccountType) -> bool:
    return account_type in FINANCE_ACCOUNT_TYPES


def _month_key(value: datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def _last_months(now: datetime, count: int) -> list[str]:
    """Month keys ending with the month of ``now``, oldest first."""
    year, month = now.year, now.month
    keys = []
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        year, month = (year - 1, 12) if month == 1 else (year, month - 1)
    return keys[::-1]


def monthly_trends(
    transactions: Iterable[Transaction],
    now: datetime | None = None,
    months: int = TREND_MONTHS,
) -> list[MonthlyTrend]:
    """Confirmed revenue and expenses per calendar month, oldest first.

    Months without transactions are present with zero figures.
    """
    now = now or utcnow()
    keys = _last_months(now, months)
    revenue = dict.fromkeys(keys, ZERO)
    expenses = dict.fromkeys(keys, ZERO)
    for t in transactions:
        key = _month_key(t.date)
        if key not in revenue or t.status != TransactionStatus.confirmed:
            continue
        if t.type == TransactionType.income:
            revenue[key] += t.amount
        else:
            expenses[key] += t.amount
    return [
        MonthlyTrend(month=key, revenue=revenue[key], expenses=expenses[key], balance=revenue[key] - expenses[key])
        for key in keys
    ]


def client_metrics(clients: Iterable[Client], now: datetime | None = None) -> ClientMetrics:
    """Client counts with growth measured against the clients that existed before this month."""
    now = now or utcnow()
    clients = list(clients)
    this_month = _month_key(now)
    new = sum(1 for client in clients if _month_key(client.created_at) == this_month)
    before = len(clients) - new
    growth = None
    if before:
        growth = float((Decimal(new) / before * 100).quantize(Decimal("0.1"), ROUND_HALF_UP))
    return ClientMetrics(
        total_clients=len(clients),
        new_this_month=new,
        growth_percentage=growth,
        by_status=dict(Counter(client.status.value for client in clients)),
    )


def project_metrics(projects: Iterable[Project], now: datetime | None = None) -> ProjectMetrics:
    stats = project_stats(projects, now=now)
    return ProjectMetrics(
        total_projects=stats.total,
        active_projects=stats.active,
        overdue_projects=stats.overdue,
        average_progress=stats.average_progress,
        total_revenue=stats.total_revenue,
    )


def financial_overview(transactions: Iterable[Transaction], now: datetime | None = None) -> FinancialOverview:
    now = now or utcnow()
    transactions = list(transactions)
    current = cashflow_stats(transactions, now=now)
    return FinancialOverview(
        revenue=current.total_income,
        expenses=current.total_expenses,
        balance=current.balance,
        transaction_count=current.transaction_count,
        trends=monthly_trends(transactions, now=now),
        income_categories=category_breakdown(transactions, TransactionType.income),
        expense_categories=category_breakdown(transactions, TransactionType.expense),
    )


def restricted_financial_overview() -> FinancialOverview:
    return FinancialOverview(available=False, message=FINANCE_UNAVAILABLE)


def dashboard_metrics(
    account_type: AccountType,
    *,
    clients: Iterable[Client],
    projects: Iterable[Project],
    tasks: Iterable[Task],
    transactions: Iterable[Transaction],
    now: datetime | None = None,
) -> DashboardMetrics:
    """Headline figures for the overview page.

    Args:
        account_type: Caller's account type; without finance access the
            money fields and ``revenue_growth`` stay at their zero defaults.
        clients: Every client of the tenant.
        projects: Every project of the tenant.
        tasks: Every task of the tenant.
        transactions: Every transaction of the tenant; ignored without finance access.
        now: Reference time (defaults to current UTC time).

    Returns:
        DashboardMetrics where ``projects`` counts active projects and
        ``tasks`` counts tasks not yet completed.
    """
    now = now or utcnow()
    crm = client_metrics(clients, now=now)
    metrics = DashboardMetrics(
        clients=crm.total_clients,
        projects=project_stats(projects, now=now).active,
        tasks=sum(1 for task in tasks if task.status != COMPLETED),
        client_growth=crm.growth_percentage,
    )
    if not sees_finance(account_type):
        return metrics
    cash = cashflow_stats(transactions, now=now)
    return metrics.model_copy(update={
        "revenue": cash.total_income,
        "expenses": cash.total_expenses,
        "balance": cash.balance,
        "revenue_growth": cash.income_growth,
    })
