"""Cash-flow transaction service, monthly stats, category breakdown and CSV export."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from src.legalsaas.cashflow.schemas import (
    CashFlowStats,
    CategoryStats,
    Transaction,
    TransactionStatus,
    TransactionTab,
    TransactionType,
)
from src.legalsaas.exports.csv_io import TRANSACTION_COLUMNS, to_csv
from src.legalsaas.pipeline.records import utcnow
from src.legalsaas.pipeline.service import RecordService

TRANSACTION_SEARCH_FIELDS = ("description", "category", "client_name", "project_title")

ZERO = Decimal("0")


class CashFlowService(RecordService[Transaction]):
    """Transactions listed newest first."""

    def __init__(self) -> None:
        super().__init__(
            entity="transaction",
            model=Transaction,
            search_fields=TRANSACTION_SEARCH_FIELDS,
            order_by="created_at",
            descending=True,
        )

    def _prepare_create(self, tenant_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        payload["date"] = payload.get("date") or utcnow()
        payload.setdefault("last_modified_by", payload.get("created_by"))
        return payload

    def list_transactions(
        self,
        tenant_id: str,
        *,
        search: str = "",
        status: str | None = None,
        tx_type: str | None = None,
        tab: TransactionTab = TransactionTab.all,
        tags: Iterable[str] | None = None,
    ) -> list[Transaction]:
        """Filtered list; the ``recurring`` tab keeps recurring transactions only."""
        equals: dict[str, Any] = {"status": status, "type": tx_type}
        if tab in (TransactionTab.income, TransactionTab.expense):
            equals["type"] = tab.value if tx_type in (None, "all") else tx_type
            if equals["type"] != tab.value:
                return []
        elif tab == TransactionTab.recurring:
            equals["is_recurring"] = True
        flt = self.make_filter(search=search, tags=tags, **equals)
        return self.list_records(tenant_id, flt)

    def export_csv(self, tenant_id: str, **filters: Any) -> str:
        return to_csv(self.list_transactions(tenant_id, **filters), TRANSACTION_COLUMNS)


# ── Aggregation ─────────────────────────────────────────────────────────────


def _month(value: datetime) -> tuple[int, int]:
    return value.year, value.month


def _previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def _confirmed_sum(transactions: Iterable[Transaction], tx_type: TransactionType) -> Decimal:
    return sum(
        (t.amount for t in transactions if t.type == tx_type and t.status == TransactionStatus.confirmed),
        ZERO,
    )


def cashflow_stats(transactions: Iterable[Transaction], now: datetime | None = None) -> CashFlowStats:
    """Confirmed income and expenses for the current month.

    ``pending_transactions`` counts pending transactions of any month.
    ``income_growth`` compares confirmed income with the previous month.
    """
    now = now or utcnow()
    transactions = list(transactions)
    this_month = _month(now)
    current = [t for t in transactions if _month(t.date) == this_month]
    previous = [t for t in transactions if _month(t.date) == _previous_month(*this_month)]

    income = _confirmed_sum(current, TransactionType.income)
    expenses = _confirmed_sum(current, TransactionType.expense)
    previous_income = _confirmed_sum(previous, TransactionType.income)
    growth = None
    if previous_income:
        growth = float(((income - previous_income) / previous_income * 100).quantize(Decimal("0.1"), ROUND_HALF_UP))

    return CashFlowStats(
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        pending_transactions=sum(1 for t in transactions if t.status == TransactionStatus.pending),
        transaction_count=len(current),
        income_growth=growth,
    )


def category_breakdown(
    transactions: Iterable[Transaction],
    tx_type: TransactionType = TransactionType.expense,
) -> list[CategoryStats]:
    """Per-category totals of non-cancelled transactions of one type, largest first.

    Percentages are shares of the type's total, rounded to two decimals.
    """
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    names: dict[str, str] = {}
    for t in transactions:
        if t.type != tx_type or t.status == TransactionStatus.cancelled:
            continue
        key = t.category_id or t.category
        totals[key] = totals.get(key, ZERO) + t.amount
        counts[key] = counts.get(key, 0) + 1
        names.setdefault(key, t.category)

    grand_total = sum(totals.values(), ZERO)
    breakdown = [
        CategoryStats(
            category_id=key,
            category_name=names[key],
            amount=amount,
            percentage=(amount / grand_total * 100).quantize(Decimal("0.01"), ROUND_HALF_UP) if grand_total else ZERO,
            transaction_count=counts[key],
        )
        for key, amount in totals.items()
    ]
    return sorted(breakdown, key=lambda item: (-item.amount, item.category_name))
