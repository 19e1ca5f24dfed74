"""Cash-flow tests: monthly stats, category breakdown, list tabs and export."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from src.legalsaas.cashflow.schemas import (
    Transaction,
    TransactionCreate,
    TransactionStatus,
    TransactionTab,
    TransactionType,
)
from src.legalsaas.cashflow.service import CashFlowService, cashflow_stats, category_breakdown
from src.legalsaas.exports.csv_io import parse_csv

TENANT = "tenant-alpha"
NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


def _tx(
    tx_type: TransactionType,
    amount: str,
    when: datetime,
    status: TransactionStatus = TransactionStatus.confirmed,
    category: str = "Honorarios",
) -> Transaction:
    return Transaction(
        tenant_id=TENANT,
        type=tx_type,
        amount=Decimal(amount),
        category=category,
        date=when,
        status=status,
    )


def _march(day: int) -> datetime:
    return datetime(2025, 3, day, tzinfo=timezone.utc)


INCOME = TransactionType.income
EXPENSE = TransactionType.expense


class TestCashFlowStats:
    def _transactions(self) -> list[Transaction]:
        return [
            _tx(INCOME, "1000", _march(2)),
            _tx(INCOME, "500", _march(10)),
            _tx(INCOME, "300", _march(12), status=TransactionStatus.pending),
            _tx(EXPENSE, "400", _march(5), category="Aluguel"),
            _tx(EXPENSE, "100", _march(6), category="Software"),
            _tx(EXPENSE, "999", _march(7), status=TransactionStatus.cancelled, category="Aluguel"),
            _tx(INCOME, "1200", datetime(2025, 2, 20, tzinfo=timezone.utc)),
            _tx(EXPENSE, "50", datetime(2025, 1, 10, tzinfo=timezone.utc),
                status=TransactionStatus.pending, category="Custas"),
        ]

    def test_current_month_figures(self):
        stats = cashflow_stats(self._transactions(), now=NOW)
        assert stats.total_income == Decimal("1500")
        assert stats.total_expenses == Decimal("500")
        assert stats.balance == Decimal("1000")
        assert stats.transaction_count == 6

    def test_pending_counts_every_month(self):
        assert cashflow_stats(self._transactions(), now=NOW).pending_transactions == 2

    def test_income_growth_against_previous_month(self):
        assert cashflow_stats(self._transactions(), now=NOW).income_growth == 25.0

    def test_income_growth_without_baseline(self):
        stats = cashflow_stats([_tx(INCOME, "100", _march(1))], now=NOW)
        assert stats.income_growth is None

    def test_january_compares_with_december(self):
        transactions = [
            _tx(INCOME, "150", datetime(2025, 1, 5, tzinfo=timezone.utc)),
            _tx(INCOME, "100", datetime(2024, 12, 20, tzinfo=timezone.utc)),
        ]
        stats = cashflow_stats(transactions, now=datetime(2025, 1, 20, tzinfo=timezone.utc))
        assert stats.income_growth == 50.0

    def test_sums_are_order_independent(self):
        transactions = self._transactions()
        assert cashflow_stats(transactions, now=NOW) == cashflow_stats(list(reversed(transactions)), now=NOW)


class TestCategoryBreakdown:
    def test_expense_categories(self):
        breakdown = category_breakdown(TestCashFlowStats()._transactions(), EXPENSE)
        assert [item.category_name for item in breakdown] == ["Aluguel", "Software", "Custas"]
        rent = breakdown[0]
        assert rent.amount == Decimal("400")
        assert rent.transaction_count == 1
        assert rent.percentage == Decimal("72.73")
        assert breakdown[1].percentage == Decimal("18.18")
        assert breakdown[2].percentage == Decimal("9.09")

    def test_category_id_groups_renamed_categories(self):
        transactions = [
            Transaction(tenant_id=TENANT, type=EXPENSE, amount=Decimal("10"), category="Luz",
                        category_id="utilities", date=NOW),
            Transaction(tenant_id=TENANT, type=EXPENSE, amount=Decimal("30"), category="Energia",
                        category_id="utilities", date=NOW),
        ]
        breakdown = category_breakdown(transactions, EXPENSE)
        assert len(breakdown) == 1
        assert breakdown[0].category_id == "utilities"
        assert breakdown[0].amount == Decimal("40")
        assert breakdown[0].percentage == Decimal("100.00")

    def test_empty(self):
        assert category_breakdown([], INCOME) == []


# ── Service ──────────────────────────────────────────────────────────────────


@pytest.fixture
def cashflow():
    service = CashFlowService()
    service.create_record(TENANT, TransactionCreate(
        type=INCOME, amount=Decimal("1000"), category="Honorarios", description="Caso Souza",
        status=TransactionStatus.confirmed,
    ))
    service.create_record(TENANT, TransactionCreate(
        type=EXPENSE, amount=Decimal("400"), category="Aluguel", description="Escritorio, sala 12",
        is_recurring=True, tags=["fixo"],
    ))
    service.create_record(TENANT, TransactionCreate(
        type=EXPENSE, amount=Decimal("80"), category="Custas", description="Guia judicial",
    ))
    return service


class TestCashFlowService:
    def test_create_defaults_date_to_now(self, cashflow):
        assert all(t.date is not None for t in cashflow.records(TENANT))

    def test_create_records_author(self):
        service = CashFlowService()
        tx = service.create_record(TENANT, {
            "type": "income", "amount": "10", "category": "Honorarios", "created_by": "Ana",
        })
        assert tx.created_by == "Ana"
        assert tx.last_modified_by == "Ana"

    def test_tabs(self, cashflow):
        income = cashflow.list_transactions(TENANT, tab=TransactionTab.income)
        assert [t.category for t in income] == ["Honorarios"]
        expense = cashflow.list_transactions(TENANT, tab=TransactionTab.expense)
        assert {t.category for t in expense} == {"Aluguel", "Custas"}
        recurring = cashflow.list_transactions(TENANT, tab=TransactionTab.recurring)
        assert [t.category for t in recurring] == ["Aluguel"]

    def test_conflicting_tab_and_type_is_empty(self, cashflow):
        assert cashflow.list_transactions(TENANT, tab=TransactionTab.expense, tx_type="income") == []

    def test_search_status_and_tags(self, cashflow):
        assert [t.category for t in cashflow.list_transactions(TENANT, search="souza")] == ["Honorarios"]
        assert len(cashflow.list_transactions(TENANT, status="pending")) == 2
        assert [t.category for t in cashflow.list_transactions(TENANT, tags=["fix"])] == ["Aluguel"]

    def test_export_csv(self, cashflow):
        rows = parse_csv(cashflow.export_csv(TENANT, tab=TransactionTab.expense, search="escritorio"))
        assert len(rows) == 1
        row = rows[0]
        assert row["Tipo"] == "Despesa"
        assert row["Descrição"] == "Escritorio, sala 12"
        assert row["Valor"] == "400.00"
        assert row["Status"] == "Pendente"
        assert row["Tags"] == "fixo"
