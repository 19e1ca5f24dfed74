"""Billing tests: totals calculator, document workflow and dashboard stats.

Covers:
    - Line amounts, percentage vs fixed adjustments, cent rounding
    - Per-tenant EST-/INV- numbering
    - Workflow: send, pay, cancel, reminders, estimate conversion
    - Illegal status moves (PAID -> DRAFT, leaving CANCELLED) are rejected
    - billing_stats over a fixed ``now``, independent of document order
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from src.legalsaas.billing.schemas import (
    AdjustmentType,
    BillingDocument,
    BillingItem,
    DocumentCreate,
    DocumentStatus,
    DocumentType,
    DocumentUpdate,
    PaymentMethod,
    PaymentRequest,
)
from src.legalsaas.billing.service import BillingError, BillingService
from src.legalsaas.billing.stats import billing_stats
from src.legalsaas.billing.totals import calculate_totals, line_amount
from src.legalsaas.pipeline.stages import InvalidStageTransitionError

ALPHA = "tenant-alpha"
BETA = "tenant-beta"
NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


def _item(rate: str, quantity: str = "1", **kwargs) -> BillingItem:
    return BillingItem(description="Honorarios", quantity=Decimal(quantity), rate=Decimal(rate), **kwargs)


def _create(doc_type: DocumentType, *items: BillingItem, **kwargs) -> DocumentCreate:
    return DocumentCreate(
        type=doc_type,
        title="Honorarios advocaticios",
        receiver_name="Maria Souza",
        items=list(items) or [_item("150.00", "2")],
        **kwargs,
    )


@pytest.fixture
def billing():
    return BillingService()


# ── Totals ───────────────────────────────────────────────────────────────────


class TestCalculateTotals:
    def test_line_amount_defaults_to_quantity_times_rate(self):
        assert line_amount(_item("150.00", "2")) == Decimal("300.00")
        assert line_amount(_item("150.00", "3", amount=Decimal("400"))) == Decimal("400")

    def test_percentage_discount_and_fixed_fee(self):
        totals = calculate_totals(
            [_item("150.00", "2"), _item("99.90")],
            discount=Decimal("10"),
            discount_type=AdjustmentType.percentage,
            fee=Decimal("10"),
            fee_type=AdjustmentType.fixed,
        )
        assert totals.subtotal == Decimal("399.90")
        assert totals.discount == Decimal("39.99")
        assert totals.fee == Decimal("10.00")
        assert totals.total == Decimal("369.91")

    def test_percentage_tax_on_subtotal_plus_line_tax(self):
        totals = calculate_totals(
            [_item("100.00", tax=Decimal("10"), tax_type=AdjustmentType.percentage), _item("100.00")],
            tax=Decimal("5"),
            tax_type=AdjustmentType.percentage,
        )
        # 5% of 200 plus 10% of the first line
        assert totals.tax == Decimal("20.00")
        assert totals.total == Decimal("220.00")

    def test_rounds_half_up_to_cents(self):
        totals = calculate_totals([_item("0.125")])
        assert totals.subtotal == Decimal("0.13")
        assert totals.total == Decimal("0.13")

    def test_no_items(self):
        totals = calculate_totals([])
        assert totals.total == Decimal("0.00")


# ── Workflow ─────────────────────────────────────────────────────────────────


class TestDocumentLifecycle:
    def test_create_numbers_per_type_and_tenant(self, billing):
        first = billing.create_document(ALPHA, _create(DocumentType.estimate))
        second = billing.create_document(ALPHA, _create(DocumentType.estimate))
        invoice = billing.create_document(ALPHA, _create(DocumentType.invoice))
        other = billing.create_document(BETA, _create(DocumentType.estimate))
        assert [first.number, second.number, invoice.number, other.number] == [
            "EST-001", "EST-002", "INV-001", "EST-001",
        ]

    def test_create_starts_as_draft_with_totals(self, billing):
        document = billing.create_document(
            ALPHA,
            _create(DocumentType.invoice, _item("150.00", "2"), _item("50.00")),
            created_by="Ana Silva",
        )
        assert document.status == DocumentStatus.DRAFT.value
        assert document.subtotal == Decimal("350.00")
        assert document.total == Decimal("350.00")
        assert [item.amount for item in document.items] == [Decimal("300.00"), Decimal("50.00")]
        assert document.created_by == "Ana Silva"

    def test_estimate_valid_until_defaults_to_due_date(self, billing):
        estimate = billing.create_document(ALPHA, _create(DocumentType.estimate, due_date=NOW))
        assert estimate.valid_until == NOW

    def test_update_recomputes_totals(self, billing):
        document = billing.create_document(ALPHA, _create(DocumentType.invoice))
        updated = billing.update_document(
            ALPHA,
            document.id,
            DocumentUpdate(discount=Decimal("50"), items=[_item("500.00")]),
            modified_by="Bruno",
        )
        assert updated.subtotal == Decimal("500.00")
        assert updated.total == Decimal("450.00")
        assert updated.last_modified_by == "Bruno"

    def test_update_without_total_inputs_keeps_totals(self, billing):
        document = billing.create_document(ALPHA, _create(DocumentType.invoice))
        updated = billing.update_document(ALPHA, document.id, DocumentUpdate(title="Novo titulo"))
        assert updated.title == "Novo titulo"
        assert updated.total == document.total

    def test_update_null_clears_due_date_but_not_items(self, billing):
        document = billing.create_document(ALPHA, _create(DocumentType.invoice, due_date=NOW))
        updated = billing.update_document(ALPHA, document.id, DocumentUpdate(due_date=None, items=None))
        assert updated.due_date is None
        assert updated.items == document.items
        assert updated.total == document.total

    def test_list_documents_filters(self, billing):
        billing.create_document(ALPHA, _create(DocumentType.estimate))
        invoice = billing.create_document(ALPHA, _create(DocumentType.invoice))
        billing.send(ALPHA, invoice.id)
        assert {d.number for d in billing.list_documents(ALPHA, doc_type=DocumentType.invoice)} == {"INV-001"}
        assert {d.number for d in billing.list_documents(ALPHA, status="SENT")} == {"INV-001"}
        assert {d.number for d in billing.list_documents(ALPHA, search="est-")} == {"EST-001"}
        assert len(billing.list_documents(ALPHA, doc_type="all", status="all")) == 2


class TestWorkflow:
    def test_send_marks_email_sent(self, billing):
        invoice = billing.create_document(ALPHA, _create(DocumentType.invoice))
        sent = billing.send(ALPHA, invoice.id)
        assert sent.status == "SENT"
        assert sent.email_sent is True
        assert sent.email_sent_at is not None

    def test_mark_paid(self, billing):
        invoice = billing.create_document(ALPHA, _create(DocumentType.invoice))
        billing.send(ALPHA, invoice.id)
        paid = billing.mark_paid(ALPHA, invoice.id, PaymentRequest(payment_method=PaymentMethod.BOLETO, payment_date=NOW))
        assert paid.status == "PAID"
        assert paid.payment_method == PaymentMethod.BOLETO
        assert paid.payment_date == NOW

    def test_estimates_cannot_be_paid(self, billing):
        estimate = billing.create_document(ALPHA, _create(DocumentType.estimate))
        with pytest.raises(BillingError, match="Only invoices"):
            billing.mark_paid(ALPHA, estimate.id, PaymentRequest())

    def test_paid_to_draft_is_rejected(self, billing):
        invoice = billing.create_document(ALPHA, _create(DocumentType.invoice))
        billing.mark_paid(ALPHA, invoice.id, PaymentRequest())
        with pytest.raises(InvalidStageTransitionError):
            billing.move_record(ALPHA, invoice.id, "DRAFT")
        assert billing.get_record(ALPHA, invoice.id).status == "PAID"

    def test_cancelled_is_terminal(self, billing):
        invoice = billing.create_document(ALPHA, _create(DocumentType.invoice))
        billing.mark_paid(ALPHA, invoice.id, PaymentRequest())
        cancelled = billing.cancel(ALPHA, invoice.id)
        assert cancelled.status == "CANCELLED"
        with pytest.raises(InvalidStageTransitionError):
            billing.send(ALPHA, invoice.id)

    def test_reminders(self, billing):
        invoice = billing.create_document(ALPHA, _create(DocumentType.invoice))
        billing.send(ALPHA, invoice.id)
        billing.record_reminder(ALPHA, invoice.id)
        reminded = billing.record_reminder(ALPHA, invoice.id)
        assert reminded.reminders_sent == 2
        assert reminded.last_reminder_at is not None

        billing.mark_paid(ALPHA, invoice.id, PaymentRequest())
        with pytest.raises(BillingError, match="already PAID"):
            billing.record_reminder(ALPHA, invoice.id)

    def test_convert_estimate_to_invoice(self, billing):
        estimate = billing.create_document(
            ALPHA,
            _create(DocumentType.estimate, discount=Decimal("10"), discount_type=AdjustmentType.percentage),
        )
        billing.move_record(ALPHA, estimate.id, "APPROVED")

        updated, invoice = billing.convert_to_invoice(ALPHA, estimate.id, created_by="Ana Silva")
        assert invoice.type == DocumentType.invoice
        assert invoice.number == "INV-001"
        assert invoice.status == "DRAFT"
        assert invoice.estimate_id == estimate.id
        assert invoice.total == estimate.total == Decimal("270.00")
        assert invoice.items[0].id != estimate.items[0].id
        assert updated.converted_to_invoice is True
        assert updated.invoice_id == invoice.id

        with pytest.raises(BillingError, match="already converted"):
            billing.convert_to_invoice(ALPHA, estimate.id)
        with pytest.raises(BillingError, match="Only estimates"):
            billing.convert_to_invoice(ALPHA, invoice.id)

    def test_rejected_estimate_cannot_be_converted(self, billing):
        estimate = billing.create_document(ALPHA, _create(DocumentType.estimate))
        billing.send(ALPHA, estimate.id)
        billing.move_record(ALPHA, estimate.id, "REJECTED")
        with pytest.raises(BillingError, match="REJECTED"):
            billing.convert_to_invoice(ALPHA, estimate.id)


# ── Stats ────────────────────────────────────────────────────────────────────


def _document(doc_type: DocumentType, status: str, total: str, **kwargs) -> BillingDocument:
    values = {"date": NOW, **kwargs}
    return BillingDocument(
        tenant_id=ALPHA,
        type=doc_type,
        number="X",
        title="Doc",
        status=status,
        total=Decimal(total),
        **values,
    )


class TestBillingStats:
    def test_figures(self):
        documents = [
            _document(DocumentType.estimate, "DRAFT", "100"),
            _document(DocumentType.invoice, "SENT", "200", due_date=datetime(2025, 4, 1, tzinfo=timezone.utc)),
            _document(DocumentType.invoice, "PAID", "300"),
            _document(DocumentType.invoice, "PAID", "50", date=datetime(2025, 2, 10, tzinfo=timezone.utc)),
            _document(DocumentType.invoice, "PENDING", "80", due_date=datetime(2025, 3, 1, tzinfo=timezone.utc)),
            _document(DocumentType.invoice, "OVERDUE", "40"),
            _document(DocumentType.invoice, "CANCELLED", "999", due_date=datetime(2025, 1, 1, tzinfo=timezone.utc)),
        ]
        stats = billing_stats(documents, now=NOW)
        assert stats.total_estimates == 1
        assert stats.total_invoices == 6
        assert stats.pending_amount == Decimal("280")
        assert stats.paid_amount == Decimal("350")
        assert stats.overdue_amount == Decimal("120")
        assert stats.this_month_revenue == Decimal("300")

    def test_empty(self):
        stats = billing_stats([], now=NOW)
        assert stats.total_invoices == 0
        assert stats.paid_amount == Decimal("0")

    def test_order_does_not_change_totals(self):
        documents = [
            _document(DocumentType.invoice, "PAID", "0.10"),
            _document(DocumentType.invoice, "PAID", "0.20"),
            _document(DocumentType.invoice, "PAID", "0.30"),
            _document(DocumentType.invoice, "SENT", "0.10"),
            _document(DocumentType.invoice, "PENDING", "0.20", due_date=datetime(2025, 3, 1, tzinfo=timezone.utc)),
            _document(DocumentType.estimate, "DRAFT", "0.30"),
        ]
        forward = billing_stats(documents, now=NOW)
        backward = billing_stats(reversed(documents), now=NOW)
        assert forward == backward
        assert forward.paid_amount == Decimal("0.60")
        assert forward.pending_amount == Decimal("0.30")
        assert forward.overdue_amount == Decimal("0.20")
