"""Billing dashboard aggregation."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from src.legalsaas.billing.schemas import BillingDocument, BillingStats, DocumentStatus, DocumentType
from src.legalsaas.pipeline.records import utcnow

PENDING_STATUSES = frozenset({DocumentStatus.PENDING.value, DocumentStatus.SENT.value, DocumentStatus.VIEWED.value})
SETTLED_STATUSES = frozenset({DocumentStatus.PAID.value, DocumentStatus.CANCELLED.value})


def is_overdue(document: BillingDocument, now: datetime) -> bool:
    """Flagged OVERDUE, or past its due date and neither paid nor cancelled."""
    if document.status == DocumentStatus.OVERDUE.value:
        return True
    return (
        document.due_date is not None
        and document.due_date < now
        and document.status not in SETTLED_STATUSES
    )


def _total(documents: Iterable[BillingDocument]) -> Decimal:
    return sum((document.total for document in documents), Decimal("0"))


def billing_stats(documents: Iterable[BillingDocument], now: datetime | None = None) -> BillingStats:
    """Totals over estimates and invoices together.

    This-month revenue counts PAID documents whose document ``date`` falls in
    the calendar month of ``now``.
    """
    now = now or utcnow()
    documents = list(documents)
    paid = [document for document in documents if document.status == DocumentStatus.PAID.value]
    return BillingStats(
        total_estimates=sum(1 for document in documents if document.type == DocumentType.estimate),
        total_invoices=sum(1 for document in documents if document.type == DocumentType.invoice),
        pending_amount=_total(document for document in documents if document.status in PENDING_STATUSES),
        paid_amount=_total(paid),
        overdue_amount=_total(document for document in documents if is_overdue(document, now)),
        this_month_revenue=_total(
            document for document in paid
            if (document.date.year, document.date.month) == (now.year, now.month)
        ),
    )
