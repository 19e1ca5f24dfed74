"""Billing document workflow.

BillingService is a pipeline over document statuses: every status change
goes through BILLING_TRANSITIONS, so an illegal move such as PAID -> DRAFT
raises InvalidStageTransitionError instead of silently overwriting. Totals
are recomputed whenever items or adjustments change.
"""

from __future__ import annotations

from typing import Any

import structlog

from src.legalsaas.billing.schemas import (
    BILLING_TRANSITIONS,
    DOCUMENT_STAGES,
    BillingDocument,
    DocumentCreate,
    DocumentStatus,
    DocumentType,
    DocumentUpdate,
    PaymentRequest,
)
from src.legalsaas.billing.totals import calculate_totals, with_amounts
from src.legalsaas.pipeline.records import utcnow
from src.legalsaas.pipeline.service import PipelineService
from src.legalsaas.pipeline.stages import TransitionPolicy

logger = structlog.get_logger(__name__)

DOCUMENT_SEARCH_FIELDS = ("number", "title", "receiver_name")

NUMBER_PREFIXES = {DocumentType.estimate: "EST", DocumentType.invoice: "INV"}

# Fields whose change requires recomputing the totals
_TOTAL_INPUTS = frozenset({"items", "discount", "discount_type", "fee", "fee_type", "tax", "tax_type"})


class BillingError(ValueError):
    """Raised when a workflow action does not apply to the document."""


class BillingService(PipelineService[BillingDocument]):
    """Estimates and invoices; list views are newest first."""

    def __init__(self) -> None:
        super().__init__(
            entity="billing_document",
            model=BillingDocument,
            default_stages=DOCUMENT_STAGES,
            stage_field="status",
            policy=TransitionPolicy(BILLING_TRANSITIONS),
            search_fields=DOCUMENT_SEARCH_FIELDS,
            order_by="created_at",
            descending=True,
        )
        self._sequences: dict[tuple[str, DocumentType], int] = {}

    # ── Numbering and totals ─────────────────────────────────────────────

    def _next_number(self, tenant_id: str, doc_type: DocumentType) -> str:
        key = (tenant_id, doc_type)
        self._sequences[key] = self._sequences.get(key, 0) + 1
        return f"{NUMBER_PREFIXES[doc_type]}-{self._sequences[key]:03d}"

    @staticmethod
    def _with_totals(values: dict[str, Any]) -> dict[str, Any]:
        """Fill in line amounts, subtotal and total from a full set of document values."""
        probe = BillingDocument.model_validate({
            "tenant_id": "-",
            "number": "-",
            "title": "-",
            "date": utcnow(),
            **{key: value for key, value in values.items() if key in _TOTAL_INPUTS or key == "type"},
        })
        items = with_amounts(probe.items)
        totals = calculate_totals(
            items,
            discount=probe.discount,
            discount_type=probe.discount_type,
            fee=probe.fee,
            fee_type=probe.fee_type,
            tax=probe.tax,
            tax_type=probe.tax_type,
        )
        values["items"] = [item.model_dump() for item in items]
        values["subtotal"] = totals.subtotal
        values["total"] = totals.total
        return values

    def _prepare_create(self, tenant_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        doc_type = DocumentType(payload["type"])
        payload["number"] = self._next_number(tenant_id, doc_type)
        payload["status"] = DocumentStatus.DRAFT.value
        payload["date"] = payload.get("date") or utcnow()
        if doc_type == DocumentType.estimate and payload.get("valid_until") is None:
            payload["valid_until"] = payload.get("due_date")
        return self._with_totals(payload)

    def _prepare_update(self, current: BillingDocument, changes: dict[str, Any]) -> dict[str, Any]:
        changes = super()._prepare_update(current, changes)
        if _TOTAL_INPUTS & changes.keys():
            merged = self._with_totals({**current.model_dump(), **changes})
            for key in ("items", "subtotal", "total"):
                changes[key] = merged[key]
        return changes

    # ── CRUD ─────────────────────────────────────────────────────────────

    def create_document(
        self,
        tenant_id: str,
        data: DocumentCreate,
        created_by: str | None = None,
    ) -> BillingDocument:
        """Create a DRAFT document with the next EST-/INV- number for the tenant."""
        payload = data.model_dump()
        payload["created_by"] = created_by
        payload["last_modified_by"] = created_by
        return self.create_record(tenant_id, payload)

    def update_document(
        self,
        tenant_id: str,
        document_id: str,
        data: DocumentUpdate,
        modified_by: str | None = None,
    ) -> BillingDocument:
        changes = data.model_dump(exclude_unset=True)
        if modified_by:
            changes["last_modified_by"] = modified_by
        return self.update_record(tenant_id, document_id, changes)

    def list_documents(
        self,
        tenant_id: str,
        *,
        doc_type: DocumentType | str | None = None,
        status: str | None = None,
        search: str = "",
    ) -> list[BillingDocument]:
        flt = self.make_filter(search=search, type=doc_type, status=status)
        return self.list_records(tenant_id, flt)

    # ── Workflow ─────────────────────────────────────────────────────────

    def send(self, tenant_id: str, document_id: str) -> BillingDocument:
        """Mark the document SENT and record the e-mail dispatch."""
        now = utcnow()
        document = self.update_record(tenant_id, document_id, {
            "status": DocumentStatus.SENT.value,
            "email_sent": True,
            "email_sent_at": now,
        })
        logger.info("billing_document.sent", tenant_id=tenant_id, record_id=document_id, number=document.number)
        return document

    def mark_paid(self, tenant_id: str, document_id: str, payment: PaymentRequest) -> BillingDocument:
        document = self.get_record(tenant_id, document_id)
        if document.type != DocumentType.invoice:
            raise BillingError(f"Only invoices can be paid: {document.number}")
        return self.update_record(tenant_id, document_id, {
            "status": DocumentStatus.PAID.value,
            "payment_method": payment.payment_method,
            "payment_date": payment.payment_date or utcnow(),
        })

    def cancel(self, tenant_id: str, document_id: str) -> BillingDocument:
        return self.move_record(tenant_id, document_id, DocumentStatus.CANCELLED.value)

    def record_reminder(self, tenant_id: str, document_id: str) -> BillingDocument:
        """Count one payment reminder sent for an open invoice."""
        document = self.get_record(tenant_id, document_id)
        if document.type != DocumentType.invoice:
            raise BillingError(f"Reminders apply to invoices only: {document.number}")
        if document.status in (DocumentStatus.PAID.value, DocumentStatus.CANCELLED.value):
            raise BillingError(f"Invoice {document.number} is already {document.status}")
        return self.update_record(tenant_id, document_id, {
            "reminders_sent": document.reminders_sent + 1,
            "last_reminder_at": utcnow(),
        })

    def convert_to_invoice(
        self,
        tenant_id: str,
        estimate_id: str,
        created_by: str | None = None,
    ) -> tuple[BillingDocument, BillingDocument]:
        """Create an invoice from an estimate and flag the estimate as converted.

        Returns:
            Tuple of (updated estimate, new invoice).

        Raises:
            BillingError: If the document is not an estimate, was already
                converted, or was rejected or cancelled.
        """
        estimate = self.get_record(tenant_id, estimate_id)
        if estimate.type != DocumentType.estimate:
            raise BillingError(f"Only estimates can be converted: {estimate.number}")
        if estimate.converted_to_invoice:
            raise BillingError(f"Estimate {estimate.number} was already converted to {estimate.invoice_id}")
        if estimate.status in (DocumentStatus.REJECTED.value, DocumentStatus.CANCELLED.value):
            raise BillingError(f"Estimate {estimate.number} is {estimate.status}")

        invoice = self.create_record(tenant_id, {
            "type": DocumentType.invoice,
            "title": estimate.title,
            "description": estimate.description,
            "due_date": estimate.due_date,
            "sender_name": estimate.sender_name,
            "receiver_id": estimate.receiver_id,
            "receiver_name": estimate.receiver_name,
            "items": [item.model_dump(exclude={"id"}) for item in estimate.items],
            "discount": estimate.discount,
            "discount_type": estimate.discount_type,
            "fee": estimate.fee,
            "fee_type": estimate.fee_type,
            "tax": estimate.tax,
            "tax_type": estimate.tax_type,
            "currency": estimate.currency,
            "notes": estimate.notes,
            "tags": list(estimate.tags),
            "estimate_id": estimate.id,
            "created_by": created_by,
            "last_modified_by": created_by,
        })
        estimate = self.update_record(tenant_id, estimate_id, {
            "converted_to_invoice": True,
            "invoice_id": invoice.id,
        })
        logger.info(
            "billing_document.converted",
            tenant_id=tenant_id,
            estimate_id=estimate.id,
            invoice_id=invoice.id,
        )
        return estimate, invoice
