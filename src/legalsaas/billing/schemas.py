"""Pydantic models for billing documents (estimates and invoices)."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from src.legalsaas.pipeline.records import Currency, Money, Record, UtcDatetime, new_record_id
from src.legalsaas.pipeline.stages import Stage


class DocumentType(str, Enum):
    estimate = "estimate"
    invoice = "invoice"


class DocumentStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    VIEWED = "VIEWED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class AdjustmentType(str, Enum):
    percentage = "percentage"
    fixed = "fixed"


class PaymentMethod(str, Enum):
    PIX = "PIX"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    BOLETO = "BOLETO"
    CASH = "CASH"
    CHECK = "CHECK"


DOCUMENT_STAGES: tuple[Stage, ...] = (
    Stage(id=DocumentStatus.DRAFT.value, name="Rascunho", color="gray"),
    Stage(id=DocumentStatus.SENT.value, name="Enviado", color="blue"),
    Stage(id=DocumentStatus.VIEWED.value, name="Visualizado", color="blue"),
    Stage(id=DocumentStatus.APPROVED.value, name="Aprovado", color="green"),
    Stage(id=DocumentStatus.REJECTED.value, name="Rejeitado", color="red"),
    Stage(id=DocumentStatus.PENDING.value, name="Pendente", color="yellow"),
    Stage(id=DocumentStatus.PAID.value, name="Pago", color="green"),
    Stage(id=DocumentStatus.OVERDUE.value, name="Vencido", color="red"),
    Stage(id=DocumentStatus.CANCELLED.value, name="Cancelado", color="gray"),
)

# Allowed status moves. Statuses missing from the table are terminal.
BILLING_TRANSITIONS: dict[str, set[str]] = {
    "DRAFT": {"SENT", "PENDING", "APPROVED", "PAID", "CANCELLED"},
    "SENT": {"VIEWED", "APPROVED", "REJECTED", "PENDING", "PAID", "OVERDUE", "CANCELLED"},
    "VIEWED": {"SENT", "APPROVED", "REJECTED", "PENDING", "PAID", "OVERDUE", "CANCELLED"},
    "APPROVED": {"SENT", "PENDING", "PAID", "CANCELLED"},
    "REJECTED": {"DRAFT", "CANCELLED"},
    "PENDING": {"SENT", "VIEWED", "PAID", "OVERDUE", "CANCELLED"},
    "OVERDUE": {"SENT", "PAID", "CANCELLED"},
    "PAID": {"CANCELLED"},
}


class BillingItem(BaseModel):
    """One line of a document. ``amount`` defaults to quantity x rate."""

    id: str = Field(default_factory=new_record_id)
    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    rate: Money = Field(default=Decimal("0"), ge=0)
    amount: Money | None = None
    tax: Decimal | None = Field(default=None, ge=0)
    tax_type: AdjustmentType = AdjustmentType.percentage


class BillingDocument(Record):
    """Stored estimate or invoice. ``status`` is the workflow stage."""

    type: DocumentType
    number: str
    date: UtcDatetime
    due_date: UtcDatetime | None = None
    sender_name: str = ""
    receiver_id: str | None = None
    receiver_name: str = ""
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    items: list[BillingItem] = Field(default_factory=list)
    subtotal: Money = Decimal("0")
    discount: Decimal = Decimal("0")
    discount_type: AdjustmentType = AdjustmentType.fixed
    fee: Decimal = Decimal("0")
    fee_type: AdjustmentType = AdjustmentType.fixed
    tax: Decimal = Decimal("0")
    tax_type: AdjustmentType = AdjustmentType.fixed
    total: Money = Decimal("0")
    currency: Currency = Currency.BRL
    status: str = DocumentStatus.DRAFT.value
    notes: str | None = None
    created_by: str | None = None
    last_modified_by: str | None = None

    # Invoice-only
    estimate_id: str | None = None
    payment_method: PaymentMethod | None = None
    payment_date: UtcDatetime | None = None
    email_sent: bool = False
    email_sent_at: UtcDatetime | None = None
    reminders_sent: int = 0
    last_reminder_at: UtcDatetime | None = None

    # Estimate-only
    valid_until: UtcDatetime | None = None
    converted_to_invoice: bool = False
    invoice_id: str | None = None


class DocumentCreate(BaseModel):
    """Request schema for creating a document; totals are computed server-side."""

    type: DocumentType
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    date: UtcDatetime | None = None
    due_date: UtcDatetime | None = None
    sender_name: str = ""
    receiver_id: str | None = None
    receiver_name: str = ""
    items: list[BillingItem] = Field(..., min_length=1)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    discount_type: AdjustmentType = AdjustmentType.fixed
    fee: Decimal = Field(default=Decimal("0"), ge=0)
    fee_type: AdjustmentType = AdjustmentType.fixed
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    tax_type: AdjustmentType = AdjustmentType.fixed
    currency: Currency = Currency.BRL
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    valid_until: UtcDatetime | None = None


class DocumentUpdate(BaseModel):
    """Request schema for editing a document; status changes go through the workflow endpoints."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    date: UtcDatetime | None = None
    due_date: UtcDatetime | None = None
    receiver_id: str | None = None
    receiver_name: str | None = None
    items: list[BillingItem] | None = Field(default=None, min_length=1)
    discount: Decimal | None = Field(default=None, ge=0)
    discount_type: AdjustmentType | None = None
    fee: Decimal | None = Field(default=None, ge=0)
    fee_type: AdjustmentType | None = None
    tax: Decimal | None = Field(default=None, ge=0)
    tax_type: AdjustmentType | None = None
    currency: Currency | None = None
    notes: str | None = None
    tags: list[str] | None = None
    valid_until: UtcDatetime | None = None


class PaymentRequest(BaseModel):
    """Request body for marking an invoice paid."""

    payment_method: PaymentMethod = PaymentMethod.PIX
    payment_date: UtcDatetime | None = None


class DocumentTotals(BaseModel):
    subtotal: Money
    discount: Money
    fee: Money
    tax: Money
    total: Money


class BillingStats(BaseModel):
    """Billing dashboard figures."""

    total_estimates: int = 0
    total_invoices: int = 0
    pending_amount: Money = Decimal("0")
    paid_amount: Money = Decimal("0")
    overdue_amount: Money = Decimal("0")
    this_month_revenue: Money = Decimal("0")
