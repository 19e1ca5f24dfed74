"""Pydantic models for cash-flow transactions."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from src.legalsaas.pipeline.records import Money, Record, UtcDatetime


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class TransactionStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


class PaymentMethod(str, Enum):
    pix = "pix"
    credit_card = "credit_card"
    debit_card = "debit_card"
    bank_transfer = "bank_transfer"
    boleto = "boleto"
    cash = "cash"
    check = "check"


class RecurringFrequency(str, Enum):
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"


class TransactionTab(str, Enum):
    all = "all"
    income = "income"
    expense = "expense"
    recurring = "recurring"


class Transaction(Record):
    """Stored cash-flow transaction."""

    type: TransactionType
    amount: Money = Field(..., gt=0)
    category: str = Field(..., min_length=1)
    category_id: str = ""
    description: str = ""
    date: UtcDatetime
    payment_method: PaymentMethod | None = None
    status: TransactionStatus = TransactionStatus.pending
    project_id: str | None = None
    project_title: str | None = None
    client_id: str | None = None
    client_name: str | None = None
    is_recurring: bool = False
    recurring_frequency: RecurringFrequency | None = None
    created_by: str | None = None
    last_modified_by: str | None = None
    notes: str | None = None


class TransactionCreate(BaseModel):
    """Request schema for creating a transaction."""

    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    category: str = Field(..., min_length=1)
    category_id: str = ""
    description: str = ""
    date: UtcDatetime | None = None
    payment_method: PaymentMethod | None = None
    status: TransactionStatus = TransactionStatus.pending
    tags: list[str] = Field(default_factory=list)
    project_id: str | None = None
    project_title: str | None = None
    client_id: str | None = None
    client_name: str | None = None
    is_recurring: bool = False
    recurring_frequency: RecurringFrequency | None = None
    notes: str | None = None


class TransactionUpdate(BaseModel):
    """Request schema for updating a transaction (all fields optional)."""

    type: TransactionType | None = None
    amount: Decimal | None = Field(default=None, gt=0)
    category: str | None = Field(default=None, min_length=1)
    category_id: str | None = None
    description: str | None = None
    date: UtcDatetime | None = None
    payment_method: PaymentMethod | None = None
    status: TransactionStatus | None = None
    tags: list[str] | None = None
    project_id: str | None = None
    project_title: str | None = None
    client_id: str | None = None
    client_name: str | None = None
    is_recurring: bool | None = None
    recurring_frequency: RecurringFrequency | None = None
    notes: str | None = None


class CashFlowStats(BaseModel):
    """Current-month cash-flow figures."""

    total_income: Money = Decimal("0")
    total_expenses: Money = Decimal("0")
    balance: Money = Decimal("0")
    pending_transactions: int = 0
    transaction_count: int = 0
    income_growth: float | None = None  # percent vs previous month; None without a baseline


class CategoryStats(BaseModel):
    category_id: str
    category_name: str
    amount: Money
    percentage: Money
    transaction_count: int
