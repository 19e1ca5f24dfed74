"""Billing totals calculator.

total = subtotal - discount + fee + tax

Percentage adjustments are taken from the subtotal. Line-level taxes are
added to the document tax. Every figure is rounded to cents with
ROUND_HALF_UP once, after the exact Decimal arithmetic.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from src.legalsaas.billing.schemas import AdjustmentType, BillingItem, DocumentTotals

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_amount(item: BillingItem) -> Decimal:
    """Explicit amount when given, otherwise quantity x rate."""
    if item.amount is not None:
        return item.amount
    return item.quantity * item.rate


def adjustment(value: Decimal, kind: AdjustmentType, base: Decimal) -> Decimal:
    """Resolve a discount / fee / tax input into an amount."""
    if kind == AdjustmentType.percentage:
        return base * value / HUNDRED
    return value


def line_tax(item: BillingItem) -> Decimal:
    if not item.tax:
        return ZERO
    return adjustment(item.tax, item.tax_type, line_amount(item))


def with_amounts(items: Iterable[BillingItem]) -> list[BillingItem]:
    """Copy items with ``amount`` filled in (rounded to cents)."""
    return [item.model_copy(update={"amount": to_cents(line_amount(item))}) for item in items]


def calculate_totals(
    items: Iterable[BillingItem],
    *,
    discount: Decimal = ZERO,
    discount_type: AdjustmentType = AdjustmentType.fixed,
    fee: Decimal = ZERO,
    fee_type: AdjustmentType = AdjustmentType.fixed,
    tax: Decimal = ZERO,
    tax_type: AdjustmentType = AdjustmentType.fixed,
) -> DocumentTotals:
    """Compute subtotal, resolved adjustments and total for a document.

    Args:
        items: Document lines.
        discount: Discount input, a percentage or a fixed amount per discount_type.
        fee: Fee input, interpreted per fee_type.
        tax: Document-level tax input, interpreted per tax_type.

    Returns:
        DocumentTotals with every figure rounded to cents.
    """
    items = list(items)
    subtotal = sum((line_amount(item) for item in items), ZERO)
    discount_amount = adjustment(discount, discount_type, subtotal)
    fee_amount = adjustment(fee, fee_type, subtotal)
    tax_amount = adjustment(tax, tax_type, subtotal) + sum((line_tax(item) for item in items), ZERO)
    total = subtotal - discount_amount + fee_amount + tax_amount
    return DocumentTotals(
        subtotal=to_cents(subtotal),
        discount=to_cents(discount_amount),
        fee=to_cents(fee_amount),
        tax=to_cents(tax_amount),
        total=to_cents(total),
    )
