"""CRM dashboard aggregation."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from decimal import Decimal

from src.legalsaas.crm.schemas import Client, ClientStatus, CRMMetrics, Deal

WON_STAGE = "won"


def crm_metrics(clients: Iterable[Client], deals: Iterable[Deal]) -> CRMMetrics:
    """Client counts, deal pipeline value, and won business.

    Budgets are summed in Decimal, so the result does not depend on record order.
    """
    clients = list(clients)
    deals = list(deals)
    won = [deal for deal in deals if deal.stage == WON_STAGE]
    return CRMMetrics(
        total_clients=len(clients),
        active_clients=sum(1 for client in clients if client.status == ClientStatus.active),
        total_deals=len(deals),
        total_revenue_potential=sum((deal.budget for deal in deals), Decimal("0")),
        won_deals=len(won),
        won_value=sum((deal.budget for deal in won), Decimal("0")),
        deals_by_stage=dict(Counter(deal.stage for deal in deals)),
    )
