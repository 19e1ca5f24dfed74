"""Pydantic models for clients and deals."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from src.legalsaas.pipeline.records import Currency, Money, Record
from src.legalsaas.pipeline.stages import Stage


class ClientStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    pending = "pending"


class OrganizationFilter(str, Enum):
    with_org = "with_org"
    without_org = "without_org"


# Deal stages; projects share the same board
DEAL_STAGES: tuple[Stage, ...] = (
    Stage(id="contacted", name="Em Contato", color="blue"),
    Stage(id="proposal", name="Com Proposta", color="yellow"),
    Stage(id="won", name="Cliente Bem Sucedido", color="green"),
    Stage(id="lost", name="Cliente Perdido", color="red"),
)


# ── Clients ─────────────────────────────────────────────────────────────────


class ClientFields(BaseModel):
    """Client attributes shared by the stored record and the create payload."""

    name: str = Field(..., min_length=1, max_length=200)
    organization: str | None = None
    email: str = ""
    mobile: str = ""
    country: str = "Brasil"
    state: str = ""
    city: str = ""
    address: str = ""
    zip_code: str = ""
    budget: Money = Decimal("0")
    currency: Currency = Currency.BRL
    level: str | None = None
    description: str | None = None
    status: ClientStatus = ClientStatus.active

    # Legal fields
    cpf: str | None = None
    rg: str | None = None
    pis: str | None = None
    cei: str | None = None
    professional_title: str | None = None
    marital_status: str | None = None
    birth_date: date | None = None
    inss_status: str | None = None
    amount_paid: Money | None = None
    referred_by: str | None = None
    registered_by: str | None = None


class Client(Record, ClientFields):
    """Stored client record."""

    @property
    def location(self) -> str:
        return f"{self.city} - {self.state}"


class ClientCreate(ClientFields):
    """Request schema for creating a client."""

    tags: list[str] = Field(default_factory=list)


class ClientUpdate(BaseModel):
    """Request schema for updating a client (all fields optional)."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    organization: str | None = None
    email: str | None = None
    mobile: str | None = None
    country: str | None = None
    state: str | None = None
    city: str | None = None
    address: str | None = None
    zip_code: str | None = None
    budget: Decimal | None = Field(default=None, ge=0)
    currency: Currency | None = None
    level: str | None = None
    description: str | None = None
    status: ClientStatus | None = None
    tags: list[str] | None = None
    cpf: str | None = None
    rg: str | None = None
    pis: str | None = None
    cei: str | None = None
    professional_title: str | None = None
    marital_status: str | None = None
    birth_date: date | None = None
    inss_status: str | None = None
    amount_paid: Decimal | None = None
    referred_by: str | None = None
    registered_by: str | None = None


class ClientQuery(BaseModel):
    """Client list filters, including the advanced-filter panel."""

    search: str = ""
    status: str | None = None
    levels: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)  # "City - ST"
    has_organization: OrganizationFilter | None = None
    tags: list[str] = Field(default_factory=list)


class ClientImportResult(BaseModel):
    """Outcome of a CSV client import."""

    imported: int = 0
    errors: list[str] = Field(default_factory=list)


# ── Deals ───────────────────────────────────────────────────────────────────


class Deal(Record):
    """Stored deal record."""

    title: str = Field(..., min_length=1, max_length=200)
    contact_name: str = ""
    organization: str | None = None
    email: str = ""
    mobile: str = ""
    address: str = ""
    budget: Money = Decimal("0")
    currency: Currency = Currency.BRL
    stage: str = "contacted"
    description: str | None = None


class DealCreate(BaseModel):
    """Request schema for creating a deal."""

    title: str = Field(..., min_length=1, max_length=200)
    contact_name: str = ""
    organization: str | None = None
    email: str = ""
    mobile: str = ""
    address: str = ""
    budget: Decimal = Field(default=Decimal("0"), ge=0)
    currency: Currency = Currency.BRL
    stage: str = "contacted"
    tags: list[str] = Field(default_factory=list)
    description: str | None = None


class DealUpdate(BaseModel):
    """Request schema for updating a deal (all fields optional)."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    contact_name: str | None = None
    organization: str | None = None
    email: str | None = None
    mobile: str | None = None
    address: str | None = None
    budget: Decimal | None = Field(default=None, ge=0)
    currency: Currency | None = None
    stage: str | None = None
    tags: list[str] | None = None
    description: str | None = None


class CRMMetrics(BaseModel):
    """CRM dashboard figures."""

    total_clients: int = 0
    active_clients: int = 0
    total_deals: int = 0
    total_revenue_potential: Money = Decimal("0")
    won_deals: int = 0
    won_value: Money = Decimal("0")
    deals_by_stage: dict[str, int] = Field(default_factory=dict)
