"""CSV export and import.

Rows are written with the stdlib csv writer, so any field containing a
comma, a quote or a line break is quoted and embedded quotes are doubled
(RFC 4180). Columns are declared once and reused by export endpoints and
by the client importer, which reads files keyed by the same headers.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

LIST_SEPARATOR = "; "


@dataclass(frozen=True)
class Column:
    """One CSV column: header text and how to read the cell from a row."""

    header: str
    value: Callable[[Any], Any]


def attr(name: str) -> Callable[[Any], Any]:
    """Column reader for a plain attribute."""
    return lambda row: getattr(row, name, None)


def format_cell(value: Any) -> str:
    """Render one cell; money keeps two decimals and lists are joined with "; "."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return LIST_SEPARATOR.join(str(item) for item in value)
    return str(value)


def to_csv(rows: Iterable[Any], columns: Sequence[Column]) -> str:
    """Render rows as CSV text with a header line."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([column.header for column in columns])
    for row in rows:
        writer.writerow([format_cell(column.value(row)) for column in columns])
    return buffer.getvalue()


def parse_csv(text: str) -> list[dict[str, str]]:
    """Parse CSV text into one dict per data line, keyed by the header line.

    Surrounding whitespace is stripped from headers and values; blank lines
    are skipped.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    rows: list[dict[str, str]] = []
    for raw in reader:
        row = {
            (key or "").strip(): (value or "").strip()
            for key, value in raw.items()
            if key is not None
        }
        if any(row.values()):
            rows.append(row)
    return rows


def split_list(cell: str) -> list[str]:
    """Inverse of the list rendering in format_cell()."""
    return [item.strip() for item in cell.split(";") if item.strip()]


def export_filename(prefix: str, today: date | None = None) -> str:
    """Dated download name, e.g. ``fluxo_caixa_2025-03-01.csv``."""
    today = today or date.today()
    return f"{prefix}_{today.isoformat()}.csv"


# ── Column sets ─────────────────────────────────────────────────────────────

_TRANSACTION_TYPE_LABELS = {"income": "Receita", "expense": "Despesa"}
_TRANSACTION_STATUS_LABELS = {"confirmed": "Confirmado", "pending": "Pendente", "cancelled": "Cancelado"}


def _label(labels: dict[str, str], name: str) -> Callable[[Any], str]:
    def read(row: Any) -> str:
        value = format_cell(getattr(row, name, None))
        return labels.get(value, value)

    return read


TRANSACTION_COLUMNS: tuple[Column, ...] = (
    Column("Data", attr("date")),
    Column("Tipo", _label(_TRANSACTION_TYPE_LABELS, "type")),
    Column("Categoria", attr("category")),
    Column("Descrição", attr("description")),
    Column("Valor", attr("amount")),
    Column("Status", _label(_TRANSACTION_STATUS_LABELS, "status")),
    Column("Forma de Pagamento", attr("payment_method")),
    Column("Projeto", attr("project_title")),
    Column("Cliente", attr("client_name")),
    Column("Tags", attr("tags")),
    Column("Observações", attr("notes")),
    Column("Criado Por", attr("created_by")),
    Column("Data de Criação", attr("created_at")),
)

# Header -> client field; shared by export and import
CLIENT_FIELDS_BY_HEADER: dict[str, str] = {
    "Nome": "name",
    "Email": "email",
    "Telefone": "mobile",
    "Organização": "organization",
    "País": "country",
    "Estado": "state",
    "Endereço": "address",
    "Cidade": "city",
    "CEP": "zip_code",
    "CPF": "cpf",
    "RG": "rg",
    "Status": "status",
    "Tags": "tags",
}

CLIENT_COLUMNS: tuple[Column, ...] = tuple(
    Column(header, attr(field)) for header, field in CLIENT_FIELDS_BY_HEADER.items()
)
