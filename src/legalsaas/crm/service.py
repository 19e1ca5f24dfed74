"""Client and deal services.

Clients are a plain filtered list with CSV export and import; deals are a
stage pipeline over the shared DEAL_STAGES board.
"""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from src.legalsaas.crm.schemas import (
    DEAL_STAGES,
    Client,
    ClientCreate,
    ClientImportResult,
    ClientQuery,
    Deal,
    OrganizationFilter,
)
from src.legalsaas.exports.csv_io import (
    CLIENT_COLUMNS,
    CLIENT_FIELDS_BY_HEADER,
    parse_csv,
    split_list,
    to_csv,
)
from src.legalsaas.pipeline.service import PipelineService, RecordService

logger = structlog.get_logger(__name__)

CLIENT_SEARCH_FIELDS = ("name", "email", "organization")
DEAL_SEARCH_FIELDS = ("title", "contact_name", "organization")


def _matches_advanced(client: Client, query: ClientQuery) -> bool:
    """Advanced-panel predicates: level, location, organization presence."""
    if query.levels and (client.level or "") not in query.levels:
        return False
    if query.locations and client.location not in query.locations:
        return False
    if query.has_organization == OrganizationFilter.with_org and not client.organization:
        return False
    if query.has_organization == OrganizationFilter.without_org and client.organization:
        return False
    return True


class ClientService(RecordService[Client]):
    """Client records with advanced filtering and CSV round-tripping."""

    def __init__(self) -> None:
        super().__init__(entity="client", model=Client, search_fields=CLIENT_SEARCH_FIELDS)

    def list_clients(self, tenant_id: str, query: ClientQuery | None = None) -> list[Client]:
        query = query or ClientQuery()
        flt = self.make_filter(search=query.search, tags=query.tags, status=query.status)
        return [
            client for client in self.list_records(tenant_id, flt)
            if _matches_advanced(client, query)
        ]

    def export_csv(self, tenant_id: str, query: ClientQuery | None = None) -> str:
        return to_csv(self.list_clients(tenant_id, query), CLIENT_COLUMNS)

    def import_csv(self, tenant_id: str, text: str, registered_by: str | None = None) -> ClientImportResult:
        """Create one client per CSV line; bad lines are reported, not fatal.

        Line numbers in the error messages count the header as line 1.
        """
        result = ClientImportResult()
        for line_no, row in enumerate(parse_csv(text), start=2):
            payload: dict[str, object] = {}
            for header, field in CLIENT_FIELDS_BY_HEADER.items():
                cell = row.get(header, "")
                if not cell:
                    continue
                payload[field] = split_list(cell) if field == "tags" else cell
            if registered_by:
                payload.setdefault("registered_by", registered_by)
            try:
                data = ClientCreate.model_validate(payload)
            except ValidationError as exc:
                fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
                result.errors.append(f"Line {line_no}: invalid {fields}")
                continue
            self.create_record(tenant_id, data)
            result.imported += 1
        logger.info(
            "client.imported",
            tenant_id=tenant_id,
            imported=result.imported,
            failed=len(result.errors),
        )
        return result


def create_deal_pipeline() -> PipelineService[Deal]:
    """Deal pipeline: free stage assignment, insertion order within columns."""
    return PipelineService(
        entity="deal",
        model=Deal,
        default_stages=DEAL_STAGES,
        stage_field="stage",
        search_fields=DEAL_SEARCH_FIELDS,
    )
