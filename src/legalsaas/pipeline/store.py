"""Tenant-scoped record stores.

RecordStore is the repository interface the services talk to. The in-memory
implementation keeps one insertion-ordered dict per tenant, so a durable
backend can replace it without touching services or routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from src.legalsaas.pipeline.records import Record

T = TypeVar("T", bound=Record)


class RecordNotFoundError(ValueError):
    """Raised when a record id does not exist for the tenant."""

    def __init__(self, entity: str, record_id: str) -> None:
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity.capitalize()} not found: {record_id}")


class RecordStore(ABC, Generic[T]):
    """Abstract interface for tenant-scoped record persistence.

    Methods:
        add: Insert a new record.
        get: Fetch one record by id, None when absent.
        list_records: All records of a tenant, in insertion order.
        replace: Overwrite an existing record in place (keeps its position).
        remove: Delete a record and return it.
        count: Number of records of a tenant.
        drop_tenant: Delete every record of a tenant.
    """

    entity: str = "record"

    @abstractmethod
    def add(self, tenant_id: str, record: T) -> T:
        ...

    @abstractmethod
    def get(self, tenant_id: str, record_id: str) -> T | None:
        ...

    @abstractmethod
    def list_records(self, tenant_id: str) -> list[T]:
        ...

    @abstractmethod
    def replace(self, tenant_id: str, record: T) -> T:
        ...

    @abstractmethod
    def remove(self, tenant_id: str, record_id: str) -> T:
        ...

    @abstractmethod
    def count(self, tenant_id: str) -> int:
        ...

    @abstractmethod
    def drop_tenant(self, tenant_id: str) -> int:
        ...


class InMemoryRecordStore(RecordStore[T]):
    """Dict-backed store; one insertion-ordered dict per tenant."""

    def __init__(self, entity: str = "record") -> None:
        self.entity = entity
        self._records: dict[str, dict[str, T]] = {}

    def add(self, tenant_id: str, record: T) -> T:
        bucket = self._records.setdefault(tenant_id, {})
        if record.id in bucket:
            raise ValueError(f"{self.entity.capitalize()} already exists: {record.id}")
        bucket[record.id] = record
        return record

    def get(self, tenant_id: str, record_id: str) -> T | None:
        return self._records.get(tenant_id, {}).get(record_id)

    def list_records(self, tenant_id: str) -> list[T]:
        return list(self._records.get(tenant_id, {}).values())

    def replace(self, tenant_id: str, record: T) -> T:
        bucket = self._records.get(tenant_id, {})
        if record.id not in bucket:
            raise RecordNotFoundError(self.entity, record.id)
        bucket[record.id] = record
        return record

    def remove(self, tenant_id: str, record_id: str) -> T:
        bucket = self._records.get(tenant_id, {})
        if record_id not in bucket:
            raise RecordNotFoundError(self.entity, record_id)
        return bucket.pop(record_id)

    def count(self, tenant_id: str) -> int:
        return len(self._records.get(tenant_id, {}))

    def drop_tenant(self, tenant_id: str) -> int:
        return len(self._records.pop(tenant_id, {}))
