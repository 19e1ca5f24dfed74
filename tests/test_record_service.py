"""Record store and mutator tests.

Uses the real in-memory stores and services (no mocking): create, update,
delete and move, tenant scoping, per-tenant stage registries and the
task completion side effects.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from src.legalsaas.crm.schemas import Deal, DealCreate, DealUpdate
from src.legalsaas.crm.service import create_deal_pipeline
from src.legalsaas.pipeline.store import InMemoryRecordStore, RecordNotFoundError
from src.legalsaas.projects.schemas import ProjectCreate
from src.legalsaas.projects.service import create_project_pipeline
from src.legalsaas.tasks.schemas import SubtaskCreate, TaskCreate
from src.legalsaas.tasks.service import TaskService

ALPHA = "tenant-alpha"
BETA = "tenant-beta"


@pytest.fixture
def deals():
    return create_deal_pipeline()


@pytest.fixture
def tasks():
    return TaskService()


# ── Store ────────────────────────────────────────────────────────────────────


class TestInMemoryRecordStore:
    def test_add_get_and_count(self):
        store = InMemoryRecordStore("deal")
        deal = Deal(tenant_id=ALPHA, title="Consultoria")
        store.add(ALPHA, deal)
        assert store.get(ALPHA, deal.id) == deal
        assert store.get(BETA, deal.id) is None
        assert store.count(ALPHA) == 1
        assert store.count(BETA) == 0

    def test_add_duplicate_id_raises(self):
        store = InMemoryRecordStore("deal")
        deal = Deal(tenant_id=ALPHA, title="Consultoria")
        store.add(ALPHA, deal)
        with pytest.raises(ValueError, match="already exists"):
            store.add(ALPHA, deal)

    def test_replace_and_remove_unknown_raise(self):
        store = InMemoryRecordStore("deal")
        deal = Deal(tenant_id=ALPHA, title="Consultoria")
        with pytest.raises(RecordNotFoundError):
            store.replace(ALPHA, deal)
        with pytest.raises(RecordNotFoundError):
            store.remove(ALPHA, deal.id)

    def test_drop_tenant(self):
        store = InMemoryRecordStore("deal")
        store.add(ALPHA, Deal(tenant_id=ALPHA, title="A"))
        store.add(ALPHA, Deal(tenant_id=ALPHA, title="B"))
        assert store.drop_tenant(ALPHA) == 2
        assert store.list_records(ALPHA) == []


# ── Mutator ──────────────────────────────────────────────────────────────────


class TestRecordMutator:
    """create / update / delete / move through PipelineService."""

    def test_create_assigns_id_and_timestamps(self, deals):
        deal = deals.create_record(ALPHA, DealCreate(title="Acordo trabalhista", budget=Decimal("1500.50")))
        assert len(deal.id) == 36
        assert deal.tenant_id == ALPHA
        assert deal.created_at == deal.updated_at
        assert deal.created_at.tzinfo is not None
        assert deal.budget == Decimal("1500.50")

    def test_create_ignores_protected_fields(self, deals):
        deal = deals.create_record(ALPHA, {"title": "Acordo", "id": "fixed", "tenant_id": BETA})
        assert deal.id != "fixed"
        assert deal.tenant_id == ALPHA

    def test_update_merges_and_bumps_updated_at(self, deals):
        deal = deals.create_record(ALPHA, DealCreate(title="Acordo", contact_name="Maria"))
        updated = deals.update_record(ALPHA, deal.id, DealUpdate(budget=Decimal("900")))
        assert updated.budget == Decimal("900")
        assert updated.contact_name == "Maria"
        assert updated.created_at == deal.created_at
        assert updated.updated_at >= deal.updated_at

    def test_update_null_clears_only_nullable_fields(self, deals):
        deal = deals.create_record(ALPHA, DealCreate(title="Acordo", organization="Souza Ltda", description="Rescisao"))
        updated = deals.update_record(
            ALPHA, deal.id, DealUpdate(title=None, organization=None, stage=None, mobile="119999")
        )
        assert updated.title == "Acordo"
        assert updated.stage == "contacted"
        assert updated.organization is None
        assert updated.description == "Rescisao"
        assert updated.mobile == "119999"

    def test_update_unset_fields_leave_values_unchanged(self, deals):
        deal = deals.create_record(ALPHA, DealCreate(title="Acordo", organization="Souza Ltda"))
        updated = deals.update_record(ALPHA, deal.id, DealUpdate(mobile="119999"))
        assert updated.organization == "Souza Ltda"

    def test_update_null_in_mapping_patch(self, deals):
        deal = deals.create_record(ALPHA, DealCreate(title="Acordo", description="Rescisao"))
        updated = deals.update_record(ALPHA, deal.id, {"description": None, "budget": None})
        assert updated.description is None
        assert updated.budget == Decimal("0")

    def test_nullable_fields_follow_record_defaults(self, deals):
        assert {"organization", "description"} <= deals.nullable
        assert not {"title", "stage", "budget", "contact_name"} & deals.nullable

    def test_update_unknown_raises(self, deals):
        with pytest.raises(RecordNotFoundError, match="Deal not found"):
            deals.update_record(ALPHA, "missing", DealUpdate(title="x"))

    def test_delete(self, deals):
        deal = deals.create_record(ALPHA, DealCreate(title="Acordo"))
        deals.delete_record(ALPHA, deal.id)
        with pytest.raises(RecordNotFoundError):
            deals.get_record(ALPHA, deal.id)
        with pytest.raises(RecordNotFoundError):
            deals.delete_record(ALPHA, deal.id)

    def test_move_is_an_update_of_the_stage_field(self, deals):
        deal = deals.create_record(ALPHA, DealCreate(title="Acordo"))
        moved = deals.move_record(ALPHA, deal.id, "proposal")
        assert moved.stage == "proposal"
        assert moved.title == deal.title
        assert deals.get_record(ALPHA, deal.id).stage == "proposal"

    def test_mutator_does_not_validate_stage_ids(self, deals):
        deal = deals.create_record(ALPHA, DealCreate(title="Acordo"))
        moved = deals.move_record(ALPHA, deal.id, "archived")
        assert moved.stage == "archived"
        assert deals.orphans(ALPHA) == [moved]

    def test_move_keeps_store_position(self, deals):
        first = deals.create_record(ALPHA, DealCreate(title="Primeiro"))
        second = deals.create_record(ALPHA, DealCreate(title="Segundo"))
        deals.move_record(ALPHA, first.id, "won")
        assert [deal.id for deal in deals.records(ALPHA)] == [first.id, second.id]

    def test_existing_tags_sorted_and_deduplicated(self, deals):
        deals.create_record(ALPHA, DealCreate(title="A", tags=["trabalhista", "urgente"]))
        deals.create_record(ALPHA, DealCreate(title="B", tags=["familia", "urgente"]))
        assert deals.existing_tags(ALPHA) == ["familia", "trabalhista", "urgente"]

    def test_list_records_filters(self, deals):
        deals.create_record(ALPHA, DealCreate(title="Inventario", contact_name="Joana"))
        deals.create_record(ALPHA, DealCreate(title="Divorcio", contact_name="Pedro", stage="won"))
        flt = deals.make_filter(search="pedro", stage="won")
        assert [deal.title for deal in deals.list_records(ALPHA, flt)] == ["Divorcio"]


class TestTenantScoping:
    def test_records_are_tenant_scoped(self, deals):
        deal = deals.create_record(ALPHA, DealCreate(title="Acordo"))
        assert deals.records(BETA) == []
        with pytest.raises(RecordNotFoundError):
            deals.get_record(BETA, deal.id)
        with pytest.raises(RecordNotFoundError):
            deals.move_record(BETA, deal.id, "won")

    def test_stage_registries_are_per_tenant(self, deals):
        deals.rename_stage(ALPHA, "won", "Contrato Fechado")
        assert deals.registry(ALPHA).get("won").name == "Contrato Fechado"
        assert deals.registry(BETA).get("won").name == "Cliente Bem Sucedido"

    def test_drop_tenant_clears_records_and_registry(self, deals):
        deals.create_record(ALPHA, DealCreate(title="Acordo"))
        deals.rename_stage(ALPHA, "won", "Fechado")
        assert deals.drop_tenant(ALPHA) == 1
        assert deals.count(ALPHA) == 0
        assert deals.registry(ALPHA).get("won").name == "Cliente Bem Sucedido"


# ── Entity hooks ─────────────────────────────────────────────────────────────


class TestProjectPipeline:
    def test_projects_use_status_as_stage(self):
        projects = create_project_pipeline()
        project = projects.create_record(ALPHA, ProjectCreate(title="Acao revisional", assigned_to=["Ana"]))
        assert project.status == "contacted"
        projects.move_record(ALPHA, project.id, "won")
        buckets = projects.partition(ALPHA)
        assert [p.id for p in buckets["won"]] == [project.id]

    def test_assignee_filter_is_membership(self):
        projects = create_project_pipeline()
        projects.create_record(ALPHA, ProjectCreate(title="A", assigned_to=["Ana", "Bruno"]))
        projects.create_record(ALPHA, ProjectCreate(title="B", assigned_to=["Carla"]))
        flt = projects.make_filter(assigned_to="Bruno")
        assert [p.title for p in projects.list_records(ALPHA, flt)] == ["A"]


class TestTaskCompletion:
    """Moving a task to completed stamps completed_at and progress."""

    def test_create_completed_task(self, tasks):
        task = tasks.create_record(ALPHA, TaskCreate(title="Protocolar", status="completed"))
        assert task.completed_at is not None
        assert task.progress == 100

    def test_move_to_completed_and_back(self, tasks):
        task = tasks.create_record(ALPHA, TaskCreate(title="Protocolar", progress=30))
        done = tasks.move_record(ALPHA, task.id, "completed")
        assert done.completed_at is not None
        assert done.progress == 100

        reopened = tasks.move_record(ALPHA, task.id, "in_progress")
        assert reopened.completed_at is None
        assert reopened.status == "in_progress"

    def test_patch_status_runs_the_same_hook(self, tasks):
        task = tasks.create_record(ALPHA, TaskCreate(title="Protocolar"))
        done = tasks.update_record(ALPHA, task.id, {"status": "completed"})
        assert done.completed_at is not None

    def test_toggle_subtask(self, tasks):
        task = tasks.create_record(ALPHA, TaskCreate(
            title="Preparar audiencia",
            subtasks=[SubtaskCreate(title="Separar documentos"), SubtaskCreate(title="Ligar para cliente")],
        ))
        subtask_id = task.subtasks[0].id

        toggled = tasks.toggle_subtask(ALPHA, task.id, subtask_id)
        assert toggled.subtasks[0].completed is True
        assert toggled.subtasks[0].completed_at is not None
        assert toggled.subtasks[1].completed is False

        untoggled = tasks.toggle_subtask(ALPHA, task.id, subtask_id)
        assert untoggled.subtasks[0].completed is False
        assert untoggled.subtasks[0].completed_at is None

    def test_toggle_unknown_subtask_raises(self, tasks):
        task = tasks.create_record(ALPHA, TaskCreate(title="Preparar audiencia"))
        with pytest.raises(RecordNotFoundError, match="Subtask not found"):
            tasks.toggle_subtask(ALPHA, task.id, "missing")

    def test_assignees(self, tasks):
        tasks.create_record(ALPHA, TaskCreate(title="A", assigned_to="Bruno"))
        tasks.create_record(ALPHA, TaskCreate(title="B", assigned_to="Ana"))
        tasks.create_record(ALPHA, TaskCreate(title="C", assigned_to="Ana"))
        tasks.create_record(ALPHA, TaskCreate(title="D"))
        assert tasks.assignees(ALPHA) == ["Ana", "Bruno"]

    def test_dates_are_normalized_to_utc(self, tasks):
        task = tasks.create_record(ALPHA, {"title": "Prazo", "end_date": datetime(2025, 3, 1, 12, 0)})
        assert task.end_date == datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
