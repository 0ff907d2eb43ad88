"""Integration tests for the database persistence layer.

Tests the SQLAlchemy models, repositories, and SQLAlchemyProcessStore
using an async SQLite in-memory database.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from litestar_processes.config import EngineConfig
from litestar_processes.core.models import ProcessInstance, Task, TaskFilters
from litestar_processes.core.protocols import ProcessStore
from litestar_processes.core.types import (
    DefinitionStatus,
    InstanceStatus,
    StepKind,
    TaskPriority,
    TaskStatus,
)
from litestar_processes.db.models import ProcessDefinitionModel
from litestar_processes.db.repositories import ProcessDefinitionRepository, ProcessTaskRepository
from litestar_processes.db.store import SQLAlchemyProcessStore
from litestar_processes.engine.engine import ProcessEngine
from litestar_processes.exceptions import ForbiddenError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from litestar_processes.core.definition import ProcessDefinition
    from litestar_processes.directory import StaticDirectory

NOW = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Create an async SQLite in-memory engine shared by every session."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(ProcessDefinitionModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def sql_store(session_maker: async_sessionmaker[AsyncSession]) -> SQLAlchemyProcessStore:
    return SQLAlchemyProcessStore(session_maker)


@pytest.fixture
def db_engine(sql_store: SQLAlchemyProcessStore, directory: StaticDirectory) -> ProcessEngine:
    return ProcessEngine(sql_store, directory, config=EngineConfig(materialize_end_tasks=True))


def make_instance(definition_id: str = "document_signing", **overrides) -> ProcessInstance:
    values = {
        "id": str(uuid4()),
        "definition_id": definition_id,
        "definition_version": "1.0.0",
        "status": InstanceStatus.RUNNING,
        "data": {"amount": 10, "tags": ["a", "b"]},
        "started_by": "alice",
        "started_at": NOW,
        "pending_steps": ["sign"],
        "definition_name": "Document signing",
    }
    values.update(overrides)
    return ProcessInstance(**values)


def make_task(instance: ProcessInstance, **overrides) -> Task:
    values = {
        "id": str(uuid4()),
        "instance_id": instance.id,
        "definition_id": instance.definition_id,
        "step_id": "sign",
        "name": "Sign",
        "kind": StepKind.TASK,
        "status": TaskStatus.PENDING,
        "assignee_id": "alice",
        "assignee_role": None,
        "priority": TaskPriority.MEDIUM,
        "created_at": NOW,
    }
    values.update(overrides)
    return Task(**values)


# =============================================================================
# Repository Tests
# =============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestRepositories:
    async def test_compare_and_set_status(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        sql_store: SQLAlchemyProcessStore,
        signing_definition: ProcessDefinition,
    ) -> None:
        await sql_store.save_definition(signing_definition)

        async with session_maker() as session, session.begin():
            repo = ProcessDefinitionRepository(session=session)
            assert await repo.compare_and_set_status(
                "document_signing", "1.0.0", DefinitionStatus.DRAFT, DefinitionStatus.ACTIVE
            )
            assert not await repo.compare_and_set_status(
                "document_signing", "1.0.0", DefinitionStatus.DRAFT, DefinitionStatus.ACTIVE
            )
            assert not await repo.compare_and_set_status(
                "document_signing", "9.9.9", DefinitionStatus.DRAFT, DefinitionStatus.ACTIVE
            )

        assert (await sql_store.load_definition("document_signing")).is_active

    async def test_find_for_assignee_filters(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        sql_store: SQLAlchemyProcessStore,
    ) -> None:
        instance = make_instance()
        await sql_store.save_instance(instance)
        urgent = make_task(instance, priority=TaskPriority.URGENT)
        done = make_task(instance, status=TaskStatus.COMPLETED, completed_by="alice", completed_at=NOW)
        other = make_task(instance, assignee_id="bob")
        for task in (urgent, done, other):
            await sql_store.save_task(task)

        async with session_maker() as session:
            repo = ProcessTaskRepository(session=session)
            pending = await repo.find_for_assignee("alice", TaskFilters())
            urgent_only = await repo.find_for_assignee("alice", TaskFilters(priority=TaskPriority.URGENT))
            every_status = await repo.find_for_assignee("alice", TaskFilters(status=None))

        assert [str(model.id) for model in pending] == [urgent.id]
        assert [str(model.id) for model in urgent_only] == [urgent.id]
        assert {str(model.id) for model in every_status} == {urgent.id, done.id}


# =============================================================================
# Store Tests
# =============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestSQLAlchemyProcessStore:
    def test_satisfies_protocol(self, sql_store: SQLAlchemyProcessStore) -> None:
        assert isinstance(sql_store, ProcessStore)

    async def test_definition_round_trip(
        self,
        sql_store: SQLAlchemyProcessStore,
        signing_definition: ProcessDefinition,
    ) -> None:
        await sql_store.save_definition(signing_definition)

        loaded = await sql_store.load_definition("document_signing", "1.0.0")

        assert loaded is not None
        assert loaded.to_dict() == signing_definition.to_dict()
        assert await sql_store.load_definition("document_signing", "2.0.0") is None
        assert await sql_store.load_definition("unknown") is None

    async def test_saving_again_updates_in_place(
        self,
        sql_store: SQLAlchemyProcessStore,
        signing_definition: ProcessDefinition,
    ) -> None:
        await sql_store.save_definition(signing_definition)
        signing_definition.name = "Renamed"

        await sql_store.save_definition(signing_definition)

        definitions = await sql_store.list_definitions()
        assert [(d.id, d.name) for d in definitions] == [("document_signing", "Renamed")]

    async def test_latest_version_uses_version_order(
        self,
        sql_store: SQLAlchemyProcessStore,
        signing_definition: ProcessDefinition,
    ) -> None:
        for version in ("1.9.0", "1.10.0", "1.2.0"):
            signing_definition.version = version
            await sql_store.save_definition(signing_definition)

        assert (await sql_store.load_definition("document_signing")).version == "1.10.0"
        assert [d.version for d in await sql_store.list_definitions()] == ["1.2.0", "1.9.0", "1.10.0"]

    async def test_instance_and_task_round_trip(self, sql_store: SQLAlchemyProcessStore) -> None:
        instance = make_instance()
        task = make_task(
            instance,
            kind=StepKind.APPROVAL,
            assignee_role="manager",
            due_at=NOW + timedelta(days=1),
            description="Sign the contract",
        )
        await sql_store.save_instance(instance)
        await sql_store.save_task(task)

        assert await sql_store.load_instance(instance.id) == instance
        assert await sql_store.load_task(task.id) == task

    async def test_non_uuid_identifiers_are_unknown(self, sql_store: SQLAlchemyProcessStore) -> None:
        assert await sql_store.load_instance("not-a-uuid") is None
        assert await sql_store.load_task("not-a-uuid") is None
        assert await sql_store.list_tasks_for_instance("not-a-uuid") == []

    async def test_transaction_rolls_back(self, sql_store: SQLAlchemyProcessStore) -> None:
        instance = make_instance()

        with pytest.raises(RuntimeError):
            async with sql_store.transaction():
                await sql_store.save_instance(instance)
                assert await sql_store.load_instance(instance.id) is not None
                msg = "boom"
                raise RuntimeError(msg)

        assert await sql_store.load_instance(instance.id) is None

    async def test_transaction_commits(self, sql_store: SQLAlchemyProcessStore) -> None:
        instance = make_instance()

        async with sql_store.transaction():
            await sql_store.save_instance(instance)
            await sql_store.save_task(make_task(instance))

        assert len(await sql_store.list_pending_tasks_for_instance(instance.id)) == 1

    async def test_list_instances_filters(self, sql_store: SQLAlchemyProcessStore) -> None:
        first = make_instance(started_at=NOW)
        second = make_instance(started_at=NOW + timedelta(hours=1), started_by="bob")
        third = make_instance("contract_review", status=InstanceStatus.COMPLETED, completed_at=NOW)
        for instance in (first, second, third):
            await sql_store.save_instance(instance)

        assert [i.id for i in await sql_store.list_instances("document_signing")] == [second.id, first.id]
        assert [i.id for i in await sql_store.list_instances(started_by="bob")] == [second.id]
        assert [i.id for i in await sql_store.list_instances(status=InstanceStatus.COMPLETED)] == [third.id]

    async def test_assignee_tasks_are_ordered(self, sql_store: SQLAlchemyProcessStore) -> None:
        instance = make_instance()
        await sql_store.save_instance(instance)
        late_high = make_task(instance, priority=TaskPriority.HIGH, created_at=NOW + timedelta(hours=1))
        early_high = make_task(instance, priority=TaskPriority.HIGH)
        low = make_task(instance, priority=TaskPriority.LOW)
        for task in (late_high, low, early_high):
            await sql_store.save_task(task)

        tasks = await sql_store.list_tasks_for_assignee("alice")

        assert [task.id for task in tasks] == [early_high.id, late_high.id, low.id]


# =============================================================================
# Engine on the SQL store
# =============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestEngineWithDatabase:
    async def test_signing_scenario(self, db_engine: ProcessEngine, signing_definition: ProcessDefinition) -> None:
        await db_engine.define_workflow(signing_definition)
        await db_engine.activate_workflow("document_signing")

        instance = await db_engine.start_instance("document_signing", {"amount": 500}, "alice")
        (sign,) = (await db_engine.get_instance_status(instance.id)).pending_tasks

        completion = await db_engine.complete_task(sign.id, {}, "alice")
        (end,) = completion.created_tasks
        assert end.step_id == "end"

        completion = await db_engine.complete_task(end.id, {}, "alice")

        assert completion.created_tasks == []
        report = await db_engine.get_instance_status(instance.id)
        assert report.instance.status == InstanceStatus.COMPLETED
        assert report.instance.pending_steps == []
        assert [task.step_id for task in report.completed_tasks] == ["sign", "end"]

    async def test_rejected_completion_leaves_no_trace(
        self,
        db_engine: ProcessEngine,
        signing_definition: ProcessDefinition,
    ) -> None:
        await db_engine.define_workflow(signing_definition)
        await db_engine.activate_workflow("document_signing")
        instance = await db_engine.start_instance("document_signing", {"amount": 5000}, "alice")
        (sign,) = (await db_engine.get_instance_status(instance.id)).pending_tasks
        completion = await db_engine.complete_task(sign.id, {}, "alice")
        (approval, _end) = completion.created_tasks

        with pytest.raises(ForbiddenError):
            await db_engine.complete_task(approval.id, {"approved": True}, "alice")

        report = await db_engine.get_instance_status(instance.id)
        assert report.instance.data == {"amount": 5000}
        assert {task.step_id for task in report.pending_tasks} == {"approval", "end"}

        done = await db_engine.complete_task(approval.id, {"approved": True}, "carol")
        assert done.instance.data == {"amount": 5000, "approved": True}

    async def test_concurrent_activation_succeeds_once(
        self,
        db_engine: ProcessEngine,
        signing_definition: ProcessDefinition,
    ) -> None:
        await db_engine.define_workflow(signing_definition)
        first = await db_engine.activate_workflow("document_signing")

        changed = await db_engine.store.update_definition_status(
            "document_signing", "1.0.0", DefinitionStatus.DRAFT, DefinitionStatus.ACTIVE
        )

        assert first.is_active
        assert changed is False

    async def test_assignee_views(self, db_engine: ProcessEngine, fan_out_definition: ProcessDefinition) -> None:
        await db_engine.define_workflow(fan_out_definition)
        await db_engine.activate_workflow("contract_review")
        instance = await db_engine.start_instance("contract_review", {"amount": 100}, "alice")
        (request,) = (await db_engine.get_instance_status(instance.id)).pending_tasks
        await db_engine.complete_task(request.id, {}, "alice")

        tasks = await db_engine.list_tasks_for_assignee("dave")
        instances = await db_engine.list_instances_for_assignee("dave")

        assert [task.step_id for task in tasks] == ["finance_review"]
        assert [i.id for i in instances] == [instance.id]
