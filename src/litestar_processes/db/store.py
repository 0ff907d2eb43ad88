"""SQLAlchemy implementation of the ProcessStore protocol."""

from __future__ import annotations

from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any
from uuid import UUID

from litestar_processes.core.definition import ProcessDefinition, version_key
from litestar_processes.core.models import ProcessInstance, Task, TaskFilters, task_sort_key
from litestar_processes.core.types import StepKind, TaskStatus
from litestar_processes.db.models import ProcessDefinitionModel, ProcessInstanceModel, ProcessTaskModel
from litestar_processes.db.repositories import (
    ProcessDefinitionRepository,
    ProcessInstanceRepository,
    ProcessTaskRepository,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from litestar_processes.core.types import DefinitionStatus, InstanceStatus

__all__ = ["SQLAlchemyProcessStore"]

_STEP_KINDS = {kind.value for kind in StepKind}


class SQLAlchemyProcessStore:
    """ProcessStore backed by a relational database.

    Each call outside :meth:`transaction` runs in its own short-lived session
    and commits on return. Inside :meth:`transaction` every call shares one
    session, committed when the block exits cleanly and rolled back otherwise.

    Instance and task identifiers must be UUID strings; the engine always
    generates them that way. Definition identifiers are free-form.

    Attributes:
        session_maker: Factory for async sessions. Should be created with
            ``expire_on_commit=False``.

    Example:
        >>> engine = create_async_engine("sqlite+aiosqlite:///processes.db")
        >>> store = SQLAlchemyProcessStore(async_sessionmaker(engine, expire_on_commit=False))
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker
        self._current: ContextVar[AsyncSession | None] = ContextVar(f"process_store_session_{id(self)}", default=None)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._current.get() is not None:
            yield
            return

        async with self.session_maker() as session, session.begin():
            token = self._current.set(session)
            try:
                yield
            finally:
                self._current.reset(token)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        session = self._current.get()
        if session is not None:
            yield session
            return

        async with self.session_maker() as session, session.begin():
            yield session

    # Definitions

    async def save_definition(self, definition: ProcessDefinition) -> None:
        async with self._session() as session:
            repo = ProcessDefinitionRepository(session=session)
            model = await repo.get_version(definition.id, definition.version)
            values = _definition_values(definition)
            if model is None:
                await repo.add(ProcessDefinitionModel(**values))
            else:
                _assign(model, values)
                await session.flush()

    async def load_definition(self, definition_id: str, version: str | None = None) -> ProcessDefinition | None:
        async with self._session() as session:
            repo = ProcessDefinitionRepository(session=session)
            if version is not None:
                model = await repo.get_version(definition_id, version)
            else:
                versions = await repo.list_versions(definition_id)
                model = max(versions, key=lambda item: version_key(item.version)) if versions else None
            return _definition_from_model(model) if model is not None else None

    async def list_definitions(self, status: DefinitionStatus | None = None) -> list[ProcessDefinition]:
        async with self._session() as session:
            models = await ProcessDefinitionRepository(session=session).find_by_status(status)
            definitions = [_definition_from_model(model) for model in models]
        definitions.sort(key=lambda definition: (definition.id, version_key(definition.version)))
        return definitions

    async def update_definition_status(
        self,
        definition_id: str,
        version: str,
        expected: DefinitionStatus,
        new: DefinitionStatus,
    ) -> bool:
        async with self._session() as session:
            return await ProcessDefinitionRepository(session=session).compare_and_set_status(
                definition_id, version, expected, new
            )

    # Instances

    async def save_instance(self, instance: ProcessInstance) -> None:
        async with self._session() as session:
            repo = ProcessInstanceRepository(session=session)
            model = await repo.get_one_or_none(id=UUID(instance.id))
            values = _instance_values(instance)
            if model is None:
                await repo.add(ProcessInstanceModel(id=UUID(instance.id), **values))
            else:
                _assign(model, values)
                await session.flush()

    async def load_instance(self, instance_id: str) -> ProcessInstance | None:
        key = _as_uuid(instance_id)
        if key is None:
            return None
        async with self._session() as session:
            model = await ProcessInstanceRepository(session=session).get_one_or_none(id=key)
            return _instance_from_model(model) if model is not None else None

    async def list_instances(
        self,
        definition_id: str | None = None,
        status: InstanceStatus | None = None,
        started_by: str | None = None,
    ) -> list[ProcessInstance]:
        async with self._session() as session:
            models = await ProcessInstanceRepository(session=session).find(definition_id, status, started_by)
            return [_instance_from_model(model) for model in models]

    # Tasks

    async def save_task(self, task: Task) -> None:
        async with self._session() as session:
            repo = ProcessTaskRepository(session=session)
            model = await repo.get_one_or_none(id=UUID(task.id))
            values = _task_values(task)
            if model is None:
                await repo.add(ProcessTaskModel(id=UUID(task.id), **values))
            else:
                _assign(model, values)
                await session.flush()

    async def load_task(self, task_id: str) -> Task | None:
        key = _as_uuid(task_id)
        if key is None:
            return None
        async with self._session() as session:
            model = await ProcessTaskRepository(session=session).get_one_or_none(id=key)
            return _task_from_model(model) if model is not None else None

    async def list_tasks_for_instance(self, instance_id: str, status: TaskStatus | None = None) -> list[Task]:
        key = _as_uuid(instance_id)
        if key is None:
            return []
        async with self._session() as session:
            models = await ProcessTaskRepository(session=session).find_by_instance(key, status)
            return [_task_from_model(model) for model in models]

    async def list_pending_tasks_for_instance(self, instance_id: str) -> list[Task]:
        return await self.list_tasks_for_instance(instance_id, TaskStatus.PENDING)

    async def list_tasks_for_assignee(self, principal_id: str, filters: TaskFilters | None = None) -> list[Task]:
        async with self._session() as session:
            models = await ProcessTaskRepository(session=session).find_for_assignee(
                principal_id, filters or TaskFilters()
            )
            tasks = [_task_from_model(model) for model in models]
        tasks.sort(key=task_sort_key)
        return tasks


def _as_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


def _assign(model: Any, values: dict[str, Any]) -> None:
    for key, value in values.items():
        setattr(model, key, value)


def _definition_values(definition: ProcessDefinition) -> dict[str, Any]:
    return {
        "definition_id": definition.id,
        "version": definition.version,
        "name": definition.name,
        "description": definition.description,
        "status": definition.status,
        "start_step": definition.start_step,
        "definition_json": definition.to_dict(),
    }


def _definition_from_model(model: ProcessDefinitionModel) -> ProcessDefinition:
    definition = ProcessDefinition.from_dict(model.definition_json)
    definition.status = model.status
    return definition


def _instance_values(instance: ProcessInstance) -> dict[str, Any]:
    return {
        "definition_id": instance.definition_id,
        "definition_version": instance.definition_version,
        "definition_name": instance.definition_name,
        "status": instance.status,
        "data": dict(instance.data),
        "pending_steps": list(instance.pending_steps),
        "started_by": instance.started_by,
        "started_at": instance.started_at,
        "completed_at": instance.completed_at,
    }


def _instance_from_model(model: ProcessInstanceModel) -> ProcessInstance:
    return ProcessInstance(
        id=str(model.id),
        definition_id=model.definition_id,
        definition_version=model.definition_version,
        status=model.status,
        data=dict(model.data or {}),
        started_by=model.started_by,
        started_at=model.started_at,
        pending_steps=list(model.pending_steps or []),
        completed_at=model.completed_at,
        definition_name=model.definition_name,
    )


def _task_values(task: Task) -> dict[str, Any]:
    return {
        "instance_id": UUID(task.instance_id),
        "definition_id": task.definition_id,
        "step_id": task.step_id,
        "name": task.name,
        "description": task.description,
        "kind": str(task.kind),
        "status": task.status,
        "assignee_id": task.assignee_id,
        "assignee_role": task.assignee_role,
        "priority": task.priority,
        "created_at": task.created_at,
        "due_at": task.due_at,
        "data": dict(task.data),
        "completed_by": task.completed_by,
        "completed_at": task.completed_at,
    }


def _task_from_model(model: ProcessTaskModel) -> Task:
    return Task(
        id=str(model.id),
        instance_id=str(model.instance_id),
        definition_id=model.definition_id,
        step_id=model.step_id,
        name=model.name,
        kind=StepKind(model.kind) if model.kind in _STEP_KINDS else model.kind,
        status=model.status,
        assignee_id=model.assignee_id,
        assignee_role=model.assignee_role,
        priority=model.priority,
        created_at=model.created_at,
        due_at=model.due_at,
        data=dict(model.data or {}),
        completed_by=model.completed_by,
        completed_at=model.completed_at,
        description=model.description or "",
    )
