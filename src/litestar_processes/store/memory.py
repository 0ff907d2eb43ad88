"""In-memory process store.

Suitable for development, testing, and single-process deployments where
records need not survive a restart.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from contextvars import ContextVar
from copy import deepcopy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from litestar_processes.core.definition import version_key
from litestar_processes.core.models import TaskFilters, task_sort_key
from litestar_processes.core.types import TaskStatus

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from litestar_processes.core.definition import ProcessDefinition
    from litestar_processes.core.models import ProcessInstance, Task
    from litestar_processes.core.types import DefinitionStatus, InstanceStatus

__all__ = ["InMemoryProcessStore"]


@dataclass
class _Writes:
    definitions: dict[tuple[str, str], ProcessDefinition] = field(default_factory=dict)
    instances: dict[str, ProcessInstance] = field(default_factory=dict)
    tasks: dict[str, Task] = field(default_factory=dict)


class InMemoryProcessStore:
    """Dictionary-backed implementation of the ProcessStore protocol.

    Records are deep-copied on the way in and on the way out, so callers never
    share state with the store. Writes made inside :meth:`transaction` are
    staged per asyncio context and applied together when the block exits
    cleanly; concurrent transactions never observe each other's staged writes.

    Example:
        >>> store = InMemoryProcessStore()
        >>> async with store.transaction():
        ...     await store.save_instance(instance)
        ...     await store.save_task(task)
    """

    def __init__(self) -> None:
        self._committed = _Writes()
        self._staged: ContextVar[_Writes | None] = ContextVar(f"process_store_{id(self)}", default=None)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._staged.get() is not None:
            yield
            return

        writes = _Writes()
        token = self._staged.set(writes)
        try:
            yield
        finally:
            self._staged.reset(token)

        self._committed.definitions.update(writes.definitions)
        self._committed.instances.update(writes.instances)
        self._committed.tasks.update(writes.tasks)

    @property
    def _target(self) -> _Writes:
        return self._staged.get() or self._committed

    def _view(self, attribute: str) -> dict:
        records = dict(getattr(self._committed, attribute))
        staged = self._staged.get()
        if staged is not None:
            records.update(getattr(staged, attribute))
        return records

    async def save_definition(self, definition: ProcessDefinition) -> None:
        self._target.definitions[(definition.id, definition.version)] = deepcopy(definition)

    async def load_definition(self, definition_id: str, version: str | None = None) -> ProcessDefinition | None:
        definitions = self._view("definitions")
        if version is None:
            versions = [key[1] for key in definitions if key[0] == definition_id]
            if not versions:
                return None
            version = max(versions, key=version_key)

        definition = definitions.get((definition_id, version))
        return deepcopy(definition) if definition is not None else None

    async def list_definitions(self, status: DefinitionStatus | None = None) -> list[ProcessDefinition]:
        definitions = [
            definition
            for definition in self._view("definitions").values()
            if status is None or definition.status == status
        ]
        definitions.sort(key=lambda definition: (definition.id, version_key(definition.version)))
        return deepcopy(definitions)

    async def update_definition_status(
        self,
        definition_id: str,
        version: str,
        expected: DefinitionStatus,
        new: DefinitionStatus,
    ) -> bool:
        # No await between the check and the write: atomic under asyncio.
        definition = self._view("definitions").get((definition_id, version))
        if definition is None or definition.status != expected:
            return False

        updated = deepcopy(definition)
        updated.status = new
        self._target.definitions[(definition_id, version)] = updated
        return True

    async def save_instance(self, instance: ProcessInstance) -> None:
        self._target.instances[instance.id] = deepcopy(instance)

    async def load_instance(self, instance_id: str) -> ProcessInstance | None:
        instance = self._view("instances").get(instance_id)
        return deepcopy(instance) if instance is not None else None

    async def list_instances(
        self,
        definition_id: str | None = None,
        status: InstanceStatus | None = None,
        started_by: str | None = None,
    ) -> list[ProcessInstance]:
        instances = [
            instance
            for instance in self._view("instances").values()
            if (definition_id is None or instance.definition_id == definition_id)
            and (status is None or instance.status == status)
            and (started_by is None or instance.started_by == started_by)
        ]
        instances.sort(key=lambda instance: instance.started_at, reverse=True)
        return deepcopy(instances)

    async def save_task(self, task: Task) -> None:
        self._target.tasks[task.id] = deepcopy(task)

    async def load_task(self, task_id: str) -> Task | None:
        task = self._view("tasks").get(task_id)
        return deepcopy(task) if task is not None else None

    async def list_tasks_for_instance(self, instance_id: str, status: TaskStatus | None = None) -> list[Task]:
        return deepcopy(
            [
                task
                for task in self._view("tasks").values()
                if task.instance_id == instance_id and (status is None or task.status == status)
            ]
        )

    async def list_pending_tasks_for_instance(self, instance_id: str) -> list[Task]:
        return await self.list_tasks_for_instance(instance_id, TaskStatus.PENDING)

    async def list_tasks_for_assignee(self, principal_id: str, filters: TaskFilters | None = None) -> list[Task]:
        filters = filters or TaskFilters()
        tasks = [
            task
            for task in self._view("tasks").values()
            if task.assignee_id == principal_id and filters.matches(task)
        ]
        tasks.sort(key=task_sort_key)
        return deepcopy(tasks)
