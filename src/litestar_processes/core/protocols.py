"""Collaborator protocols for litestar-processes.

This module defines the Protocol-based interfaces of the three collaborators
the engine depends on: persistence, the principal directory, and task
notification. Using Protocol allows duck typing while maintaining type safety.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from litestar_processes.core.definition import ProcessDefinition
    from litestar_processes.core.models import ProcessInstance, Task, TaskFilters
    from litestar_processes.core.types import DefinitionStatus, InstanceStatus, TaskStatus


__all__ = ["Directory", "ProcessStore", "TaskNotifier"]


@runtime_checkable
class ProcessStore(Protocol):
    """Protocol for durable storage of definitions, instances and tasks.

    All records are keyed by opaque string identifiers. Implementations must
    return copies: mutating a returned object has no effect until it is saved.

    Writes issued inside :meth:`transaction` become visible to other callers
    only when the transaction exits without an exception, and are discarded
    otherwise. Reads inside a transaction observe its own pending writes.

    Example:
        >>> async with store.transaction():
        ...     await store.save_task(task)
        ...     await store.save_instance(instance)
    """

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Open a unit of work. Nested calls join the outer unit."""
        ...

    async def save_definition(self, definition: ProcessDefinition) -> None:
        """Insert or replace a definition, keyed by id and version."""
        ...

    async def load_definition(self, definition_id: str, version: str | None = None) -> ProcessDefinition | None:
        """Load a definition version, or the latest version when ``version`` is None."""
        ...

    async def list_definitions(self, status: DefinitionStatus | None = None) -> list[ProcessDefinition]:
        """List every stored definition version, optionally filtered by status."""
        ...

    async def update_definition_status(
        self,
        definition_id: str,
        version: str,
        expected: DefinitionStatus,
        new: DefinitionStatus,
    ) -> bool:
        """Atomically set the status to ``new`` if it currently is ``expected``.

        Returns:
            True if the status was changed.
        """
        ...

    async def save_instance(self, instance: ProcessInstance) -> None:
        """Insert or replace an instance."""
        ...

    async def load_instance(self, instance_id: str) -> ProcessInstance | None:
        """Load an instance by id."""
        ...

    async def list_instances(
        self,
        definition_id: str | None = None,
        status: InstanceStatus | None = None,
        started_by: str | None = None,
    ) -> list[ProcessInstance]:
        """List instances matching every given filter, most recently started first."""
        ...

    async def save_task(self, task: Task) -> None:
        """Insert or replace a task."""
        ...

    async def load_task(self, task_id: str) -> Task | None:
        """Load a task by id."""
        ...

    async def list_tasks_for_instance(self, instance_id: str, status: TaskStatus | None = None) -> list[Task]:
        """List the tasks of an instance in creation order."""
        ...

    async def list_pending_tasks_for_instance(self, instance_id: str) -> list[Task]:
        """List the pending tasks of an instance in creation order."""
        ...

    async def list_tasks_for_assignee(self, principal_id: str, filters: TaskFilters | None = None) -> list[Task]:
        """List the tasks assigned to a principal, most urgent first."""
        ...


@runtime_checkable
class Directory(Protocol):
    """Protocol for role and identity resolution."""

    async def find_principals_by_role(self, role: str) -> list[str]:
        """Return the principals holding ``role``."""
        ...

    async def principal_has_role(self, principal_id: str, role: str) -> bool:
        """Return whether ``principal_id`` holds ``role``."""
        ...


@runtime_checkable
class TaskNotifier(Protocol):
    """Protocol for delivering task assignment notifications.

    Delivery is best effort: the engine logs and suppresses any exception
    raised here.
    """

    async def notify_task_assigned(self, principal_id: str, instance_id: str, step_id: str) -> None:
        """Tell ``principal_id`` that a task for ``step_id`` was assigned to them."""
        ...
