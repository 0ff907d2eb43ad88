"""Task record access on top of the persistence collaborator."""

from __future__ import annotations

from typing import TYPE_CHECKING

from litestar_processes.core.types import TaskStatus
from litestar_processes.engine.persistence import guarded
from litestar_processes.exceptions import TaskNotFoundError

if TYPE_CHECKING:
    from litestar_processes.core.models import Task, TaskFilters
    from litestar_processes.core.protocols import ProcessStore

__all__ = ["TaskStore"]


class TaskStore:
    """CRUD for task records.

    Every call is bounded by ``timeout`` and surfaces collaborator failures as
    :class:`~litestar_processes.exceptions.DependencyUnavailableError`.

    Attributes:
        store: The persistence collaborator.
        timeout: Seconds allowed per persistence call.
    """

    def __init__(self, store: ProcessStore, timeout: float | None = None) -> None:
        self.store = store
        self.timeout = timeout

    async def create(self, task: Task) -> Task:
        await guarded(self.store.save_task(task), "persistence", self.timeout)
        return task

    async def save(self, task: Task) -> None:
        await guarded(self.store.save_task(task), "persistence", self.timeout)

    async def get(self, task_id: str) -> Task:
        """Load a task.

        Raises:
            TaskNotFoundError: If no task has this id.
        """
        task = await guarded(self.store.load_task(task_id), "persistence", self.timeout)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def list_for_instance(self, instance_id: str, status: TaskStatus | None = None) -> list[Task]:
        return await guarded(self.store.list_tasks_for_instance(instance_id, status), "persistence", self.timeout)

    async def list_pending_for_instance(self, instance_id: str) -> list[Task]:
        return await guarded(self.store.list_pending_tasks_for_instance(instance_id), "persistence", self.timeout)

    async def list_completed_for_instance(self, instance_id: str) -> list[Task]:
        """List completed tasks in completion order."""
        tasks = await self.list_for_instance(instance_id, TaskStatus.COMPLETED)
        return sorted(tasks, key=lambda task: (task.completed_at is None, task.completed_at or task.created_at))

    async def list_for_assignee(self, principal_id: str, filters: TaskFilters | None = None) -> list[Task]:
        return await guarded(self.store.list_tasks_for_assignee(principal_id, filters), "persistence", self.timeout)
