"""Concrete runtime data models for litestar-processes.

This module provides the dataclasses for process instances and tasks, and the
read-only projections returned by the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from litestar_processes.core.types import InstanceStatus, StepKind, TaskPriority, TaskStatus
from litestar_processes.exceptions import InstanceAlreadyCompletedError, TaskAlreadyCompletedError

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "InstanceStatusReport",
    "ProcessInstance",
    "Task",
    "TaskCompletion",
    "TaskFilters",
    "ValidationResult",
    "task_sort_key",
]


@dataclass
class ProcessInstance:
    """A running or completed execution of a process definition.

    Attributes:
        id: Unique identifier for this instance.
        definition_id: Identifier of the definition the instance was started from.
        definition_version: Version of that definition. Never changes.
        status: Current status.
        data: Instance data, supplied at start and enriched by task completions.
        started_by: Principal who started the instance.
        started_at: Timestamp when the instance was created.
        pending_steps: Identifiers of the steps that currently have a pending task.
        completed_at: Timestamp when the instance completed.
        definition_name: Denormalized name of the definition.
    """

    id: str
    definition_id: str
    definition_version: str
    status: InstanceStatus
    data: dict[str, Any]
    started_by: str | None
    started_at: datetime
    pending_steps: list[str] = field(default_factory=list)
    completed_at: datetime | None = None
    definition_name: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == InstanceStatus.COMPLETED

    def merge_data(self, data: Mapping[str, Any]) -> None:
        """Merge ``data`` into the instance data. Later writes win."""
        self.data.update(data)

    def mark_completed(self, now: datetime) -> None:
        """Move the instance to completed.

        Raises:
            InstanceAlreadyCompletedError: If the instance is already completed.
        """
        if self.is_completed:
            raise InstanceAlreadyCompletedError(self.id)
        self.status = InstanceStatus.COMPLETED
        self.completed_at = now
        self.pending_steps = []


@dataclass
class Task:
    """A unit of work created when a step becomes active.

    The assignee is resolved once, when the task is created, and never changes.

    Attributes:
        id: Unique identifier for this task.
        instance_id: Identifier of the owning instance.
        definition_id: Denormalized identifier of the instance's definition.
        step_id: Identifier of the step the task represents.
        name: Display name, copied from the step.
        kind: Kind of the step.
        status: Current status.
        assignee_id: Principal the task is assigned to, None when unassigned.
        assignee_role: Role whose holders may also complete the task.
        priority: Priority of the task.
        created_at: Timestamp when the task was created.
        due_at: Optional deadline.
        data: Task-local data, populated on completion.
        completed_by: Principal who completed the task.
        completed_at: Timestamp when the task was completed.
        description: Human-readable description, copied from the step.
    """

    id: str
    instance_id: str
    definition_id: str
    step_id: str
    name: str
    kind: StepKind | str
    status: TaskStatus
    assignee_id: str | None
    assignee_role: str | None
    priority: TaskPriority
    created_at: datetime
    due_at: datetime | None = None
    data: dict[str, Any] = field(default_factory=dict)
    completed_by: str | None = None
    completed_at: datetime | None = None
    description: str = ""

    @property
    def is_pending(self) -> bool:
        return self.status == TaskStatus.PENDING

    def is_overdue(self, now: datetime) -> bool:
        """Whether the task is still pending past its deadline."""
        return self.is_pending and self.due_at is not None and self.due_at < now

    def complete(self, principal_id: str, data: Mapping[str, Any], now: datetime) -> None:
        """Move the task to completed, recording who completed it and with what data.

        Args:
            principal_id: Principal completing the task.
            data: Completion data, stored as the task-local data.
            now: Completion timestamp.

        Raises:
            TaskAlreadyCompletedError: If the task is not pending.
        """
        if not self.is_pending:
            raise TaskAlreadyCompletedError(self.id)
        self.status = TaskStatus.COMPLETED
        self.completed_by = principal_id
        self.completed_at = now
        self.data = dict(data)


def task_sort_key(task: Task) -> tuple[int, datetime]:
    """Ordering for assignee work lists: most urgent first, then oldest first."""
    priority = task.priority if isinstance(task.priority, TaskPriority) else TaskPriority(task.priority)
    return (-priority.rank, task.created_at)


@dataclass
class TaskFilters:
    """Filters for assignee task queries.

    Attributes:
        definition_id: Only tasks of instances started from this definition.
        priority: Only tasks with this priority.
        status: Only tasks with this status. ``None`` matches every status.
    """

    definition_id: str | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = TaskStatus.PENDING

    def matches(self, task: Task) -> bool:
        if self.definition_id is not None and task.definition_id != self.definition_id:
            return False
        if self.priority is not None and task.priority != self.priority:
            return False
        return self.status is None or task.status == self.status


@dataclass
class ValidationResult:
    """Outcome of validating a process definition.

    Attributes:
        errors: Problems that prevent the definition from being stored or activated.
        warnings: Suspicious but permitted constructs.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class InstanceStatusReport:
    """Read-only projection of an instance and its tasks.

    Attributes:
        instance: The instance.
        pending_tasks: Pending tasks, oldest first.
        completed_tasks: Completed tasks, in completion order.
    """

    instance: ProcessInstance
    pending_tasks: list[Task]
    completed_tasks: list[Task]


@dataclass
class TaskCompletion:
    """Outcome of completing a task.

    Attributes:
        task: The completed task.
        instance: The owning instance after the completion was applied.
        created_tasks: Tasks spawned by the satisfied transitions.
    """

    task: Task
    instance: ProcessInstance
    created_tasks: list[Task]
