"""Instance lifecycle: starting instances and advancing them on task completion.

The manager owns the state machine of a single instance. It performs no
locking of its own: callers serialize operations on one instance (the
:class:`~litestar_processes.engine.engine.ProcessEngine` does so with a
:class:`~litestar_processes.engine.locks.KeyedLock`). Every operation runs
inside one store transaction, so a failure leaves no partial state behind.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from litestar_processes.config import EngineConfig
from litestar_processes.core.models import InstanceStatusReport, ProcessInstance, Task, TaskCompletion
from litestar_processes.core.types import InstanceStatus, StepKind, TaskPriority, TaskStatus
from litestar_processes.engine.conditions import evaluate_condition
from litestar_processes.engine.graph import ProcessGraph
from litestar_processes.engine.persistence import guarded, unit_of_work
from litestar_processes.engine.tasks import TaskStore
from litestar_processes.exceptions import (
    DefinitionNotActiveError,
    DefinitionNotFoundError,
    ForbiddenError,
    InstanceAlreadyCompletedError,
    InstanceNotFoundError,
    InvalidStateError,
    TaskAlreadyCompletedError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from litestar_processes.core.definition import ProcessDefinition, StepDefinition
    from litestar_processes.core.protocols import ProcessStore
    from litestar_processes.engine.assignment import AssigneeResolver

__all__ = ["InstanceManager"]

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unique(step_ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(step_ids))


class InstanceManager:
    """Create process instances and drive them through their steps.

    Attributes:
        store: The persistence collaborator.
        resolver: Resolves assignees and authorizes completions.
        config: Engine configuration.
        tasks: Task record access.
    """

    def __init__(
        self,
        store: ProcessStore,
        resolver: AssigneeResolver,
        config: EngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            store: The persistence collaborator.
            resolver: The assignee resolver.
            config: Engine configuration. Defaults to ``EngineConfig()``.
            clock: Returns the current time. Defaults to UTC wall-clock time.
        """
        self.store = store
        self.resolver = resolver
        self.config = config or EngineConfig()
        self.tasks = TaskStore(store, self.config.persistence_timeout)
        self._clock = clock or _utcnow

    @property
    def timeout(self) -> float | None:
        return self.config.persistence_timeout

    async def start(
        self,
        definition: ProcessDefinition,
        data: Mapping[str, Any] | None,
        started_by: str | None,
    ) -> tuple[ProcessInstance, list[Task]]:
        """Start an instance of an active definition.

        Exactly one task is created, for the definition's start step.

        Args:
            definition: The definition to instantiate.
            data: Initial instance data.
            started_by: Principal starting the instance.

        Returns:
            The new instance and the list holding its start task.

        Raises:
            DefinitionNotActiveError: If the definition is a draft.
            DependencyUnavailableError: If a collaborator fails. Nothing is persisted.
        """
        if not definition.is_active:
            raise DefinitionNotActiveError(definition.id, definition.version, definition.status)

        start_step = definition.get_step(definition.start_step)
        if start_step is None:
            raise InvalidStateError(f"Start step '{definition.start_step}' not found in '{definition.id}'")

        now = self._clock()
        instance = ProcessInstance(
            id=str(uuid4()),
            definition_id=definition.id,
            definition_version=definition.version,
            status=InstanceStatus.RUNNING,
            data=dict(data or {}),
            started_by=started_by,
            started_at=now,
            pending_steps=[start_step.id],
            definition_name=definition.name,
        )

        async with unit_of_work(self.store):
            task = await self._build_task(instance, start_step, started_by, now)
            await guarded(self.store.save_instance(instance), "persistence", self.timeout)
            await self.tasks.create(task)

        logger.info(
            "Started instance %s of %s@%s",
            instance.id,
            definition.id,
            definition.version,
            extra={"instance_id": instance.id, "definition_id": definition.id},
        )
        return instance, [task]

    async def complete_task(
        self,
        task_id: str,
        data: Mapping[str, Any] | None,
        principal_id: str | None,
    ) -> TaskCompletion:
        """Complete a pending task and advance its instance.

        The completion data is merged into the instance data, then every
        transition of the task's step is evaluated in declared order against the
        merged data. Each satisfied transition creates a task for its target
        step. When no pending task remains the instance completes.

        Args:
            task_id: The task to complete.
            data: Completion data.
            principal_id: Principal completing the task.

        Returns:
            The completed task, the updated instance and the spawned tasks.

        Raises:
            TaskNotFoundError: If the task does not exist.
            TaskAlreadyCompletedError: If the task is not pending.
            ForbiddenError: If the principal may not complete the task.
            DependencyUnavailableError: If a collaborator fails. Nothing is persisted.
        """
        data = dict(data or {})

        async with unit_of_work(self.store):
            task = await self.tasks.get(task_id)
            if not task.is_pending:
                raise TaskAlreadyCompletedError(task.id)

            instance = await self._load_instance(task.instance_id)
            if instance.is_completed:
                raise InstanceAlreadyCompletedError(instance.id)

            if not await self.resolver.can_complete(task, principal_id):
                raise ForbiddenError(task.id, principal_id)

            definition = await self._load_definition(instance.definition_id, instance.definition_version)

            now = self._clock()
            task.complete(principal_id, data, now)  # type: ignore[arg-type]
            instance.merge_data(data)

            created = await self._advance(instance, definition, task, principal_id, now)

            await self.tasks.save(task)
            for new_task in created:
                await self.tasks.create(new_task)

            pending = await self.tasks.list_pending_for_instance(instance.id)
            instance.pending_steps = _unique(pending_task.step_id for pending_task in pending)
            if not pending:
                instance.mark_completed(now)
            await guarded(self.store.save_instance(instance), "persistence", self.timeout)

        logger.info(
            "Completed task %s (%s) of instance %s, %d task(s) created",
            task.id,
            task.step_id,
            instance.id,
            len(created),
            extra={"instance_id": instance.id, "task_id": task.id, "principal_id": principal_id},
        )
        if instance.is_completed:
            logger.info("Instance %s completed", instance.id, extra={"instance_id": instance.id})

        return TaskCompletion(task=task, instance=instance, created_tasks=created)

    async def get_status(self, instance_id: str) -> InstanceStatusReport:
        """Project an instance with its pending and completed tasks.

        Raises:
            InstanceNotFoundError: If the instance does not exist.
        """
        instance = await self._load_instance(instance_id)
        pending = await self.tasks.list_pending_for_instance(instance_id)
        completed = await self.tasks.list_completed_for_instance(instance_id)
        return InstanceStatusReport(instance=instance, pending_tasks=pending, completed_tasks=completed)

    async def _advance(
        self,
        instance: ProcessInstance,
        definition: ProcessDefinition,
        task: Task,
        principal_id: str | None,
        now: datetime,
    ) -> list[Task]:
        step = definition.get_step(task.step_id)
        if step is None:
            logger.warning(
                "Step %r of task %s no longer exists in %s@%s",
                task.step_id,
                task.id,
                definition.id,
                definition.version,
                extra={"instance_id": instance.id, "task_id": task.id},
            )
            return []

        graph = ProcessGraph.from_definition(definition)
        if graph.is_terminal(step.id):
            return []

        created: list[Task] = []
        for transition in graph.outgoing(step.id):
            if not evaluate_condition(transition.condition, instance.data):
                continue

            target = definition.get_step(transition.target)
            if target is None:
                logger.warning(
                    "Transition %s -> %s points at an unknown step",
                    step.id,
                    transition.target,
                    extra={"instance_id": instance.id},
                )
                continue

            if target.kind == StepKind.END and not self.config.materialize_end_tasks:
                logger.debug("Branch of instance %s reached end step %s", instance.id, target.id)
                continue

            created.append(await self._build_task(instance, target, principal_id, now))

        return created

    async def _build_task(
        self,
        instance: ProcessInstance,
        step: StepDefinition,
        current_principal: str | None,
        now: datetime,
    ) -> Task:
        assignee = await self.resolver.resolve(step.assignment, instance.data, current_principal)
        priority = step.priority if isinstance(step.priority, TaskPriority) else self.config.default_priority
        return Task(
            id=str(uuid4()),
            instance_id=instance.id,
            definition_id=instance.definition_id,
            step_id=step.id,
            name=step.display_name,
            kind=step.kind,
            status=TaskStatus.PENDING,
            assignee_id=assignee,
            assignee_role=step.assignment.role if step.assignment else None,
            priority=priority,
            created_at=now,
            due_at=now + step.due_in if step.due_in else None,
            description=step.description,
        )

    async def _load_instance(self, instance_id: str) -> ProcessInstance:
        instance = await guarded(self.store.load_instance(instance_id), "persistence", self.timeout)
        if instance is None:
            raise InstanceNotFoundError(instance_id)
        return instance

    async def _load_definition(self, definition_id: str, version: str) -> ProcessDefinition:
        definition = await guarded(self.store.load_definition(definition_id, version), "persistence", self.timeout)
        if definition is None:
            raise DefinitionNotFoundError(definition_id, version)
        return definition
