"""Public entry point of the process engine.

:class:`ProcessEngine` sequences validation, activation, instance management
and notification. It is the only component that calls the instance manager's
mutators, and it serializes task completions per instance.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from litestar_processes.config import EngineConfig
from litestar_processes.core.definition import ProcessDefinition, version_key
from litestar_processes.core.types import STEP_KIND_LABELS, DefinitionStatus
from litestar_processes.engine.assignment import AssigneeResolver
from litestar_processes.engine.locks import KeyedLock
from litestar_processes.engine.manager import InstanceManager
from litestar_processes.engine.persistence import guarded
from litestar_processes.engine.validation import validate_definition
from litestar_processes.exceptions import (
    DefinitionNotActiveError,
    DefinitionNotFoundError,
    InvalidStateError,
    ValidationFailedError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from litestar_processes.core.models import (
        InstanceStatusReport,
        ProcessInstance,
        Task,
        TaskCompletion,
        TaskFilters,
        ValidationResult,
    )
    from litestar_processes.core.protocols import Directory, ProcessStore, TaskNotifier
    from litestar_processes.core.types import InstanceStatus

__all__ = ["ProcessEngine"]

logger = logging.getLogger(__name__)


def _parse(definition: ProcessDefinition | Mapping[str, Any]) -> ProcessDefinition:
    """Return ``definition``, parsing it first when given in serialized form.

    Raises:
        ValidationFailedError: If the serialized form cannot be parsed.
    """
    if not isinstance(definition, Mapping):
        return definition
    try:
        return ProcessDefinition.from_dict(definition)
    except (ValueError, TypeError, AttributeError) as exc:
        raise ValidationFailedError([f"Malformed process definition: {exc}"]) from exc


class ProcessEngine:
    """Define, activate and run human-centric processes.

    Task completions on the same instance run one at a time; completions on
    different instances proceed independently. Notifications are sent after
    the instance lock is released, and their failures never affect the
    operation that created the task.

    Attributes:
        store: The persistence collaborator.
        directory: The principal directory.
        notifier: Optional task assignment notifier.
        config: Engine configuration.
        resolver: Assignee resolver built from ``directory``.
        manager: Instance lifecycle manager.

    Example:
        >>> engine = ProcessEngine(InMemoryProcessStore(), StaticDirectory({"manager": ["bob"]}))
        >>> definition_id = await engine.define_workflow(definition)
        >>> await engine.activate_workflow(definition_id)
        >>> instance = await engine.start_instance(definition_id, {"amount": 500}, started_by="alice")
    """

    def __init__(
        self,
        store: ProcessStore,
        directory: Directory,
        notifier: TaskNotifier | None = None,
        config: EngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            store: The persistence collaborator.
            directory: The principal directory.
            notifier: Optional notifier told about every assigned task.
            config: Engine configuration. Defaults to ``EngineConfig()``.
            clock: Returns the current time. Defaults to UTC wall-clock time.
        """
        self.store = store
        self.directory = directory
        self.notifier = notifier
        self.config = config or EngineConfig()
        self.resolver = AssigneeResolver(
            directory,
            self.config.directory_timeout,
            fallback_to_current_principal=self.config.fallback_to_current_principal,
        )
        self.manager = InstanceManager(store, self.resolver, self.config, clock)
        self._locks = KeyedLock()

    @property
    def timeout(self) -> float | None:
        return self.config.persistence_timeout

    @staticmethod
    def step_kinds() -> dict[str, str]:
        """Return the recognized step kinds with their display labels."""
        return {str(kind): label for kind, label in STEP_KIND_LABELS.items()}

    @staticmethod
    def validate(definition: ProcessDefinition | Mapping[str, Any]) -> ValidationResult:
        """Validate a definition without storing it.

        Raises:
            ValidationFailedError: If a serialized definition cannot be parsed.
        """
        return validate_definition(_parse(definition))

    async def define_workflow(self, definition: ProcessDefinition | Mapping[str, Any]) -> str:
        """Validate and store a definition as a draft.

        A draft with the same id and version is replaced.

        Args:
            definition: The definition, or its serialized form.

        Returns:
            The definition id.

        Raises:
            ValidationFailedError: If the definition is malformed or has validation errors.
            InvalidStateError: If this id and version is already active.
            DependencyUnavailableError: If persistence fails.
        """
        definition = _parse(definition)
        result = validate_definition(definition)
        if not result.ok:
            raise ValidationFailedError(result.errors, result.warnings)
        for warning in result.warnings:
            logger.warning("Definition %s: %s", definition.id, warning, extra={"definition_id": definition.id})

        existing = await guarded(
            self.store.load_definition(definition.id, definition.version), "persistence", self.timeout
        )
        if existing is not None and existing.is_active:
            msg = f"Process definition '{definition.id}' version '{definition.version}' is active and cannot change"
            raise InvalidStateError(msg)

        draft = replace(definition, status=DefinitionStatus.DRAFT)
        await guarded(self.store.save_definition(draft), "persistence", self.timeout)

        logger.info(
            "Defined process %s (%s) version %s",
            draft.id,
            draft.name,
            draft.version,
            extra={"definition_id": draft.id},
        )
        return draft.id

    async def activate_workflow(self, definition_id: str, version: str | None = None) -> ProcessDefinition:
        """Move a draft definition to active.

        Args:
            definition_id: The definition to activate.
            version: The version to activate. Defaults to the latest version.

        Returns:
            The activated definition.

        Raises:
            DefinitionNotFoundError: If the definition does not exist.
            ValidationFailedError: If the stored definition no longer validates.
            InvalidStateError: If the definition is already active, or was
                activated concurrently.
            DependencyUnavailableError: If persistence fails.
        """
        definition = await self.get_definition(definition_id, version)
        if definition.is_active:
            msg = f"Process definition '{definition_id}' version '{definition.version}' is already active"
            raise InvalidStateError(msg)

        result = validate_definition(definition)
        if not result.ok:
            raise ValidationFailedError(result.errors, result.warnings)

        changed = await guarded(
            self.store.update_definition_status(
                definition_id,
                definition.version,
                DefinitionStatus.DRAFT,
                DefinitionStatus.ACTIVE,
            ),
            "persistence",
            self.timeout,
        )
        if not changed:
            msg = f"Process definition '{definition_id}' version '{definition.version}' was activated concurrently"
            raise InvalidStateError(msg)

        definition.status = DefinitionStatus.ACTIVE
        logger.info(
            "Activated process %s version %s",
            definition_id,
            definition.version,
            extra={"definition_id": definition_id},
        )
        return definition

    async def start_instance(
        self,
        definition_id: str,
        data: Mapping[str, Any] | None = None,
        started_by: str | None = None,
        version: str | None = None,
    ) -> ProcessInstance:
        """Start an instance of an active definition.

        Args:
            definition_id: The definition to start.
            data: Initial instance data.
            started_by: Principal starting the instance.
            version: Definition version. Defaults to the latest active version.

        Returns:
            The running instance.

        Raises:
            DefinitionNotFoundError: If the definition does not exist.
            DefinitionNotActiveError: If no matching version is active.
            DependencyUnavailableError: If a collaborator fails.
        """
        if version is None:
            definition = await self._latest_active(definition_id)
        else:
            definition = await self.get_definition(definition_id, version)

        instance, tasks = await self.manager.start(definition, data, started_by)
        await self._notify(tasks)
        return instance

    async def complete_task(
        self,
        task_id: str,
        data: Mapping[str, Any] | None = None,
        principal_id: str | None = None,
    ) -> TaskCompletion:
        """Complete a task on behalf of a principal and advance its instance.

        Args:
            task_id: The task to complete.
            data: Completion data merged into the instance data.
            principal_id: The principal completing the task.

        Returns:
            The completed task, the updated instance and the created tasks.

        Raises:
            TaskNotFoundError: If the task does not exist.
            TaskAlreadyCompletedError: If the task was already completed.
            ForbiddenError: If the principal may not complete the task.
            DependencyUnavailableError: If a collaborator fails.
        """
        task = await self.manager.tasks.get(task_id)

        async with self._locks.hold(task.instance_id):
            completion = await self.manager.complete_task(task_id, data, principal_id)

        await self._notify(completion.created_tasks)
        return completion

    async def get_instance_status(self, instance_id: str) -> InstanceStatusReport:
        """Return an instance with its pending and completed tasks.

        Raises:
            InstanceNotFoundError: If the instance does not exist.
        """
        return await self.manager.get_status(instance_id)

    async def get_definition(self, definition_id: str, version: str | None = None) -> ProcessDefinition:
        """Load a definition version, the latest one when ``version`` is None.

        Raises:
            DefinitionNotFoundError: If no matching definition exists.
        """
        definition = await guarded(self.store.load_definition(definition_id, version), "persistence", self.timeout)
        if definition is None:
            raise DefinitionNotFoundError(definition_id, version)
        return definition

    async def list_definitions(self, status: DefinitionStatus | None = None) -> list[ProcessDefinition]:
        return await guarded(self.store.list_definitions(status), "persistence", self.timeout)

    async def list_instances(
        self,
        definition_id: str | None = None,
        status: InstanceStatus | None = None,
        started_by: str | None = None,
    ) -> list[ProcessInstance]:
        return await guarded(
            self.store.list_instances(definition_id, status, started_by), "persistence", self.timeout
        )

    async def list_tasks_for_assignee(self, principal_id: str, filters: TaskFilters | None = None) -> list[Task]:
        """List a principal's tasks, most urgent first, then oldest first.

        Args:
            principal_id: The assignee.
            filters: Optional filters. Only pending tasks are listed by default.
        """
        return await self.manager.tasks.list_for_assignee(principal_id, filters)

    async def list_instances_for_assignee(
        self,
        principal_id: str,
        filters: TaskFilters | None = None,
    ) -> list[ProcessInstance]:
        """List the instances owning a principal's tasks.

        Instances appear once, in the order of their most urgent task.

        Args:
            principal_id: The assignee.
            filters: Optional task filters. Only pending tasks count by default.
        """
        tasks = await self.list_tasks_for_assignee(principal_id, filters)
        instances: list[ProcessInstance] = []
        for instance_id in dict.fromkeys(task.instance_id for task in tasks):
            instance = await guarded(self.store.load_instance(instance_id), "persistence", self.timeout)
            if instance is not None:
                instances.append(instance)
        return instances

    async def _latest_active(self, definition_id: str) -> ProcessDefinition:
        active = [
            definition
            for definition in await self.list_definitions(DefinitionStatus.ACTIVE)
            if definition.id == definition_id
        ]
        if active:
            return max(active, key=lambda definition: version_key(definition.version))

        latest = await self.get_definition(definition_id)
        raise DefinitionNotActiveError(definition_id, latest.version, latest.status)

    async def _notify(self, tasks: Iterable[Task]) -> None:
        if self.notifier is None:
            return

        assigned = [task for task in tasks if task.assignee_id is not None]
        results = await asyncio.gather(
            *(
                asyncio.wait_for(
                    self.notifier.notify_task_assigned(task.assignee_id, task.instance_id, task.step_id),
                    timeout=self.config.notification_timeout,
                )
                for task in assigned
            ),
            return_exceptions=True,
        )
        for task, result in zip(assigned, results):
            if isinstance(result, Exception):
                logger.warning(
                    "Failed to notify %s about task %s",
                    task.assignee_id,
                    task.id,
                    exc_info=result,
                    extra={"task_id": task.id, "instance_id": task.instance_id},
                )
