"""Litestar Processes - Human-centric process engine for Litestar.

This package provides a process engine for approval chains and other
human-in-the-loop procedures: processes are defined as steps joined by
conditional transitions, and each step that becomes active produces a task
assigned to a principal.

Key Features:
    - Declarative, versioned process definitions with validation
    - Conditional branching and fan-out on task completion
    - Assignment by fixed principal, data field or role
    - Per-instance serialization of task completions
    - In-memory and SQLAlchemy persistence
    - Litestar plugin with dependency injection

Example:
    >>> from litestar_processes import ProcessEngine, InMemoryProcessStore, StaticDirectory
    >>>
    >>> engine = ProcessEngine(InMemoryProcessStore(), StaticDirectory({"manager": ["bob"]}))
    >>> definition_id = await engine.define_workflow(
    ...     {
    ...         "name": "expense_approval",
    ...         "start_step": "submit",
    ...         "steps": {
    ...             "submit": {"type": "start", "transitions": [{"to": "approve"}]},
    ...             "approve": {"type": "approval", "assignee_role": "manager", "transitions": [{"to": "done"}]},
    ...             "done": {"type": "end"},
    ...         },
    ...     }
    ... )
    >>> await engine.activate_workflow(definition_id)
    >>> instance = await engine.start_instance(definition_id, {"amount": 120}, started_by="alice")
"""

from __future__ import annotations

from litestar_processes.__metadata__ import __project__, __version__
from litestar_processes.config import EngineConfig
from litestar_processes.core import (
    AssignmentRule,
    Condition,
    ConditionOperator,
    DefinitionStatus,
    InstanceStatus,
    InstanceStatusReport,
    ProcessDefinition,
    ProcessInstance,
    StepDefinition,
    StepKind,
    Task,
    TaskCompletion,
    TaskFilters,
    TaskPriority,
    TaskStatus,
    Transition,
    ValidationResult,
)
from litestar_processes.directory import StaticDirectory
from litestar_processes.engine import ProcessEngine, validate_definition
from litestar_processes.exceptions import (
    DefinitionNotActiveError,
    DefinitionNotFoundError,
    DependencyUnavailableError,
    ForbiddenError,
    InstanceAlreadyCompletedError,
    InstanceNotFoundError,
    InvalidStateError,
    NotFoundError,
    ProcessError,
    TaskAlreadyCompletedError,
    TaskNotFoundError,
    ValidationFailedError,
)
from litestar_processes.notifications import LoggingNotifier
from litestar_processes.plugin import ProcessEnginePlugin, ProcessEnginePluginConfig
from litestar_processes.store import InMemoryProcessStore

__all__ = (
    "AssignmentRule",
    "Condition",
    "ConditionOperator",
    "DefinitionNotActiveError",
    "DefinitionNotFoundError",
    "DefinitionStatus",
    "DependencyUnavailableError",
    "EngineConfig",
    "ForbiddenError",
    "InMemoryProcessStore",
    "InstanceAlreadyCompletedError",
    "InstanceNotFoundError",
    "InstanceStatus",
    "InstanceStatusReport",
    "InvalidStateError",
    "LoggingNotifier",
    "NotFoundError",
    "ProcessDefinition",
    "ProcessEngine",
    "ProcessEnginePlugin",
    "ProcessEnginePluginConfig",
    "ProcessError",
    "ProcessInstance",
    "StaticDirectory",
    "StepDefinition",
    "StepKind",
    "Task",
    "TaskAlreadyCompletedError",
    "TaskCompletion",
    "TaskFilters",
    "TaskNotFoundError",
    "TaskPriority",
    "TaskStatus",
    "Transition",
    "ValidationFailedError",
    "ValidationResult",
    "__project__",
    "__version__",
    "validate_definition",
)
