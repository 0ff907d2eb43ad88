"""Core domain module for litestar-processes.

This module exports the fundamental building blocks of the engine: types,
definitions, runtime models and collaborator protocols.
"""

from __future__ import annotations

from litestar_processes.core.definition import (
    AssignmentRule,
    Condition,
    ProcessDefinition,
    StepDefinition,
    Transition,
    version_key,
)
from litestar_processes.core.models import (
    InstanceStatusReport,
    ProcessInstance,
    Task,
    TaskCompletion,
    TaskFilters,
    ValidationResult,
    task_sort_key,
)
from litestar_processes.core.protocols import Directory, ProcessStore, TaskNotifier
from litestar_processes.core.types import (
    STEP_KIND_LABELS,
    ConditionOperator,
    DefinitionStatus,
    InstanceData,
    InstanceStatus,
    StepKind,
    TaskPriority,
    TaskStatus,
)

__all__ = [
    "STEP_KIND_LABELS",
    "AssignmentRule",
    "Condition",
    "ConditionOperator",
    "DefinitionStatus",
    "Directory",
    "InstanceData",
    "InstanceStatus",
    "InstanceStatusReport",
    "ProcessDefinition",
    "ProcessInstance",
    "ProcessStore",
    "StepDefinition",
    "StepKind",
    "Task",
    "TaskCompletion",
    "TaskFilters",
    "TaskNotifier",
    "TaskPriority",
    "TaskStatus",
    "Transition",
    "ValidationResult",
    "task_sort_key",
    "version_key",
]
