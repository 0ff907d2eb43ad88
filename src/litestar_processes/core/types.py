"""Core type definitions for litestar-processes.

This module defines the fundamental enums and type aliases used throughout
the process engine.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import Any, TypeAlias

# StrEnum backport for Python < 3.11
if sys.version_info >= (3, 11):
    from enum import StrEnum
else:

    class StrEnum(str, Enum):
        """String enumeration compatibility for Python < 3.11."""

        def __str__(self) -> str:
            return str(self.value)


__all__ = [
    "STEP_KIND_LABELS",
    "ConditionOperator",
    "DefinitionStatus",
    "InstanceData",
    "InstanceStatus",
    "StepKind",
    "TaskPriority",
    "TaskStatus",
]


class StepKind(StrEnum):
    """Classification of steps within a process definition.

    Every kind except ``END`` is materialised as a task when the step becomes
    active. An ``END`` step terminates the branch that reaches it.

    Attributes:
        START: Entry point of the process.
        TASK: Work item performed by a principal.
        APPROVAL: Approval decision performed by a principal.
        GATEWAY: Decision point whose outgoing transitions carry conditions.
        TIMER: Time-based wait.
        END: Terminates a branch.
        SUBPROCESS: Delegation to another process.
        SCRIPT: Automated work item.
    """

    START = "start"
    TASK = "task"
    APPROVAL = "approval"
    GATEWAY = "gateway"
    TIMER = "timer"
    END = "end"
    SUBPROCESS = "subprocess"
    SCRIPT = "script"


STEP_KIND_LABELS: dict[StepKind, str] = {
    StepKind.START: "Start Event",
    StepKind.TASK: "User Task",
    StepKind.APPROVAL: "Approval Task",
    StepKind.GATEWAY: "Decision Gateway",
    StepKind.TIMER: "Timer Event",
    StepKind.END: "End Event",
    StepKind.SUBPROCESS: "Subprocess",
    StepKind.SCRIPT: "Script Task",
}
"""Display labels for every recognized step kind."""


class DefinitionStatus(StrEnum):
    """Lifecycle status of a process definition.

    Attributes:
        DRAFT: Stored but not yet usable for starting instances.
        ACTIVE: Frozen and usable for starting instances.
    """

    DRAFT = "draft"
    ACTIVE = "active"


class InstanceStatus(StrEnum):
    """Status of a process instance. Only ``RUNNING -> COMPLETED`` is legal."""

    RUNNING = "running"
    COMPLETED = "completed"


class TaskStatus(StrEnum):
    """Status of a task. Only ``PENDING -> COMPLETED`` is legal."""

    PENDING = "pending"
    COMPLETED = "completed"


class TaskPriority(StrEnum):
    """Priority of a task, used to order assignee work lists."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Numeric rank, higher is more urgent."""
        return _PRIORITY_RANKS[self]


_PRIORITY_RANKS = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


class ConditionOperator(StrEnum):
    """Comparison operators available to transition conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"


InstanceData: TypeAlias = dict[str, Any]
"""Open key/value map carried by an instance and merged on task completion."""
