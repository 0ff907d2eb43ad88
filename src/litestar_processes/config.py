"""Engine configuration."""

from __future__ import annotations

from dataclasses import dataclass

from litestar_processes.core.types import TaskPriority

__all__ = ["EngineConfig"]


@dataclass
class EngineConfig:
    """Configuration for the ProcessEngine.

    Attributes:
        persistence_timeout: Seconds allowed per persistence call. ``None``
            disables the timeout.
        directory_timeout: Seconds allowed per directory call.
        notification_timeout: Seconds allowed per notification call. A timeout
            is logged and never affects the operation that created the task.
        default_priority: Priority of tasks whose step configures none.
        materialize_end_tasks: If True, reaching an End step creates a task for
            it, whose completion spawns nothing. If False, reaching an End step
            simply ends that branch.
        fallback_to_current_principal: If True, a task whose step has no
            applicable assignment rule is assigned to the principal triggering
            the action (the instance starter, or the completing principal).
    """

    persistence_timeout: float | None = 5.0
    directory_timeout: float | None = 5.0
    notification_timeout: float | None = 2.0
    default_priority: TaskPriority = TaskPriority.MEDIUM
    materialize_end_tasks: bool = False
    fallback_to_current_principal: bool = True
