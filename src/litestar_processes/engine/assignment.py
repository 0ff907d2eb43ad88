"""Task assignee resolution and completion authorization."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from litestar_processes.engine.persistence import guarded

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar_processes.core.definition import AssignmentRule
    from litestar_processes.core.models import Task
    from litestar_processes.core.protocols import Directory

__all__ = ["AssigneeResolver"]

logger = logging.getLogger(__name__)


class AssigneeResolver:
    """Determine who owns a task, and who may complete it.

    Resolution order, first match wins:

    1. the fixed principal configured on the step;
    2. the principal named by a field of the instance data;
    3. the first principal holding the step's role, candidates sorted by id;
    4. the principal triggering the action.

    When a role is configured but nobody holds it the task is left unassigned
    (``None``) rather than failing the operation.

    Attributes:
        directory: Directory used for role lookups.
        timeout: Seconds allowed per directory call.
        fallback_to_current_principal: Whether rule 4 applies.
    """

    def __init__(
        self,
        directory: Directory,
        timeout: float | None = None,
        *,
        fallback_to_current_principal: bool = True,
    ) -> None:
        self.directory = directory
        self.timeout = timeout
        self.fallback_to_current_principal = fallback_to_current_principal

    async def resolve(
        self,
        rule: AssignmentRule | None,
        data: Mapping[str, Any],
        current_principal: str | None,
    ) -> str | None:
        """Resolve the assignee of a task.

        Args:
            rule: The step's assignment rule, if any.
            data: The instance data.
            current_principal: The principal triggering the action.

        Returns:
            The assigned principal, or None when the task is unassigned.

        Raises:
            DependencyUnavailableError: If the directory fails.
        """
        if rule is not None:
            if rule.principal:
                return rule.principal

            if rule.field:
                value = data.get(rule.field)
                if value not in (None, ""):
                    return str(value)

            if rule.role:
                candidates = await guarded(
                    self.directory.find_principals_by_role(rule.role),
                    "directory",
                    self.timeout,
                )
                if candidates:
                    return sorted(str(candidate) for candidate in candidates)[0]
                logger.info("No principal holds role %r, task left unassigned", rule.role, extra={"role": rule.role})
                return None

        return current_principal if self.fallback_to_current_principal else None

    async def can_complete(self, task: Task, principal_id: str | None) -> bool:
        """Check whether ``principal_id`` may complete ``task``.

        Args:
            task: The task being completed.
            principal_id: The principal completing it.

        Returns:
            True for the assigned principal, or for any holder of the task's role.

        Raises:
            DependencyUnavailableError: If the directory fails.
        """
        if not principal_id:
            return False

        if task.assignee_id is not None and task.assignee_id == principal_id:
            return True

        if task.assignee_role:
            return bool(
                await guarded(
                    self.directory.principal_has_role(principal_id, task.assignee_role),
                    "directory",
                    self.timeout,
                )
            )

        return False
