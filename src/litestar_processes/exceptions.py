"""Exception hierarchy for litestar-processes."""

from __future__ import annotations

__all__ = (
    "DefinitionNotActiveError",
    "DefinitionNotFoundError",
    "DependencyUnavailableError",
    "ForbiddenError",
    "InstanceAlreadyCompletedError",
    "InstanceNotFoundError",
    "InvalidStateError",
    "NotFoundError",
    "ProcessError",
    "TaskAlreadyCompletedError",
    "TaskNotFoundError",
    "ValidationFailedError",
)


class ProcessError(Exception):
    """Base exception for all litestar-processes errors.

    All exceptions raised by the engine inherit from this class, so callers can
    catch every process-related failure with a single except clause.
    """


class ValidationFailedError(ProcessError):
    """Raised when a process definition fails validation.

    The definition is never stored or activated when this is raised.

    Attributes:
        errors: List of validation error messages.
        warnings: List of non-fatal findings reported alongside the errors.
    """

    def __init__(self, errors: list[str], warnings: list[str] | None = None) -> None:
        """Initialize the exception with validation findings.

        Args:
            errors: List of validation error messages.
            warnings: Optional list of validation warnings.
        """
        self.errors = errors
        self.warnings = warnings or []
        super().__init__(f"Process definition validation failed: {'; '.join(errors)}")


class NotFoundError(ProcessError):
    """Base exception for unknown definition, instance or task identifiers."""


class DefinitionNotFoundError(NotFoundError):
    """Raised when a process definition is not found.

    Attributes:
        definition_id: The identifier of the definition that was not found.
        version: The specific version requested, if any.
    """

    def __init__(self, definition_id: str, version: str | None = None) -> None:
        """Initialize the exception with definition details.

        Args:
            definition_id: The identifier of the definition that was not found.
            version: The specific version requested, if any.
        """
        self.definition_id = definition_id
        self.version = version
        msg = f"Process definition '{definition_id}'"
        if version:
            msg += f" version '{version}'"
        msg += " not found"
        super().__init__(msg)


class InstanceNotFoundError(NotFoundError):
    """Raised when a process instance is not found.

    Attributes:
        instance_id: The ID of the instance that was not found.
    """

    def __init__(self, instance_id: str) -> None:
        self.instance_id = instance_id
        super().__init__(f"Process instance '{instance_id}' not found")


class TaskNotFoundError(NotFoundError):
    """Raised when a task is not found.

    Attributes:
        task_id: The ID of the task that was not found.
    """

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' not found")


class InvalidStateError(ProcessError):
    """Raised when an operation is illegal for the current status of its target."""


class DefinitionNotActiveError(InvalidStateError):
    """Raised when starting an instance from a definition that is not active.

    Attributes:
        definition_id: The definition identifier.
        version: The definition version.
        status: The current status of the definition.
    """

    def __init__(self, definition_id: str, version: str, status: str) -> None:
        """Initialize the exception with definition state details.

        Args:
            definition_id: The definition identifier.
            version: The definition version.
            status: The current status of the definition.
        """
        self.definition_id = definition_id
        self.version = version
        self.status = status
        super().__init__(f"Process definition '{definition_id}' version '{version}' is {status}, not active")


class TaskAlreadyCompletedError(InvalidStateError):
    """Raised when trying to complete an already completed task.

    This prevents double-completion of tasks which would spawn duplicate
    branches and merge data twice.

    Attributes:
        task_id: The ID of the task that was already completed.
    """

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' is already completed")


class InstanceAlreadyCompletedError(InvalidStateError):
    """Raised when trying to modify a completed process instance.

    Attributes:
        instance_id: The ID of the process instance.
    """

    def __init__(self, instance_id: str) -> None:
        self.instance_id = instance_id
        super().__init__(f"Process instance '{instance_id}' is already completed")


class ForbiddenError(ProcessError):
    """Raised when a principal is not authorized to complete a task.

    Only the assigned principal, or a principal holding the task's assigned
    role, may complete a task.

    Attributes:
        task_id: The ID of the task.
        principal_id: The ID of the principal attempting to complete the task.
    """

    def __init__(self, task_id: str, principal_id: str | None) -> None:
        """Initialize the exception with authorization details.

        Args:
            task_id: The ID of the task.
            principal_id: The ID of the principal attempting to complete the task.
        """
        self.task_id = task_id
        self.principal_id = principal_id
        super().__init__(f"Principal '{principal_id}' is not authorized to complete task '{task_id}'")


class DependencyUnavailableError(ProcessError):
    """Raised when the persistence or directory collaborator fails or times out.

    The operation that raised it left no committed changes behind, so callers
    may retry it.

    Attributes:
        dependency: Name of the collaborator that failed.
        cause: The underlying exception, if any.
        retryable: Always ``True``.
    """

    retryable = True

    def __init__(self, dependency: str, cause: BaseException | None = None) -> None:
        """Initialize the exception with collaborator details.

        Args:
            dependency: Name of the collaborator that failed.
            cause: The underlying exception, if any.
        """
        self.dependency = dependency
        self.cause = cause
        msg = f"Dependency '{dependency}' is unavailable"
        if cause is not None:
            msg += f": {cause!r}"
        super().__init__(msg)
