"""Process definition validation.

Validation is a pure function over the definition data. Errors block storing
and activating a definition; warnings flag constructs the engine tolerates.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from litestar_processes.core.models import ValidationResult
from litestar_processes.core.types import ConditionOperator, DefinitionStatus, StepKind
from litestar_processes.engine.graph import ProcessGraph

if TYPE_CHECKING:
    from litestar_processes.core.definition import ProcessDefinition

__all__ = ["validate_definition"]

_KINDS = {kind.value for kind in StepKind}
_OPERATORS = {operator.value for operator in ConditionOperator}
_STATUSES = {status.value for status in DefinitionStatus}


def validate_definition(definition: ProcessDefinition) -> ValidationResult:
    """Validate a process definition.

    Args:
        definition: The definition to check.

    Returns:
        The validation result. ``result.ok`` is False when any error was found.

    Example:
        >>> result = validate_definition(definition)
        >>> if not result.ok:
        ...     print("Validation errors:", result.errors)
    """
    result = ValidationResult()
    errors, warnings = result.errors, result.warnings

    if not definition.name or not definition.name.strip():
        errors.append("Process name is required")

    if str(definition.status) not in _STATUSES:
        errors.append(f"Invalid status '{definition.status}'")

    if not definition.steps:
        errors.append("Process must define at least one step")

    step_ids = set(definition.step_ids)
    for step_id, count in Counter(definition.step_ids).items():
        if count > 1:
            errors.append(f"Step id '{step_id}' is defined {count} times")

    if definition.start_step not in step_ids:
        errors.append(f"Start step '{definition.start_step}' not found in steps")

    start_kinds = [step.id for step in definition.steps if step.kind == StepKind.START]
    if len(start_kinds) > 1:
        errors.append(f"Process defines {len(start_kinds)} start steps: {', '.join(start_kinds)}")
    elif start_kinds and start_kinds[0] != definition.start_step:
        errors.append(f"Step '{start_kinds[0]}' is a start step but '{definition.start_step}' is the designated start")

    for step in definition.steps:
        if str(step.kind) not in _KINDS:
            errors.append(f"Invalid step type '{step.kind}' for step '{step.id}'")

        for index, transition in enumerate(step.transitions):
            if transition.target not in step_ids:
                errors.append(f"Step '{step.id}' transition {index}: target step '{transition.target}' not found")

            condition = transition.condition
            if condition is not None:
                if not condition.field:
                    errors.append(f"Step '{step.id}' transition {index}: condition has no field")
                if str(condition.operator) not in _OPERATORS:
                    errors.append(
                        f"Step '{step.id}' transition {index}: unknown condition operator '{condition.operator}'"
                    )
            elif transition.target == step.id:
                warnings.append(f"Step '{step.id}' has an unconditional transition to itself")

    start = definition.get_step(definition.start_step)
    if start is not None:
        if start.kind == StepKind.END:
            warnings.append(f"Start step '{start.id}' is an end step")
        for step_id in ProcessGraph.from_definition(definition).unreachable_steps():
            warnings.append(f"Step '{step_id}' is unreachable from start step")

    return result
