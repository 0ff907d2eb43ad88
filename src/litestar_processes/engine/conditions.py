"""Transition condition evaluation.

Conditions are a small field/operator/value DSL evaluated against instance
data. Evaluation is forgiving: type mismatches resolve to ``False`` and never
raise.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from litestar_processes.core.types import ConditionOperator

if TYPE_CHECKING:
    from litestar_processes.core.definition import Condition

__all__ = ["evaluate_condition"]


def evaluate_condition(condition: Condition | None, data: Mapping[str, Any]) -> bool:
    """Evaluate a transition condition against instance data.

    Args:
        condition: The condition to evaluate. ``None`` is always satisfied.
        data: The instance data.

    Returns:
        True if the condition holds.

    Example:
        >>> evaluate_condition(Condition("amount", "greater_than", 1000), {"amount": 500})
        False
        >>> evaluate_condition(None, {})
        True
    """
    if condition is None:
        return True

    expected = condition.value
    actual = data[condition.field] if condition.field in data else _zero_value(expected)

    if condition.operator == ConditionOperator.EQUALS:
        return _loose_equals(actual, expected)
    if condition.operator == ConditionOperator.NOT_EQUALS:
        return not _loose_equals(actual, expected)
    if condition.operator == ConditionOperator.GREATER_THAN:
        return _compare_numeric(actual, expected, greater=True)
    if condition.operator == ConditionOperator.LESS_THAN:
        return _compare_numeric(actual, expected, greater=False)
    if condition.operator == ConditionOperator.CONTAINS:
        return _as_text(expected) in _as_text(actual)
    return False


def _zero_value(expected: Any) -> Any:
    """Stand-in for a missing field, shaped after the value it is compared with."""
    if isinstance(expected, bool):
        return False
    if _as_number(expected) is not None:
        return 0
    return ""


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(_as_text(item) for item in value)
    return str(value)


def _loose_equals(actual: Any, expected: Any) -> bool:
    left, right = _as_number(actual), _as_number(expected)
    if left is not None and right is not None:
        return left == right
    return _as_text(actual) == _as_text(expected)


def _compare_numeric(actual: Any, expected: Any, *, greater: bool) -> bool:
    left, right = _as_number(actual), _as_number(expected)
    if left is None or right is None:
        return False
    return left > right if greater else left < right
