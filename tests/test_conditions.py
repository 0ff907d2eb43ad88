"""Tests for transition condition evaluation."""

from __future__ import annotations

from typing import Any

import pytest

from litestar_processes.core.definition import Condition
from litestar_processes.core.types import ConditionOperator
from litestar_processes.engine.conditions import evaluate_condition


@pytest.mark.unit
class TestEvaluateCondition:
    def test_no_condition_is_satisfied(self) -> None:
        assert evaluate_condition(None, {}) is True

    @pytest.mark.parametrize(
        ("actual", "expected", "result"),
        [
            (500, 500, True),
            ("500", 500, True),
            (500.0, "500", True),
            ("approved", "approved", True),
            ("Approved", "approved", False),
            (True, True, True),
            (True, "true", True),
            (False, True, False),
            (None, "", True),
        ],
    )
    def test_equals_is_loose(self, actual: Any, expected: Any, result: bool) -> None:
        condition = Condition("field", ConditionOperator.EQUALS, expected)

        assert evaluate_condition(condition, {"field": actual}) is result

    def test_not_equals(self) -> None:
        condition = Condition("status", ConditionOperator.NOT_EQUALS, "rejected")

        assert evaluate_condition(condition, {"status": "approved"}) is True
        assert evaluate_condition(condition, {"status": "rejected"}) is False

    @pytest.mark.parametrize(
        ("actual", "result"),
        [(1500, True), ("1500", True), (1000, False), (500, False), ("lots", False), (None, False), (True, False)],
    )
    def test_greater_than(self, actual: Any, result: bool) -> None:
        condition = Condition("amount", ConditionOperator.GREATER_THAN, 1000)

        assert evaluate_condition(condition, {"amount": actual}) is result

    def test_less_than(self) -> None:
        condition = Condition("amount", ConditionOperator.LESS_THAN, 100)

        assert evaluate_condition(condition, {"amount": 99.5}) is True
        assert evaluate_condition(condition, {"amount": 100}) is False

    def test_numeric_comparison_with_non_numeric_value_is_false(self) -> None:
        condition = Condition("amount", ConditionOperator.GREATER_THAN, "a lot")

        assert evaluate_condition(condition, {"amount": 10**6}) is False

    def test_contains(self) -> None:
        condition = Condition("title", ConditionOperator.CONTAINS, "urgent")

        assert evaluate_condition(condition, {"title": "urgent: sign contract"}) is True
        assert evaluate_condition(condition, {"title": "routine"}) is False

    def test_contains_on_list_and_number(self) -> None:
        assert evaluate_condition(Condition("tags", ConditionOperator.CONTAINS, "legal"), {"tags": ["hr", "legal"]})
        assert evaluate_condition(Condition("code", ConditionOperator.CONTAINS, 42), {"code": 14290})

    @pytest.mark.parametrize(
        ("operator", "value", "result"),
        [
            (ConditionOperator.EQUALS, 0, True),
            (ConditionOperator.EQUALS, "", True),
            (ConditionOperator.EQUALS, False, True),
            (ConditionOperator.GREATER_THAN, 1000, False),
            (ConditionOperator.LESS_THAN, 1, True),
            (ConditionOperator.NOT_EQUALS, "x", True),
            (ConditionOperator.LESS_THAN, "1000", True),
            (ConditionOperator.GREATER_THAN, "-1", True),
        ],
    )
    def test_missing_field_behaves_as_zero_value(
        self,
        operator: ConditionOperator,
        value: Any,
        result: bool,
    ) -> None:
        assert evaluate_condition(Condition("missing", operator, value), {"other": 1}) is result

    def test_unknown_operator_is_false(self) -> None:
        assert evaluate_condition(Condition("amount", "between", 5), {"amount": 5}) is False

    def test_evaluation_is_pure(self) -> None:
        data = {"amount": 500, "tags": ["a"]}
        condition = Condition("amount", ConditionOperator.GREATER_THAN, 100)

        results = {evaluate_condition(condition, data) for _ in range(5)}

        assert results == {True}
        assert data == {"amount": 500, "tags": ["a"]}
