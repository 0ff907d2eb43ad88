"""Tests for process definition validation."""

from __future__ import annotations

import pytest

from litestar_processes.core.definition import Condition, ProcessDefinition, StepDefinition, Transition
from litestar_processes.core.types import ConditionOperator, StepKind
from litestar_processes.engine.validation import validate_definition


def linear(*steps: StepDefinition, start: str = "start", name: str = "process") -> ProcessDefinition:
    return ProcessDefinition(name=name, start_step=start, steps=list(steps))


@pytest.mark.unit
class TestValidateDefinition:
    def test_valid_definition(self, signing_definition: ProcessDefinition) -> None:
        result = validate_definition(signing_definition)

        assert result.ok
        assert result.errors == []
        assert result.warnings == []

    def test_name_is_required(self) -> None:
        result = validate_definition(linear(StepDefinition("start"), name="  "))

        assert not result.ok
        assert "Process name is required" in result.errors

    def test_at_least_one_step(self) -> None:
        result = validate_definition(ProcessDefinition(name="p", start_step="start", steps=[]))

        assert "Process must define at least one step" in result.errors

    def test_start_step_must_exist(self) -> None:
        result = validate_definition(linear(StepDefinition("first"), start="start"))

        assert "Start step 'start' not found in steps" in result.errors

    def test_duplicate_step_ids(self) -> None:
        result = validate_definition(linear(StepDefinition("start"), StepDefinition("start")))

        assert any("defined 2 times" in error for error in result.errors)

    def test_invalid_step_kind(self) -> None:
        result = validate_definition(linear(StepDefinition("start", kind="webhook")))

        assert "Invalid step type 'webhook' for step 'start'" in result.errors

    def test_invalid_status(self) -> None:
        definition = ProcessDefinition.from_dict({"name": "p", "status": "archived", "steps": {"start": {"type": "end"}}})

        assert definition.status == "archived"
        assert "Invalid status 'archived'" in validate_definition(definition).errors

    def test_missing_transition_target_fails(self) -> None:
        result = validate_definition(linear(StepDefinition("start", transitions=[Transition("nowhere")])))

        assert not result.ok
        assert any("target step 'nowhere' not found" in error for error in result.errors)

    @pytest.mark.parametrize("target", ["ghost", "", "START"])
    def test_any_unknown_target_fails(self, target: str) -> None:
        definition = linear(
            StepDefinition("start", StepKind.START, transitions=[Transition("end"), Transition(target)]),
            StepDefinition("end", StepKind.END),
        )

        assert validate_definition(definition).ok is False

    def test_condition_requires_field_and_known_operator(self) -> None:
        definition = linear(
            StepDefinition(
                "start",
                transitions=[
                    Transition("end", Condition("", ConditionOperator.EQUALS, 1)),
                    Transition("end", Condition("amount", "between", 1)),
                ],
            ),
            StepDefinition("end", StepKind.END),
        )

        errors = validate_definition(definition).errors

        assert any("condition has no field" in error for error in errors)
        assert any("unknown condition operator 'between'" in error for error in errors)

    def test_multiple_start_kind_steps(self) -> None:
        definition = linear(
            StepDefinition("start", StepKind.START, transitions=[Transition("other")]),
            StepDefinition("other", StepKind.START),
        )

        assert any("2 start steps" in error for error in validate_definition(definition).errors)

    def test_start_kind_step_must_be_designated_start(self) -> None:
        definition = linear(
            StepDefinition("begin", StepKind.TASK, transitions=[Transition("other")]),
            StepDefinition("other", StepKind.START),
            start="begin",
        )

        assert any("is a start step but 'begin'" in error for error in validate_definition(definition).errors)

    def test_unreachable_step_is_a_warning(self) -> None:
        definition = linear(
            StepDefinition("start", StepKind.START, transitions=[Transition("end")]),
            StepDefinition("end", StepKind.END),
            StepDefinition("orphan", StepKind.TASK, transitions=[Transition("end")]),
        )

        result = validate_definition(definition)

        assert result.ok
        assert "Step 'orphan' is unreachable from start step" in result.warnings

    def test_unconditional_self_transition_is_a_warning(self) -> None:
        definition = linear(
            StepDefinition("start", StepKind.START, transitions=[Transition("loop")]),
            StepDefinition("loop", transitions=[Transition("loop"), Transition("end")]),
            StepDefinition("end", StepKind.END),
        )

        result = validate_definition(definition)

        assert result.ok
        assert "Step 'loop' has an unconditional transition to itself" in result.warnings

    def test_conditional_self_transition_is_allowed(self) -> None:
        definition = linear(
            StepDefinition(
                "start",
                StepKind.START,
                transitions=[Transition("start", Condition("retry", ConditionOperator.EQUALS, True))],
            ),
        )

        assert validate_definition(definition).warnings == []

    def test_end_start_step_is_a_warning(self) -> None:
        result = validate_definition(linear(StepDefinition("start", StepKind.END)))

        assert result.ok
        assert "Start step 'start' is an end step" in result.warnings
