"""Tests for ProcessGraph."""

from __future__ import annotations

import pytest

from litestar_processes.core.definition import ProcessDefinition, StepDefinition, Transition
from litestar_processes.core.types import StepKind
from litestar_processes.engine.graph import ProcessGraph


@pytest.mark.unit
class TestProcessGraph:
    def test_outgoing_preserves_declared_order(self, signing_definition: ProcessDefinition) -> None:
        graph = ProcessGraph.from_definition(signing_definition)

        assert [transition.target for transition in graph.outgoing("sign")] == ["approval", "end"]
        assert graph.outgoing("unknown") == []

    def test_is_terminal(self, signing_definition: ProcessDefinition) -> None:
        graph = ProcessGraph.from_definition(signing_definition)

        assert graph.is_terminal("end") is True
        assert graph.is_terminal("sign") is False

    def test_step_without_transitions_is_terminal(self) -> None:
        definition = ProcessDefinition(name="p", start_step="a", steps=[StepDefinition("a", StepKind.START)])

        assert ProcessGraph(definition).is_terminal("a") is True

    def test_end_step_with_transitions_is_terminal(self) -> None:
        definition = ProcessDefinition(
            name="p",
            start_step="a",
            steps=[
                StepDefinition("a", StepKind.START, transitions=[Transition("z")]),
                StepDefinition("z", StepKind.END, transitions=[Transition("a")]),
            ],
        )
        graph = ProcessGraph(definition)

        assert graph.is_terminal("z") is True
        assert [transition.target for transition in graph.outgoing("z")] == ["a"]

    def test_reachability(self) -> None:
        definition = ProcessDefinition(
            name="p",
            start_step="a",
            steps=[
                StepDefinition("a", StepKind.START, transitions=[Transition("b")]),
                StepDefinition("b", transitions=[Transition("a"), Transition("c")]),
                StepDefinition("c", StepKind.END),
                StepDefinition("orphan", transitions=[Transition("c")]),
            ],
        )
        graph = ProcessGraph(definition)

        assert graph.reachable_steps() == {"a", "b", "c"}
        assert graph.unreachable_steps() == ["orphan"]

    def test_missing_start_step_reaches_nothing(self) -> None:
        definition = ProcessDefinition(name="p", start_step="nope", steps=[StepDefinition("a")])

        assert ProcessGraph(definition).reachable_steps() == set()
