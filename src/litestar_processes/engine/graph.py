"""Process graph navigation.

This module provides graph-based operations over process definitions, used by
validation to find unreachable steps and by the instance manager to follow
transitions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from litestar_processes.core.types import StepKind

if TYPE_CHECKING:
    from litestar_processes.core.definition import ProcessDefinition, Transition

__all__ = ["ProcessGraph"]


class ProcessGraph:
    """Graph representation of a process definition.

    Transitions pointing at unknown steps are kept in the adjacency list, so the
    graph can be built for definitions that have not been validated yet.

    Attributes:
        definition: The process definition this graph represents.
        _adjacency: Adjacency list mapping step ids to outgoing transitions.
    """

    def __init__(self, definition: ProcessDefinition) -> None:
        """Initialize a process graph from a definition.

        Args:
            definition: The process definition to represent as a graph.
        """
        self.definition = definition
        self._adjacency: dict[str, list[Transition]] = {}
        self._build_adjacency()

    def _build_adjacency(self) -> None:
        for step in self.definition.steps:
            self._adjacency.setdefault(step.id, []).extend(step.transitions)

    @classmethod
    def from_definition(cls, definition: ProcessDefinition) -> ProcessGraph:
        """Create a process graph from a definition.

        Example:
            >>> graph = ProcessGraph.from_definition(my_definition)
        """
        return cls(definition)

    def outgoing(self, step_id: str) -> list[Transition]:
        """Get the outgoing transitions of a step, in declared order."""
        return list(self._adjacency.get(step_id, []))

    def is_terminal(self, step_id: str) -> bool:
        """Check whether a branch ends at ``step_id``.

        Returns:
            True if the step is an End step or has no outgoing transitions.
        """
        step = self.definition.get_step(step_id)
        if step is not None and step.kind == StepKind.END:
            return True
        return not self._adjacency.get(step_id)

    def reachable_steps(self) -> set[str]:
        """Get all known steps reachable from the start step, the start step included."""
        if self.definition.get_step(self.definition.start_step) is None:
            return set()

        reachable: set[str] = set()
        to_visit = [self.definition.start_step]

        while to_visit:
            current = to_visit.pop()
            if current in reachable or current not in self._adjacency:
                continue

            reachable.add(current)

            for transition in self._adjacency[current]:
                if transition.target not in reachable:
                    to_visit.append(transition.target)

        return reachable

    def unreachable_steps(self) -> list[str]:
        """Get the steps that can never become active, in definition order."""
        reachable = self.reachable_steps()
        return [step.id for step in self.definition.steps if step.id not in reachable]
