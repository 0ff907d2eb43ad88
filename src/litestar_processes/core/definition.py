"""Process definition structures.

This module provides the declarative data structures a process is defined
with: steps, the transitions between them, the conditions guarding those
transitions, and the assignment rules used to resolve task owners.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any
from uuid import uuid4

from litestar_processes.core.types import ConditionOperator, DefinitionStatus, StepKind, TaskPriority

__all__ = ["AssignmentRule", "Condition", "ProcessDefinition", "StepDefinition", "Transition", "version_key"]


def version_key(version: str) -> tuple[Any, ...]:
    """Sort key ordering semantic version strings numerically.

    Non-numeric versions sort after numeric ones, as plain strings.

    Example:
        >>> max(["1.9.0", "1.10.0"], key=version_key)
        '1.10.0'
    """
    try:
        return (0, tuple(int(part) for part in version.split(".")))
    except ValueError:
        return (1, version)


def _coerce(enum_type: type, value: Any) -> Any:
    """Convert ``value`` to ``enum_type`` when it names a member, else keep it raw.

    Unknown values are kept so that validation can report them.
    """
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        return value


@dataclass
class Condition:
    """Predicate guarding a transition.

    Attributes:
        field: Key read from the instance data.
        operator: Comparison operator.
        value: Value the field is compared against.

    Example:
        >>> Condition(field="amount", operator=ConditionOperator.GREATER_THAN, value=1000)
    """

    field: str
    operator: ConditionOperator | str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "operator": str(self.operator), "value": self.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Condition:
        return cls(
            field=data.get("field", ""),
            operator=_coerce(ConditionOperator, data.get("operator", "")),
            value=data.get("value"),
        )

    def describe(self) -> str:
        """Return a short human readable form, e.g. ``amount greater_than 1000``."""
        return f"{self.field} {self.operator} {self.value}"


@dataclass
class Transition:
    """Directed connection from the owning step to ``target``.

    A transition without a condition is always satisfied.

    Attributes:
        target: Identifier of the target step.
        condition: Optional guard evaluated against the instance data.
    """

    target: str
    condition: Condition | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"to": self.target}
        if self.condition is not None:
            data["condition"] = self.condition.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Transition:
        condition = data.get("condition")
        return cls(
            target=data.get("to", data.get("target", "")),
            condition=Condition.from_dict(condition) if condition else None,
        )


@dataclass
class AssignmentRule:
    """How the owner of a step's task is determined.

    Any combination of the attributes may be set; the assignee resolver applies
    them in the order fixed principal, data field, role.

    Attributes:
        principal: A fixed principal identifier.
        field: Name of an instance data field holding a principal identifier.
        role: Name of a role resolved through the directory.
    """

    principal: str | None = None
    field: str | None = None
    role: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.principal or self.field or self.role)


@dataclass
class StepDefinition:
    """A named step of a process definition.

    Attributes:
        id: Identifier, unique within the definition.
        kind: Kind of the step.
        name: Display name. Defaults to the identifier.
        description: Human-readable description copied onto created tasks.
        assignment: Optional rule resolving the owner of the step's tasks.
        due_in: Optional duration after which a created task is due.
        priority: Optional priority of created tasks.
        transitions: Outgoing transitions, evaluated in declared order.
    """

    id: str
    kind: StepKind | str = StepKind.TASK
    name: str = ""
    description: str = ""
    assignment: AssignmentRule | None = None
    due_in: timedelta | None = None
    priority: TaskPriority | str | None = None
    transitions: list[Transition] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.kind = _coerce(StepKind, self.kind)
        if self.priority is not None:
            self.priority = _coerce(TaskPriority, self.priority)
        if not self.name:
            self.name = self.id

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def to_dict(self) -> dict[str, Any]:
        """Serialize the step body (without its identifier)."""
        data: dict[str, Any] = {"type": str(self.kind), "name": self.name}
        if self.description:
            data["description"] = self.description
        if self.assignment is not None:
            if self.assignment.principal:
                data["assignee"] = self.assignment.principal
            if self.assignment.field:
                data["assignee_field"] = self.assignment.field
            if self.assignment.role:
                data["assignee_role"] = self.assignment.role
        if self.due_in is not None:
            data["due_in_seconds"] = self.due_in.total_seconds()
        if self.priority is not None:
            data["priority"] = str(self.priority)
        data["transitions"] = [transition.to_dict() for transition in self.transitions]
        return data

    @classmethod
    def from_dict(cls, step_id: str, data: Mapping[str, Any]) -> StepDefinition:
        """Build a step from its serialized body.

        Args:
            step_id: Identifier of the step.
            data: Step body, e.g. ``{"type": "approval", "assignee_role": "reviewer"}``.

        Returns:
            The parsed step.
        """
        rule = AssignmentRule(
            principal=_optional_str(data.get("assignee")),
            field=data.get("assignee_field"),
            role=data.get("assignee_role"),
        )

        due_in = None
        if data.get("due_in_seconds") is not None:
            due_in = timedelta(seconds=float(data["due_in_seconds"]))
        elif data.get("due_in_hours") is not None:
            due_in = timedelta(hours=float(data["due_in_hours"]))
        elif data.get("due_in_days") is not None:
            due_in = timedelta(days=float(data["due_in_days"]))

        return cls(
            id=step_id,
            kind=data.get("type", StepKind.TASK),
            name=data.get("name", step_id),
            description=data.get("description", ""),
            assignment=None if rule.is_empty else rule,
            due_in=due_in,
            priority=data.get("priority"),
            transitions=[Transition.from_dict(t) for t in data.get("transitions", [])],
        )


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


@dataclass
class ProcessDefinition:
    """Declarative process structure.

    The ProcessDefinition is the blueprint instances are started from. It is
    identified by ``id`` and ``version``; once activated a version is never
    mutated, changes are stored as a new version under the same ``id``.

    Attributes:
        name: Human-readable name of the process.
        steps: Ordered steps of the process.
        start_step: Identifier of the step the first task is created for.
        version: Semantic version string.
        description: Human-readable description of the process's purpose.
        id: Identifier shared by all versions of the process.
        status: Lifecycle status.

    Example:
        >>> definition = ProcessDefinition(
        ...     name="document_approval",
        ...     steps=[
        ...         StepDefinition("submit", StepKind.START, transitions=[Transition("review")]),
        ...         StepDefinition(
        ...             "review",
        ...             StepKind.APPROVAL,
        ...             assignment=AssignmentRule(role="reviewer"),
        ...             transitions=[Transition("done")],
        ...         ),
        ...         StepDefinition("done", StepKind.END),
        ...     ],
        ...     start_step="submit",
        ... )
    """

    name: str
    steps: list[StepDefinition]
    start_step: str
    version: str = "1.0.0"
    description: str = ""
    id: str = field(default_factory=lambda: str(uuid4()))
    status: DefinitionStatus | str = DefinitionStatus.DRAFT

    @property
    def is_active(self) -> bool:
        return self.status == DefinitionStatus.ACTIVE

    @property
    def step_ids(self) -> list[str]:
        return [step.id for step in self.steps]

    def get_step(self, step_id: str) -> StepDefinition | None:
        """Return the step with the given identifier, or None."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize the definition to a JSON-compatible dict.

        Returns:
            A mapping in the shape accepted by :meth:`from_dict`.
        """
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "status": str(self.status),
            "start_step": self.start_step,
            "steps": {step.id: step.to_dict() for step in self.steps},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProcessDefinition:
        """Build a definition from its serialized form.

        ``steps`` may be a mapping of step id to step body, or a list of step
        bodies carrying an ``"id"`` key. ``start_step`` defaults to ``"start"``.

        Args:
            data: The serialized definition.

        Returns:
            The parsed definition, in draft status unless ``status`` says otherwise.

        Example:
            >>> ProcessDefinition.from_dict(
            ...     {
            ...         "name": "leave_request",
            ...         "start_step": "request",
            ...         "steps": {
            ...             "request": {"type": "task", "transitions": [{"to": "done"}]},
            ...             "done": {"type": "end"},
            ...         },
            ...     }
            ... )
        """
        raw_steps = data.get("steps") or {}
        if isinstance(raw_steps, Mapping):
            steps = [StepDefinition.from_dict(step_id, body) for step_id, body in raw_steps.items()]
        else:
            steps = [StepDefinition.from_dict(body.get("id", ""), body) for body in raw_steps]

        kwargs: dict[str, Any] = {}
        if data.get("id"):
            kwargs["id"] = str(data["id"])

        return cls(
            name=data.get("name") or "",
            steps=steps,
            start_step=data.get("start_step") or "start",
            version=data.get("version") or "1.0.0",
            description=data.get("description") or "",
            status=_coerce(DefinitionStatus, data.get("status") or DefinitionStatus.DRAFT),
            **kwargs,
        )

    def to_mermaid(self) -> str:
        """Generate a MermaidJS graph representation of the process.

        Returns:
            MermaidJS graph definition as a string.

        Example:
            >>> print(definition.to_mermaid())
            graph TD
                submit[START: Submit]
                review{{Review}}
                done((END: Done))
                submit --> review
                review --> done
        """
        lines = ["graph TD"]

        for step in self.steps:
            shape_start, shape_end = _MERMAID_SHAPES.get(step.kind, ("[", "]"))

            prefix = ""
            if step.id == self.start_step:
                prefix = "START: "
            elif step.kind == StepKind.END:
                prefix = "END: "

            label = step.display_name.replace("_", " ").title()
            lines.append(f"    {step.id}{shape_start}{prefix}{label}{shape_end}")

        for step in self.steps:
            for transition in step.transitions:
                label = ""
                if transition.condition is not None:
                    # Quotes break mermaid syntax
                    safe = transition.condition.describe().replace("'", "").replace('"', "")
                    label = f"|{safe}|"
                lines.append(f"    {step.id} -->{label} {transition.target}")

        return "\n".join(lines)

    def to_mermaid_with_state(
        self,
        pending_steps: list[str] | None = None,
        completed_steps: list[str] | None = None,
    ) -> str:
        """Generate a MermaidJS graph highlighting the progress of an instance.

        Args:
            pending_steps: Steps with a pending task.
            completed_steps: Steps with a completed task.

        Returns:
            MermaidJS graph definition with state styling.
        """
        lines = self.to_mermaid().split("\n")

        for step_id in completed_steps or []:
            lines.append(f"    style {step_id} fill:#90EE90,stroke:#006400,stroke-width:2px")

        for step_id in pending_steps or []:
            lines.append(f"    style {step_id} fill:#FFD700,stroke:#FFA500,stroke-width:3px")

        return "\n".join(lines)


_MERMAID_SHAPES: dict[Any, tuple[str, str]] = {
    StepKind.APPROVAL: ("{{", "}}"),
    StepKind.GATEWAY: ("{", "}"),
    StepKind.TIMER: ("([", "])"),
    StepKind.END: ("((", "))"),
    StepKind.SUBPROCESS: ("[[", "]]"),
}
