"""Shared test fixtures for litestar-processes test suite."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from litestar_processes.config import EngineConfig
from litestar_processes.core.definition import (
    AssignmentRule,
    Condition,
    ProcessDefinition,
    StepDefinition,
    Transition,
)
from litestar_processes.core.types import ConditionOperator, StepKind
from litestar_processes.directory import StaticDirectory
from litestar_processes.engine.engine import ProcessEngine
from litestar_processes.store.memory import InMemoryProcessStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from litestar_processes.core.models import ProcessInstance


class RecordingNotifier:
    """Notifier that records calls and can be told to fail or hang."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []
        self.error: Exception | None = None
        self.delay: float = 0.0

    async def notify_task_assigned(self, principal_id: str, instance_id: str, step_id: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.calls.append((principal_id, instance_id, step_id))


@pytest.fixture
def directory() -> StaticDirectory:
    """Directory with a few role holders."""
    return StaticDirectory(
        {
            "manager": ["carol", "bob"],
            "finance": ["dave"],
            "reviewer": ["erin", "frank"],
        }
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store() -> InMemoryProcessStore:
    return InMemoryProcessStore()


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def engine(
    store: InMemoryProcessStore,
    directory: StaticDirectory,
    notifier: RecordingNotifier,
    engine_config: EngineConfig,
) -> ProcessEngine:
    """Engine wired to in-memory collaborators."""
    return ProcessEngine(store, directory, notifier, engine_config)


@pytest.fixture
def signing_definition() -> ProcessDefinition:
    """Sign a document, then branch on the amount.

    ``sign`` -> ``approval`` when amount > 1000, and always -> ``end``.
    """
    return ProcessDefinition(
        id="document_signing",
        name="Document signing",
        start_step="sign",
        steps=[
            StepDefinition(
                "sign",
                StepKind.TASK,
                name="Sign document",
                transitions=[
                    Transition("approval", Condition("amount", ConditionOperator.GREATER_THAN, 1000)),
                    Transition("end"),
                ],
            ),
            StepDefinition(
                "approval",
                StepKind.APPROVAL,
                assignment=AssignmentRule(role="manager"),
                transitions=[Transition("end")],
            ),
            StepDefinition("end", StepKind.END),
        ],
    )


@pytest.fixture
def fan_out_definition() -> ProcessDefinition:
    """Request fanning out to legal and finance reviews."""
    return ProcessDefinition(
        id="contract_review",
        name="Contract review",
        start_step="request",
        steps=[
            StepDefinition(
                "request",
                StepKind.START,
                transitions=[
                    Transition("legal_review", Condition("needs_legal", ConditionOperator.EQUALS, True)),
                    Transition("finance_review", Condition("amount", ConditionOperator.GREATER_THAN, 0)),
                ],
            ),
            StepDefinition(
                "legal_review",
                StepKind.APPROVAL,
                assignment=AssignmentRule(principal="lawyer"),
                transitions=[Transition("done")],
            ),
            StepDefinition(
                "finance_review",
                StepKind.APPROVAL,
                assignment=AssignmentRule(role="finance"),
                transitions=[Transition("done")],
            ),
            StepDefinition("done", StepKind.END),
        ],
    )


@pytest.fixture
def expense_dict() -> dict[str, Any]:
    """Serialized expense approval definition."""
    return {
        "id": "expense_approval",
        "name": "Expense approval",
        "version": "1.0.0",
        "start_step": "submit",
        "steps": {
            "submit": {"type": "start", "name": "Submit expense", "transitions": [{"to": "manager_review"}]},
            "manager_review": {
                "type": "approval",
                "assignee_field": "manager_id",
                "priority": "high",
                "due_in_days": 2,
                "transitions": [
                    {"to": "finance_review", "condition": {"field": "approved", "operator": "equals", "value": True}},
                    {"to": "rejected", "condition": {"field": "approved", "operator": "equals", "value": False}},
                ],
            },
            "finance_review": {"type": "task", "assignee_role": "finance", "transitions": [{"to": "paid"}]},
            "rejected": {"type": "end"},
            "paid": {"type": "end"},
        },
    }


@pytest.fixture
def activate(engine: ProcessEngine) -> Callable[[ProcessDefinition | dict[str, Any]], Awaitable[str]]:
    """Define and activate a definition on the engine fixture, returning its id."""

    async def _activate(definition: ProcessDefinition | dict[str, Any]) -> str:
        definition_id = await engine.define_workflow(definition)
        await engine.activate_workflow(definition_id)
        return definition_id

    return _activate


@pytest.fixture
def pending_tasks(engine: ProcessEngine) -> Callable[[ProcessInstance], Awaitable[dict[str, str]]]:
    """Map step id to task id for the pending tasks of an instance."""

    async def _pending(instance: ProcessInstance) -> dict[str, str]:
        report = await engine.get_instance_status(instance.id)
        return {task.step_id: task.id for task in report.pending_tasks}

    return _pending
