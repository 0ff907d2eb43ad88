"""Minimal example of litestar-processes integration.

This example demonstrates the basic usage of the ProcessEnginePlugin with an
expense approval process: the submitter's manager approves, finance pays out.

The acting principal is taken from the ``X-Principal`` header.

Run with:
    cd examples/minimal
    litestar run

Or:
    uvicorn app:app --reload
"""

from __future__ import annotations

from typing import Annotated, Any

from litestar import Controller, Litestar, get, post
from litestar.params import Parameter

from litestar_processes import (
    ProcessEngine,
    ProcessEnginePlugin,
    ProcessEnginePluginConfig,
    StaticDirectory,
    Task,
)

Principal = Annotated[str, Parameter(header="X-Principal")]

# =============================================================================
# Process Definition
# =============================================================================

EXPENSE_APPROVAL: dict[str, Any] = {
    "id": "expense_approval",
    "name": "Expense approval",
    "version": "1.0.0",
    "description": "Manager approval followed by finance payout",
    "start_step": "submit",
    "steps": {
        "submit": {
            "type": "start",
            "name": "Submit expense",
            "transitions": [{"to": "manager_review"}],
        },
        "manager_review": {
            "type": "approval",
            "name": "Manager review",
            "assignee_role": "manager",
            "priority": "high",
            "due_in_days": 3,
            "transitions": [
                {"to": "payout", "condition": {"field": "approved", "operator": "equals", "value": True}},
                {"to": "rejected", "condition": {"field": "approved", "operator": "not_equals", "value": True}},
            ],
        },
        "payout": {
            "type": "task",
            "name": "Pay out expense",
            "assignee_role": "finance",
            "transitions": [{"to": "paid"}],
        },
        "rejected": {"type": "end", "name": "Rejected"},
        "paid": {"type": "end", "name": "Paid"},
    },
}


def serialize_task(task: Task) -> dict[str, Any]:
    return {
        "task_id": task.id,
        "instance_id": task.instance_id,
        "step_id": task.step_id,
        "name": task.name,
        "assignee_id": task.assignee_id,
        "priority": str(task.priority),
        "status": str(task.status),
        "due_at": task.due_at.isoformat() if task.due_at else None,
    }


# =============================================================================
# API Controllers
# =============================================================================


class ProcessController(Controller):
    """REST API for starting and inspecting processes."""

    path = "/processes"
    tags = ["Processes"]

    @get("/")
    async def list_processes(self, process_engine: ProcessEngine) -> list[dict[str, Any]]:
        """List all process definition versions."""
        return [
            {
                "id": d.id,
                "name": d.name,
                "version": d.version,
                "status": str(d.status),
                "steps": d.step_ids,
                "start_step": d.start_step,
            }
            for d in await process_engine.list_definitions()
        ]

    @get("/{definition_id:str}")
    async def get_process(self, definition_id: str, process_engine: ProcessEngine) -> dict[str, Any]:
        """Get the latest version of a process definition."""
        definition = await process_engine.get_definition(definition_id)
        return {
            "id": definition.id,
            "name": definition.name,
            "version": definition.version,
            "status": str(definition.status),
            "definition": definition.to_dict(),
            "mermaid": definition.to_mermaid(),
        }

    @post("/{definition_id:str}/start")
    async def start_process(
        self,
        definition_id: str,
        data: dict[str, Any],
        principal: Principal,
        process_engine: ProcessEngine,
    ) -> dict[str, Any]:
        """Start a new process instance."""
        instance = await process_engine.start_instance(definition_id, data, started_by=principal)
        return {
            "instance_id": instance.id,
            "definition_id": instance.definition_id,
            "status": str(instance.status),
            "pending_steps": instance.pending_steps,
        }

    @get("/instances/{instance_id:str}")
    async def get_instance(self, instance_id: str, process_engine: ProcessEngine) -> dict[str, Any]:
        """Get process instance status."""
        report = await process_engine.get_instance_status(instance_id)
        return {
            "instance_id": report.instance.id,
            "definition_id": report.instance.definition_id,
            "status": str(report.instance.status),
            "data": report.instance.data,
            "pending_tasks": [serialize_task(task) for task in report.pending_tasks],
            "completed_steps": [task.step_id for task in report.completed_tasks],
        }


class TaskController(Controller):
    """REST API for working on tasks."""

    path = "/tasks"
    tags = ["Tasks"]

    @get("/")
    async def my_tasks(self, principal: Principal, process_engine: ProcessEngine) -> list[dict[str, Any]]:
        """List the caller's pending tasks, most urgent first."""
        return [serialize_task(task) for task in await process_engine.list_tasks_for_assignee(principal)]

    @post("/{task_id:str}/complete")
    async def complete_task(
        self,
        task_id: str,
        data: dict[str, Any],
        principal: Principal,
        process_engine: ProcessEngine,
    ) -> dict[str, Any]:
        """Complete a task and advance its process instance."""
        completion = await process_engine.complete_task(task_id, data, principal)
        return {
            "instance_id": completion.instance.id,
            "instance_status": str(completion.instance.status),
            "created_tasks": [serialize_task(task) for task in completion.created_tasks],
        }


# =============================================================================
# Application
# =============================================================================

# Configure the plugin
plugin_config = ProcessEnginePluginConfig(
    directory=StaticDirectory({"manager": ["bob"], "finance": ["dave"]}),
    auto_activate_definitions=[EXPENSE_APPROVAL],
)

# Create the Litestar application
app = Litestar(
    route_handlers=[ProcessController, TaskController],
    plugins=[ProcessEnginePlugin(config=plugin_config)],
    debug=True,
)


# =============================================================================
# Health Check (for testing)
# =============================================================================


@get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Add health check to app
app.register(health_check)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
