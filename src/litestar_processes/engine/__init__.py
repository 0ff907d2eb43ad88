"""Process engine components.

This module provides the components that run process definitions: condition
evaluation, assignee resolution, definition validation, task storage,
instance lifecycle management and the public engine facade.
"""

from __future__ import annotations

from litestar_processes.engine.assignment import AssigneeResolver
from litestar_processes.engine.conditions import evaluate_condition
from litestar_processes.engine.engine import ProcessEngine
from litestar_processes.engine.graph import ProcessGraph
from litestar_processes.engine.locks import KeyedLock
from litestar_processes.engine.manager import InstanceManager
from litestar_processes.engine.persistence import guarded, unit_of_work
from litestar_processes.engine.tasks import TaskStore
from litestar_processes.engine.validation import validate_definition

__all__ = [
    "AssigneeResolver",
    "InstanceManager",
    "KeyedLock",
    "ProcessEngine",
    "ProcessGraph",
    "TaskStore",
    "evaluate_condition",
    "guarded",
    "unit_of_work",
    "validate_definition",
]
