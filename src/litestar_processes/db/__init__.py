"""Database persistence layer for litestar-processes.

This module provides SQLAlchemy models, repositories and a ProcessStore
implementation for persisting process definitions, instances and tasks.

Requires the [db] extra:
    pip install litestar-processes[db]
"""

from __future__ import annotations

from litestar_processes.db.models import ProcessDefinitionModel, ProcessInstanceModel, ProcessTaskModel
from litestar_processes.db.repositories import (
    ProcessDefinitionRepository,
    ProcessInstanceRepository,
    ProcessTaskRepository,
)
from litestar_processes.db.store import SQLAlchemyProcessStore

__all__ = [
    "ProcessDefinitionModel",
    "ProcessDefinitionRepository",
    "ProcessInstanceModel",
    "ProcessInstanceRepository",
    "ProcessTaskModel",
    "ProcessTaskRepository",
    "SQLAlchemyProcessStore",
]
