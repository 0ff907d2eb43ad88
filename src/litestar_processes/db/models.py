"""SQLAlchemy models for process persistence.

This module defines the database models for persisting process state:
- ProcessDefinitionModel: Stores every version of a process definition
- ProcessInstanceModel: Stores running/completed process instances
- ProcessTaskModel: Stores the tasks created for instance steps
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from advanced_alchemy.base import UUIDAuditBase
from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import JSON, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from litestar_processes.core.types import DefinitionStatus, InstanceStatus, TaskPriority, TaskStatus

__all__ = [
    "ProcessDefinitionModel",
    "ProcessInstanceModel",
    "ProcessTaskModel",
]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


class ProcessDefinitionModel(UUIDAuditBase):
    """Persisted version of a process definition.

    The surrogate primary key is internal; definitions are addressed by
    ``definition_id`` and ``version``.

    Attributes:
        definition_id: Identifier shared by all versions of the process.
        version: Semantic version string (e.g., "1.0.0").
        name: Human-readable name of the process.
        description: Human-readable description of the process.
        status: Lifecycle status. Authoritative over the serialized body.
        start_step: Identifier of the designated start step.
        definition_json: Serialized ProcessDefinition as JSON.
    """

    __tablename__ = "process_definitions"
    __table_args__ = (
        Index("ix_process_definitions_definition_id_version", "definition_id", "version", unique=True),
        Index("ix_process_definitions_status", "status"),
    )

    definition_id: Mapped[str] = mapped_column(String(255))
    version: Mapped[str] = mapped_column(String(50))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[DefinitionStatus] = mapped_column(
        Enum(DefinitionStatus, native_enum=False, length=50),
        default=DefinitionStatus.DRAFT,
    )
    start_step: Mapped[str] = mapped_column(String(255))
    definition_json: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)


class ProcessInstanceModel(UUIDAuditBase):
    """Persisted process instance.

    Attributes:
        definition_id: Identifier of the definition the instance was started from.
        definition_version: Version of that definition.
        definition_name: Denormalized definition name for quick queries.
        status: Current status.
        data: Instance data as JSON.
        pending_steps: Identifiers of the steps with a pending task.
        started_by: Principal who started the instance.
        started_at: Timestamp when the instance was created.
        completed_at: Timestamp when the instance completed.
    """

    __tablename__ = "process_instances"
    __table_args__ = (
        Index("ix_process_instances_definition_id", "definition_id"),
        Index("ix_process_instances_status", "status"),
        Index("ix_process_instances_started_by", "started_by"),
    )

    definition_id: Mapped[str] = mapped_column(String(255))
    definition_version: Mapped[str] = mapped_column(String(50))
    definition_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[InstanceStatus] = mapped_column(
        Enum(InstanceStatus, native_enum=False, length=50),
        default=InstanceStatus.RUNNING,
    )
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    pending_steps: Mapped[list[str]] = mapped_column(JSONType, default=list)
    started_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTimeUTC(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)

    # Relationships
    tasks: Mapped[list[ProcessTaskModel]] = relationship(
        back_populates="instance",
        lazy="noload",
    )


class ProcessTaskModel(UUIDAuditBase):
    """Persisted task.

    ``created_at`` (from the audit base) holds the task creation timestamp.

    Attributes:
        instance_id: Foreign key to the process instance.
        definition_id: Denormalized definition identifier for assignee queries.
        step_id: Identifier of the step the task represents.
        name: Display name of the task.
        description: Description of the task.
        kind: Kind of the step.
        status: Current task status.
        assignee_id: Principal the task is assigned to.
        assignee_role: Role whose holders may complete the task.
        priority: Task priority.
        due_at: Deadline for task completion.
        data: Task-local completion data.
        completed_by: Principal who completed the task.
        completed_at: When the task was completed.
    """

    __tablename__ = "process_tasks"
    __table_args__ = (
        Index("ix_process_tasks_instance_id_status", "instance_id", "status"),
        Index("ix_process_tasks_assignee_id_status", "assignee_id", "status"),
        Index("ix_process_tasks_definition_id", "definition_id"),
    )

    instance_id: Mapped[UUID] = mapped_column(
        ForeignKey("process_instances.id", ondelete="CASCADE"),
    )
    definition_id: Mapped[str] = mapped_column(String(255))
    step_id: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(500))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    kind: Mapped[str] = mapped_column(String(50))
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, native_enum=False, length=50),
        default=TaskStatus.PENDING,
    )

    # Assignment
    assignee_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assignee_role: Mapped[str | None] = mapped_column(String(255), nullable=True)
    priority: Mapped[TaskPriority] = mapped_column(
        Enum(TaskPriority, native_enum=False, length=50),
        default=TaskPriority.MEDIUM,
    )
    due_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)

    # Completion
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    completed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)

    # Relationships
    instance: Mapped[ProcessInstanceModel] = relationship(
        back_populates="tasks",
        lazy="noload",
    )
