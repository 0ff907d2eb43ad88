"""Repository implementations for process persistence.

This module provides async repositories for CRUD operations on process
models using advanced-alchemy's repository pattern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import and_, select, update

from litestar_processes.db.models import ProcessDefinitionModel, ProcessInstanceModel, ProcessTaskModel

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from litestar_processes.core.models import TaskFilters
    from litestar_processes.core.types import DefinitionStatus, InstanceStatus, TaskStatus

__all__ = [
    "ProcessDefinitionRepository",
    "ProcessInstanceRepository",
    "ProcessTaskRepository",
]


class ProcessDefinitionRepository(SQLAlchemyAsyncRepository[ProcessDefinitionModel]):
    """Repository for process definition versions."""

    model_type = ProcessDefinitionModel

    async def get_version(self, definition_id: str, version: str) -> ProcessDefinitionModel | None:
        """Get one version of a definition.

        Args:
            definition_id: The definition identifier.
            version: The version.

        Returns:
            The definition version or None if not found.
        """
        stmt = select(ProcessDefinitionModel).where(
            and_(
                ProcessDefinitionModel.definition_id == definition_id,
                ProcessDefinitionModel.version == version,
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_versions(self, definition_id: str) -> Sequence[ProcessDefinitionModel]:
        stmt = select(ProcessDefinitionModel).where(ProcessDefinitionModel.definition_id == definition_id)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_by_status(self, status: DefinitionStatus | None = None) -> Sequence[ProcessDefinitionModel]:
        """List definition versions, optionally filtered by status.

        Args:
            status: Optional status filter.

        Returns:
            Definition versions ordered by definition identifier.
        """
        stmt = select(ProcessDefinitionModel).order_by(ProcessDefinitionModel.definition_id)
        if status is not None:
            stmt = stmt.where(ProcessDefinitionModel.status == status)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def compare_and_set_status(
        self,
        definition_id: str,
        version: str,
        expected: DefinitionStatus,
        new: DefinitionStatus,
    ) -> bool:
        """Set the status of a definition version if it currently is ``expected``.

        The check and the write are a single conditional ``UPDATE``.

        Returns:
            True if a row was updated.
        """
        stmt = (
            update(ProcessDefinitionModel)
            .where(
                and_(
                    ProcessDefinitionModel.definition_id == definition_id,
                    ProcessDefinitionModel.version == version,
                    ProcessDefinitionModel.status == expected,
                )
            )
            .values(status=new)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1


class ProcessInstanceRepository(SQLAlchemyAsyncRepository[ProcessInstanceModel]):
    """Repository for process instances."""

    model_type = ProcessInstanceModel

    async def find(
        self,
        definition_id: str | None = None,
        status: InstanceStatus | None = None,
        started_by: str | None = None,
    ) -> Sequence[ProcessInstanceModel]:
        """Find instances matching every given filter.

        Args:
            definition_id: Optional definition filter.
            status: Optional status filter.
            started_by: Optional starter filter.

        Returns:
            Instances, most recently started first.
        """
        conditions = []

        if definition_id is not None:
            conditions.append(ProcessInstanceModel.definition_id == definition_id)

        if status is not None:
            conditions.append(ProcessInstanceModel.status == status)

        if started_by is not None:
            conditions.append(ProcessInstanceModel.started_by == started_by)

        stmt = select(ProcessInstanceModel).where(*conditions).order_by(ProcessInstanceModel.started_at.desc())
        result = await self.session.execute(stmt)
        return result.scalars().all()


class ProcessTaskRepository(SQLAlchemyAsyncRepository[ProcessTaskModel]):
    """Repository for tasks."""

    model_type = ProcessTaskModel

    async def find_by_instance(
        self,
        instance_id: UUID,
        status: TaskStatus | None = None,
    ) -> Sequence[ProcessTaskModel]:
        """Find the tasks of an instance.

        Args:
            instance_id: The process instance ID.
            status: Optional status filter.

        Returns:
            Tasks in creation order.
        """
        conditions = [ProcessTaskModel.instance_id == instance_id]

        if status is not None:
            conditions.append(ProcessTaskModel.status == status)

        stmt = select(ProcessTaskModel).where(and_(*conditions)).order_by(ProcessTaskModel.created_at)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_for_assignee(
        self,
        assignee_id: str,
        filters: TaskFilters,
    ) -> Sequence[ProcessTaskModel]:
        """Find the tasks assigned to a principal.

        Args:
            assignee_id: The assignee.
            filters: Definition, priority and status filters.

        Returns:
            Matching tasks, unordered.
        """
        conditions = [ProcessTaskModel.assignee_id == assignee_id]

        if filters.definition_id is not None:
            conditions.append(ProcessTaskModel.definition_id == filters.definition_id)

        if filters.priority is not None:
            conditions.append(ProcessTaskModel.priority == filters.priority)

        if filters.status is not None:
            conditions.append(ProcessTaskModel.status == filters.status)

        result = await self.session.execute(select(ProcessTaskModel).where(and_(*conditions)))
        return result.scalars().all()
