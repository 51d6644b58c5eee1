"""Workflow definition service: lookup by trigger and seeding."""

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models.workflow import WorkflowDefinition
from services.base import BaseService

logger = logging.getLogger(__name__)


class WorkflowDefinitionService(BaseService[WorkflowDefinition]):
    """Read access to workflow definitions, plus upsert for seeding."""

    def __init__(self, db: AsyncSession):
        super().__init__(WorkflowDefinition, db)

    async def find_active_by_trigger(self, trigger_type: str, trigger_value: str) -> Sequence[WorkflowDefinition]:
        """Active definitions whose trigger matches exactly (case-sensitive), oldest first."""
        result = await self.db.execute(
            select(WorkflowDefinition)
            .where(
                WorkflowDefinition.trigger_type == trigger_type,
                WorkflowDefinition.trigger_value == trigger_value,
                WorkflowDefinition.is_active == True,  # noqa: E712
            )
            .order_by(WorkflowDefinition.created_at.asc(), WorkflowDefinition.id.asc())
        )
        return result.scalars().all()

    async def get_by_key(self, workflow_key: str) -> Optional[WorkflowDefinition]:
        result = await self.db.execute(
            select(WorkflowDefinition).where(WorkflowDefinition.workflow_key == workflow_key)
        )
        return result.scalar_one_or_none()

    async def upsert(self, workflow_key: str, data: dict[str, Any]) -> WorkflowDefinition:
        """Create the definition or overwrite its fields if the key exists."""
        existing = await self.get_by_key(workflow_key)
        if existing is None:
            logger.info(f"Creating workflow definition '{workflow_key}'")
            return await self.create({"workflow_key": workflow_key, **data})
        logger.info(f"Updating workflow definition '{workflow_key}'")
        return await self.update(existing.id, data)
