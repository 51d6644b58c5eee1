"""Execution and step record services."""

from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import ExecutionStatus, StepStatus
from core.utils import utcnow
from db.models.execution import Execution
from db.models.step_record import StepRecord
from services.base import BaseService


class ExecutionService(BaseService[Execution]):
    """Persistence for execution rows.

    Status changes go through ``transition`` so that each one is
    conditional on the status the caller believes the row is in.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Execution, db)

    async def start(self, workflow_definition_id: str, steps: list, context_data: dict) -> Execution:
        """Create a running execution at cursor 0 with a snapshot of the steps."""
        return await self.create({
            "workflow_definition_id": workflow_definition_id,
            "status": ExecutionStatus.RUNNING.value,
            "trigger_data": dict(context_data),
            "context_data": dict(context_data),
            "steps_snapshot": list(steps),
            "current_step": 0,
            "step_results": {},
            "started_at": utcnow(),
        })

    async def transition(
        self,
        execution_id: str,
        from_status: ExecutionStatus,
        values: dict[str, Any],
        expected_step: Optional[int] = None,
    ) -> bool:
        """Apply ``values`` only if the execution is still in ``from_status``."""
        expected = {"status": from_status.value}
        if expected_step is not None:
            expected["current_step"] = expected_step
        return await self.update_where(execution_id, expected, values)

    async def list_due(self, now: datetime, limit: int) -> Sequence[Execution]:
        """Scheduled executions whose resume time has passed, earliest first."""
        result = await self.db.execute(
            select(Execution)
            .where(
                Execution.status == ExecutionStatus.SCHEDULED.value,
                Execution.scheduled_for != None,  # noqa: E711
                Execution.scheduled_for <= now,
            )
            .order_by(Execution.scheduled_for.asc())
            .limit(limit)
        )
        return result.scalars().all()


class StepRecordService(BaseService[StepRecord]):
    """Persistence for per-step audit rows."""

    def __init__(self, db: AsyncSession):
        super().__init__(StepRecord, db)

    async def open(self, execution_id: str, step_number: int, action: str, params: dict) -> StepRecord:
        return await self.create({
            "execution_id": execution_id,
            "step_number": step_number,
            "action": action,
            "params": dict(params),
            "status": StepStatus.RUNNING.value,
            "started_at": utcnow(),
        })

    async def close(self, step_id: str, status: StepStatus, error_message: Optional[str] = None) -> bool:
        """Move a running step to its final status."""
        return await self.update_where(
            step_id,
            {"status": StepStatus.RUNNING.value},
            {"status": status.value, "completed_at": utcnow(), "error_message": error_message},
        )

    async def bump_retry(self, step_id: str) -> None:
        await self.db.execute(
            StepRecord.__table__.update()
            .where(StepRecord.__table__.c.id == step_id)
            .values(retry_count=StepRecord.__table__.c.retry_count + 1)
        )

    async def for_execution(self, execution_id: str) -> Sequence[StepRecord]:
        result = await self.db.execute(
            select(StepRecord)
            .where(StepRecord.execution_id == execution_id)
            .order_by(StepRecord.step_number.asc())
        )
        return result.scalars().all()
