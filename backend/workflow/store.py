"""Execution State Store — durable state for workflow activations.

Every method opens its own short session and commits before returning,
so nothing an activation knows survives in memory across a delay. All
execution status changes are compare-and-set updates: a method that
returns False did not change anything because the row had already moved
on (another activation won the race, or the execution was finalized).
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional, Sequence

import structlog
from sqlalchemy.exc import SQLAlchemyError

from core.constants import ExecutionStatus, StepStatus
from core.exceptions import DefinitionLookupError, ExecutionCreationError
from core.utils import json_safe, utcnow
from db.models.execution import Execution
from db.models.step_record import StepRecord
from db.models.workflow import WorkflowDefinition
from services.definition_service import WorkflowDefinitionService
from services.execution_service import ExecutionService, StepRecordService

logger = structlog.get_logger(__name__)


class ExecutionStore:
    """Persistence facade used by the dispatcher, engine and resumption service."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self):
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    # ─── Definitions ──────────────────────────────────────

    async def find_active_definitions(self, trigger_type: str, trigger_value: str) -> Sequence[WorkflowDefinition]:
        """Active definitions for a trigger.

        Raises:
            DefinitionLookupError: The definition table could not be queried
        """
        try:
            async with self._session() as session:
                return await WorkflowDefinitionService(session).find_active_by_trigger(trigger_type, trigger_value)
        except SQLAlchemyError as e:
            logger.error("Definition lookup failed", trigger_type=trigger_type, error=str(e))
            raise DefinitionLookupError(f"Failed to load workflow definitions: {e}") from e

    # ─── Executions ───────────────────────────────────────

    async def create_execution(self, definition: WorkflowDefinition, context_data: dict) -> Execution:
        """Persist a running execution with a snapshot of the definition's steps.

        Raises:
            ExecutionCreationError: The row could not be written
        """
        try:
            async with self._session() as session:
                execution = await ExecutionService(session).start(definition.id, definition.steps or [], context_data)
        except SQLAlchemyError as e:
            logger.error("Execution insert failed", workflow_key=definition.workflow_key, error=str(e))
            raise ExecutionCreationError(f"Failed to create execution: {e}") from e
        logger.info("Execution created", execution_id=execution.id, workflow_key=definition.workflow_key)
        return execution

    async def get_execution(self, execution_id: str) -> Optional[Execution]:
        async with self._session() as session:
            return await ExecutionService(session).get_by_id(execution_id)

    async def list_executions(self, filters: dict[str, Any], offset: int, limit: int) -> tuple[Sequence[Execution], int]:
        async with self._session() as session:
            return await ExecutionService(session).list(offset=offset, limit=limit, filters=filters)

    async def list_due(self, now: datetime, limit: int) -> Sequence[Execution]:
        async with self._session() as session:
            return await ExecutionService(session).list_due(now, limit)

    async def record_step_output(self, execution_id: str, step_number: int, output: dict) -> bool:
        """Advance the cursor past a completed step and keep its output."""
        async with self._session() as session:
            service = ExecutionService(session)
            execution = await service.get_by_id(execution_id)
            if execution is None:
                return False
            results = dict(execution.step_results or {})
            results[str(step_number)] = json_safe(output)
            return await service.transition(
                execution_id,
                ExecutionStatus.RUNNING,
                {"current_step": step_number, "step_results": results},
            )

    async def mark_scheduled(self, execution_id: str, resume_from_step: int, scheduled_for: datetime) -> bool:
        """running -> scheduled, persisting the cursor and resume time together."""
        async with self._session() as session:
            changed = await ExecutionService(session).transition(
                execution_id,
                ExecutionStatus.RUNNING,
                {
                    "status": ExecutionStatus.SCHEDULED.value,
                    "current_step": resume_from_step,
                    "scheduled_for": scheduled_for,
                },
            )
        self._log_transition(changed, execution_id, ExecutionStatus.SCHEDULED)
        return changed

    async def claim_for_resumption(self, execution_id: str, resume_from_step: int) -> bool:
        """scheduled -> running, only if the cursor still equals ``resume_from_step``.

        Exactly one of several concurrent resumptions gets True.
        """
        async with self._session() as session:
            return await ExecutionService(session).transition(
                execution_id,
                ExecutionStatus.SCHEDULED,
                {"status": ExecutionStatus.RUNNING.value, "scheduled_for": None},
                expected_step=resume_from_step,
            )

    async def mark_completed(self, execution_id: str, completed_steps: int) -> bool:
        async with self._session() as session:
            changed = await ExecutionService(session).transition(
                execution_id,
                ExecutionStatus.RUNNING,
                {
                    "status": ExecutionStatus.COMPLETED.value,
                    "current_step": completed_steps,
                    "completed_at": utcnow(),
                    "scheduled_for": None,
                },
            )
        self._log_transition(changed, execution_id, ExecutionStatus.COMPLETED)
        return changed

    async def mark_failed(self, execution_id: str, error_message: str) -> bool:
        async with self._session() as session:
            changed = await ExecutionService(session).transition(
                execution_id,
                ExecutionStatus.RUNNING,
                {
                    "status": ExecutionStatus.FAILED.value,
                    "error_message": error_message,
                    "completed_at": utcnow(),
                    "scheduled_for": None,
                },
            )
        self._log_transition(changed, execution_id, ExecutionStatus.FAILED)
        return changed

    def _log_transition(self, changed: bool, execution_id: str, target: ExecutionStatus) -> None:
        if changed:
            logger.info("Execution status changed", execution_id=execution_id, status=target.value)
        else:
            logger.warning("Execution status change rejected", execution_id=execution_id, status=target.value)

    # ─── Steps ────────────────────────────────────────────

    async def open_step(self, execution_id: str, step_number: int, action: str, params: dict) -> StepRecord:
        async with self._session() as session:
            return await StepRecordService(session).open(execution_id, step_number, action, params)

    async def complete_step(self, step_id: str) -> bool:
        async with self._session() as session:
            return await StepRecordService(session).close(step_id, StepStatus.COMPLETED)

    async def fail_step(self, step_id: str, error_message: str) -> bool:
        async with self._session() as session:
            return await StepRecordService(session).close(step_id, StepStatus.FAILED, error_message)

    async def increment_retry(self, step_id: str) -> None:
        async with self._session() as session:
            await StepRecordService(session).bump_retry(step_id)

    async def list_steps(self, execution_id: str) -> Sequence[StepRecord]:
        async with self._session() as session:
            return await StepRecordService(session).for_execution(execution_id)
