"""Resumption Service — re-entry point for suspended executions.

A resumption request carries (execution_id, resume_from_step,
scheduled_for). It is safe to deliver the same request more than once
and safe to deliver it early:

- early requests are answered NOT_DUE and change nothing
- requests for executions that are no longer scheduled at that cursor
  are answered SKIPPED
- of several concurrent requests, only the one that wins the
  scheduled -> running compare-and-set runs the remaining steps
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import structlog

from core.constants import ExecutionStatus, ResumeOutcome
from core.exceptions import NotFoundError, SchedulingError, ValidationError
from core.utils import to_naive_utc, utcnow

logger = structlog.get_logger(__name__)


@dataclass
class ResumeResult:
    """Outcome of one resumption request."""
    execution_id: str
    outcome: ResumeOutcome
    status: Optional[ExecutionStatus] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "execution_id": self.execution_id,
            "outcome": self.outcome.value,
            "status": self.status.value if self.status else None,
            "error": self.error,
        }


class ResumptionService:
    """Continues scheduled executions from their persisted cursor."""

    def __init__(self, store, engine, clock: Callable[[], datetime] = utcnow, batch_size: int = 10):
        self.store = store
        self.engine = engine
        self._clock = clock
        self.batch_size = batch_size

    async def resume(
        self,
        execution_id: str,
        resume_from_step: int,
        scheduled_for: Optional[datetime] = None,
    ) -> ResumeResult:
        """Continue an execution from ``resume_from_step``.

        Raises:
            ValidationError: resume_from_step is negative
            NotFoundError: No such execution
            SchedulingError: A later delay's continuation could not be handed off
        """
        if resume_from_step < 0:
            raise ValidationError("resume_from_step must be >= 0")

        log = logger.bind(execution_id=execution_id, resume_from_step=resume_from_step)

        if scheduled_for is not None and self._clock() < to_naive_utc(scheduled_for):
            log.info("Resumption not due yet", scheduled_for=scheduled_for.isoformat())
            return ResumeResult(execution_id, ResumeOutcome.NOT_DUE)

        execution = await self.store.get_execution(execution_id)
        if execution is None:
            raise NotFoundError(f"Execution not found: {execution_id}")

        if execution.status != ExecutionStatus.SCHEDULED.value or execution.current_step != resume_from_step:
            log.info("Resumption skipped", status=execution.status, current_step=execution.current_step)
            return ResumeResult(execution_id, ResumeOutcome.SKIPPED, ExecutionStatus(execution.status))

        if scheduled_for is None and execution.scheduled_for is not None and self._clock() < execution.scheduled_for:
            return ResumeResult(execution_id, ResumeOutcome.NOT_DUE, ExecutionStatus.SCHEDULED)

        if not await self.store.claim_for_resumption(execution_id, resume_from_step):
            log.info("Resumption lost claim race")
            return ResumeResult(execution_id, ResumeOutcome.SKIPPED)

        steps = list(execution.steps_snapshot or [])
        if resume_from_step > len(steps):
            await self.store.mark_failed(
                execution_id, f"Resume cursor {resume_from_step} is beyond {len(steps)} steps"
            )
            return ResumeResult(execution_id, ResumeOutcome.RESUMED, ExecutionStatus.FAILED)

        # Context is re-read from the store; nothing from the previous activation is reused.
        log.info("Resuming execution")
        status = await self.engine.run(execution_id, steps, resume_from_step, execution.context_data or {})
        return ResumeResult(execution_id, ResumeOutcome.RESUMED, status)

    async def resume_due(self, limit: Optional[int] = None) -> list[ResumeResult]:
        """Resume every scheduled execution whose time has come.

        One execution's failure never stops the sweep.
        """
        due = await self.store.list_due(self._clock(), limit or self.batch_size)
        results: list[ResumeResult] = []
        for execution in due:
            try:
                results.append(
                    await self.resume(execution.id, execution.current_step, execution.scheduled_for)
                )
            except SchedulingError as e:
                results.append(ResumeResult(execution.id, ResumeOutcome.FAILED, ExecutionStatus.SCHEDULED, e.message))
            except Exception as e:
                logger.error("Due resumption failed", execution_id=execution.id, error=str(e), exc_info=True)
                results.append(ResumeResult(execution.id, ResumeOutcome.FAILED, error=str(e)))
        if results:
            logger.info("Due sweep finished", processed=len(results))
        return results
