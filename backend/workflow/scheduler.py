"""Continuation Scheduler — hands a suspended execution to a future activation.

Two backends:
- celery: enqueue the resume_execution task with an ETA
- polling: do nothing now; the due sweep (Celery beat or the in-process
  poller thread) finds the execution by its persisted scheduled_for

The engine persists status=scheduled, the cursor and scheduled_for
*before* calling the scheduler, so a failed handoff never loses the
resumption point.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import structlog

from core.exceptions import SchedulingError

logger = structlog.get_logger(__name__)


class BaseContinuationScheduler(ABC):
    """Registers a future resumption of an execution."""

    name: str = "base"

    @abstractmethod
    async def schedule_resumption(self, execution_id: str, resume_from_step: int, scheduled_for: datetime) -> None:
        """Arrange for ``resume(execution_id, resume_from_step, scheduled_for)`` at or after ``scheduled_for``.

        Raises:
            SchedulingError: The handoff could not be registered
        """
        ...


class CeleryContinuationScheduler(BaseContinuationScheduler):
    """Schedule resumption as a delayed Celery task."""

    name = "celery"

    def __init__(self, task=None):
        self._task = task

    def _resume_task(self):
        if self._task is None:
            from worker.tasks.workflow import resume_execution

            self._task = resume_execution
        return self._task

    async def schedule_resumption(self, execution_id: str, resume_from_step: int, scheduled_for: datetime) -> None:
        try:
            async_result = self._resume_task().apply_async(
                kwargs={
                    "execution_id": execution_id,
                    "resume_from_step": resume_from_step,
                    "scheduled_for": scheduled_for.isoformat(),
                },
                eta=scheduled_for,
                queue="workflows",
            )
        except Exception as e:
            logger.error(
                "Continuation handoff failed",
                execution_id=execution_id,
                resume_from_step=resume_from_step,
                error=str(e),
            )
            raise SchedulingError(f"Failed to schedule continuation: {e}") from e

        logger.info(
            "Continuation scheduled",
            execution_id=execution_id,
            resume_from_step=resume_from_step,
            scheduled_for=scheduled_for.isoformat(),
            task_id=getattr(async_result, "id", None),
        )


class PollingContinuationScheduler(BaseContinuationScheduler):
    """Leave resumption to the due-execution sweep."""

    name = "polling"

    async def schedule_resumption(self, execution_id: str, resume_from_step: int, scheduled_for: datetime) -> None:
        logger.info(
            "Continuation left to due sweep",
            execution_id=execution_id,
            resume_from_step=resume_from_step,
            scheduled_for=scheduled_for.isoformat(),
        )


def create_scheduler(backend: Optional[str] = None) -> BaseContinuationScheduler:
    """Build the scheduler named by ``backend`` (default: settings.SCHEDULER_BACKEND)."""
    if backend is None:
        from app.config import get_settings

        backend = get_settings().SCHEDULER_BACKEND
    backend = backend.lower()
    if backend == "celery":
        return CeleryContinuationScheduler()
    if backend == "polling":
        return PollingContinuationScheduler()
    raise ValueError(f"Unknown scheduler backend: {backend}")
