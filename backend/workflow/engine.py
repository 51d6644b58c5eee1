"""Workflow Execution Engine — sequential step processor.

Runs the steps of one execution in order, starting at a cursor:

- one StepRecord per attempted step (step_number = index + 1)
- action steps go through the ActionRegistry, with optional bounded retry
- a ``delay`` step suspends the execution: state is persisted as
  scheduled and the continuation scheduler is asked to resume it later
- the first failed step fails the execution with the same message;
  later steps are never attempted

Step definition (one element of WorkflowDefinition.steps):
{
    "action": "send_email",
    "params": {"template": "purchase_confirmation", "to": "buyer"},
    "retry": "standard"          # optional: preset name or policy dict
}
"""

import asyncio
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

import structlog

from core.constants import ActionType, ExecutionStatus
from core.exceptions import SchedulingError
from core.logging_config import bind_execution, clear_execution
from core.utils import utcnow
from workflow.retry_strategies import RetryStrategy, run_with_retry

logger = structlog.get_logger(__name__)


# ─── Step parsing ─────────────────────────────────────────────

@dataclass
class StepSpec:
    """A normalized step definition."""
    action: str
    params: dict[str, Any] = field(default_factory=dict)
    retry: Any = None

    @classmethod
    def parse(cls, raw: Any) -> "StepSpec":
        """Read a step leniently.

        A missing or non-string action becomes "" (reported later as an
        unknown action); non-dict params become {}.
        """
        if not isinstance(raw, dict):
            return cls(action="")
        action = raw.get("action")
        params = raw.get("params")
        return cls(
            action=action if isinstance(action, str) else "",
            params=params if isinstance(params, dict) else {},
            retry=raw.get("retry"),
        )


def parse_delay_minutes(params: dict[str, Any]) -> float:
    """Minutes to wait for a delay step.

    Missing or null means 0; negative values clamp to 0.

    Raises:
        ValueError: The value is not a finite number
    """
    value = params.get("minutes")
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise ValueError(f"Invalid delay minutes: {value!r}")
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid delay minutes: {value!r}")
    if not math.isfinite(minutes):
        raise ValueError(f"Invalid delay minutes: {value!r}")
    return max(0.0, minutes)


# ─── Engine ───────────────────────────────────────────────────

class WorkflowEngine:
    """Executes an execution's steps from a cursor until it completes, fails or suspends.

    The engine holds no per-execution state between calls; everything it
    needs to continue later is written through the ExecutionStore.
    """

    def __init__(
        self,
        store,
        registry,
        scheduler,
        clock: Callable[[], datetime] = utcnow,
        default_retry: str = "none",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.registry = registry
        self.scheduler = scheduler
        self._clock = clock
        self._default_retry = default_retry
        self._sleep = sleep

    async def run(
        self,
        execution_id: str,
        steps: list,
        start_index: int = 0,
        context_data: Optional[dict] = None,
    ) -> ExecutionStatus:
        """Run ``steps[start_index:]`` for a running execution.

        Args:
            execution_id: Execution to advance; must currently be running
            steps: The execution's step list (its snapshot)
            start_index: 0-based index of the first step to run
            context_data: Data bag handed to every action

        Returns:
            The status the execution was left in

        Raises:
            ValueError: start_index is outside [0, len(steps)]
            SchedulingError: A delay's continuation could not be handed off;
                the execution is already persisted as scheduled
        """
        if not 0 <= start_index <= len(steps):
            raise ValueError(f"start_index {start_index} out of range for {len(steps)} steps")

        context = dict(context_data or {})
        bind_execution(execution_id)
        logger.info("Execution activation started", start_index=start_index, total_steps=len(steps))
        try:
            for index in range(start_index, len(steps)):
                outcome = await self._run_step(execution_id, steps, index, context)
                if outcome is not None:
                    return outcome

            if await self.store.mark_completed(execution_id, len(steps)):
                logger.info("Execution completed", total_steps=len(steps))
                return ExecutionStatus.COMPLETED
            return await self._current_status(execution_id)
        finally:
            clear_execution()

    async def _run_step(self, execution_id: str, steps: list, index: int, context: dict) -> Optional[ExecutionStatus]:
        """Run one step. Returns None to continue with the next step."""
        spec = StepSpec.parse(steps[index])
        step_number = index + 1
        record = None
        log = logger.bind(step_number=step_number, action=spec.action)

        try:
            record = await self.store.open_step(execution_id, step_number, spec.action, spec.params)

            if spec.action == ActionType.DELAY.value:
                return await self._suspend(execution_id, record, index, len(steps), spec)

            async def _bump_retry(attempt: int, error: str, delay: float) -> None:
                await self.store.increment_retry(record.id)

            strategy = RetryStrategy.from_step(spec.retry, default=self._default_retry)
            result = await run_with_retry(
                lambda: self.registry.execute(spec.action, spec.params, context),
                strategy,
                on_retry=_bump_retry,
                sleep=self._sleep,
            )
            if not result.success:
                log.warning("Step failed", error=result.error)
                return await self._fail(execution_id, record, result.error or "Action failed")

            # Cursor first: a step is only closed once its output is stored.
            await self.store.record_step_output(execution_id, step_number, result.output)
            await self.store.complete_step(record.id)
            log.info("Step completed")
            return None

        except SchedulingError:
            raise
        except Exception as e:
            log.error("Step raised", error=str(e), exc_info=True)
            return await self._fail(execution_id, record, str(e) or type(e).__name__)

    async def _suspend(self, execution_id: str, record, index: int, total: int, spec: StepSpec) -> ExecutionStatus:
        minutes = parse_delay_minutes(spec.params)
        scheduled_for = self._clock() + timedelta(minutes=minutes)
        completed_steps = index + 1

        if completed_steps >= total:
            # Nothing left to resume.
            await self.store.complete_step(record.id)
            if await self.store.mark_completed(execution_id, completed_steps):
                logger.info("Execution completed on trailing delay", total_steps=total)
                return ExecutionStatus.COMPLETED
            return await self._current_status(execution_id)

        await self.store.record_step_output(
            execution_id, completed_steps, {"delay_minutes": minutes, "scheduled_for": scheduled_for.isoformat()}
        )
        await self.store.complete_step(record.id)
        if not await self.store.mark_scheduled(execution_id, completed_steps, scheduled_for):
            return await self._current_status(execution_id)

        logger.info("Execution suspended", resume_from_step=completed_steps, scheduled_for=scheduled_for.isoformat())
        await self.scheduler.schedule_resumption(execution_id, completed_steps, scheduled_for)
        return ExecutionStatus.SCHEDULED

    async def _fail(self, execution_id: str, record, error: str) -> ExecutionStatus:
        if record is not None:
            await self.store.fail_step(record.id, error)
        if await self.store.mark_failed(execution_id, error):
            return ExecutionStatus.FAILED
        return await self._current_status(execution_id)

    async def _current_status(self, execution_id: str) -> ExecutionStatus:
        execution = await self.store.get_execution(execution_id)
        if execution is None:
            return ExecutionStatus.FAILED
        return ExecutionStatus(execution.status)
