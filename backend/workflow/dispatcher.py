"""Trigger Dispatcher — matches an event to workflow definitions and starts them.

For every active definition whose (trigger_type, trigger_value) equals
the event's, one execution is created and run from step 0. Definitions
are isolated from each other: a failure creating or running one is
reported in its result and never affects the others.
"""

from dataclasses import dataclass
from typing import Any, Optional

import structlog

from core.constants import DispatchStatus
from core.exceptions import SchedulingError, ValidationError

logger = structlog.get_logger(__name__)


@dataclass
class DispatchResult:
    """Per-definition result of a dispatch."""
    workflow_key: str
    status: DispatchStatus
    execution_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"workflow_key": self.workflow_key, "status": self.status.value}
        if self.execution_id is not None:
            data["execution_id"] = self.execution_id
        if self.error is not None:
            data["error"] = self.error
        return data


class TriggerDispatcher:
    """Entry point for inbound trigger events."""

    def __init__(self, store, engine):
        self.store = store
        self.engine = engine

    async def dispatch(self, trigger_type: str, trigger_value: str, context_data: Optional[dict[str, Any]] = None) -> list[DispatchResult]:
        """Start every active workflow bound to the trigger.

        Returns:
            One DispatchResult per matched definition; empty when nothing matches

        Raises:
            ValidationError: Malformed trigger input
            DefinitionLookupError: Definitions could not be loaded; nothing was started
        """
        if not isinstance(trigger_type, str) or not trigger_type:
            raise ValidationError("trigger_type must be a non-empty string")
        if not isinstance(trigger_value, str) or not trigger_value:
            raise ValidationError("trigger_value must be a non-empty string")
        if context_data is None:
            context_data = {}
        if not isinstance(context_data, dict):
            raise ValidationError("context_data must be an object")

        log = logger.bind(trigger_type=trigger_type, trigger_value=trigger_value)
        definitions = await self.store.find_active_definitions(trigger_type, trigger_value)
        if not definitions:
            log.info("No matching workflows")
            return []

        log.info("Dispatching trigger", matched=len(definitions))
        results = []
        for definition in definitions:
            results.append(await self._start(definition, context_data))
        return results

    async def _start(self, definition, context_data: dict) -> DispatchResult:
        key = definition.workflow_key
        try:
            execution = await self.store.create_execution(definition, context_data)
        except Exception as e:
            logger.error("Execution creation failed", workflow_key=key, error=str(e))
            return DispatchResult(workflow_key=key, status=DispatchStatus.FAILED, error=str(e))

        try:
            await self.engine.run(execution.id, list(execution.steps_snapshot or []), 0, execution.context_data)
        except SchedulingError as e:
            # The execution is persisted as scheduled; only the handoff failed.
            return DispatchResult(
                workflow_key=key,
                status=DispatchStatus.SCHEDULING_FAILED,
                execution_id=execution.id,
                error=e.message,
            )
        except Exception as e:
            logger.error("Execution run raised", workflow_key=key, execution_id=execution.id, error=str(e), exc_info=True)
            try:
                await self.store.mark_failed(execution.id, str(e))
            except Exception as mark_error:
                logger.error("Could not mark execution failed", execution_id=execution.id, error=str(mark_error))
            return DispatchResult(workflow_key=key, status=DispatchStatus.FAILED, execution_id=execution.id, error=str(e))

        return DispatchResult(workflow_key=key, status=DispatchStatus.STARTED, execution_id=execution.id)
