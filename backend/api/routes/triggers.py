"""Trigger dispatch endpoint.

Inbound business events (e.g. a completed purchase) are posted here and
start every active workflow bound to the event's type and value.
"""

import logging

from fastapi import APIRouter, Depends

from api.schemas.trigger import DispatchResponse, DispatchResultResponse, TriggerEvent
from app.dependencies import get_runtime
from workflow.runtime import WorkflowRuntime

logger = logging.getLogger(__name__)

router = APIRouter(tags=["triggers"])


@router.post("/dispatch", response_model=DispatchResponse)
async def dispatch_trigger(
    event: TriggerEvent,
    runtime: WorkflowRuntime = Depends(get_runtime),
) -> DispatchResponse:
    """
    Start all active workflows matching the event.

    A definition lookup failure returns 500 and starts nothing; failures of
    individual workflows are reported per result.
    """
    results = await runtime.dispatcher.dispatch(event.trigger_type, event.trigger_value, event.context_data)

    if not results:
        return DispatchResponse(message="No matching workflows found", results=[])

    logger.info(f"Trigger {event.trigger_type}={event.trigger_value} matched {len(results)} workflow(s)")
    return DispatchResponse(
        message="Workflows processed",
        results=[DispatchResultResponse(**r.to_dict()) for r in results],
    )


@router.get("/actions")
async def list_actions(runtime: WorkflowRuntime = Depends(get_runtime)) -> dict:
    """List the step actions workflows may use."""
    actions = runtime.registry.list_all()
    actions.append({
        "action": "delay",
        "display_name": "Delay",
        "description": "Suspend the execution and resume after params.minutes",
        "params_schema": {"type": "object", "properties": {"minutes": {"type": "number", "minimum": 0}}},
    })
    return {"actions": actions, "total": len(actions)}
