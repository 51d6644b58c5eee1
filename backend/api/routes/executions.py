"""Execution history and continuation endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from api.schemas.common import PaginationParams
from api.schemas.execution import (
    ExecutionDetailResponse,
    ExecutionListResponse,
    ExecutionResponse,
    ResumeDueResponse,
    ResumeOutcomeResponse,
    ResumeRequest,
    ResumeResponse,
    StepRecordResponse,
)
from app.dependencies import get_runtime
from core.constants import ExecutionStatus
from core.exceptions import NotFoundError, SchedulingError, ValidationError
from core.utils import calculate_offset
from workflow.runtime import WorkflowRuntime

logger = logging.getLogger(__name__)

router = APIRouter(tags=["executions"])

_RESUME_MESSAGES = {
    "resumed": "Execution resumed",
    "not_due": "Execution is not due yet",
    "skipped": "Execution already handled",
    "failed": "Resumption failed",
}


def _execution_to_response(ex) -> ExecutionResponse:
    return ExecutionResponse(
        id=ex.id,
        workflow_definition_id=ex.workflow_definition_id,
        status=ex.status,
        current_step=ex.current_step,
        total_steps=ex.total_steps,
        started_at=ex.started_at,
        completed_at=ex.completed_at,
        scheduled_for=ex.scheduled_for,
        error_message=ex.error_message,
    )


@router.get("/", response_model=ExecutionListResponse)
async def list_executions(
    pagination: PaginationParams = Depends(),
    workflow_definition_id: Optional[str] = Query(None, description="Filter by workflow definition"),
    exec_status: Optional[str] = Query(None, alias="status", description="Filter by execution status"),
    runtime: WorkflowRuntime = Depends(get_runtime),
) -> ExecutionListResponse:
    """
    List executions (paginated, newest first).
    """
    if exec_status and exec_status not in {s.value for s in ExecutionStatus}:
        raise ValidationError(f"Unknown execution status: {exec_status}")

    executions, total = await runtime.store.list_executions(
        filters={"workflow_definition_id": workflow_definition_id, "status": exec_status},
        offset=calculate_offset(pagination.page, pagination.per_page),
        limit=pagination.per_page,
    )
    return ExecutionListResponse(
        executions=[_execution_to_response(ex) for ex in executions],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )


@router.get("/{execution_id}", response_model=ExecutionDetailResponse)
async def get_execution(
    execution_id: str,
    runtime: WorkflowRuntime = Depends(get_runtime),
) -> ExecutionDetailResponse:
    """
    Get one execution with its step records.
    """
    execution = await runtime.store.get_execution(execution_id)
    if execution is None:
        raise NotFoundError(f"Execution not found: {execution_id}")
    steps = await runtime.store.list_steps(execution_id)

    summary = _execution_to_response(execution)
    return ExecutionDetailResponse(
        **summary.model_dump(),
        trigger_data=execution.trigger_data or {},
        context_data=execution.context_data or {},
        step_results=execution.step_results or {},
        steps=[StepRecordResponse.model_validate(s) for s in steps],
    )


@router.post("/resume", response_model=ResumeResponse)
async def resume_execution(
    body: ResumeRequest,
    runtime: WorkflowRuntime = Depends(get_runtime),
):
    """
    Continuation callback: resume a delayed execution from its cursor.

    Safe to call repeatedly; early or duplicate calls change nothing.
    """
    try:
        result = await runtime.resumption.resume(body.execution_id, body.resume_from_step, body.scheduled_for)
    except SchedulingError as e:
        logger.error(f"Resumed execution {body.execution_id} could not schedule its next continuation: {e.message}")
        return JSONResponse(
            status_code=e.status_code,
            content={
                "message": "Execution resumed but its next continuation could not be scheduled",
                "execution_id": body.execution_id,
                "outcome": "resumed",
                "status": ExecutionStatus.SCHEDULED.value,
                "error": e.message,
            },
        )

    data = result.to_dict()
    return ResumeResponse(message=_RESUME_MESSAGES[data["outcome"]], **data)


@router.post("/resume-due", response_model=ResumeDueResponse)
async def resume_due_executions(
    limit: Optional[int] = Query(None, ge=1, le=100, description="Max executions to resume"),
    runtime: WorkflowRuntime = Depends(get_runtime),
) -> ResumeDueResponse:
    """
    Resume every scheduled execution whose time has passed.
    """
    results = await runtime.resumption.resume_due(limit)
    return ResumeDueResponse(
        message="Scheduled workflows processed",
        processed=len(results),
        results=[ResumeOutcomeResponse(**r.to_dict()) for r in results],
    )
