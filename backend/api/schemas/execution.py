"""Execution and step record schemas."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, List, Optional


class StepRecordResponse(BaseModel):
    """One attempted step."""

    id: str
    step_number: int = Field(description="1-based step position")
    action: str
    params: dict[str, Any] = Field(default_factory=dict)
    status: str = Field(description="running, completed or failed")
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    retry_count: int = 0

    class Config:
        from_attributes = True


class ExecutionResponse(BaseModel):
    """Execution summary."""

    id: str = Field(description="Execution ID")
    workflow_definition_id: str = Field(description="Workflow definition ID")
    status: str = Field(description="running, scheduled, completed or failed")
    current_step: int = Field(description="Number of completed steps")
    total_steps: int = Field(description="Steps in the execution's snapshot")
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    error_message: Optional[str] = None

    class Config:
        from_attributes = True


class ExecutionDetailResponse(ExecutionResponse):
    """Execution with its data and step records."""

    trigger_data: dict[str, Any] = Field(default_factory=dict)
    context_data: dict[str, Any] = Field(default_factory=dict)
    step_results: dict[str, Any] = Field(default_factory=dict)
    steps: List[StepRecordResponse] = Field(default_factory=list)


class ExecutionListResponse(BaseModel):
    """Paginated list of executions."""

    executions: List[ExecutionResponse] = Field(description="List of executions")
    total: int = Field(description="Total number of executions")
    page: int = Field(description="Current page number")
    per_page: int = Field(description="Items per page")


class ResumeRequest(BaseModel):
    """Continuation callback payload."""

    execution_id: str = Field(min_length=1)
    resume_from_step: int = Field(ge=0, description="0-based index of the next step")
    scheduled_for: Optional[datetime] = Field(default=None, description="Time the resumption was scheduled for")


class ResumeOutcomeResponse(BaseModel):
    """Outcome of one resumption."""

    execution_id: str
    outcome: str = Field(description="resumed, not_due, skipped or failed")
    status: Optional[str] = None
    error: Optional[str] = None


class ResumeResponse(ResumeOutcomeResponse):
    message: str


class ResumeDueResponse(BaseModel):
    message: str
    processed: int
    results: List[ResumeOutcomeResponse] = Field(default_factory=list)
