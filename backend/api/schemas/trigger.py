"""Trigger dispatch schemas."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class TriggerEvent(BaseModel):
    """Inbound business event."""

    trigger_type: str = Field(min_length=1, description="Event category, e.g. 'purchase'")
    trigger_value: str = Field(min_length=1, description="Event value, e.g. a product SKU")
    context_data: dict[str, Any] = Field(default_factory=dict, description="Event payload handed to every step")


class DispatchResultResponse(BaseModel):
    """Outcome for one matched workflow."""

    workflow_key: str = Field(description="Logical identifier of the matched workflow")
    execution_id: Optional[str] = Field(default=None, description="Created execution, if any")
    status: str = Field(description="started, failed or scheduling_failed")
    error: Optional[str] = Field(default=None, description="Failure reason")


class DispatchResponse(BaseModel):
    """Response of a trigger dispatch."""

    message: str
    results: List[DispatchResultResponse] = Field(default_factory=list)
