"""Execution model for the workflow automation engine."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import ExecutionStatus
from db.base import BaseModel


class Execution(BaseModel):
    """One run of a workflow definition for one trigger event.

    Attributes:
        workflow_definition_id: Definition this execution runs
        status: running, scheduled, completed or failed
        trigger_data: Raw trigger payload, never modified
        context_data: Data bag passed to every action
        steps_snapshot: Definition steps captured at start; resumptions run these
        current_step: Count of completed steps, i.e. the 0-based resume cursor
        step_results: Action outputs keyed by 1-based step number
        started_at: Activation start timestamp
        completed_at: Set when the execution reaches a terminal status
        error_message: Failure reason, copied from the failing step
        scheduled_for: Resumption time, set only while scheduled
    """

    __tablename__ = "automation_executions"
    __table_args__ = (
        Index("ix_automation_executions_due", "status", "scheduled_for"),
    )

    workflow_definition_id: Mapped[str] = mapped_column(
        ForeignKey("automation_workflows.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(default=ExecutionStatus.RUNNING.value, index=True)
    trigger_data: Mapped[dict] = mapped_column(JSON, default=dict)
    context_data: Mapped[dict] = mapped_column(JSON, default=dict)
    steps_snapshot: Mapped[list] = mapped_column(JSON, default=list)
    current_step: Mapped[int] = mapped_column(default=0)
    step_results: Mapped[dict] = mapped_column(JSON, default=dict)
    started_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scheduled_for: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    workflow_definition: Mapped["WorkflowDefinition"] = relationship(
        "WorkflowDefinition", back_populates="executions", lazy="selectin"
    )
    steps: Mapped[list["StepRecord"]] = relationship(
        "StepRecord",
        back_populates="execution",
        order_by="StepRecord.step_number",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    @property
    def total_steps(self) -> int:
        return len(self.steps_snapshot or [])
