"""StepRecord model: the audit row for one attempted step."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import StepStatus
from db.base import BaseModel


class StepRecord(BaseModel):
    """Per-step record of an execution.

    There is exactly one row per (execution_id, step_number); the unique
    constraint makes a duplicate activation fail loudly instead of
    silently re-running a step.

    Attributes:
        execution_id: Owning execution
        step_number: 1-based position in the execution's steps
        action: Action name as written in the definition
        params: Snapshot of the step parameters
        status: running, completed or failed
        error_message: Error returned by the action handler
        retry_count: Retries spent on this step
    """

    __tablename__ = "automation_execution_steps"
    __table_args__ = (
        UniqueConstraint("execution_id", "step_number", name="uq_execution_step_number"),
    )

    execution_id: Mapped[str] = mapped_column(
        ForeignKey("automation_executions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_number: Mapped[int] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(nullable=False, default="")
    params: Mapped[dict] = mapped_column(JSON, default=dict)
    status: Mapped[str] = mapped_column(default=StepStatus.RUNNING.value)
    started_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(default=0)

    execution: Mapped["Execution"] = relationship(
        "Execution", back_populates="steps", lazy="noload"
    )
