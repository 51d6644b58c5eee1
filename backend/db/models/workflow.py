"""WorkflowDefinition model."""

from typing import Optional

from sqlalchemy import JSON, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import BaseModel


class WorkflowDefinition(BaseModel):
    """A named, trigger-bound, ordered list of steps.

    The engine only reads definitions; authoring happens elsewhere.

    Attributes:
        workflow_key: Stable logical identifier reported in dispatch results
        name: Human-readable name
        trigger_type: Event category the definition listens to (e.g. "purchase")
        trigger_value: Event value within the category (e.g. a product SKU)
        is_active: Only active definitions are matched
        steps: Ordered list of {"action": str, "params": dict}
    """

    __tablename__ = "automation_workflows"
    __table_args__ = (
        Index("ix_automation_workflows_trigger", "trigger_type", "trigger_value", "is_active"),
    )

    workflow_key: Mapped[str] = mapped_column(unique=True, nullable=False)
    name: Mapped[str] = mapped_column(nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    trigger_type: Mapped[str] = mapped_column(nullable=False)
    trigger_value: Mapped[str] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True)
    steps: Mapped[list] = mapped_column(JSON, default=list)

    executions: Mapped[list["Execution"]] = relationship(
        "Execution", back_populates="workflow_definition", lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<WorkflowDefinition {self.workflow_key} ({self.trigger_type}={self.trigger_value})>"
