"""Constants and enums for the workflow automation engine."""

from enum import Enum


class ExecutionStatus(str, Enum):
    """Workflow execution status.

    running -> scheduled -> running ... -> completed | failed
    """

    RUNNING = "running"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    FAILED = "failed"


class StepStatus(str, Enum):
    """Status of a single step record."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ActionType(str, Enum):
    """Built-in step actions."""

    SEND_EMAIL = "send_email"
    ASSIGN_PRODUCT = "assign_product"
    GENERATE_PLAN = "generate_plan"
    INTERNAL_NOTIFY = "internal_notify"
    MARK_STATUS = "mark_status"
    DELAY = "delay"


class DispatchStatus(str, Enum):
    """Per-definition outcome of a trigger dispatch."""

    STARTED = "started"
    FAILED = "failed"
    SCHEDULING_FAILED = "scheduling_failed"


class ResumeOutcome(str, Enum):
    """Outcome of a continuation re-entry."""

    RESUMED = "resumed"
    NOT_DUE = "not_due"
    SKIPPED = "skipped"
    FAILED = "failed"


class ClientStatus(str, Enum):
    PROSPECT = "prospect"
    ACTIVE = "active"
    CHURNED = "churned"


# Products that assign_product knows a display name for.
PRODUCT_CATALOG: dict[str, str] = {
    "SB553-PLAN": "SB 553 Workplace Violence Prevention Plan",
}

DEFAULT_CURRENCY = "USD"
