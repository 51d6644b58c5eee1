"""Database models for the workflow automation engine.

This module imports all models to ensure they are registered
with SQLAlchemy's declarative base.
"""

from db.models.workflow import WorkflowDefinition
from db.models.execution import Execution
from db.models.step_record import StepRecord
from db.models.client import Client

__all__ = [
    "WorkflowDefinition",
    "Execution",
    "StepRecord",
    "Client",
]
