"""
Base action interface for workflow step handlers.

Every step action (send_email, assign_product, ...) inherits from
BaseAction and implements execute(). The engine only ever calls run(),
which guarantees that no exception escapes a handler.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class ActionResult:
    """Standardized result of one action invocation."""

    success: bool
    output: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    duration_ms: float = 0
    # False for failures no retry can fix (unknown action, bad params).
    retryable: bool = True

    @classmethod
    def ok(cls, **output) -> "ActionResult":
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str, retryable: bool = True) -> "ActionResult":
        return cls(success=False, error=error, retryable=retryable)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "duration_ms": round(self.duration_ms, 2),
        }


@dataclass
class ActionDependencies:
    """Collaborators handed to every action instance.

    Attributes:
        session_factory: async_sessionmaker for business-record writes
        notifications: NotificationManager used for outbound email
        settings: Application settings (admin address, links)
    """

    session_factory: Any
    notifications: Any
    settings: Any


class BaseAction(ABC):
    """
    Abstract base class for step actions.

    Subclasses must implement:
    - execute(params, context) -> ActionResult
    - action_type (class attribute)
    - display_name (class attribute)
    """

    action_type: str = "base"
    display_name: str = "Base Action"
    description: str = "Abstract base action"

    def __init__(self, deps: ActionDependencies):
        self.deps = deps

    @abstractmethod
    async def execute(
        self,
        params: Dict[str, Any],
        context: Dict[str, Any],
    ) -> ActionResult:
        """
        Perform the action.

        Args:
            params: Step parameters from the workflow definition
            context: Execution context_data (trigger payload and anything added to it)

        Returns:
            ActionResult with output or error
        """
        pass

    async def run(
        self,
        params: Optional[Dict[str, Any]],
        context: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        """
        Run the action with timing and error handling.

        This is the entry point called through the registry.
        """
        start = time.monotonic()
        try:
            logger.info("Action starting", action=self.action_type)
            result = await self.execute(params or {}, context or {})
            result.duration_ms = (time.monotonic() - start) * 1000

            logger.info(
                "Action finished",
                action=self.action_type,
                success=result.success,
                error=result.error,
                duration_ms=round(result.duration_ms, 2),
            )
            return result

        except Exception as e:
            duration_ms = (time.monotonic() - start) * 1000
            logger.error(
                "Action raised",
                action=self.action_type,
                error=str(e),
                duration_ms=round(duration_ms, 2),
            )
            return ActionResult(
                success=False,
                error=str(e) or type(e).__name__,
                duration_ms=duration_ms,
            )

    @classmethod
    def get_params_schema(cls) -> Dict[str, Any]:
        """
        Return JSON schema for the step params.

        Override in subclasses to define expected params shape.
        """
        return {"type": "object", "properties": {}}
