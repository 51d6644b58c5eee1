"""
Action Registry — maps step action names to their handlers.

The set of built-in actions is closed; extra actions can be registered
at startup. Lookups of unknown names never raise, they produce a
failed ActionResult.
"""

from typing import Dict, Optional, Type

from actions.base import ActionDependencies, ActionResult, BaseAction
from actions.implementations.notify import NOTIFY_ACTION_TYPES
from actions.implementations.records import RECORD_ACTION_TYPES


class ActionRegistry:
    """Central registry for step action implementations."""

    def __init__(self, deps: ActionDependencies):
        self.deps = deps
        self._actions: Dict[str, Type[BaseAction]] = {}
        self._register_builtin_actions()

    def _register_builtin_actions(self):
        """Register all built-in actions."""
        # Outbound messages
        for action_type, action_class in NOTIFY_ACTION_TYPES.items():
            self.register(action_type, action_class)

        # Business record updates
        for action_type, action_class in RECORD_ACTION_TYPES.items():
            self.register(action_type, action_class)

    def register(self, action_type: str, action_class: Type[BaseAction]):
        """Register a new action type."""
        self._actions[action_type] = action_class

    def get(self, action_type: str) -> Optional[Type[BaseAction]]:
        """Get an action class by name."""
        return self._actions.get(action_type)

    def create_instance(self, action_type: str) -> Optional[BaseAction]:
        """Create a new instance of an action by name."""
        action_class = self.get(action_type)
        if action_class:
            return action_class(self.deps)
        return None

    async def execute(self, action_type: str, params: dict, context: dict) -> ActionResult:
        """Run one action; never raises.

        Returns:
            The handler's result, or a failure for unknown action names
        """
        try:
            action = self.create_instance(action_type)
        except Exception as e:
            return ActionResult.fail(f"Failed to initialize action {action_type}: {e}", retryable=False)
        if action is None:
            return ActionResult.fail(f"Unknown action: {action_type}", retryable=False)
        return await action.run(params, context)

    def list_all(self) -> list:
        """List all registered actions with metadata."""
        return [
            {
                "action": action_type,
                "display_name": cls.display_name,
                "description": cls.description,
                "params_schema": cls.get_params_schema(),
            }
            for action_type, cls in self._actions.items()
        ]
