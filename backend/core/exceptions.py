"""Custom exceptions for the workflow automation engine.

Step and action failures are not exceptions: they are recorded on the
step and execution rows. The classes here are for conditions that must
reach the caller (API client, Celery worker).
"""


class WorkflowEngineException(Exception):
    """Base exception for the workflow automation engine."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code.

        Args:
            message: Exception message
            status_code: HTTP status code
        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(WorkflowEngineException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, 404)


class ValidationError(WorkflowEngineException):
    """Malformed trigger or resumption input."""

    def __init__(self, message: str = "Validation failed"):
        super().__init__(message, 422)


class DefinitionLookupError(WorkflowEngineException):
    """The workflow definition store could not be queried.

    Fatal to a whole dispatch: no executions are created.
    """

    def __init__(self, message: str = "Failed to load workflow definitions"):
        super().__init__(message, 500)


class ExecutionCreationError(WorkflowEngineException):
    """An execution row could not be created for one matched definition."""

    def __init__(self, message: str = "Failed to create execution"):
        super().__init__(message, 500)


class SchedulingError(WorkflowEngineException):
    """The continuation handoff to the timer/queue failed.

    Infrastructure failure, reported separately from workflow logic
    failures. The execution stays scheduled so the due sweep can pick it up.
    """

    def __init__(self, message: str = "Failed to schedule continuation"):
        super().__init__(message, 503)
