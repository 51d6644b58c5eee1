"""Celery tasks for workflow activations.

Each task runs one activation in a fresh event loop with its own
database engine (see db.worker_session), so nothing leaks between
activations or across forked worker processes.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from core.exceptions import DefinitionLookupError, NotFoundError, SchedulingError
from worker.celery_app import celery_app

logger = logging.getLogger(__name__)


def _is_transient_error(exc: Exception) -> bool:
    """Check if an error is transient (worth retrying)."""
    transient_types = (ConnectionError, TimeoutError, OSError, DefinitionLookupError)
    error_msg = str(exc).lower()
    transient_keywords = ["connection", "timeout", "unavailable", "reset", "locked"]
    return isinstance(exc, transient_types) or any(kw in error_msg for kw in transient_keywords)


def _notifications():
    """Worker-side notification manager, configured on first use."""
    from app.config import get_settings
    from notifications.manager import get_notification_manager

    manager = get_notification_manager()
    if not manager.get_status()["initialized"]:
        manager.configure_from_settings(get_settings())
    return manager


def _run(coro):
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


# ─── Async bodies (shared with the in-process poller) ────────────

async def resume_execution_async(execution_id: str, resume_from_step: int, scheduled_for: Optional[datetime]) -> dict:
    from db.worker_session import worker_session_factory
    from workflow.runtime import create_runtime

    async with worker_session_factory() as session_factory:
        runtime = create_runtime(session_factory, notifications=_notifications())
        result = await runtime.resumption.resume(execution_id, resume_from_step, scheduled_for)
    return result.to_dict()


async def sweep_due_executions(limit: Optional[int] = None) -> list[dict]:
    """Resume every due scheduled execution; one result dict per execution."""
    from db.worker_session import worker_session_factory
    from workflow.runtime import create_runtime

    async with worker_session_factory() as session_factory:
        runtime = create_runtime(session_factory, notifications=_notifications())
        results = await runtime.resumption.resume_due(limit)
    return [r.to_dict() for r in results]


async def dispatch_trigger_async(trigger_type: str, trigger_value: str, context_data: dict) -> list[dict]:
    from db.worker_session import worker_session_factory
    from workflow.runtime import create_runtime

    async with worker_session_factory() as session_factory:
        runtime = create_runtime(session_factory, notifications=_notifications())
        results = await runtime.dispatcher.dispatch(trigger_type, trigger_value, context_data)
    return [r.to_dict() for r in results]


# ─── Tasks ───────────────────────────────────────────────────────

@celery_app.task(
    name="worker.tasks.workflow.resume_execution",
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    acks_late=True,
    queue="workflows",
)
def resume_execution(self, execution_id: str, resume_from_step: int, scheduled_for: Optional[str] = None):
    """Continue a delayed execution from its cursor.

    Args:
        execution_id: Execution to resume
        resume_from_step: 0-based index of the next step
        scheduled_for: ISO timestamp the resumption was scheduled for
    """
    due_at = datetime.fromisoformat(scheduled_for) if scheduled_for else None
    logger.info(f"Resuming execution {execution_id} from step {resume_from_step}")

    try:
        result = _run(resume_execution_async(execution_id, resume_from_step, due_at))
    except NotFoundError as exc:
        logger.warning(f"Resumption for unknown execution {execution_id}")
        return {"execution_id": execution_id, "outcome": "failed", "error": exc.message}
    except SchedulingError as exc:
        # Execution is persisted as scheduled; the due sweep will resume it.
        logger.error(f"Execution {execution_id}: continuation handoff failed: {exc.message}")
        return {"execution_id": execution_id, "outcome": "resumed", "status": "scheduled", "error": exc.message}
    except Exception as exc:
        logger.error(f"Resumption of {execution_id} failed: {exc}", exc_info=True)
        if self.request.retries < self.max_retries and _is_transient_error(exc):
            raise self.retry(exc=exc)
        return {"execution_id": execution_id, "outcome": "failed", "error": str(exc)}

    logger.info(f"Execution {execution_id} resumption: {result['outcome']} ({result['status']})")
    return result


@celery_app.task(
    name="worker.tasks.workflow.resume_due_executions",
    queue="workflows",
)
def resume_due_executions(limit: Optional[int] = None):
    """Periodic sweep: resume scheduled executions whose time has passed."""
    results = _run(sweep_due_executions(limit))
    if results:
        logger.info(f"Due sweep processed {len(results)} execution(s)")
    return {"processed": len(results), "results": results}


@celery_app.task(
    name="worker.tasks.workflow.dispatch_trigger",
    bind=True,
    max_retries=3,
    default_retry_delay=15,
    queue="triggers",
)
def dispatch_trigger(self, trigger_type: str, trigger_value: str, context_data: Optional[dict] = None):
    """Dispatch a trigger event received from a queue instead of HTTP."""
    try:
        results = _run(dispatch_trigger_async(trigger_type, trigger_value, context_data or {}))
    except Exception as exc:
        logger.error(f"Trigger dispatch {trigger_type}={trigger_value} failed: {exc}")
        if self.request.retries < self.max_retries and _is_transient_error(exc):
            raise self.retry(exc=exc)
        return {"error": str(exc), "results": []}

    logger.info(f"Trigger {trigger_type}={trigger_value} started {len(results)} workflow(s)")
    return {"results": results}
