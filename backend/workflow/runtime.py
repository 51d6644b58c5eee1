"""Runtime wiring — builds the engine components around one session factory.

The API process uses one long-lived runtime (get_workflow_runtime());
Celery tasks and the poller thread build a short-lived runtime per
activation on top of worker_session_factory().
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

from actions.base import ActionDependencies
from actions.registry import ActionRegistry
from core.utils import utcnow
from workflow.dispatcher import TriggerDispatcher
from workflow.engine import WorkflowEngine
from workflow.resumption import ResumptionService
from workflow.scheduler import BaseContinuationScheduler, create_scheduler
from workflow.store import ExecutionStore


@dataclass
class WorkflowRuntime:
    store: ExecutionStore
    registry: ActionRegistry
    scheduler: BaseContinuationScheduler
    engine: WorkflowEngine
    dispatcher: TriggerDispatcher
    resumption: ResumptionService


def create_runtime(
    session_factory,
    settings=None,
    notifications=None,
    scheduler: Optional[BaseContinuationScheduler] = None,
    clock: Callable[[], datetime] = utcnow,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> WorkflowRuntime:
    """Assemble store, registry, engine, dispatcher and resumption service.

    Args:
        session_factory: async_sessionmaker shared by the store and the actions
        settings: Settings instance (defaults to get_settings())
        notifications: NotificationManager (defaults to the process singleton)
        scheduler: Continuation scheduler (defaults to SCHEDULER_BACKEND)
        clock: Returns the current naive UTC time
        sleep: Retry back-off sleep
    """
    if settings is None:
        from app.config import get_settings

        settings = get_settings()
    if notifications is None:
        from notifications.manager import get_notification_manager

        notifications = get_notification_manager()
    if scheduler is None:
        scheduler = create_scheduler(settings.SCHEDULER_BACKEND)

    store = ExecutionStore(session_factory)
    registry = ActionRegistry(ActionDependencies(
        session_factory=session_factory,
        notifications=notifications,
        settings=settings,
    ))
    engine = WorkflowEngine(
        store,
        registry,
        scheduler,
        clock=clock,
        default_retry=settings.STEP_RETRY_PRESET,
        sleep=sleep,
    )
    return WorkflowRuntime(
        store=store,
        registry=registry,
        scheduler=scheduler,
        engine=engine,
        dispatcher=TriggerDispatcher(store, engine),
        resumption=ResumptionService(store, engine, clock=clock, batch_size=settings.SCHEDULER_BATCH_SIZE),
    )


# Singleton
_runtime: Optional[WorkflowRuntime] = None


def get_workflow_runtime() -> WorkflowRuntime:
    """Get or create the API process runtime."""
    global _runtime
    if _runtime is None:
        from db.database import AsyncSessionLocal

        _runtime = create_runtime(AsyncSessionLocal)
    return _runtime
