"""Celery application configuration.

This module sets up the Celery app with:
- Redis as broker and result backend
- Task routing to the workflows and triggers queues
- Serialization and timezone settings
- Beat schedule for the due-execution sweep
"""

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "workflow_engine",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task routing
    task_routes={
        "worker.tasks.workflow.dispatch_trigger": {"queue": "triggers"},
        "worker.tasks.workflow.*": {"queue": "workflows"},
    },
    task_default_queue="workflows",

    # Result expiration (24 hours)
    result_expires=86400,

    # Task execution limits
    task_soft_time_limit=300,
    task_time_limit=600,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,

    # Resumption tasks carry an ETA; keep them invisible to other workers
    # for longer than the longest delay we expect.
    broker_transport_options={"visibility_timeout": 7 * 24 * 3600},

    beat_schedule={
        "resume-due-executions": {
            "task": "worker.tasks.workflow.resume_due_executions",
            "schedule": crontab(minute="*/1"),
            "options": {"queue": "workflows"},
        },
    },

    include=[
        "worker.tasks.workflow",
    ],
)


@celery_setup_logging.connect
def _configure_logging(**kwargs):
    from core.logging_config import setup_logging

    setup_logging()
