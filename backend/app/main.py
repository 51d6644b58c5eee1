"""Workflow Automation Engine - FastAPI Application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from api.v1.router import api_v1_router
from api.routes import health
from core.logging_config import setup_logging
from core.middleware import RequestTrackingMiddleware, setup_exception_handlers
from db.database import close_db, init_db
from notifications.manager import get_notification_manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = get_settings()
    setup_logging()

    try:
        settings.validate_delivery()
    except RuntimeError as e:
        logger.critical(f"[startup] FATAL: {e}")
        raise

    await init_db()

    get_notification_manager().configure_from_settings(settings)
    logger.info(f"[startup] Notification channels ready (email via {settings.EMAIL_DELIVERY})")

    poller_stop = None
    if settings.uses_polling_scheduler:
        poller_stop = _start_due_execution_poller(settings.SCHEDULER_POLL_INTERVAL_SECONDS)
        logger.info(
            f"[startup] Due-execution poller started ({settings.SCHEDULER_POLL_INTERVAL_SECONDS}s interval)"
        )
    else:
        logger.info("[startup] Continuations handed to Celery (beat runs the due sweep)")

    logger.info(f"[startup] {settings.APP_NAME} v{settings.APP_VERSION} started ({settings.ENVIRONMENT})")
    yield

    if poller_stop is not None:
        poller_stop.set()
    await close_db()
    logger.info("[shutdown] Application shutting down...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Trigger-driven workflow engine with durable delayed continuation.",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Request tracking middleware
    app.add_middleware(RequestTrackingMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.ALLOW_CREDENTIALS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    # Global exception handlers
    setup_exception_handlers(app)

    # Root health check (unversioned, for load balancers / k8s probes)
    app.include_router(health.router, prefix="/api", tags=["Health"])

    # Versioned API
    app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)

    return app


def _start_due_execution_poller(interval_seconds: int) -> "threading.Event":
    """Launch a daemon thread that resumes due executions periodically.

    Used when SCHEDULER_BACKEND=polling, so delayed executions resume
    without Celery beat. Returns a threading.Event that stops the poller.
    """
    import asyncio
    import threading

    from worker.tasks.workflow import sweep_due_executions

    stop_event = threading.Event()
    poller_logger = logging.getLogger("due-execution-poller")

    def _poller_loop():
        poller_logger.info("[poller] Background thread started")
        # Let startup finish first.
        stop_event.wait(timeout=5)

        while not stop_event.is_set():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            try:
                results = loop.run_until_complete(sweep_due_executions())
                if results:
                    poller_logger.info(f"[poller] Processed {len(results)} due execution(s)")
            except Exception as e:
                poller_logger.error(f"[poller] Error: {e}", exc_info=True)
            finally:
                loop.close()

            stop_event.wait(timeout=interval_seconds)

        poller_logger.info("[poller] Background thread stopped")

    t = threading.Thread(target=_poller_loop, daemon=True, name="due-execution-poller")
    t.start()
    return stop_event


app = create_app()
