"""Structured logging configuration using structlog.

The API process and the Celery worker share one setup so that execution
and step events render the same way wherever a workflow activation runs.
"""

import logging
import sys

import structlog
from app.config import get_settings


_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "aiosqlite")


def setup_logging(level: str | None = None) -> None:
    """Configure structlog on top of the stdlib root logger.

    Development (or LOG_FORMAT=text) gets colored console output, everything
    else gets one JSON object per line.
    """
    settings = get_settings()

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development or settings.LOG_FORMAT == "text":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.DEBUG if settings.SQLALCHEMY_ECHO else logging.WARNING
    )
    logging.getLogger("celery").setLevel(logging.INFO)


def bind_execution(execution_id: str, **extra) -> None:
    """Attach an execution id to every log line of the current activation."""
    structlog.contextvars.bind_contextvars(execution_id=execution_id, **extra)


def clear_execution() -> None:
    structlog.contextvars.unbind_contextvars("execution_id", "workflow_key", "resume_from_step")
