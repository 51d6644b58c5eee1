"""FastAPI dependency injection functions."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from db.database import AsyncSessionLocal
from workflow.runtime import WorkflowRuntime, get_workflow_runtime

logger = logging.getLogger(__name__)


async def get_db() -> AsyncSession:
    """
    Provide a database session for API endpoints.

    Yields an async SQLAlchemy session that is automatically
    committed on success or rolled back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Database error: {str(e)}")
            await session.rollback()
            raise


def get_runtime() -> WorkflowRuntime:
    """Provide the process-wide workflow runtime (engine, dispatcher, resumption)."""
    return get_workflow_runtime()
