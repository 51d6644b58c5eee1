"""Worker-safe database sessions for Celery tasks and the poller thread.

Creates a fresh async engine per activation to avoid the 'Future attached
to a different loop' error when asyncpg connections are shared across
event loops in forked Celery workers.
"""

from contextlib import asynccontextmanager

from db.database import create_db_engine, create_session_factory


def _worker_engine():
    from app.config import get_settings

    url = get_settings().DATABASE_URL
    if url.startswith("sqlite"):
        return create_db_engine(url)
    return create_db_engine(url, pool_size=5, max_overflow=5, pool_recycle=300)


@asynccontextmanager
async def worker_session_factory():
    """Yield a session factory bound to a private engine.

    The engine is disposed when the block exits, so every activation
    opens and closes its own connections.

    Usage:
        async with worker_session_factory() as session_factory:
            runtime = create_runtime(session_factory)
            ...
    """
    engine = _worker_engine()
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()

