"""Shared pytest fixtures for the Workflow Automation Engine test suite.

Provides:
- In-memory async SQLite database (no PostgreSQL needed for tests)
- A fully wired WorkflowRuntime with a fake clock, a recording
  continuation scheduler and a recording email channel
- FastAPI test client (httpx.AsyncClient) bound to that runtime
- Factories for workflow definitions and started executions
"""

import os
from datetime import datetime, timedelta
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

# Override settings BEFORE any app imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("SCHEDULER_BACKEND", "polling")
os.environ.setdefault("STEP_RETRY_PRESET", "none")
os.environ.setdefault("ADMIN_EMAIL", "ops@example.com")
os.environ.setdefault("PLAN_BUILDER_URL", "https://plans.example.com/builder")

from actions.base import ActionResult, BaseAction  # noqa: E402
from app.config import get_settings  # noqa: E402
from core.exceptions import SchedulingError  # noqa: E402
from db.base import Base  # noqa: E402
from db.database import create_session_factory  # noqa: E402
from notifications.channels import BaseChannel, DeliveryResult, NotificationChannel  # noqa: E402
from notifications.manager import NotificationManager  # noqa: E402
from workflow.runtime import create_runtime  # noqa: E402
from workflow.scheduler import BaseContinuationScheduler  # noqa: E402


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------

class FakeClock:
    """Controllable naive-UTC clock."""

    def __init__(self, now: datetime = None):
        self.now = now or datetime(2026, 3, 2, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingScheduler(BaseContinuationScheduler):
    """Captures continuation handoffs instead of enqueueing them."""

    name = "recording"

    def __init__(self):
        self.calls: list[tuple[str, int, datetime]] = []
        self.fail = False

    async def schedule_resumption(self, execution_id, resume_from_step, scheduled_for):
        if self.fail:
            raise SchedulingError("Failed to schedule continuation: broker unavailable")
        self.calls.append((execution_id, resume_from_step, scheduled_for))


class RecordingEmailChannel(BaseChannel):
    """Email channel that keeps sent notifications in memory."""

    channel_type = NotificationChannel.EMAIL

    def __init__(self):
        self.sent = []
        self.fail_with = None

    async def send(self, notification):
        if self.fail_with:
            return self._failed(notification.recipient, self.fail_with)
        self.sent.append(notification)
        return DeliveryResult(
            success=True,
            channel=self.channel_type,
            recipient=notification.recipient,
            message="recorded",
        )


class ContextProbeAction(BaseAction):
    """Records the params and context it was called with."""

    action_type = "probe"
    display_name = "Probe"
    calls: list = []

    async def execute(self, params, context):
        ContextProbeAction.calls.append({"params": dict(params), "context": dict(context)})
        return ActionResult.ok(seen=len(ContextProbeAction.calls))


class ExplodingAction(BaseAction):
    """Raises instead of returning a result."""

    action_type = "explode"

    async def execute(self, params, context):
        raise RuntimeError(params.get("message", "kaboom"))


def make_flaky_action(failures: int, error: str = "connection reset by peer"):
    """Build an action class that fails ``failures`` times before succeeding."""
    state = {"calls": 0}

    class FlakyAction(BaseAction):
        action_type = "flaky"

        async def execute(self, params, context):
            state["calls"] += 1
            if state["calls"] <= failures:
                return ActionResult.fail(error)
            return ActionResult.ok(calls=state["calls"])

    FlakyAction.state = state
    return FlakyAction


async def _no_sleep(delay: float) -> None:
    return None


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database per test; StaticPool keeps one shared connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )
    import db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """A session for arranging and inspecting data directly."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Runtime fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def email_channel():
    return RecordingEmailChannel()


@pytest.fixture
def notifications(email_channel):
    manager = NotificationManager()
    manager.register_channel(email_channel)
    return manager


@pytest.fixture
def runtime(session_factory, settings, notifications, scheduler, clock):
    ContextProbeAction.calls = []
    rt = create_runtime(
        session_factory,
        settings=settings,
        notifications=notifications,
        scheduler=scheduler,
        clock=clock,
        sleep=_no_sleep,
    )
    rt.registry.register("probe", ContextProbeAction)
    rt.registry.register("explode", ExplodingAction)
    return rt


@pytest.fixture
def make_definition(session_factory):
    """Factory: persist a workflow definition and return it."""

    async def _make(
        steps,
        trigger_type: str = "purchase",
        trigger_value: str = "SB553-PLAN",
        workflow_key: str = None,
        is_active: bool = True,
    ):
        from services.definition_service import WorkflowDefinitionService

        key = workflow_key or f"wf-{uuid4().hex[:8]}"
        async with session_factory() as session:
            definition = await WorkflowDefinitionService(session).create({
                "workflow_key": key,
                "name": key,
                "trigger_type": trigger_type,
                "trigger_value": trigger_value,
                "is_active": is_active,
                "steps": steps,
            })
            await session.commit()
        return definition

    return _make


@pytest.fixture
def start_execution(runtime, make_definition):
    """Factory: create a definition plus a running execution for it (not yet run)."""

    async def _start(steps, context_data=None):
        definition = await make_definition(steps)
        return await runtime.store.create_execution(definition, context_data or {})

    return _start


@pytest.fixture
def purchase_context():
    return {
        "customer_email": "buyer@acme.test",
        "customer_name": "Dana",
        "company_name": "Acme Corp",
        "amount": 299,
    }


# ---------------------------------------------------------------------------
# App / HTTP client fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app(runtime, session_factory):
    """FastAPI app whose dependencies point at the test runtime and database."""
    from app.dependencies import get_db, get_runtime
    from app.main import create_app

    test_app = create_app()

    async def _test_db():
        async with session_factory() as session:
            yield session
            await session.commit()

    test_app.dependency_overrides[get_runtime] = lambda: runtime
    test_app.dependency_overrides[get_db] = _test_db

    yield test_app

    test_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac
