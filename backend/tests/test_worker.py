"""Tests for the Celery workflow tasks and their async bodies."""

from contextlib import asynccontextmanager
from datetime import datetime

import pytest

from core.constants import ExecutionStatus
from core.exceptions import DefinitionLookupError, NotFoundError, SchedulingError
from worker.celery_app import celery_app
from worker.tasks import workflow as workflow_tasks


@pytest.fixture
def worker_db(monkeypatch, session_factory):
    """Point worker activations at the test database."""

    @asynccontextmanager
    async def _factory():
        yield session_factory

    monkeypatch.setattr("db.worker_session.worker_session_factory", _factory)
    return session_factory


@pytest.mark.unit
class TestTransientErrors:
    @pytest.mark.parametrize("exc", [
        ConnectionError("refused"),
        TimeoutError(),
        DefinitionLookupError("Failed to load workflow definitions: database is locked"),
        RuntimeError("connection reset by peer"),
    ])
    def test_transient(self, exc):
        assert workflow_tasks._is_transient_error(exc) is True

    @pytest.mark.parametrize("exc", [ValueError("bad cursor"), KeyError("steps")])
    def test_permanent(self, exc):
        assert workflow_tasks._is_transient_error(exc) is False


@pytest.mark.unit
class TestCeleryConfig:
    def test_tasks_routed_and_scheduled(self):
        routes = celery_app.conf.task_routes
        assert routes["worker.tasks.workflow.dispatch_trigger"]["queue"] == "triggers"
        assert "resume-due-executions" in celery_app.conf.beat_schedule
        assert "worker.tasks.workflow.resume_execution" in celery_app.tasks

    def test_visibility_timeout_covers_long_delays(self):
        assert celery_app.conf.broker_transport_options["visibility_timeout"] >= 24 * 3600


@pytest.mark.unit
class TestResumeTask:
    def test_returns_resumption_result(self, monkeypatch):
        seen = {}

        async def _resume(execution_id, resume_from_step, scheduled_for):
            seen.update(execution_id=execution_id, step=resume_from_step, at=scheduled_for)
            return {"execution_id": execution_id, "outcome": "resumed", "status": "completed", "error": None}

        monkeypatch.setattr(workflow_tasks, "resume_execution_async", _resume)

        result = workflow_tasks.resume_execution("ex-1", 2, "2026-03-02T10:00:00")

        assert result["outcome"] == "resumed"
        assert seen == {"execution_id": "ex-1", "step": 2, "at": datetime(2026, 3, 2, 10, 0, 0)}

    def test_unknown_execution(self, monkeypatch):
        async def _resume(*args):
            raise NotFoundError("Execution not found: ex-1")

        monkeypatch.setattr(workflow_tasks, "resume_execution_async", _resume)

        result = workflow_tasks.resume_execution("ex-1", 2)

        assert result == {"execution_id": "ex-1", "outcome": "failed", "error": "Execution not found: ex-1"}

    def test_handoff_failure_is_not_retried(self, monkeypatch):
        async def _resume(*args):
            raise SchedulingError("Failed to schedule continuation: broker down")

        monkeypatch.setattr(workflow_tasks, "resume_execution_async", _resume)

        result = workflow_tasks.resume_execution("ex-1", 2)

        assert result["outcome"] == "resumed"
        assert result["status"] == "scheduled"

    def test_permanent_error_is_reported(self, monkeypatch):
        async def _resume(*args):
            raise ValueError("start_index 9 out of range for 3 steps")

        monkeypatch.setattr(workflow_tasks, "resume_execution_async", _resume)

        result = workflow_tasks.resume_execution("ex-1", 9)

        assert result["outcome"] == "failed"
        assert "out of range" in result["error"]

    def test_transient_error_is_retried(self, monkeypatch):
        async def _resume(*args):
            raise ConnectionError("database connection lost")

        monkeypatch.setattr(workflow_tasks, "resume_execution_async", _resume)

        # Called directly, Celery's retry re-raises the original error.
        with pytest.raises(ConnectionError):
            workflow_tasks.resume_execution("ex-1", 2)


@pytest.mark.integration
class TestWorkerBodies:
    async def test_sweep_resumes_due_executions(self, worker_db, runtime, start_execution):
        execution = await start_execution(
            [{"action": "delay", "params": {"minutes": 1}}, {"action": "mark_status", "params": {"target": "deal"}}],
            {"company_name": "Acme Corp"},
        )
        await runtime.store.mark_scheduled(execution.id, 1, datetime(2020, 1, 1))

        results = await workflow_tasks.sweep_due_executions()

        assert results == [{
            "execution_id": execution.id,
            "outcome": "resumed",
            "status": "completed",
            "error": None,
        }]
        stored = await runtime.store.get_execution(execution.id)
        assert stored.status == ExecutionStatus.COMPLETED.value

    async def test_resume_body(self, worker_db, runtime, start_execution):
        execution = await start_execution(
            [{"action": "delay", "params": {"minutes": 1}}, {"action": "mark_status", "params": {"target": "deal"}}]
        )
        await runtime.store.mark_scheduled(execution.id, 1, datetime(2020, 1, 1))

        result = await workflow_tasks.resume_execution_async(execution.id, 1, datetime(2020, 1, 1))

        assert result["outcome"] == "resumed"
        assert result["status"] == "completed"

    async def test_dispatch_body(self, worker_db, make_definition):
        await make_definition([{"action": "mark_status", "params": {"target": "deal"}}], workflow_key="queued")

        results = await workflow_tasks.dispatch_trigger_async("purchase", "SB553-PLAN", {})

        assert results[0]["workflow_key"] == "queued"
        assert results[0]["status"] == "started"
