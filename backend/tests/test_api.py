"""API integration tests for triggers, executions and health endpoints."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from conftest import ContextProbeAction

DISPATCH_URL = "/api/v1/triggers/dispatch"
EXECUTIONS_URL = "/api/v1/executions/"

PURCHASE_EVENT = {
    "trigger_type": "purchase",
    "trigger_value": "SB553-PLAN",
    "context_data": {"company_name": "Acme Corp", "customer_email": "buyer@acme.test"},
}


@pytest.mark.integration
class TestHealthAPI:
    async def test_liveness(self, client):
        resp = await client.get("/api/health/")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["app"] == "Workflow Automation Engine"

    async def test_dependency_check(self, client):
        resp = await client.get("/api/v1/health/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["database"] == "ok"
        assert data["redis"] == "not_required"
        assert data["status"] == "healthy"

    async def test_status(self, client):
        resp = await client.get("/api/health/status")
        assert resp.status_code == 200
        assert resp.json()["scheduler"]["backend"] == "polling"

    async def test_request_id_echoed(self, client):
        resp = await client.get("/api/health/", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"
        assert "X-Process-Time" in resp.headers


@pytest.mark.integration
class TestTriggerAPI:
    async def test_no_matching_workflows(self, client):
        resp = await client.post(DISPATCH_URL, json=PURCHASE_EVENT)
        assert resp.status_code == 200
        assert resp.json() == {"message": "No matching workflows found", "results": []}

    async def test_dispatch_starts_workflows(self, client, make_definition):
        await make_definition([{"action": "probe"}], workflow_key="sb553-purchase-onboarding")

        resp = await client.post(DISPATCH_URL, json=PURCHASE_EVENT)

        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Workflows processed"
        assert len(data["results"]) == 1
        result = data["results"][0]
        assert result["workflow_key"] == "sb553-purchase-onboarding"
        assert result["status"] == "started"
        assert result["execution_id"]
        assert ContextProbeAction.calls[0]["context"] == PURCHASE_EVENT["context_data"]

    async def test_step_failure_is_not_an_http_error(self, client, make_definition):
        await make_definition([{"action": "explode"}])

        resp = await client.post(DISPATCH_URL, json=PURCHASE_EVENT)

        assert resp.status_code == 200
        assert resp.json()["results"][0]["status"] == "started"

    async def test_scheduling_failure_reported(self, client, make_definition, scheduler):
        scheduler.fail = True
        await make_definition([{"action": "delay", "params": {"minutes": 60}}, {"action": "probe"}])

        resp = await client.post(DISPATCH_URL, json=PURCHASE_EVENT)

        assert resp.status_code == 200
        result = resp.json()["results"][0]
        assert result["status"] == "scheduling_failed"
        assert "Failed to schedule continuation" in result["error"]

    @pytest.mark.parametrize("payload", [
        {"trigger_type": "", "trigger_value": "SB553-PLAN"},
        {"trigger_value": "SB553-PLAN"},
        {"trigger_type": "purchase", "trigger_value": "SB553-PLAN", "context_data": "nope"},
    ])
    async def test_malformed_event(self, client, payload):
        resp = await client.post(DISPATCH_URL, json=payload)
        assert resp.status_code == 422

    async def test_lookup_failure_returns_500(self, client, monkeypatch):
        async def _broken(self, trigger_type, trigger_value):
            raise OperationalError("SELECT", {}, Exception("no such table"))

        monkeypatch.setattr(
            "services.definition_service.WorkflowDefinitionService.find_active_by_trigger", _broken
        )

        resp = await client.post(DISPATCH_URL, json=PURCHASE_EVENT)

        assert resp.status_code == 500
        assert "Failed to load workflow definitions" in resp.json()["error"]

    async def test_list_actions(self, client):
        resp = await client.get("/api/v1/triggers/actions")
        assert resp.status_code == 200
        names = {a["action"] for a in resp.json()["actions"]}
        assert {"send_email", "assign_product", "generate_plan", "internal_notify", "mark_status", "delay"} <= names


@pytest.mark.integration
class TestExecutionsAPI:
    async def _dispatch_delayed(self, client, make_definition):
        await make_definition([
            {"action": "probe"},
            {"action": "delay", "params": {"minutes": 60}},
            {"action": "probe"},
        ])
        resp = await client.post(DISPATCH_URL, json=PURCHASE_EVENT)
        return resp.json()["results"][0]["execution_id"]

    async def test_list_and_filter(self, client, make_definition):
        await make_definition([{"action": "probe"}])
        await client.post(DISPATCH_URL, json=PURCHASE_EVENT)
        await client.post(DISPATCH_URL, json=PURCHASE_EVENT)

        resp = await client.get(EXECUTIONS_URL)
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 2
        assert data["page"] == 1

        resp = await client.get(EXECUTIONS_URL, params={"status": "failed"})
        assert resp.json()["total"] == 0

        resp = await client.get(EXECUTIONS_URL, params={"status": "exploded"})
        assert resp.status_code == 422

    async def test_detail_includes_steps(self, client, make_definition):
        execution_id = await self._dispatch_delayed(client, make_definition)

        resp = await client.get(f"{EXECUTIONS_URL}{execution_id}")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "scheduled"
        assert data["current_step"] == 2
        assert data["total_steps"] == 3
        assert data["scheduled_for"] is not None
        assert data["context_data"] == PURCHASE_EVENT["context_data"]
        assert [s["action"] for s in data["steps"]] == ["probe", "delay"]

    async def test_detail_not_found(self, client):
        resp = await client.get(f"{EXECUTIONS_URL}missing")
        assert resp.status_code == 404
        assert "Execution not found" in resp.json()["detail"]

    async def test_resume_flow(self, client, make_definition, clock):
        execution_id = await self._dispatch_delayed(client, make_definition)
        body = {"execution_id": execution_id, "resume_from_step": 2}

        early = await client.post(f"{EXECUTIONS_URL}resume", json=body)
        assert early.status_code == 200
        assert early.json()["outcome"] == "not_due"
        assert early.json()["message"] == "Execution is not due yet"

        clock.advance(minutes=60)
        resumed = await client.post(f"{EXECUTIONS_URL}resume", json=body)
        assert resumed.json()["outcome"] == "resumed"
        assert resumed.json()["status"] == "completed"

        duplicate = await client.post(f"{EXECUTIONS_URL}resume", json=body)
        assert duplicate.json()["outcome"] == "skipped"
        assert len(ContextProbeAction.calls) == 2

    async def test_resume_with_future_scheduled_for(self, client, make_definition, clock):
        execution_id = await self._dispatch_delayed(client, make_definition)
        future = (clock.now + timedelta(minutes=5)).isoformat()

        resp = await client.post(
            f"{EXECUTIONS_URL}resume",
            json={"execution_id": execution_id, "resume_from_step": 2, "scheduled_for": future},
        )

        assert resp.json()["outcome"] == "not_due"

    async def test_resume_unknown_execution(self, client):
        resp = await client.post(f"{EXECUTIONS_URL}resume", json={"execution_id": "missing", "resume_from_step": 0})
        assert resp.status_code == 404

    async def test_resume_negative_step(self, client):
        resp = await client.post(f"{EXECUTIONS_URL}resume", json={"execution_id": "x", "resume_from_step": -1})
        assert resp.status_code == 422

    async def test_resume_scheduling_failure_returns_503(self, client, make_definition, scheduler, clock):
        await make_definition([
            {"action": "delay", "params": {"minutes": 1}},
            {"action": "delay", "params": {"minutes": 1}},
            {"action": "probe"},
        ])
        execution_id = (await client.post(DISPATCH_URL, json=PURCHASE_EVENT)).json()["results"][0]["execution_id"]
        clock.advance(minutes=1)
        scheduler.fail = True

        resp = await client.post(
            f"{EXECUTIONS_URL}resume", json={"execution_id": execution_id, "resume_from_step": 1}
        )

        assert resp.status_code == 503
        data = resp.json()
        assert data["outcome"] == "resumed"
        assert data["status"] == "scheduled"

    async def test_resume_due(self, client, make_definition, clock):
        execution_id = await self._dispatch_delayed(client, make_definition)

        nothing = await client.post(f"{EXECUTIONS_URL}resume-due")
        assert nothing.json()["processed"] == 0

        clock.advance(hours=1)
        resp = await client.post(f"{EXECUTIONS_URL}resume-due", params={"limit": 5})

        assert resp.status_code == 200
        data = resp.json()
        assert data["processed"] == 1
        assert data["results"][0]["execution_id"] == execution_id
        assert data["results"][0]["status"] == "completed"
