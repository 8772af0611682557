"""
HTTP surface, driven through httpx against the ASGI app.
"""
import pytest

from healthops.store.base import COMPANY, LEAD


class TestBulkAPI:

    @pytest.mark.asyncio
    async def test_partial_failure_response(self, client, store):
        for lead_id in ("A", "C"):
            await store.insert(LEAD, {"id": lead_id, "status": "new"})

        resp = await client.post("/v1/bulk/lead", json={
            "operation": "change_status",
            "entity_ids": ["A", "B", "C"],
            "parameters": {"status": "qualified"},
            "executed_by": "admin-1",
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["success_count"] == 2
        assert body["failed_count"] == 1
        assert body["errors"] == [{"entity_id": "B", "error_message": "lead B not found"}]

        log = await client.get(f"/v1/bulk/operations/{body['operation_id']}")
        assert log.status_code == 200
        assert log.json()["status"] == "completed"

    @pytest.mark.asyncio
    async def test_request_validation(self, client):
        resp = await client.post("/v1/bulk/lead", json={
            "operation": "delete", "entity_ids": [], "executed_by": "admin-1",
        })
        assert resp.status_code == 422

        resp = await client.post("/v1/bulk/invoice", json={
            "operation": "delete", "entity_ids": ["x"], "executed_by": "admin-1",
        })
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_list_operations_filters(self, client, store):
        await store.insert(LEAD, {"id": "A", "status": "new"})
        await client.post("/v1/bulk/lead", json={
            "operation": "assign", "entity_ids": ["A"], "parameters": {"assignee_id": "r1"}, "executed_by": "a",
        })
        await client.post("/v1/bulk/lead", json={
            "operation": "assign", "entity_ids": ["Z"], "parameters": {"assignee_id": "r1"}, "executed_by": "a",
        })

        resp = await client.get("/v1/bulk/operations")
        assert resp.json()["total"] == 2

        resp = await client.get("/v1/bulk/operations", params={"status": "failed"})
        body = resp.json()
        assert body["total"] == 1
        assert body["operations"][0]["entity_ids"] == ["Z"]

        resp = await client.get("/v1/bulk/operations", params={"entity_type": "company"})
        assert resp.json()["operations"] == []

    @pytest.mark.asyncio
    async def test_unknown_log_is_404(self, client):
        resp = await client.get("/v1/bulk/operations/does-not-exist")
        assert resp.status_code == 404


class TestHealthAPI:

    @pytest.mark.asyncio
    async def test_calculate_then_read(self, client, store):
        await store.insert(COMPANY, {"id": "C1", "status": "active"})

        resp = await client.get("/v1/health/C1")
        assert resp.status_code == 404

        resp = await client.post("/v1/health/calculate", json={"company_id": "C1"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["calculated"] == 1
        assert body["results"][0]["action"] == "created"

        resp = await client.post("/v1/health/calculate", json={"company_id": "C1"})
        assert resp.json()["results"][0]["action"] == "updated"

        resp = await client.get("/v1/health/C1")
        assert resp.status_code == 200
        body = resp.json()
        assert body["current_score"]["company_id"] == "C1"
        assert body["current_score"]["health_status"] == "critical"
        assert body["current_score"]["risk_factors"][0]["type"] == "no_users"
        assert len(body["history"]) == 1

    @pytest.mark.asyncio
    async def test_calculate_all_active(self, client, store):
        await store.insert(COMPANY, {"id": "C1", "status": "active"})
        await store.insert(COMPANY, {"id": "C2", "status": "suspended"})
        resp = await client.post("/v1/health/calculate", json={})
        assert resp.json()["calculated"] == 1

    @pytest.mark.asyncio
    async def test_unknown_company(self, client):
        assert (await client.post("/v1/health/calculate", json={"company_id": "nope"})).status_code == 404
        assert (await client.get("/v1/health/nope")).status_code == 404

    @pytest.mark.asyncio
    async def test_no_snapshot_on_date(self, client, store):
        await store.insert(COMPANY, {"id": "C1", "status": "active"})
        await client.post("/v1/health/calculate", json={"company_id": "C1"})
        resp = await client.get("/v1/health/C1", params={"date": "2001-01-01"})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "No health score found for date 2001-01-01"


class TestHealthListAPI:

    @pytest.mark.asyncio
    async def test_lists_across_companies(self, client, store):
        for company_id in ("C1", "C2"):
            await store.insert(COMPANY, {"id": company_id, "status": "active"})
        await client.post("/v1/health/calculate", json={})

        resp = await client.get("/v1/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 2
        assert {s["company_id"] for s in body["scores"]} == {"C1", "C2"}

        resp = await client.get("/v1/health", params={"health_status": "excellent"})
        assert resp.json()["total"] == 0

        resp = await client.get("/v1/health", params={"limit": 1, "sort_by": "overall_score", "sort_order": "asc"})
        body = resp.json()
        assert body["total"] == 2
        assert len(body["scores"]) == 1

    @pytest.mark.asyncio
    async def test_rejects_bad_query(self, client):
        assert (await client.get("/v1/health", params={"sort_by": "name"})).status_code == 422
        assert (await client.get("/v1/health", params={"limit": 500})).status_code == 422


class TestLiveness:

    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
