"""
Health refresh job: active-company selection, upsert actions, failure isolation.
"""
from datetime import timedelta

import pytest

from healthops.core.errors import EntityNotFoundError
from healthops.services.health_refresh import refresh_company, run_refresh
from healthops.store.base import COMPANY, HEALTH_SNAPSHOT


async def _companies(store, now):
    await store.insert(COMPANY, {"id": "C1", "status": "active", "created_at": now - timedelta(days=3)})
    await store.insert(COMPANY, {"id": "C2", "status": "active", "created_at": now - timedelta(days=2)})
    await store.insert(COMPANY, {"id": "C3", "status": "churned", "created_at": now - timedelta(days=1)})


class TestRefresh:

    @pytest.mark.asyncio
    async def test_all_active_companies(self, store, now):
        await _companies(store, now)
        result = await run_refresh(store, now=now)

        assert result["status"] == "success"
        assert result["companies_processed"] == 2
        assert result["created"] == 2
        assert result["snapshot_date"] == "2026-03-10"
        assert [r["company_id"] for r in result["results"]] == ["C1", "C2"]
        assert await store.count(HEALTH_SNAPSHOT, [("company_id", "eq", "C3")]) == 0

    @pytest.mark.asyncio
    async def test_rerun_same_day_updates(self, store, now):
        await _companies(store, now)
        await run_refresh(store, now=now)
        result = await run_refresh(store, now=now + timedelta(hours=2))

        assert result["created"] == 0
        assert result["updated"] == 2
        assert {r["action"] for r in result["results"]} == {"updated"}
        assert await store.count(HEALTH_SNAPSHOT) == 2

    @pytest.mark.asyncio
    async def test_single_company_even_if_inactive(self, store, now):
        await _companies(store, now)
        result = await run_refresh(store, company_id="C3", now=now)
        assert result["results"][0]["company_id"] == "C3"
        assert result["results"][0]["health_status"] == "critical"

    @pytest.mark.asyncio
    async def test_missing_company_reported(self, store, now):
        result = await run_refresh(store, company_id="ghost", now=now)
        assert result["status"] == "failed"
        assert result["errors"] == [{"company_id": "ghost", "error_message": "company ghost not found"}]

    @pytest.mark.asyncio
    async def test_refresh_company_raises_for_missing(self, store, now):
        with pytest.raises(EntityNotFoundError):
            await refresh_company(store, "ghost", now)
