"""
health_refresh.py
─────────────────
On-demand job that recalculates today's health snapshot for every active
company (or a single company) and upserts it into health_scores.

Usage:
  python -m healthops.services.health_refresh [company_id]
  OR via the API: POST /v1/health/calculate

Scheduling is left to whatever runs the command (cron, Kubernetes CronJob).
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

import structlog

from healthops.core.errors import EntityNotFoundError
from healthops.scoring.config import DEFAULT_CONFIG, HealthScoreConfig
from healthops.scoring.engine import calculate_health_score
from healthops.services.snapshots import local_date, upsert_daily_snapshot
from healthops.store.base import COMPANY, Store

logger = structlog.get_logger(__name__)

ACTIVE_COMPANY_STATUS = "active"


async def refresh_company(
    store: Store,
    company_id: str,
    now: datetime,
    config: HealthScoreConfig = DEFAULT_CONFIG,
    tz_name: str = "UTC",
) -> dict:
    if await store.get(COMPANY, company_id) is None:
        raise EntityNotFoundError(COMPANY, company_id)

    result = await calculate_health_score(company_id, store, config, now=now)
    snapshot, created = await upsert_daily_snapshot(store, result, now=now, tz_name=tz_name)
    return {
        "company_id": company_id,
        "snapshot_id": snapshot["id"],
        "overall_score": result.overall_score,
        "health_status": result.health_status.value,
        "action": "created" if created else "updated",
    }


async def run_refresh(
    store: Store,
    company_id: Optional[str] = None,
    now: Optional[datetime] = None,
    config: HealthScoreConfig = DEFAULT_CONFIG,
    tz_name: str = "UTC",
) -> dict:
    """
    Full refresh cycle:
      1. Pick the target companies (one id, or every active company)
      2. Score + upsert each, isolating per-company failures
      3. Return a summary

    Args:
        company_id: Restrict the run to one company
        now:        Override the calculation time (for backfill / tests)
    """
    now = now or datetime.now(timezone.utc)
    started_at = datetime.now(timezone.utc)

    if company_id is not None:
        company_ids = [company_id]
    else:
        companies = await store.query(COMPANY, [("status", "eq", ACTIVE_COMPANY_STATUS)], order_by="created_at")
        company_ids = [c["id"] for c in companies]

    logger.info("health_refresh_started", companies=len(company_ids), snapshot_date=local_date(now, tz_name).isoformat())

    results: list[dict] = []
    errors: list[dict] = []
    for cid in company_ids:
        try:
            results.append(await refresh_company(store, cid, now, config, tz_name))
        except Exception as e:
            logger.warning("health_refresh_company_failed", company_id=cid, error=str(e))
            errors.append({"company_id": cid, "error_message": str(e)})

    elapsed = (datetime.now(timezone.utc) - started_at).total_seconds()
    summary = {
        "snapshot_date":       local_date(now, tz_name).isoformat(),
        "companies_processed": len(company_ids),
        "created":             sum(1 for r in results if r["action"] == "created"),
        "updated":             sum(1 for r in results if r["action"] == "updated"),
        "failed":              len(errors),
        "elapsed_seconds":     round(elapsed, 2),
        "status":              "success" if not errors else ("failed" if not results else "partial"),
    }
    logger.info("health_refresh_complete", **summary)
    return {**summary, "results": results, "errors": errors}


async def _main(company_id: Optional[str]) -> dict:
    from healthops.core.config import get_settings
    from healthops.models.database import async_session_factory
    from healthops.store.sql import SQLAlchemyStore

    async with async_session_factory() as session:
        return await run_refresh(
            SQLAlchemyStore(session),
            company_id=company_id,
            tz_name=get_settings().snapshot_timezone,
        )


if __name__ == "__main__":
    import sys

    from healthops.core.logging import configure_logging

    configure_logging()
    try:
        result = asyncio.run(_main(sys.argv[1] if len(sys.argv) > 1 else None))
        print(f"✓ Health scores refreshed: {result['created']} created, {result['updated']} updated, "
              f"{result['failed']} failed ({result['elapsed_seconds']}s)")
    except Exception as e:
        print(f"✗ Refresh failed: {e}", file=sys.stderr)
        sys.exit(1)
    if result["failed"]:
        sys.exit(2)
