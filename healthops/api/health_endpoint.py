"""
Health score API.

  GET  /v1/health               → snapshots across companies (filter, sort, page)
  POST /v1/health/calculate     → recalculate + upsert today's snapshot
  GET  /v1/health/{company_id}  → latest (or ?date=) snapshot + 30-day history
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from healthops.api.deps import get_store
from healthops.core.config import Settings, get_settings
from healthops.schemas.health import (
    CompanyHealthResponse,
    HealthCalculateRequest,
    HealthCalculateResponse,
    HealthHistoryPoint,
    HealthScoreListResponse,
    HealthSnapshot,
    HealthStatus,
)
from healthops.services import snapshots
from healthops.services.health_refresh import run_refresh
from healthops.store.base import COMPANY, Store

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/health", tags=["health"])

HISTORY_DAYS = 30


@router.get("", response_model=HealthScoreListResponse)
async def list_health_scores(
    health_status: Optional[HealthStatus] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    sort_by: str = Query("calculated_at", pattern="^(calculated_at|overall_score)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> HealthScoreListResponse:
    rows, total = await snapshots.list_snapshots(
        store,
        health_status=health_status.value if health_status else None,
        on_date=on_date,
        sort_by=sort_by,
        descending=sort_order == "desc",
        limit=limit,
        offset=offset,
        tz_name=settings.snapshot_timezone,
    )
    return HealthScoreListResponse(
        scores=[HealthSnapshot.model_validate(r) for r in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/calculate", response_model=HealthCalculateResponse)
async def calculate(
    request: HealthCalculateRequest,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> HealthCalculateResponse:
    if request.company_id is not None and await store.get(COMPANY, request.company_id) is None:
        raise HTTPException(404, "Company not found")

    logger.info("health_calculation_triggered", company_id=request.company_id or "all_active")
    result = await run_refresh(store, company_id=request.company_id, tz_name=settings.snapshot_timezone)

    return HealthCalculateResponse(
        success=True,
        snapshot_date=result["snapshot_date"],
        calculated=len(result["results"]),
        failed=result["failed"],
        results=result["results"],
        errors=result["errors"],
    )


@router.get("/{company_id}", response_model=CompanyHealthResponse)
async def get_company_health(
    company_id: str,
    on_date: Optional[date] = Query(None, alias="date"),
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> CompanyHealthResponse:
    if await store.get(COMPANY, company_id) is None:
        raise HTTPException(404, "Company not found")

    current = await snapshots.latest_snapshot(store, company_id, on_date=on_date, tz_name=settings.snapshot_timezone)
    if current is None:
        detail = f"No health score found for date {on_date}" if on_date else "No health score calculated yet"
        raise HTTPException(404, detail)

    since = datetime.now(timezone.utc) - timedelta(days=HISTORY_DAYS)
    history = await snapshots.snapshot_history(store, company_id, since, limit=HISTORY_DAYS)

    return CompanyHealthResponse(
        company_id=company_id,
        current_score=HealthSnapshot.model_validate(current),
        history=[HealthHistoryPoint.model_validate(h) for h in history],
    )
