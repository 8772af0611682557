"""
Health snapshot persistence.

One snapshot per company per calendar day. "Day" is evaluated in the
configured snapshot timezone (Settings.snapshot_timezone, UTC by default):
a recalculation inside [local midnight, next local midnight) updates the
existing row, anything later inserts a new one.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import structlog

from healthops.schemas.health import HealthScoreResult
from healthops.store.base import HEALTH_SNAPSHOT, Record, Store

logger = structlog.get_logger()


def _zone(tz_name: str):
    return timezone.utc if tz_name.upper() == "UTC" else ZoneInfo(tz_name)


def local_date(moment: datetime, tz_name: str = "UTC") -> date:
    return moment.astimezone(_zone(tz_name)).date()


def day_bounds(day: date, tz_name: str = "UTC") -> tuple[datetime, datetime]:
    """[start, end) of a calendar day in tz_name, expressed in UTC."""
    zone = _zone(tz_name)
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


async def find_daily_snapshot(
    store: Store, company_id: str, day: date, tz_name: str = "UTC",
) -> Optional[Record]:
    start, end = day_bounds(day, tz_name)
    rows = await store.query(
        HEALTH_SNAPSHOT,
        [
            ("company_id", "eq", company_id),
            ("calculated_at", "gte", start),
            ("calculated_at", "lt", end),
        ],
        order_by="calculated_at",
        descending=True,
        limit=1,
    )
    return rows[0] if rows else None


async def upsert_daily_snapshot(
    store: Store,
    result: HealthScoreResult,
    now: Optional[datetime] = None,
    tz_name: str = "UTC",
) -> tuple[Record, bool]:
    """
    Write today's snapshot for result.company_id.
    Returns (snapshot, created); created is False when an existing same-day row was updated.
    """
    now = now or datetime.now(timezone.utc)
    values = result.snapshot_values()
    values["calculated_at"] = now

    existing = await find_daily_snapshot(store, result.company_id, local_date(now, tz_name), tz_name)
    if existing is not None:
        updated = await store.update(HEALTH_SNAPSHOT, existing["id"], values)
        if updated is not None:
            logger.info("health_snapshot_updated", company_id=result.company_id, snapshot_id=existing["id"])
            return updated, False

    created = await store.insert(HEALTH_SNAPSHOT, values)
    logger.info("health_snapshot_created", company_id=result.company_id, snapshot_id=created["id"])
    return created, True


async def latest_snapshot(
    store: Store, company_id: str, on_date: Optional[date] = None, tz_name: str = "UTC",
) -> Optional[Record]:
    if on_date is not None:
        return await find_daily_snapshot(store, company_id, on_date, tz_name)
    rows = await store.query(
        HEALTH_SNAPSHOT,
        [("company_id", "eq", company_id)],
        order_by="calculated_at",
        descending=True,
        limit=1,
    )
    return rows[0] if rows else None


async def snapshot_history(
    store: Store, company_id: str, start: datetime, end: Optional[datetime] = None, limit: int = 30,
) -> list[Record]:
    """Snapshots in [start, end), oldest first."""
    where = [("company_id", "eq", company_id), ("calculated_at", "gte", start)]
    if end is not None:
        where.append(("calculated_at", "lt", end))
    return await store.query(
        HEALTH_SNAPSHOT, where, order_by="calculated_at", limit=limit,
    )


SNAPSHOT_SORT_FIELDS = ("calculated_at", "overall_score")


async def list_snapshots(
    store: Store,
    health_status: Optional[str] = None,
    on_date: Optional[date] = None,
    sort_by: str = "calculated_at",
    descending: bool = True,
    limit: int = 50,
    offset: int = 0,
    tz_name: str = "UTC",
) -> tuple[list[Record], int]:
    """Snapshots across companies for reporting. Returns (page, total matching)."""
    if sort_by not in SNAPSHOT_SORT_FIELDS:
        sort_by = "calculated_at"

    where = []
    if health_status is not None:
        where.append(("health_status", "eq", health_status))
    if on_date is not None:
        start, end = day_bounds(on_date, tz_name)
        where += [("calculated_at", "gte", start), ("calculated_at", "lt", end)]

    rows = await store.query(
        HEALTH_SNAPSHOT, where, order_by=sort_by, descending=descending, limit=limit, offset=offset,
    )
    return rows, await store.count(HEALTH_SNAPSHOT, where)
