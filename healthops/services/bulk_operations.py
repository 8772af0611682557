"""
Bulk operation vocabulary.

OPERATIONS maps (entity_type, operation) to its parameter record and its
per-entity handler. Each handler mutates exactly one entity and raises on
any failure; isolation and bookkeeping live in the processor.

  entity_type   operation              parameters
  ───────────────────────────────────────────────────────────────
  lead          change_status          status
  lead          add_tags / remove_tags tags[]
  lead          assign                 assignee_id
  lead          delete                 confirm=true
  lead          add_note               note, created_by?
  company       change_status          status
  company       add_tags / remove_tags tags[]
  company       recalculate_health     —
  company       assign_cs_manager      cs_manager_id
  company       add_note               note, created_by?
  subscription  change_plan            plan_id (effective_date / prorate ignored)
  subscription  change_billing_cycle   billing_cycle
  subscription  change_status          status
  subscription  extend_next_billing    days

Tag and note handlers are read-modify-write and not atomic: two concurrent
runs touching the same entity can lose one side's change.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from healthops.core.errors import EntityNotFoundError, OperationValidationError, UnknownOperationError
from healthops.schemas import bulk as params
from healthops.scoring.config import DEFAULT_CONFIG, HealthScoreConfig
from healthops.scoring.engine import calculate_health_score
from healthops.services.snapshots import upsert_daily_snapshot
from healthops.store.base import COMPANY, LEAD, SUBSCRIPTION, Record, Store

ENTITY_COLLECTIONS = {
    "lead": LEAD,
    "company": COMPANY,
    "subscription": SUBSCRIPTION,
}


@dataclass(frozen=True)
class OperationContext:
    store: Store
    collection: str
    now: datetime
    health_config: HealthScoreConfig = DEFAULT_CONFIG
    snapshot_timezone: str = "UTC"


Handler = Callable[[OperationContext, str, Any], Awaitable[None]]


@dataclass(frozen=True)
class OperationSpec:
    params_model: type[BaseModel]
    handler: Handler

    def parse(self, raw: Optional[dict]) -> BaseModel:
        try:
            return self.params_model.model_validate(raw or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'parameters'}: {err['msg']}"
                for err in e.errors()
            )
            raise OperationValidationError(f"Invalid parameters: {problems}") from None


# ── shared helpers ──

async def _require(ctx: OperationContext, entity_id: str) -> Record:
    record = await ctx.store.get(ctx.collection, entity_id)
    if record is None:
        raise EntityNotFoundError(ctx.collection, entity_id)
    return record


async def _update(ctx: OperationContext, entity_id: str, values: dict) -> None:
    if await ctx.store.update(ctx.collection, entity_id, values) is None:
        raise EntityNotFoundError(ctx.collection, entity_id)


def _set_field(field: str, attr: str) -> Handler:
    """Handler that copies one parameter attribute onto one entity field."""
    async def handler(ctx: OperationContext, entity_id: str, p: Any) -> None:
        value = getattr(p, attr)
        await _update(ctx, entity_id, {field: getattr(value, "value", value)})
    handler.__name__ = f"set_{field}"
    return handler


# ── tags / notes (read-modify-write) ──

async def add_tags(ctx: OperationContext, entity_id: str, p: params.TagParams) -> None:
    record = await _require(ctx, entity_id)
    current = list(record.get("tags") or [])
    # Union, keeping first-seen order
    await _update(ctx, entity_id, {"tags": list(dict.fromkeys(current + p.tags))})


async def remove_tags(ctx: OperationContext, entity_id: str, p: params.TagParams) -> None:
    record = await _require(ctx, entity_id)
    drop = set(p.tags)
    await _update(ctx, entity_id, {"tags": [t for t in (record.get("tags") or []) if t not in drop]})


async def add_note(ctx: OperationContext, entity_id: str, p: params.AddNoteParams) -> None:
    record = await _require(ctx, entity_id)
    metadata = dict(record.get("metadata") or {})
    notes = list(metadata.get("notes") or [])
    notes.append({
        "note": p.note,
        "created_by": p.created_by or "system",
        "created_at": ctx.now.isoformat(),
    })
    metadata["notes"] = notes
    await _update(ctx, entity_id, {"metadata": metadata})


# ── lead ──

async def delete_lead(ctx: OperationContext, entity_id: str, p: params.DeleteParams) -> None:
    if p.confirm is not True:
        raise OperationValidationError("Delete operation requires confirmation")
    if not await ctx.store.delete(ctx.collection, entity_id):
        raise EntityNotFoundError(ctx.collection, entity_id)


# ── company ──

async def recalculate_health(ctx: OperationContext, entity_id: str, p: params.NoParams) -> None:
    await _require(ctx, entity_id)
    result = await calculate_health_score(entity_id, ctx.store, ctx.health_config, now=ctx.now)
    await upsert_daily_snapshot(ctx.store, result, now=ctx.now, tz_name=ctx.snapshot_timezone)


# ── subscription ──

async def extend_next_billing(ctx: OperationContext, entity_id: str, p: params.ExtendNextBillingParams) -> None:
    record = await _require(ctx, entity_id)
    current = record.get("next_billing_date")
    if not current:
        raise OperationValidationError("Subscription has no next billing date")
    if isinstance(current, str):
        current = datetime.fromisoformat(current.replace("Z", "+00:00"))
    await _update(ctx, entity_id, {"next_billing_date": current + timedelta(days=p.days)})


OPERATIONS: dict[tuple[str, str], OperationSpec] = {
    ("lead", "change_status"): OperationSpec(params.ChangeStatusParams, _set_field("status", "status")),
    ("lead", "add_tags"): OperationSpec(params.TagParams, add_tags),
    ("lead", "remove_tags"): OperationSpec(params.TagParams, remove_tags),
    ("lead", "assign"): OperationSpec(params.AssignParams, _set_field("assigned_to", "assignee_id")),
    ("lead", "delete"): OperationSpec(params.DeleteParams, delete_lead),
    ("lead", "add_note"): OperationSpec(params.AddNoteParams, add_note),

    ("company", "change_status"): OperationSpec(params.ChangeStatusParams, _set_field("status", "status")),
    ("company", "add_tags"): OperationSpec(params.TagParams, add_tags),
    ("company", "remove_tags"): OperationSpec(params.TagParams, remove_tags),
    ("company", "recalculate_health"): OperationSpec(params.NoParams, recalculate_health),
    ("company", "assign_cs_manager"): OperationSpec(
        params.AssignCSManagerParams, _set_field("cs_manager_id", "cs_manager_id"),
    ),
    ("company", "add_note"): OperationSpec(params.AddNoteParams, add_note),

    ("subscription", "change_plan"): OperationSpec(params.ChangePlanParams, _set_field("plan_id", "plan_id")),
    ("subscription", "change_billing_cycle"): OperationSpec(
        params.ChangeBillingCycleParams, _set_field("billing_cycle", "billing_cycle"),
    ),
    ("subscription", "change_status"): OperationSpec(params.ChangeStatusParams, _set_field("status", "status")),
    ("subscription", "extend_next_billing"): OperationSpec(params.ExtendNextBillingParams, extend_next_billing),
}


def resolve(entity_type: str, operation: str) -> OperationSpec:
    spec = OPERATIONS.get((entity_type, operation))
    if spec is None:
        raise UnknownOperationError(entity_type, operation)
    return spec


def operations_for(entity_type: str) -> list[str]:
    return [op for (et, op) in OPERATIONS if et == entity_type]
