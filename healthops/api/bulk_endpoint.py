"""
Bulk operations API.

  POST /v1/bulk/{entity_type}            → run one operation over a list of ids
  GET  /v1/bulk/operations               → run logs, newest first
  GET  /v1/bulk/operations/{operation_id} → one run log

The POST is synchronous: the caller gets the full per-item result once every
id has been attempted.
"""
from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from healthops.api.deps import get_store
from healthops.core.config import Settings, get_settings
from healthops.core.errors import OperationLogError
from healthops.schemas.bulk import (
    BulkOperationLog,
    BulkOperationRequest,
    BulkOperationResponse,
    BulkOperationsListResponse,
    BulkOperationStatus,
    EntityType,
)
from healthops.services.bulk_processor import BulkOperationProcessor, BulkProcessorConfig
from healthops.store.base import OPERATION_LOG, Store

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/bulk", tags=["bulk"])


@router.get("/operations", response_model=BulkOperationsListResponse)
async def list_operations(
    entity_type: Optional[EntityType] = None,
    status: Optional[BulkOperationStatus] = None,
    operation: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: Store = Depends(get_store),
) -> BulkOperationsListResponse:
    where = []
    if entity_type is not None:
        where.append(("entity_type", "eq", entity_type.value))
    if status is not None:
        where.append(("status", "eq", status.value))
    if operation:
        where.append(("operation", "eq", operation))

    rows = await store.query(
        OPERATION_LOG, where, order_by="created_at", descending=True, limit=limit, offset=offset,
    )
    total = await store.count(OPERATION_LOG, where)
    return BulkOperationsListResponse(
        operations=[BulkOperationLog.model_validate(r) for r in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/operations/{operation_id}", response_model=BulkOperationLog)
async def get_operation(operation_id: str, store: Store = Depends(get_store)) -> BulkOperationLog:
    row = await store.get(OPERATION_LOG, operation_id)
    if row is None:
        raise HTTPException(404, f"Bulk operation {operation_id} not found")
    return BulkOperationLog.model_validate(row)


@router.post(
    "/{entity_type}",
    response_model=BulkOperationResponse,
    summary="Apply one operation to many leads, companies or subscriptions",
    description=(
        "Each id is processed independently; failures are reported per id and never "
        "stop the run. Unknown operations fail every item rather than the request."
    ),
)
async def run_bulk_operation(
    entity_type: EntityType,
    request: BulkOperationRequest,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> BulkOperationResponse:
    logger.info(
        "bulk_operation_requested",
        entity_type=entity_type.value,
        operation=request.operation,
        total_count=len(request.entity_ids),
        executed_by=request.executed_by,
    )

    processor = BulkOperationProcessor(store, BulkProcessorConfig.from_settings(settings))
    try:
        return await processor.process_operation(
            entity_type.value,
            request.operation,
            request.entity_ids,
            request.parameters,
            request.executed_by,
        )
    except OperationLogError as e:
        raise HTTPException(status_code=500, detail=str(e))
