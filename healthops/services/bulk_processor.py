"""
Bulk Operation Processor

Applies one named operation, with shared parameters, to a list of entity ids:
  1. Create the run log in `processing` with zero counts (failure aborts the run)
  2. Walk the ids in batches of `batch_size`, in input order
  3. Run each item in isolation; any exception becomes an error_details entry
  4. Finalise the log exactly once: `failed` iff every item failed, else `completed`
  5. Return a BulkOperationResponse with a human-readable summary

Batches exist for log granularity only. With max_concurrency > 1 the items of
one batch run concurrently under a semaphore; error_details still follows
input order. Stores that declare supports_concurrency = False (one shared
session) are always driven sequentially. A run cannot be cancelled once started.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

import structlog

from healthops.core.config import Settings, get_settings
from healthops.core.errors import OperationLogError, OperationValidationError
from healthops.core.metrics import BULK_ITEMS, BULK_RUN_SECONDS, BULK_RUNS
from healthops.schemas.bulk import BulkOperationResponse, BulkOperationStatus, ErrorDetail
from healthops.scoring.config import DEFAULT_CONFIG, HealthScoreConfig
from healthops.services import bulk_operations
from healthops.services.bulk_operations import ENTITY_COLLECTIONS, OperationContext
from healthops.store.base import OPERATION_LOG, Record, Store

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BulkProcessorConfig:
    batch_size: int = 100
    max_concurrency: int = 1
    snapshot_timezone: str = "UTC"

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")

    @classmethod
    def from_settings(cls, settings: Settings) -> "BulkProcessorConfig":
        return cls(
            batch_size=settings.bulk_batch_size,
            max_concurrency=settings.bulk_max_concurrency,
            snapshot_timezone=settings.snapshot_timezone,
        )


def summary_message(total: int, success_count: int, failed_count: int) -> str:
    if failed_count == 0:
        return f"All {total} items processed successfully"
    if success_count == 0:
        return f"All {total} items failed"
    return f"{success_count} succeeded, {failed_count} failed (partial success)"


def terminal_status(total: int, failed_count: int) -> BulkOperationStatus:
    # Partial success is still `completed`; only the counts tell it apart from full success.
    if failed_count == total:
        return BulkOperationStatus.FAILED
    return BulkOperationStatus.COMPLETED


class BulkOperationProcessor:

    def __init__(
        self,
        store: Store,
        config: Optional[BulkProcessorConfig] = None,
        health_config: HealthScoreConfig = DEFAULT_CONFIG,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.config = config or BulkProcessorConfig.from_settings(get_settings())
        self.health_config = health_config
        self.clock = clock
        self.max_concurrency = self.config.max_concurrency
        if self.max_concurrency > 1 and not getattr(store, "supports_concurrency", False):
            logger.warning(
                "bulk_concurrency_clamped",
                store=type(store).__name__,
                requested=self.max_concurrency,
            )
            self.max_concurrency = 1

    async def process_operation(
        self,
        entity_type: str,
        operation: str,
        entity_ids: Sequence[str],
        parameters: Optional[dict[str, Any]],
        executed_by: str,
    ) -> BulkOperationResponse:
        """
        Main entry point. Raises OperationLogError (before touching any entity)
        when the run log cannot be created; every other failure is per item.
        """
        entity_type = getattr(entity_type, "value", entity_type)
        entity_ids = list(entity_ids)
        parameters = dict(parameters or {})
        if not entity_ids:
            raise OperationValidationError("entity_ids must not be empty")

        t0 = time.perf_counter()
        total = len(entity_ids)
        log = await self._create_log(entity_type, operation, entity_ids, parameters, executed_by)
        operation_id = log["id"]

        logger.info(
            "bulk_operation_started",
            operation_id=operation_id,
            entity_type=entity_type,
            operation=operation,
            total_count=total,
            executed_by=executed_by,
        )

        errors: list[ErrorDetail] = []
        success_count = 0
        batch_size = self.config.batch_size

        for start in range(0, total, batch_size):
            batch = entity_ids[start:start + batch_size]
            logger.info(
                "bulk_batch_started",
                operation_id=operation_id,
                batch=start // batch_size + 1,
                size=len(batch),
            )
            outcomes = await self._run_batch(entity_type, operation, batch, parameters, operation_id)
            for entity_id, error_message in zip(batch, outcomes):
                if error_message is None:
                    success_count += 1
                else:
                    errors.append(ErrorDetail(entity_id=entity_id, error_message=error_message))

        failed_count = len(errors)
        status = terminal_status(total, failed_count)
        await self._finalize_log(operation_id, status, success_count, failed_count, errors)

        BULK_RUNS.labels(entity_type=entity_type, operation=operation, status=status.value).inc()
        BULK_RUN_SECONDS.labels(entity_type=entity_type, operation=operation).observe(time.perf_counter() - t0)
        logger.info(
            "bulk_operation_complete",
            operation_id=operation_id,
            status=status.value,
            success_count=success_count,
            failed_count=failed_count,
        )

        return BulkOperationResponse(
            success=failed_count == 0,
            operation_id=operation_id,
            total_count=total,
            success_count=success_count,
            failed_count=failed_count,
            errors=errors or None,
            message=summary_message(total, success_count, failed_count),
        )

    # ── items ──

    async def _run_batch(
        self,
        entity_type: str,
        operation: str,
        batch: list[str],
        parameters: dict[str, Any],
        operation_id: str,
    ) -> list[Optional[str]]:
        """One outcome per id, in batch order: None on success, else the error message."""
        if self.max_concurrency == 1:
            return [
                await self._process_item(entity_type, operation, entity_id, parameters, operation_id)
                for entity_id in batch
            ]

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(entity_id: str) -> Optional[str]:
            async with semaphore:
                return await self._process_item(entity_type, operation, entity_id, parameters, operation_id)

        return list(await asyncio.gather(*(bounded(entity_id) for entity_id in batch)))

    async def _process_item(
        self,
        entity_type: str,
        operation: str,
        entity_id: str,
        parameters: dict[str, Any],
        operation_id: str,
    ) -> Optional[str]:
        try:
            spec = bulk_operations.resolve(entity_type, operation)
            ctx = OperationContext(
                store=self.store,
                collection=ENTITY_COLLECTIONS[entity_type],
                now=self.clock(),
                health_config=self.health_config,
                snapshot_timezone=self.config.snapshot_timezone,
            )
            await spec.handler(ctx, entity_id, spec.parse(parameters))
        except Exception as e:
            # Per-item isolation: record and move on
            message = str(e) or e.__class__.__name__
            logger.warning(
                "bulk_item_failed",
                operation_id=operation_id,
                entity_id=entity_id,
                error_type=e.__class__.__name__,
                error=message,
            )
            BULK_ITEMS.labels(entity_type=entity_type, operation=operation, outcome="failed").inc()
            return message

        BULK_ITEMS.labels(entity_type=entity_type, operation=operation, outcome="success").inc()
        return None

    # ── log management ──

    async def _create_log(
        self,
        entity_type: str,
        operation: str,
        entity_ids: list[str],
        parameters: dict[str, Any],
        executed_by: str,
    ) -> Record:
        try:
            return await self.store.insert(OPERATION_LOG, {
                "entity_type": entity_type,
                "operation": operation,
                "entity_ids": entity_ids,
                "parameters": parameters,
                "total_count": len(entity_ids),
                "success_count": 0,
                "failed_count": 0,
                "error_details": [],
                "status": BulkOperationStatus.PROCESSING.value,
                "executed_by": executed_by,
                "created_at": self.clock(),
                "completed_at": None,
            })
        except Exception as e:
            logger.error("bulk_log_create_failed", entity_type=entity_type, operation=operation, error=str(e))
            raise OperationLogError(f"Failed to create bulk operation log: {e}") from e

    async def _finalize_log(
        self,
        operation_id: str,
        status: BulkOperationStatus,
        success_count: int,
        failed_count: int,
        errors: list[ErrorDetail],
    ) -> None:
        try:
            updated = await self.store.update(OPERATION_LOG, operation_id, {
                "status": status.value,
                "success_count": success_count,
                "failed_count": failed_count,
                "error_details": [e.model_dump() for e in errors],
                "completed_at": self.clock(),
            })
            if updated is None:
                logger.error("bulk_log_update_failed", operation_id=operation_id, error="log record missing")
        except Exception as e:
            # The items already ran; a bookkeeping failure must not mask the result
            logger.error("bulk_log_update_failed", operation_id=operation_id, error=str(e))


async def execute_bulk_operation(
    store: Store,
    entity_type: str,
    operation: str,
    entity_ids: Sequence[str],
    parameters: Optional[dict[str, Any]],
    executed_by: str,
    config: Optional[BulkProcessorConfig] = None,
) -> BulkOperationResponse:
    """Convenience wrapper: one processor, one run."""
    processor = BulkOperationProcessor(store, config)
    return await processor.process_operation(entity_type, operation, entity_ids, parameters, executed_by)
