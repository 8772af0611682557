"""
Persistence contract used by the health engine and the bulk processor.

Records are plain dicts keyed by column name; every record carries a string
"id". Filters are (field, op, value) triples combined with AND.

    await store.query(
        "activity_event",
        [("company_id", "eq", cid), ("created_at", "gte", since)],
        order_by="created_at", descending=True, limit=1,
    )
"""
from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol

# ── Collections ──
LEAD = "lead"
COMPANY = "company"
SUBSCRIPTION = "subscription"
HEALTH_SNAPSHOT = "health_snapshot"
OPERATION_LOG = "operation_log"
USER = "user"
ACTIVITY_EVENT = "activity_event"
LANDING_PAGE = "landing_page"
FEATURE_USAGE = "feature_usage"

COLLECTIONS = (
    LEAD, COMPANY, SUBSCRIPTION, HEALTH_SNAPSHOT, OPERATION_LOG,
    USER, ACTIVITY_EVENT, LANDING_PAGE, FEATURE_USAGE,
)

FILTER_OPS = ("eq", "ne", "gt", "gte", "lt", "lte", "in")

Filter = tuple[str, str, Any]
Record = dict[str, Any]


class Store(Protocol):
    # False when calls must not overlap (e.g. one shared database session)
    supports_concurrency: bool

    async def get(self, collection: str, entity_id: str) -> Optional[Record]:
        ...

    async def query(
        self,
        collection: str,
        where: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Record]:
        ...

    async def count(self, collection: str, where: Iterable[Filter] = ()) -> int:
        ...

    async def insert(self, collection: str, values: Record) -> Record:
        ...

    async def update(self, collection: str, entity_id: str, values: Record) -> Optional[Record]:
        """Partial update. Returns the updated record, or None when it does not exist."""
        ...

    async def delete(self, collection: str, entity_id: str) -> bool:
        ...


def check_filter(collection: str, flt: Filter) -> None:
    field, op, _ = flt
    if op not in FILTER_OPS:
        raise ValueError(f"Unsupported filter op {op!r} on {collection}.{field}")
