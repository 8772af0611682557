"""
Dict-backed Store used by the test-suite and for local runs without a database.

Records are deep-copied on the way in and out so callers never share mutable
state with the store, which mirrors the read-modify-write behaviour of a real
database.
"""
from __future__ import annotations

import copy
import operator
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from healthops.core.errors import PersistenceError
from healthops.store.base import COLLECTIONS, Filter, Record, check_filter

_OPS = {
    "eq": operator.eq,
    "ne": operator.ne,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
    "in": lambda value, options: value in options,
}


class InMemoryStore:
    supports_concurrency = True

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Record]] = {name: {} for name in COLLECTIONS}

    def _table(self, collection: str) -> dict[str, Record]:
        try:
            return self._data[collection]
        except KeyError:
            raise PersistenceError(f"Unknown collection: {collection}") from None

    @staticmethod
    def _matches(record: Record, where: Iterable[Filter]) -> bool:
        for field, op, value in where:
            current = record.get(field)
            if op in ("gt", "gte", "lt", "lte") and (current is None or value is None):
                return False
            if not _OPS[op](current, value):
                return False
        return True

    async def get(self, collection: str, entity_id: str) -> Optional[Record]:
        record = self._table(collection).get(entity_id)
        return copy.deepcopy(record) if record is not None else None

    async def query(
        self,
        collection: str,
        where: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Record]:
        where = list(where)
        for flt in where:
            check_filter(collection, flt)

        rows = [r for r in self._table(collection).values() if self._matches(r, where)]
        if order_by:
            # NULLs sort last in either direction
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            rows = present + missing

        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def count(self, collection: str, where: Iterable[Filter] = ()) -> int:
        return len(await self.query(collection, where))

    async def insert(self, collection: str, values: Record) -> Record:
        table = self._table(collection)
        record = copy.deepcopy(values)
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault("created_at", datetime.now(timezone.utc))
        if record["id"] in table:
            raise PersistenceError(f"Duplicate id {record['id']} in {collection}")
        table[record["id"]] = record
        return copy.deepcopy(record)

    async def update(self, collection: str, entity_id: str, values: Record) -> Optional[Record]:
        table = self._table(collection)
        record = table.get(entity_id)
        if record is None:
            return None
        changes: dict[str, Any] = copy.deepcopy(values)
        changes.pop("id", None)
        record.update(changes)
        return copy.deepcopy(record)

    async def delete(self, collection: str, entity_id: str) -> bool:
        return self._table(collection).pop(entity_id, None) is not None
