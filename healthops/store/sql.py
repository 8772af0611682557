"""
Store implementation over an async SQLAlchemy session.

Every write commits on its own so that one failed bulk item never rolls back
the items processed before it. Datetimes are normalised to UTC on the way in
and made timezone-aware on the way out (SQLite drops the offset).
"""
from __future__ import annotations

import copy
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy import func, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthops.core.errors import PersistenceError
from healthops.models.tables import COLLECTION_MODELS, Base
from healthops.store.base import Filter, Record, check_filter

logger = structlog.get_logger()


@lru_cache
def _column_keys(model: type[Base]) -> dict[str, str]:
    """Column name → mapped attribute key (they differ for e.g. metadata / metadata_)."""
    return {attr.columns[0].name: attr.key for attr in inspect(model).column_attrs}


def _to_utc(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value


def _aware(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLAlchemyStore:
    # One AsyncSession cannot run overlapping operations
    supports_concurrency = False

    def __init__(self, session: AsyncSession):
        self._session = session

    # ── mapping helpers ──

    @staticmethod
    def _model(collection: str) -> type[Base]:
        try:
            return COLLECTION_MODELS[collection]
        except KeyError:
            raise PersistenceError(f"Unknown collection: {collection}") from None

    def _attribute(self, model: type[Base], collection: str, field: str):
        key = _column_keys(model).get(field)
        if key is None:
            raise PersistenceError(f"Unknown field {field!r} on {collection}")
        return key

    def _to_record(self, obj: Base) -> Record:
        keys = _column_keys(type(obj))
        return {name: _aware(copy.deepcopy(getattr(obj, key))) for name, key in keys.items()}

    def _apply(self, obj: Base, collection: str, values: Record) -> None:
        model = type(obj)
        # Resolve every field first so a bad key leaves nothing dirty in the session
        changes = [(self._attribute(model, collection, field), value) for field, value in values.items()]
        for key, value in changes:
            setattr(obj, key, _to_utc(value))

    def _condition(self, model: type[Base], collection: str, flt: Filter):
        check_filter(collection, flt)
        field, op, value = flt
        column = getattr(model, self._attribute(model, collection, field))
        value = _to_utc(value)
        if op == "eq":
            return column.is_(None) if value is None else column == value
        if op == "ne":
            return column.is_not(None) if value is None else column != value
        if op == "gt":
            return column > value
        if op == "gte":
            return column >= value
        if op == "lt":
            return column < value
        if op == "lte":
            return column <= value
        return column.in_(list(value))

    async def _commit(self, action: str, collection: str) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error("store_write_failed", action=action, collection=collection, error=str(e))
            raise PersistenceError(f"{action} on {collection} failed: {e}") from e

    # ── Store protocol ──

    async def get(self, collection: str, entity_id: str) -> Optional[Record]:
        obj = await self._session.get(self._model(collection), entity_id)
        return self._to_record(obj) if obj is not None else None

    async def query(
        self,
        collection: str,
        where: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Record]:
        model = self._model(collection)
        stmt = select(model).where(*[self._condition(model, collection, f) for f in where])
        if order_by:
            column = getattr(model, self._attribute(model, collection, order_by))
            stmt = stmt.order_by(column.desc().nulls_last() if descending else column.asc().nulls_last())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [self._to_record(obj) for obj in result.scalars().all()]

    async def count(self, collection: str, where: Iterable[Filter] = ()) -> int:
        model = self._model(collection)
        stmt = (
            select(func.count())
            .select_from(model)
            .where(*[self._condition(model, collection, f) for f in where])
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def insert(self, collection: str, values: Record) -> Record:
        model = self._model(collection)
        obj = model()
        self._apply(obj, collection, values)
        self._session.add(obj)
        await self._commit("insert", collection)
        await self._session.refresh(obj)
        return self._to_record(obj)

    async def update(self, collection: str, entity_id: str, values: Record) -> Optional[Record]:
        obj = await self._session.get(self._model(collection), entity_id)
        if obj is None:
            return None
        changes = {k: v for k, v in values.items() if k != "id"}
        self._apply(obj, collection, changes)
        await self._commit("update", collection)
        await self._session.refresh(obj)
        return self._to_record(obj)

    async def delete(self, collection: str, entity_id: str) -> bool:
        obj = await self._session.get(self._model(collection), entity_id)
        if obj is None:
            return False
        await self._session.delete(obj)
        await self._commit("delete", collection)
        return True
