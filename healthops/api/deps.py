"""
Shared FastAPI dependencies.
"""
from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from healthops.models.database import get_db
from healthops.store.sql import SQLAlchemyStore


async def get_store(db: AsyncSession = Depends(get_db)) -> SQLAlchemyStore:
    return SQLAlchemyStore(db)
