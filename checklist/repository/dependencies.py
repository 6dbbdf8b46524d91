"""
FastAPI dependencies wiring services to the request's database session.
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from checklist.core.database.engine import get_db
from checklist.repository.base import Repository
from checklist.repository.sql import SqlRepository


async def get_repository(db: Annotated[AsyncSession, Depends(get_db)]) -> Repository:
    """Repository bound to the request's session. Tests override this dependency."""
    return SqlRepository(db)
