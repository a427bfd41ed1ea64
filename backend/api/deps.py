"""Shared FastAPI dependencies."""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from engines.learning import LearningEngine


def get_learning_engine(db: AsyncSession = Depends(get_db)) -> LearningEngine:
    """Learning engine bound to the request's session."""
    return LearningEngine(db)
