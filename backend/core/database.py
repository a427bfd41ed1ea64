"""Database Module with Monadic Error Handling

Async session management plus the small set of Result-returning query
helpers the stores build on.
"""
from typing import AsyncIterator, TypeVar
from uuid import UUID as PyUUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator, CHAR
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from core.config import settings
from core.errors import (
    AppError,
    Ok,
    Err,
    Result,
    not_found,
    DatabaseErrorMapper,
)

T = TypeVar("T")


class GUID(TypeDecorator):
    """Platform-agnostic GUID type.

    Uses PostgreSQL's UUID type when available, otherwise stores as CHAR(32).
    """
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(32))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value
        if isinstance(value, PyUUID):
            return value.hex
        return PyUUID(str(value)).hex

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, PyUUID):
            return value
        return PyUUID(value)


def build_engine(url: str, echo: bool = False):
    engine_kwargs = {"echo": echo}
    if "sqlite" not in url:
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_size": 5,
            "max_overflow": 10,
        })
    return create_async_engine(url, **engine_kwargs)


engine = build_engine(settings.DATABASE_URL, echo=settings.LOG_SQL)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()

_db_mapper = DatabaseErrorMapper("database")


async def get_db() -> AsyncIterator[AsyncSession]:
    """Dependency that yields a database session."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_models() -> None:
    """Create missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def fetch_one_by(
    session: AsyncSession,
    model: type[T],
    entity_name: str | None = None,
    **filters,
) -> Result[T, AppError]:
    """Fetch single entity by column equality filters."""
    name = entity_name or model.__name__
    try:
        query = select(model)
        for key, value in filters.items():
            query = query.where(getattr(model, key) == value)
        result = await session.execute(query)
        entity = result.scalars().first()
        if entity is None:
            return not_found(name, origin="database.fetch_one_by")
        return Ok(entity)
    except SQLAlchemyError as e:
        return Err(_db_mapper.map_exception(e))


async def fetch_all(session: AsyncSession, query) -> Result[list, AppError]:
    try:
        result = await session.execute(query)
        return Ok(list(result.scalars().all()))
    except SQLAlchemyError as e:
        return Err(_db_mapper.map_exception(e))


async def create_entity(
    session: AsyncSession,
    entity: T,
) -> Result[T, AppError]:
    """Insert and commit; the refreshed entity carries its generated ID."""
    try:
        session.add(entity)
        await session.commit()
        await session.refresh(entity)
        return Ok(entity)
    except SQLAlchemyError as e:
        await session.rollback()
        return Err(_db_mapper.map_exception(e))


async def update_entity(
    session: AsyncSession,
    entity: T,
) -> Result[T, AppError]:
    try:
        await session.commit()
        await session.refresh(entity)
        return Ok(entity)
    except SQLAlchemyError as e:
        await session.rollback()
        return Err(_db_mapper.map_exception(e))


async def delete_entity(
    session: AsyncSession,
    entity: T,
) -> Result[None, AppError]:
    try:
        await session.delete(entity)
        await session.commit()
        return Ok(None)
    except SQLAlchemyError as e:
        await session.rollback()
        return Err(_db_mapper.map_exception(e))
