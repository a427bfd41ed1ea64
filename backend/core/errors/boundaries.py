"""Error mapping at module boundaries.

Library exceptions (SQLAlchemy, pydantic) are translated into AppErrors where
they cross into engine code, so nothing above the store layer sees a raw
driver exception.
"""
from __future__ import annotations

from typing import Generic, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from .types import AppError, ErrorCode, ErrorContext
from .builders import (
    db_connection_failed,
    duplicate_key,
    internal_error,
    timeout_error,
    transaction_failed,
)

T = TypeVar("T")


class ErrorMapper(Generic[T]):
    """Base for boundary mappers; ``origin`` tags every mapped error."""

    def __init__(self, origin: str):
        self.origin = origin


class DatabaseErrorMapper(ErrorMapper[T]):
    """Maps SQLAlchemy failures to E4xxx AppErrors."""

    def __init__(self, origin: str = "database"):
        super().__init__(origin)

    def map_exception(self, exc: Exception) -> AppError:
        if isinstance(exc, IntegrityError):
            return self._map_integrity_error(exc)
        if isinstance(exc, OperationalError):
            return self._map_operational_error(exc)
        if isinstance(exc, SQLAlchemyError):
            return transaction_failed(str(exc), origin=self.origin).error
        return internal_error(f"Database error: {exc}", origin=self.origin, cause=exc).error

    def _map_integrity_error(self, exc: IntegrityError) -> AppError:
        message = str(exc.orig) if exc.orig else str(exc)
        lowered = message.lower()
        # sqlite says "UNIQUE constraint failed", postgres "duplicate key value"
        if "duplicate key" in lowered or "unique constraint" in lowered:
            return duplicate_key("record", "unknown", "unknown", origin=self.origin).error
        return AppError(
            code=ErrorCode.E4013_CHECK_CONSTRAINT,
            message=f"Constraint violation: {message}",
            context=ErrorContext(origin=self.origin),
            cause=exc,
        )

    def _map_operational_error(self, exc: OperationalError) -> AppError:
        message = str(exc.orig) if exc.orig else str(exc)
        lowered = message.lower()
        if "timeout" in lowered:
            return timeout_error("database query", 30.0, origin=self.origin).error
        if "connect" in lowered:
            return db_connection_failed(message, origin=self.origin).error
        return transaction_failed(message, origin=self.origin).error


class ValidationErrorMapper(ErrorMapper[T]):
    """Maps request validation failures to E2xxx AppErrors."""

    def __init__(self, origin: str = "validation"):
        super().__init__(origin)

    def map_pydantic_errors(self, errors: list[dict]) -> AppError:
        """Fold pydantic's error list into one AppError with per-field details."""
        fields = []
        code = ErrorCode.E2000_VALIDATION_GENERIC
        for err in errors:
            location = ".".join(str(loc) for loc in err.get("loc", []))
            err_type = err.get("type", "value_error")
            fields.append({"field": location, "message": err.get("msg", "invalid"), "type": err_type})
            if err_type == "missing":
                code = ErrorCode.E2001_REQUIRED_FIELD_MISSING
            elif err_type.endswith("_type") and code is ErrorCode.E2000_VALIDATION_GENERIC:
                code = ErrorCode.E2004_INVALID_TYPE

        return AppError(
            code=code,
            message="Request validation failed",
            context=ErrorContext(origin=self.origin),
            metadata={"fields": fields},
        )
