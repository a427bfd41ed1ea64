"""Result types and the application error taxonomy.

Engine and store functions return ``Result[T, AppError]`` instead of raising,
so callers must handle both variants explicitly (``match`` on ``Ok``/``Err``).
The HTTP layer is the only place errors become exceptions.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Generic, Iterator, NoReturn, TypeVar, Union, final
from uuid import uuid4

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound="AppError")


class ErrorCode(Enum):
    """Numbered error taxonomy.

    E1xxx: Content oracle / network failures
    E2xxx: Validation errors
    E4xxx: Persistence errors
    E5xxx: Learning-state conflicts
    E9xxx: Internal errors
    """
    # Network / oracle (E1xxx)
    E1000_NETWORK_GENERIC = 1000
    E1002_TIMEOUT = 1002
    E1010_EXTERNAL_SERVICE_UNAVAILABLE = 1010
    E1011_EXTERNAL_SERVICE_ERROR = 1011
    E1013_RATE_LIMITED = 1013

    # Validation (E2xxx)
    E2000_VALIDATION_GENERIC = 2000
    E2001_REQUIRED_FIELD_MISSING = 2001
    E2002_INVALID_FORMAT = 2002
    E2003_OUT_OF_RANGE = 2003
    E2004_INVALID_TYPE = 2004

    # Database (E4xxx)
    E4000_DATABASE_GENERIC = 4000
    E4001_CONNECTION_FAILED = 4001
    E4003_TRANSACTION_FAILED = 4003
    E4010_NOT_FOUND = 4010
    E4011_DUPLICATE_KEY = 4011
    E4013_CHECK_CONSTRAINT = 4013

    # Learning state (E5xxx)
    E5000_BUSINESS_GENERIC = 5000
    E5030_ALREADY_COMPLETED = 5030
    E5031_ALREADY_CHECKED_IN = 5031

    # Internal (E9xxx)
    E9000_INTERNAL_GENERIC = 9000
    E9001_UNEXPECTED_ERROR = 9001

    @property
    def http_status(self) -> int:
        code = self.value
        if code == 1002:
            return 504
        if code == 1013:
            return 429
        if 1000 <= code < 2000:
            return 502 if code == 1011 else 503
        if 2000 <= code < 3000:
            return 400
        if code == 4010:
            return 404
        if code == 4011:
            return 409
        if 4000 <= code < 5000:
            return 503
        if 5000 <= code < 6000:
            return 409
        return 500

    @property
    def category(self) -> str:
        code = self.value
        if code < 2000:
            return "oracle"
        if code < 3000:
            return "validation"
        if 4000 <= code < 5000:
            return "database"
        if 5000 <= code < 6000:
            return "learning_state"
        return "internal"

    @property
    def is_transient(self) -> bool:
        """Only rate limiting is worth retrying against the oracle."""
        return self is ErrorCode.E1013_RATE_LIMITED


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Immutable tracing context attached to every error."""
    correlation_id: str = field(default_factory=lambda: str(uuid4())[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    origin: str = ""
    user_id: str | None = None
    request_id: str | None = None


@dataclass(frozen=True, slots=True)
class AppError:
    """Application error: typed code, message, metadata, context and cause."""
    code: ErrorCode
    message: str
    context: ErrorContext = field(default_factory=ErrorContext)
    metadata: dict = field(default_factory=dict)
    cause: Exception | None = None

    def with_context(self, **kwargs) -> AppError:
        ctx = ErrorContext(
            correlation_id=kwargs.get("correlation_id") or self.context.correlation_id,
            timestamp=self.context.timestamp,
            origin=kwargs.get("origin", self.context.origin),
            user_id=kwargs.get("user_id", self.context.user_id),
            request_id=kwargs.get("request_id", self.context.request_id),
        )
        return AppError(self.code, self.message, ctx, self.metadata, self.cause)

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        return {
            "error": {
                "code": self.code.name,
                "code_num": self.code.value,
                "message": self.message,
                "category": self.code.category,
                "correlation_id": self.context.correlation_id,
                "timestamp": self.context.timestamp.isoformat(),
                "metadata": self.metadata,
            }
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (correlation_id={self.context.correlation_id})"


@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant."""
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U, AppError]:
        return Ok(f(self.value))

    def and_then(self, f: Callable[[T], Result[U, AppError]]) -> Result[U, AppError]:
        return f(self.value)

    def __iter__(self) -> Iterator[T]:
        yield self.value


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant, wrapping an AppError."""
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_err(self) -> E:
        return self.error

    def map(self, f: Callable[[T], U]) -> Result[U, E]:
        return self  # type: ignore

    def and_then(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        return self  # type: ignore

    def __iter__(self) -> Iterator:
        return iter([])


Result = Union[Ok[T], Err[E]]


def from_exception(
    exc: Exception,
    code: ErrorCode = ErrorCode.E9001_UNEXPECTED_ERROR,
    message: str | None = None,
    origin: str = "",
    **metadata,
) -> Err[AppError]:
    """Wrap an unexpected exception as an Err."""
    return Err(AppError(
        code=code,
        message=message or str(exc),
        context=ErrorContext(origin=origin),
        metadata=metadata,
        cause=exc,
    ))

