"""Error builders.

Each builder returns ``Err(AppError)`` with the right code so call sites read as
``return not_found("Exercise", exercise_id, origin="...")``.
"""
from uuid import UUID

from .types import AppError, ErrorCode, ErrorContext, Err


def _err(
    code: ErrorCode,
    message: str,
    origin: str,
    metadata: dict,
    cause: Exception | None = None,
) -> Err[AppError]:
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in metadata.items() if v is not None},
        cause=cause,
    ))


# =============================================================================
# Oracle / network errors (E1xxx)
# =============================================================================

def network_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E1000_NETWORK_GENERIC,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> Err[AppError]:
    return _err(code, message, origin, metadata, cause)


def timeout_error(operation: str, timeout_seconds: float, origin: str = "") -> Err[AppError]:
    return network_error(
        f"Operation '{operation}' timed out after {timeout_seconds}s",
        code=ErrorCode.E1002_TIMEOUT,
        origin=origin,
        operation=operation,
        timeout_seconds=timeout_seconds,
    )


def external_service_unavailable(service: str, reason: str = "", origin: str = "") -> Err[AppError]:
    msg = f"External service '{service}' unavailable"
    if reason:
        msg += f": {reason}"
    return network_error(msg, code=ErrorCode.E1010_EXTERNAL_SERVICE_UNAVAILABLE, origin=origin, service=service)


def external_service_error(
    service: str, reason: str, origin: str = "", cause: Exception | None = None
) -> Err[AppError]:
    """Non-retryable failure reported by (or while parsing) an external service."""
    return network_error(
        f"External service '{service}' failed: {reason}",
        code=ErrorCode.E1011_EXTERNAL_SERVICE_ERROR,
        origin=origin,
        cause=cause,
        service=service,
    )


def rate_limited(service: str, retry_after: float | None = None, origin: str = "") -> Err[AppError]:
    return network_error(
        f"Rate limited by '{service}'",
        code=ErrorCode.E1013_RATE_LIMITED,
        origin=origin,
        service=service,
        retry_after=retry_after,
    )


# =============================================================================
# Validation errors (E2xxx)
# =============================================================================

def validation_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E2000_VALIDATION_GENERIC,
    field: str | None = None,
    value: str | None = None,
    origin: str = "",
    **metadata,
) -> Err[AppError]:
    return _err(code, message, origin, {"field": field, "value": value, **metadata})


def required_field(field: str, origin: str = "") -> Err[AppError]:
    return validation_error(
        f"Required field '{field}' is missing",
        code=ErrorCode.E2001_REQUIRED_FIELD_MISSING,
        field=field,
        origin=origin,
    )


def invalid_format(field: str, expected: str, got: str | None = None, origin: str = "") -> Err[AppError]:
    msg = f"Invalid format for '{field}': expected {expected}"
    if got:
        msg += f", got '{got}'"
    return validation_error(
        msg,
        code=ErrorCode.E2002_INVALID_FORMAT,
        field=field,
        expected=expected,
        origin=origin,
    )


def out_of_range(
    field: str,
    value,
    min_val: int | float | None = None,
    max_val: int | float | None = None,
    origin: str = "",
) -> Err[AppError]:
    bounds = []
    if min_val is not None:
        bounds.append(f">= {min_val}")
    if max_val is not None:
        bounds.append(f"<= {max_val}")
    return validation_error(
        f"Value {value!r} for '{field}' out of range ({', '.join(bounds)})",
        code=ErrorCode.E2003_OUT_OF_RANGE,
        field=field,
        value=str(value),
        min=min_val,
        max=max_val,
        origin=origin,
    )


# =============================================================================
# Database errors (E4xxx)
# =============================================================================

def db_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E4000_DATABASE_GENERIC,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> Err[AppError]:
    return _err(code, message, origin, metadata, cause)


def not_found(entity: str, id: str | UUID | None = None, origin: str = "") -> Err[AppError]:
    """Missing or not owned by the caller; both look the same from outside."""
    msg = f"{entity} not found"
    if id:
        msg += f": {id}"
    return db_error(
        msg,
        code=ErrorCode.E4010_NOT_FOUND,
        entity=entity,
        entity_id=str(id) if id else None,
        origin=origin,
    )


def duplicate_key(entity: str, field: str, value: str, origin: str = "") -> Err[AppError]:
    return db_error(
        f"{entity} with {field}='{value}' already exists",
        code=ErrorCode.E4011_DUPLICATE_KEY,
        entity=entity,
        field=field,
        value=value,
        origin=origin,
    )


def db_connection_failed(reason: str = "", origin: str = "") -> Err[AppError]:
    msg = "Database connection failed"
    if reason:
        msg += f": {reason}"
    return db_error(msg, code=ErrorCode.E4001_CONNECTION_FAILED, origin=origin)


def transaction_failed(reason: str = "", origin: str = "") -> Err[AppError]:
    msg = "Database transaction failed"
    if reason:
        msg += f": {reason}"
    return db_error(msg, code=ErrorCode.E4003_TRANSACTION_FAILED, origin=origin)


# =============================================================================
# Learning-state errors (E5xxx)
# =============================================================================

def business_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E5000_BUSINESS_GENERIC,
    origin: str = "",
    **metadata,
) -> Err[AppError]:
    return _err(code, message, origin, metadata)


def already_completed(exercise_id: str | UUID, origin: str = "") -> Err[AppError]:
    return business_error(
        f"Exercise {exercise_id} has already been completed",
        code=ErrorCode.E5030_ALREADY_COMPLETED,
        exercise_id=str(exercise_id),
        origin=origin,
    )


def already_checked_in(day: str, user_id: str | UUID | None = None, origin: str = "") -> Err[AppError]:
    return business_error(
        f"Already checked in on {day}",
        code=ErrorCode.E5031_ALREADY_CHECKED_IN,
        user_id=str(user_id) if user_id else None,
        day=day,
        origin=origin,
    )


# =============================================================================
# Internal errors (E9xxx)
# =============================================================================

def internal_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E9001_UNEXPECTED_ERROR,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> Err[AppError]:
    return _err(code, message, origin, metadata, cause)
