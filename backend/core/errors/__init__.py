"""Result-based error handling.

Usage:
    from core.errors import Ok, Err, Result, AppError, not_found

    async def find_word(word_id) -> Result[VocabularyWord, AppError]:
        word = await session.get(VocabularyWord, word_id)
        if word is None:
            return not_found("VocabularyWord", word_id, origin="word_store")
        return Ok(word)

    match await find_word(word_id):
        case Ok(word):
            ...
        case Err(error):
            log.warning("word_missing", code=error.code.name)
"""
from .types import (
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorContext,
    from_exception,
)

from .builders import (
    network_error,
    timeout_error,
    external_service_unavailable,
    external_service_error,
    rate_limited,
    validation_error,
    required_field,
    invalid_format,
    out_of_range,
    db_error,
    not_found,
    duplicate_key,
    db_connection_failed,
    transaction_failed,
    business_error,
    already_completed,
    already_checked_in,
    internal_error,
)

from .boundaries import (
    ErrorMapper,
    DatabaseErrorMapper,
    ValidationErrorMapper,
)

from .handlers import (
    AppErrorException,
    register_error_handlers,
    result_to_response,
    raise_result,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    "from_exception",
    "network_error",
    "timeout_error",
    "external_service_unavailable",
    "external_service_error",
    "rate_limited",
    "validation_error",
    "required_field",
    "invalid_format",
    "out_of_range",
    "db_error",
    "not_found",
    "duplicate_key",
    "db_connection_failed",
    "transaction_failed",
    "business_error",
    "already_completed",
    "already_checked_in",
    "internal_error",
    "ErrorMapper",
    "DatabaseErrorMapper",
    "ValidationErrorMapper",
    "AppErrorException",
    "register_error_handlers",
    "result_to_response",
    "raise_result",
]
