"""FastAPI exception handlers.

Routes turn ``Err`` results into ``AppErrorException`` via ``raise_result``;
these handlers render every failure as the same JSON error envelope.
"""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.logging import get_logger

from .boundaries import ValidationErrorMapper
from .types import AppError, ErrorCode, ErrorContext

log = get_logger("errors.handlers")

_validation_mapper = ValidationErrorMapper("request_validation")


class AppErrorException(Exception):
    """Exception carrier for an AppError at the HTTP boundary."""

    def __init__(self, error: AppError):
        self.error = error
        super().__init__(str(error))


def result_to_response(error: AppError) -> JSONResponse:
    status_code = error.code.http_status

    log_method = log.warning if status_code < 500 else log.error
    log_method(
        "error_response",
        error_code=error.code.name,
        message=error.message,
        category=error.code.category,
        correlation_id=error.context.correlation_id,
        origin=error.context.origin,
        metadata=error.metadata,
    )

    return JSONResponse(status_code=status_code, content=error.to_dict())


async def app_error_handler(request: Request, exc: AppErrorException) -> JSONResponse:
    error = exc.error.with_context(
        request_id=request.headers.get("X-Request-ID"),
        correlation_id=request.headers.get("X-Correlation-ID"),
    )
    return result_to_response(error)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code_map = {
        400: ErrorCode.E2000_VALIDATION_GENERIC,
        404: ErrorCode.E4010_NOT_FOUND,
        409: ErrorCode.E5000_BUSINESS_GENERIC,
        422: ErrorCode.E2000_VALIDATION_GENERIC,
        429: ErrorCode.E1013_RATE_LIMITED,
    }
    code = code_map.get(exc.status_code)
    if code is None:
        code = ErrorCode.E9001_UNEXPECTED_ERROR if exc.status_code >= 500 else ErrorCode.E9000_INTERNAL_GENERIC

    error = AppError(
        code=code,
        message=str(exc.detail) if exc.detail else f"HTTP {exc.status_code}",
        context=ErrorContext(origin="http"),
    )
    return result_to_response(error)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = _validation_mapper.map_pydantic_errors(list(exc.errors())).with_context(
        correlation_id=request.headers.get("X-Correlation-ID"),
        request_id=request.headers.get("X-Request-ID"),
    )
    return result_to_response(error)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    error = AppError(
        code=ErrorCode.E9001_UNEXPECTED_ERROR,
        message="An unexpected error occurred",
        context=ErrorContext(origin="unhandled"),
        cause=exc,
    )
    log.exception(
        "unhandled_exception",
        error_type=type(exc).__name__,
        error_message=str(exc),
        correlation_id=error.context.correlation_id,
    )
    return result_to_response(error)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppErrorException, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


def raise_result(result) -> None:
    """Raise if ``result`` is an Err, otherwise do nothing.

    Usage:
        result = await engine.get_word(word_id, user_id)
        raise_result(result)
        return result.unwrap()
    """
    if result.is_err():
        raise AppErrorException(result.unwrap_err())
