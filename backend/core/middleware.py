"""Request context middleware.

Every request gets a correlation id (taken from ``X-Correlation-ID`` or
generated) and the learner id from ``X-User-ID`` bound into the structlog
context, so engine and oracle events logged while serving it can be grouped.
Requests over the slow threshold are flagged; with a live content oracle
those are usually generation or free-text scoring calls.
"""
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from core.logging import (
    generate_correlation_id,
    bind_context,
    clear_context,
    api_logger,
)

log = api_logger()

CORRELATION_HEADER = "X-Correlation-ID"


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request context, logs the outcome and flags slow requests."""

    def __init__(self, app, slow_threshold_ms: float = 2000):
        super().__init__(app)
        self.slow_threshold_ms = slow_threshold_ms

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id()

        clear_context()
        bind_context(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
            learner=request.headers.get("X-User-ID"),
        )
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            log.exception(
                "request_failed",
                error_type=type(exc).__name__,
                duration_ms=_elapsed_ms(start),
            )
            raise
        else:
            duration_ms = _elapsed_ms(start)
            response.headers[CORRELATION_HEADER] = correlation_id

            if response.status_code >= 500:
                log.error("request_completed", status=response.status_code, duration_ms=duration_ms)
            elif response.status_code >= 400:
                log.warning("request_completed", status=response.status_code, duration_ms=duration_ms)
            else:
                log.info("request_completed", status=response.status_code, duration_ms=duration_ms)

            if duration_ms > self.slow_threshold_ms:
                log.warning("slow_request", duration_ms=duration_ms, threshold_ms=self.slow_threshold_ms)
            return response
        finally:
            clear_context()
