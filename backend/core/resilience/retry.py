"""Retry and timeout policies for content oracle calls.

Only rate limiting is retried (with exponential backoff); every other failure
is returned to the caller on the first attempt. A rate-limited call that is
still rate limited after the last attempt becomes a fatal external-service
error, so callers never have to tell "transient" from "gave up".
"""
from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Awaitable, Callable, Generic, TypeVar

from core.errors import (
    AppError,
    ErrorCode,
    Err,
    Ok,
    Result,
    external_service_error,
    from_exception,
    timeout_error,
)
from core.logging import oracle_logger

T = TypeVar("T")

log = oracle_logger()

Sleeper = Callable[[float], Awaitable[None]]


class BackoffStrategy(Enum):
    EXPONENTIAL = auto()         # base * multiplier^(attempt-1)
    EXPONENTIAL_JITTER = auto()  # same, +/- jitter_factor/2


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    multiplier: float = 2.0
    strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    jitter_factor: float = 0.5
    retryable_codes: frozenset[ErrorCode] = field(
        default_factory=lambda: frozenset(code for code in ErrorCode if code.is_transient)
    )


def backoff_delay(attempt: int, config: RetryConfig, rng: random.Random | None = None) -> float:
    """Delay before retrying after ``attempt`` (1-indexed) failed."""
    delay = min(config.base_delay_seconds * (config.multiplier ** (attempt - 1)), config.max_delay_seconds)
    if config.strategy is BackoffStrategy.EXPONENTIAL_JITTER:
        jitter_range = delay * config.jitter_factor
        delay += (rng or random).uniform(-jitter_range / 2, jitter_range / 2)
    return max(0.0, min(delay, config.max_delay_seconds))


@dataclass
class RetryAttempt:
    attempt_number: int
    started_at: datetime
    error: AppError | None = None
    delay_seconds: float = 0.0


@dataclass
class RetryResult(Generic[T]):
    """Final result plus the attempt history."""
    result: Result[T, AppError]
    attempts: list[RetryAttempt]

    @property
    def succeeded(self) -> bool:
        return self.result.is_ok()

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


class RetryPolicy(Generic[T]):
    """Runs a Result-returning coroutine factory under the retry config.

    Usage:
        policy = RetryPolicy(RetryConfig(max_attempts=3))
        outcome = await policy.execute(lambda: oracle_call(), operation="distractors")
        match outcome.result:
            case Ok(value): ...
            case Err(error): ...
    """

    def __init__(self, config: RetryConfig | None = None, sleep: Sleeper | None = None):
        self.config = config or RetryConfig()
        self._sleep = sleep or asyncio.sleep

    def should_retry(self, error: AppError, attempt: int) -> bool:
        return attempt < self.config.max_attempts and error.code in self.config.retryable_codes

    async def execute(
        self,
        fn: Callable[[], Awaitable[Result[T, AppError]]],
        operation: str = "operation",
    ) -> RetryResult[T]:
        attempts: list[RetryAttempt] = []

        for attempt in range(1, self.config.max_attempts + 1):
            record = RetryAttempt(attempt_number=attempt, started_at=datetime.now(timezone.utc))
            attempts.append(record)

            try:
                result = await fn()
            except Exception as e:
                result = from_exception(e, origin="retry_policy", operation=operation)

            match result:
                case Ok(_):
                    return RetryResult(result=result, attempts=attempts)
                case Err(error):
                    record.error = error
                    if not self.should_retry(error, attempt):
                        return RetryResult(result=self._finalize(error, attempt, operation), attempts=attempts)

                    delay = backoff_delay(attempt, self.config)
                    record.delay_seconds = delay
                    log.warning(
                        "oracle_retry_scheduled",
                        operation=operation,
                        attempt=attempt,
                        max_attempts=self.config.max_attempts,
                        delay_seconds=round(delay, 3),
                        error_code=error.code.name,
                    )
                    await self._sleep(delay)

        # max_attempts < 1
        return RetryResult(
            result=external_service_error("oracle", f"{operation} was never attempted", origin="retry_policy"),
            attempts=attempts,
        )

    def _finalize(self, error: AppError, attempt: int, operation: str) -> Result[T, AppError]:
        if error.code in self.config.retryable_codes:
            log.error("oracle_retries_exhausted", operation=operation, attempts=attempt)
            return external_service_error(
                "oracle",
                f"{operation} still rate limited after {attempt} attempts",
                origin="retry_policy",
            )
        return Err(error)


class TimeoutPolicy(Generic[T]):
    """Per-attempt timeout; a timeout is a fatal (non-retried) error."""

    def __init__(self, timeout_seconds: float, operation_name: str = "operation"):
        self.timeout_seconds = timeout_seconds
        self.operation_name = operation_name

    async def execute(self, fn: Callable[[], Awaitable[Result[T, AppError]]]) -> Result[T, AppError]:
        try:
            return await asyncio.wait_for(fn(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            return timeout_error(self.operation_name, self.timeout_seconds, origin="timeout_policy")


class CombinedPolicy(Generic[T]):
    """Timeout per attempt, retry across attempts."""

    def __init__(
        self,
        timeout_seconds: float,
        retry_config: RetryConfig | None = None,
        sleep: Sleeper | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.retry = RetryPolicy[T](retry_config, sleep=sleep)

    async def execute(
        self,
        fn: Callable[[], Awaitable[Result[T, AppError]]],
        operation: str = "operation",
    ) -> Result[T, AppError]:
        timeout = TimeoutPolicy[T](self.timeout_seconds, operation)
        outcome = await self.retry.execute(lambda: timeout.execute(fn), operation=operation)
        return outcome.result
