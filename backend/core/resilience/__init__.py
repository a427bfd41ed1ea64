"""Resilience patterns for external calls: backoff, retry, timeout."""
from .retry import (
    BackoffStrategy,
    CombinedPolicy,
    RetryAttempt,
    RetryConfig,
    RetryPolicy,
    RetryResult,
    Sleeper,
    TimeoutPolicy,
    backoff_delay,
)

__all__ = [
    "BackoffStrategy",
    "CombinedPolicy",
    "RetryAttempt",
    "RetryConfig",
    "RetryPolicy",
    "RetryResult",
    "Sleeper",
    "TimeoutPolicy",
    "backoff_delay",
]
