"""Utility Functions"""

from handoff_core.utils.resilience import (
    RetryExecutor,
    calculate_backoff,
    is_retryable,
)

__all__ = [
    "RetryExecutor",
    "calculate_backoff",
    "is_retryable",
]
