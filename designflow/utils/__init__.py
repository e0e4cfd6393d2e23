"""Shared utilities."""

from .retry import retry_with_backoff, with_retry, with_webhook_retry, RetryExhausted
from .background_tasks import create_safe_task, safe_background_task, drain_background_tasks

__all__ = [
    "retry_with_backoff",
    "with_retry",
    "with_webhook_retry",
    "RetryExhausted",
    "create_safe_task",
    "safe_background_task",
    "drain_background_tasks",
]
