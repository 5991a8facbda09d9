"""Fetch utilities - bounded retries for UI readiness."""

from .retries import RetryConfig, retry_async

__all__ = [
    "RetryConfig",
    "retry_async",
]
