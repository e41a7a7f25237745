"""
Retry policy for upstream calls.

Only transient failures (network errors, 5xx) are retried. Blocking
responses (403/429) are never retried: hammering a rate limiter makes it
worse, and the callers have fallbacks for them.
"""
from typing import Any, Callable

from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from courtside.errors import is_transient


class UpstreamRetry:
    """Callable wrapper applying the configured tenacity policy."""

    def __init__(self, attempts: int = 3, wait_seconds: float = 0.5, max_wait_seconds: float = 5.0):
        self.attempts = max(1, attempts)
        self.wait_seconds = wait_seconds
        self.max_wait_seconds = max_wait_seconds

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential(multiplier=self.wait_seconds, max=self.max_wait_seconds),
            retry=retry_if_exception(is_transient),
            reraise=True,
        )

    def __call__(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        return self._retrying()(fn, *args, **kwargs)
