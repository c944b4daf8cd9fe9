"""Opt-in Tenacity retry policy for the request layer.

Requests are never retried unless a policy with more than one attempt is
configured. Only idempotent methods are retried, and only for failures where
no response was received (timeout/transport) or the gateway reported a
transient upstream problem.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from showroom.net.errors import ApiError

__all__ = ["RetryPolicy", "IDEMPOTENT_METHODS", "RETRYABLE_STATUSES", "is_retryable"]

IDEMPOTENT_METHODS: frozenset[str] = frozenset({"GET", "PUT", "DELETE"})
RETRYABLE_STATUSES: frozenset[int] = frozenset({0, 502, 503, 504})


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and exc.status in RETRYABLE_STATUSES


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry configuration.

    `backoff_seconds` is linear: sleep = backoff_seconds * attempt_number.
    """

    max_attempts: int = 1
    backoff_seconds: float = 0.5

    @property
    def enabled(self) -> bool:
        return self.max_attempts > 1

    def applies_to(self, method: str) -> bool:
        return self.enabled and method.upper() in IDEMPOTENT_METHODS

    def retrying(self, *, log: Any, operation: str) -> AsyncRetrying:
        """Return a configured Tenacity `AsyncRetrying` instance."""

        max_attempts = max(1, int(self.max_attempts))
        backoff_seconds = max(0.0, float(self.backoff_seconds))
        operation = (operation or "request").strip() or "request"

        def _log_retry(retry_state: RetryCallState) -> None:
            # Tenacity only calls before_sleep after a failed attempt.
            error = retry_state.outcome.exception() if retry_state.outcome else None
            status = getattr(error, "status", None)
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            log.warning(
                "{} failed (attempt {}/{}, status={}); retrying in {:.2f}s",
                operation,
                retry_state.attempt_number,
                max_attempts,
                status,
                delay,
            )

        return AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_incrementing(start=backoff_seconds, increment=backoff_seconds),
            retry=retry_if_exception(is_retryable),
            reraise=True,
            before_sleep=_log_retry,
        )
