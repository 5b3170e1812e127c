"""
Retry policy - bounded exponential backoff for transient failures.
"""

from dataclasses import dataclass
from typing import Any

from limitless_gateway.services.classifier import get_status_code


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry budget and backoff schedule.

    With the defaults a request is attempted at most 4 times, sleeping
    1s, 2s and 4s between attempts. Failures carrying an HTTP status below
    500 are terminal; network-level failures and 5xx are retryable.
    """

    max_retries: int = 3
    base_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")

    @property
    def max_attempts(self) -> int:
        return 1 + self.max_retries

    def delay(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (1-indexed)."""
        if attempt < 1:
            return 0.0
        return self.base_delay * 2 ** (attempt - 1)

    def is_retryable(self, error: Any) -> bool:
        status = get_status_code(error)
        return status is None or status >= 500

    def should_retry(self, error: Any, retries_done: int) -> bool:
        """Whether another attempt is allowed after ``retries_done`` retries."""
        return self.is_retryable(error) and retries_done < self.max_retries
