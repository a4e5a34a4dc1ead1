from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable

from ledger_client.errors import LedgerOperationalError


def default_retry_classifier(exc: BaseException) -> bool:
    """Return True if the failure is worth another attempt.

    Ledger, transport and timeout errors are retried. Entity construction
    errors (ValueError/TypeError raised before the write call) fail the same
    way on every attempt, so they are not.
    """
    if isinstance(exc, LedgerOperationalError):
        return True
    if isinstance(exc, (ValueError, TypeError)):
        return False
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: ``initial_backoff_ms * 2**attempt``, capped.

    ``max_attempts`` counts retries after the first write, so a batch gets at
    most ``max_attempts + 1`` write calls.
    """

    max_attempts: int = 3
    initial_backoff_ms: int = 1000
    max_backoff_ms: int = 30_000
    jitter: bool = False
    classify_retryable: Callable[[BaseException], bool] = default_retry_classifier

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if self.initial_backoff_ms < 0:
            raise ValueError("initial_backoff_ms must be >= 0")

    def backoff_seconds(self, attempt: int) -> float:
        delay_ms = min(self.initial_backoff_ms * (2**attempt), self.max_backoff_ms)
        if self.jitter:
            # ±25%
            jitter_range = delay_ms * 0.25
            delay_ms += random.uniform(-jitter_range, jitter_range)
        return max(0.0, delay_ms / 1000.0)
