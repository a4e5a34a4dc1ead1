"""
Retry supervisor: drives one batch through write attempts.

Per-batch state machine::

    ATTEMPTING(n) --success--------------------------> DONE
    ATTEMPTING(n) --failure, n < max_attempts--------> wait backoff(n) -> ATTEMPTING(n+1)
    ATTEMPTING(n) --failure, n >= max_attempts-------> DROPPED
    ATTEMPTING(n) --non-retryable failure-------------> DROPPED

Retries live only in process memory; a crash during backoff loses the batch
unless a dead letter queue is configured, and even then only after the drop.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, Sequence

from loguru import logger

from ..metrics import (
    BATCHES_DROPPED_TOTAL,
    ITEMS_DROPPED_TOTAL,
    RETRY_ATTEMPTS_TOTAL,
)
from .dlq import DeadLetterQueue
from .policy import RetryPolicy
from .types import Sink, T


class BatchState(str, Enum):
    ATTEMPTING = "attempting"
    DONE = "done"
    DROPPED = "dropped"


@dataclass(frozen=True)
class BatchOutcome:
    """Terminal result for a batch."""

    state: BatchState
    attempts: int  # write calls made
    last_error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.state is BatchState.DONE


def _describe_kinds(batch: Sequence[object]) -> str:
    kinds = Counter(getattr(getattr(i, "kind", None), "value", type(i).__name__) for i in batch)
    return ", ".join(f"{k}={n}" for k, n in sorted(kinds.items()))


class RetrySupervisor(Generic[T]):
    """Writes a batch through ``sink``, retrying with exponential backoff."""

    def __init__(
        self,
        sink: Sink[T],
        policy: RetryPolicy | None = None,
        *,
        sink_name: str = "ledger",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        dead_letter: DeadLetterQueue[T] | None = None,
    ):
        self._sink = sink
        self._policy = policy or RetryPolicy()
        self._sink_name = sink_name
        self._sleep = sleep
        self._dlq = dead_letter

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def run(self, batch: Sequence[T]) -> BatchOutcome:
        state = BatchState.ATTEMPTING
        attempt = 0
        last_error: BaseException | None = None

        while state is BatchState.ATTEMPTING:
            try:
                await self._sink.write(batch)
            except Exception as exc:
                last_error = exc
            else:
                if attempt:
                    logger.info(f"Batch retry {attempt} succeeded ({len(batch)} items)")
                return BatchOutcome(BatchState.DONE, attempt + 1)

            retryable = self._policy.classify_retryable(last_error)
            if not retryable or attempt >= self._policy.max_attempts:
                state = BatchState.DROPPED
                break

            delay = self._policy.backoff_seconds(attempt)
            attempt += 1
            logger.warning(
                f"Batch write failed ({type(last_error).__name__}: {last_error}); "
                f"retrying in {delay:.2f}s (attempt {attempt}/{self._policy.max_attempts})"
            )
            RETRY_ATTEMPTS_TOTAL.labels(sink=self._sink_name).inc()
            await self._sleep(delay)

        await self._drop(batch, attempt + 1, last_error)
        return BatchOutcome(BatchState.DROPPED, attempt + 1, last_error)

    async def _drop(self, batch: Sequence[T], attempts: int, error: BaseException | None) -> None:
        logger.error(
            f"Dropping batch of {len(batch)} items after {attempts} write attempts "
            f"[{_describe_kinds(batch)}]; last error: {type(error).__name__}: {error}"
        )
        BATCHES_DROPPED_TOTAL.labels(sink=self._sink_name).inc()
        ITEMS_DROPPED_TOTAL.labels(sink=self._sink_name).inc(len(batch))
        if self._dlq is not None:
            try:
                await self._dlq.save(
                    batch, error or "unknown", {"sink": self._sink_name, "attempts": attempts}
                )
            except OSError as exc:
                logger.error(f"Failed to write dropped batch to DLQ: {exc}")
