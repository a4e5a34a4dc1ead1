from __future__ import annotations

import asyncio
from collections import deque
from typing import Generic, Optional

from loguru import logger

from ..metrics import FLUSHES_TOTAL, ITEMS_ENQUEUED_TOTAL, QUEUE_DEPTH
from .supervisor import BatchOutcome, RetrySupervisor
from .types import QueueClosedError, T


class BatchQueue(Generic[T]):
    """In-memory bounded-delay batcher with a single flush in flight.

    Items are released FIFO in batches of up to ``batch_size`` when the size
    threshold is hit or ``flush_delay`` seconds after the first pending item.
    While a batch (including its retries) is in flight, new items only
    accumulate; once it completes the next flush runs after
    ``reschedule_delay``.

    State invariant: the scheduled-flush handle exists iff items are pending
    and no flush is in flight. All state changes happen on the event loop
    thread, so the ``in_flight`` flag is the only guard needed.
    """

    def __init__(
        self,
        supervisor: RetrySupervisor[T],
        *,
        batch_size: int = 10,
        flush_delay: float = 5.0,
        reschedule_delay: float = 0.1,
        queue_id: str = "ledger",
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self._supervisor = supervisor
        self._batch_size = batch_size
        self._flush_delay = flush_delay
        self._reschedule_delay = reschedule_delay
        self._queue_id = queue_id

        self._pending: deque[T] = deque()
        self._in_flight = False
        self._timer: Optional[asyncio.Task] = None
        self._flush_task: Optional[asyncio.Task] = None
        self._closed = False
        self.outcomes: deque[BatchOutcome] = deque(maxlen=100)

    # ---------- introspection

    @property
    def supervisor(self) -> RetrySupervisor[T]:
        return self._supervisor

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def timer_scheduled(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # ---------- public API

    def enqueue(self, item: T) -> None:
        """Append an item; never waits on the network."""
        if self._closed:
            raise QueueClosedError(f"queue {self._queue_id} is draining")

        self._pending.append(item)
        kind = getattr(item, "kind", None)
        ITEMS_ENQUEUED_TOTAL.labels(kind=getattr(kind, "value", "unknown")).inc()
        QUEUE_DEPTH.labels(queue=self._queue_id).set(len(self._pending))

        if self._in_flight:
            return
        if len(self._pending) >= self._batch_size:
            self._cancel_timer()
            if self._flush_task is None or self._flush_task.done():
                self._flush_task = asyncio.create_task(self._run_flush("size"))
        elif self._timer is None:
            self._schedule(self._flush_delay)

    async def flush(self) -> Optional[BatchOutcome]:
        """Hand up to ``batch_size`` oldest items to the supervisor.

        No-op (returns None) if a flush is already in flight or nothing is pending.
        If a size-triggered flush is scheduled but has not started yet, waits for
        it and returns its outcome.
        """
        if self._in_flight or not self._pending:
            return None
        task = self._flush_task
        if task is not None and not task.done():
            return await asyncio.shield(task)
        self._cancel_timer()
        self._flush_task = asyncio.create_task(self._run_flush("manual"))
        return await self._flush_task

    async def drain(self, timeout: float | None = 30.0) -> None:
        """Flush everything still pending; used on shutdown.

        Waits for an in-flight batch first. Gives up after ``timeout`` seconds
        so an unreachable ledger store cannot hang process exit.
        """
        self._closed = True
        self._cancel_timer()
        try:
            await asyncio.wait_for(self._drain(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(
                f"Drain of queue {self._queue_id} timed out after {timeout}s; "
                f"{len(self._pending)} items not flushed"
            )

    async def _drain(self) -> None:
        if self._pending:
            logger.info(f"Processing remaining {len(self._pending)} items...")
        while True:
            if self._flush_task is not None and not self._flush_task.done():
                await asyncio.shield(self._flush_task)
                continue
            if not self._pending:
                return
            self._cancel_timer()
            self._flush_task = asyncio.create_task(self._run_flush("drain"))

    # ---------- internals

    def _schedule(self, delay: float) -> None:
        if self._closed:
            return
        self._timer = asyncio.create_task(self._delayed_flush(delay))

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task() and not timer.done():
            timer.cancel()

    async def _delayed_flush(self, delay: float) -> Optional[BatchOutcome]:
        await asyncio.sleep(delay)
        # Clear the handle before flushing so the flush cannot cancel this task.
        if self._timer is asyncio.current_task():
            self._timer = None
        self._flush_task = asyncio.current_task()
        return await self._run_flush("timer")

    async def _run_flush(self, trigger: str) -> Optional[BatchOutcome]:
        if self._in_flight or not self._pending:
            return None

        self._in_flight = True
        self._cancel_timer()
        batch = [self._pending.popleft() for _ in range(min(self._batch_size, len(self._pending)))]
        QUEUE_DEPTH.labels(queue=self._queue_id).set(len(self._pending))
        FLUSHES_TOTAL.labels(queue=self._queue_id, trigger=trigger).inc()
        logger.info(f"Processing batch of {len(batch)} items ({trigger})")

        outcome: Optional[BatchOutcome] = None
        try:
            outcome = await self._supervisor.run(batch)
            self.outcomes.append(outcome)
            if outcome.ok:
                logger.info(f"Batch of {len(batch)} items synced successfully")
        except Exception as exc:
            # Supervisor contains write errors; anything here is a bug, keep the loop alive.
            logger.exception(f"Unexpected error while flushing batch: {exc}")
        finally:
            self._in_flight = False
            if self._pending and self._timer is None:
                self._schedule(self._reschedule_delay)
        return outcome
