from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Generic, Sequence, TypeVar

from loguru import logger

from ..metrics import SINK_WRITE_LATENCY, SINK_WRITES_TOTAL

T = TypeVar("T")


class BaseSink(ABC, Generic[T]):
    """Async sink with write metrics and context-managed lifecycle."""

    name: str = "sink"

    def __init__(self) -> None:
        self._closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self) -> None:
        self._closed = True

    async def write(self, batch: Sequence[T]) -> None:
        if self._closed:
            raise RuntimeError(f"{self.name} sink is closed")
        start = time.perf_counter()
        try:
            await self._write(batch)
        except Exception as exc:
            SINK_WRITES_TOTAL.labels(sink=self.name, status="failure").inc()
            logger.warning(f"[{self.name}] write of {len(batch)} items failed: {exc}")
            raise
        else:
            SINK_WRITES_TOTAL.labels(sink=self.name, status="success").inc()
        finally:
            SINK_WRITE_LATENCY.labels(sink=self.name).observe(time.perf_counter() - start)

    @abstractmethod
    async def _write(self, batch: Sequence[T]) -> None: ...
