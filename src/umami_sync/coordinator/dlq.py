"""
File-based dead letter queue (NDJSON).

Batches dropped after retry exhaustion are appended here so they can be
replayed by hand once the ledger store is reachable again.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import asdict, dataclass, field, is_dataclass
from pathlib import Path
from typing import Any, Generic, Sequence

from loguru import logger

from .types import T


@dataclass
class DLQRecord:
    ts: float
    error: str
    items: list[Any]
    metadata: dict[str, Any] = field(default_factory=dict)


def _encode_item(item: Any) -> Any:
    if hasattr(item, "model_dump"):
        return item.model_dump(mode="json")
    if is_dataclass(item) and not isinstance(item, type):
        return asdict(item)
    return item


class DeadLetterQueue(Generic[T]):
    """Append-only NDJSON store of failed batches."""

    def __init__(self, path: str | Path, *, mkdirs: bool = True):
        self.path = Path(path)
        if mkdirs:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    async def save(
        self, items: Sequence[T], error: BaseException | str, metadata: dict[str, Any] | None = None
    ) -> None:
        record = DLQRecord(
            ts=time.time(),
            error=f"{type(error).__name__}: {error}" if isinstance(error, BaseException) else error,
            items=[_encode_item(i) for i in items],
            metadata=dict(metadata or {}),
        )
        line = json.dumps(asdict(record), default=str)
        async with self._lock:
            await asyncio.to_thread(self._append, line)
        logger.warning(f"DLQ saved {len(items)} items to {self.path}")

    def _append(self, line: str) -> None:
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    async def replay(self, max_records: int = 1000) -> list[DLQRecord]:
        """Read up to ``max_records`` records, oldest first. Corrupt lines are skipped."""
        if not self.path.exists():
            return []
        lines = await asyncio.to_thread(self._read_lines)
        out: list[DLQRecord] = []
        for n, line in enumerate(lines, start=1):
            if len(out) >= max_records:
                break
            if not line.strip():
                continue
            try:
                out.append(DLQRecord(**json.loads(line)))
            except (json.JSONDecodeError, TypeError) as exc:
                logger.warning(f"Skipping corrupt DLQ line {n} in {self.path}: {exc}")
        return out

    def _read_lines(self) -> list[str]:
        return self.path.read_text(encoding="utf-8").splitlines()
