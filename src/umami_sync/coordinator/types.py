from __future__ import annotations

from typing import Protocol, Sequence, TypeVar

from ..errors import QueueClosedError

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


class Sink(Protocol[T_contra]):
    """Anything that can write a batch; raising means the batch failed."""

    async def write(self, batch: Sequence[T_contra]) -> None: ...


__all__ = ["Sink", "T", "QueueClosedError"]
