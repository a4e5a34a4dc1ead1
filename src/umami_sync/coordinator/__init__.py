"""Batch coordinator

Queue -> supervisor -> sink dispatch for SyncItems:
- BatchQueue (size/time flushing, single batch in flight)
- RetrySupervisor state machine with exponential backoff
- RetryPolicy + retry classifier
- Dead Letter Queue (file-based NDJSON) for dropped batches
"""

from .types import Sink, T, QueueClosedError
from .policy import RetryPolicy, default_retry_classifier
from .supervisor import BatchOutcome, BatchState, RetrySupervisor
from .queue import BatchQueue
from .dlq import DeadLetterQueue, DLQRecord

__all__ = [
    # types
    "Sink",
    "T",
    "QueueClosedError",
    "BatchOutcome",
    "BatchState",
    "DLQRecord",
    # policies
    "RetryPolicy",
    "default_retry_classifier",
    # runtime
    "BatchQueue",
    "RetrySupervisor",
    # tooling
    "DeadLetterQueue",
]
