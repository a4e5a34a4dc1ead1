from .registry import (
    BATCHES_DROPPED_TOTAL,
    FLUSHES_TOTAL,
    ITEMS_DROPPED_TOTAL,
    ITEMS_ENQUEUED_TOTAL,
    NOTIFICATIONS_TOTAL,
    QUEUE_DEPTH,
    RETRY_ATTEMPTS_TOTAL,
    SINK_WRITE_LATENCY,
    SINK_WRITES_TOTAL,
)

__all__ = [
    "BATCHES_DROPPED_TOTAL",
    "FLUSHES_TOTAL",
    "ITEMS_DROPPED_TOTAL",
    "ITEMS_ENQUEUED_TOTAL",
    "NOTIFICATIONS_TOTAL",
    "QUEUE_DEPTH",
    "RETRY_ATTEMPTS_TOTAL",
    "SINK_WRITE_LATENCY",
    "SINK_WRITES_TOTAL",
]
