"""
Pipeline metrics, registered in the Prometheus global REGISTRY on import.
"""

from prometheus_client import Counter, Gauge, Histogram

# --- Listener ---

NOTIFICATIONS_TOTAL = Counter(
    "sync_notifications_total",
    "Notifications received from the source store",
    ["channel", "outcome"],
)

# --- Queue ---

ITEMS_ENQUEUED_TOTAL = Counter(
    "sync_items_enqueued_total",
    "SyncItems accepted by the batch queue",
    ["kind"],
)

QUEUE_DEPTH = Gauge(
    "sync_queue_depth",
    "Items pending in the batch queue",
    ["queue"],
)

FLUSHES_TOTAL = Counter(
    "sync_flushes_total",
    "Batches handed from the queue to the retry supervisor",
    ["queue", "trigger"],
)

# --- Retry supervisor ---

RETRY_ATTEMPTS_TOTAL = Counter(
    "sync_retry_attempts_total",
    "Write attempts beyond the first for a batch",
    ["sink"],
)

BATCHES_DROPPED_TOTAL = Counter(
    "sync_batches_dropped_total",
    "Batches discarded after retry exhaustion",
    ["sink"],
)

ITEMS_DROPPED_TOTAL = Counter(
    "sync_items_dropped_total",
    "Items lost with dropped batches",
    ["sink"],
)

# --- Sinks ---

SINK_WRITES_TOTAL = Counter(
    "sink_writes_total",
    "Total number of sink write calls",
    ["sink", "status"],
)

SINK_WRITE_LATENCY = Histogram(
    "sink_write_latency_seconds",
    "Sink write latency in seconds",
    ["sink"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)
