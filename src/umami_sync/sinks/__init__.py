from ..metrics import SINK_WRITE_LATENCY, SINK_WRITES_TOTAL
from .base import BaseSink
from .ledger import DEFAULT_RETENTION, LedgerSink

__all__ = [
    "BaseSink",
    "LedgerSink",
    "DEFAULT_RETENTION",
    "SINK_WRITES_TOTAL",
    "SINK_WRITE_LATENCY",
]
