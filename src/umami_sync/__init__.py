"""
Umami -> ledger real-time sync

Mirrors newly inserted analytics rows (page views, custom events, sessions)
from the Umami PostgreSQL database into a ledger-backed store with expiring
entities.

Usage:
    from umami_sync import build_pipeline
    from umami_sync.config import get_settings

    asyncio.run(build_pipeline(get_settings()).run())
"""

from .models import LedgerEntity, RecordKind, SyncItem
from .normalizer import classify, normalize
from .runtime import SyncPipeline, build_pipeline

__version__ = "1.0.0"
__all__ = [
    "LedgerEntity",
    "RecordKind",
    "SyncItem",
    "SyncPipeline",
    "build_pipeline",
    "classify",
    "normalize",
]
