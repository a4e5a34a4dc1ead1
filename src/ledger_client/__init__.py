"""
Ledger Store Client Library

Async client for an append-only, ledger-backed entity store reached through a
JSON-RPC gateway. Entities carry a payload, searchable annotations and an
expiry.

Usage:
    from ledger_client import AsyncLedgerClient, EntityCreate

    async with AsyncLedgerClient({"rpc_url": "https://..."}) as client:
        await client.create_entities([EntityCreate(payload=b"{}", expires_in=3600)])
"""

from .client import AsyncLedgerClient, LedgerConfig
from .errors import (
    AcknowledgementMismatch,
    LedgerOperationalError,
    RetryableError,
    RpcError,
)
from .models import CreateReceipt, Entity, EntityCreate, QueryPage

__version__ = "1.0.0"
__all__ = [
    "AsyncLedgerClient",
    "LedgerConfig",
    "EntityCreate",
    "CreateReceipt",
    "Entity",
    "QueryPage",
    "LedgerOperationalError",
    "RetryableError",
    "RpcError",
    "AcknowledgementMismatch",
]
