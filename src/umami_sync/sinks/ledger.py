from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from typing import Callable, Optional, Sequence

from ledger_client import AcknowledgementMismatch, AsyncLedgerClient

from ..models import LedgerEntity, SyncItem
from ..utils import unix_now
from .base import BaseSink

DEFAULT_RETENTION = timedelta(days=30)


class LedgerSink(BaseSink[SyncItem]):
    """Writes each batch of SyncItems to the ledger store in one call.

    The write only counts as successful when the store acknowledges exactly
    as many entities as were submitted; anything else raises so the whole
    batch is retried.
    """

    name = "ledger"

    def __init__(
        self,
        client: AsyncLedgerClient,
        *,
        source_name: str = "umami",
        retention: timedelta = DEFAULT_RETENTION,
        write_timeout: Optional[float] = 30.0,
        clock: Callable[[], int] = unix_now,
    ):
        super().__init__()
        self._client = client
        self._source = source_name
        self._expires_in = int(retention.total_seconds())
        self._timeout = write_timeout
        self._clock = clock

    def build_entities(self, batch: Sequence[SyncItem], sync_time: int) -> list[LedgerEntity]:
        entities = []
        for item in batch:
            annotations = dict(item.tags)
            annotations.update(
                {
                    "type": item.kind.value,
                    "source": self._source,
                    "website_id": item.site_id,
                    "timestamp": item.occurred_at,
                    "umami_id": item.source_id,
                    "sync_time": sync_time,
                    "batch_size": len(batch),
                }
            )
            entities.append(
                LedgerEntity(
                    payload=json.dumps(item.body, default=str).encode("utf-8"),
                    content_type="application/json",
                    annotations=annotations,
                    expires_in=self._expires_in,
                )
            )
        return entities

    async def _write(self, batch: Sequence[SyncItem]) -> None:
        entities = self.build_entities(batch, self._clock())
        call = self._client.create_entities(entities)
        if self._timeout:
            receipts = await asyncio.wait_for(call, timeout=self._timeout)
        else:
            receipts = await call
        if len(receipts) != len(entities):
            raise AcknowledgementMismatch(len(entities), len(receipts))
