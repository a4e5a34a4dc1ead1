from __future__ import annotations

import itertools
from typing import AsyncIterator, Sequence, TypedDict

import httpx
from loguru import logger
from pydantic import ValidationError

from .errors import LedgerOperationalError, RpcError, map_http_error
from .models import CreateReceipt, Entity, EntityCreate, QueryPage


class LedgerConfig(TypedDict, total=False):
    rpc_url: str
    api_key: str
    timeout_sec: float
    create_method: str
    query_method: str


DEFAULTS: LedgerConfig = {
    "timeout_sec": 30.0,
    "create_method": "ledger_createEntities",
    "query_method": "ledger_queryEntities",
}


class AsyncLedgerClient:
    """
    Async JSON-RPC client for a ledger store gateway.

    Usage:

        async with AsyncLedgerClient({"rpc_url": "https://..."}) as client:
            receipts = await client.create_entities([EntityCreate(...)])
            async for entity in client.iter_query('type = "pageview"'):
                ...
    """

    def __init__(self, cfg: LedgerConfig, *, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg: LedgerConfig = {**DEFAULTS, **(cfg or {})}
        if not self.cfg.get("rpc_url"):
            raise ValueError("rpc_url required")
        headers = {"Content-Type": "application/json"}
        if self.cfg.get("api_key"):
            headers["Authorization"] = f"Bearer {self.cfg['api_key']}"
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=self.cfg["timeout_sec"],
            transport=transport,
        )
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "AsyncLedgerClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---------- transport ----------

    async def _call(self, method: str, params: list) -> object:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = await self._client.post(self.cfg["rpc_url"], json=body)
            resp.raise_for_status()
            data = resp.json()
        except Exception as e:
            raise map_http_error(e) from e

        if not isinstance(data, dict):
            raise LedgerOperationalError(f"Malformed rpc response: {type(data).__name__}")
        if data.get("error"):
            err = data["error"]
            raise RpcError(err.get("message", "unknown rpc error"), code=err.get("code"))
        return data.get("result")

    # ---------- writes ----------

    async def create_entities(self, entities: Sequence[EntityCreate]) -> list[CreateReceipt]:
        """Create all entities in a single call; returns one receipt per accepted entity."""
        if not entities:
            return []
        result = await self._call(self.cfg["create_method"], [[e.to_wire() for e in entities]])
        if result is not None and not isinstance(result, list):
            raise LedgerOperationalError(
                f"Malformed create receipts: expected a list, got {type(result).__name__}"
            )
        try:
            receipts = [
                CreateReceipt(
                    entity_key=r["entityKey"],
                    expiration_block=r.get("expirationBlock"),
                )
                for r in (result or [])
            ]
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise LedgerOperationalError(f"Malformed create receipts: {e}") from e
        logger.debug(f"Ledger acknowledged {len(receipts)}/{len(entities)} entities")
        return receipts

    # ---------- reads ----------

    async def query(
        self, predicate: str, *, page_size: int = 100, cursor: str | None = None
    ) -> QueryPage:
        if page_size <= 0:
            raise ValueError("page_size must be > 0")
        params: dict = {"query": predicate, "limit": page_size}
        if cursor:
            params["cursor"] = cursor
        result = await self._call(self.cfg["query_method"], [params]) or {}
        return QueryPage(
            entities=[Entity.from_wire(raw) for raw in result.get("entities") or []],
            cursor=result.get("cursor"),
        )

    async def iter_query(self, predicate: str, *, page_size: int = 100) -> AsyncIterator[Entity]:
        cursor = None
        while True:
            page = await self.query(predicate, page_size=page_size, cursor=cursor)
            for entity in page.entities:
                yield entity
            if not page.has_more:
                return
            cursor = page.cursor
