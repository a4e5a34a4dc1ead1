from __future__ import annotations

import asyncio
import json

import typer

from .client import AsyncLedgerClient

app = typer.Typer(help="ledger_client inspection CLI")


def rpc_url_opt() -> str:
    return typer.Option(..., "--rpc-url", envvar="LEDGER_RPC_URL", help="Ledger gateway URL")


def api_key_opt() -> str:
    return typer.Option("", "--api-key", envvar="LEDGER_API_KEY", help="Bearer token")


async def _query(rpc_url: str, api_key: str, predicate: str, page_size: int, limit: int) -> int:
    n = 0
    async with AsyncLedgerClient({"rpc_url": rpc_url, "api_key": api_key}) as client:
        async for entity in client.iter_query(predicate, page_size=page_size):
            try:
                payload = json.loads(entity.payload) if entity.payload else None
            except ValueError:
                payload = entity.payload.decode("utf-8", errors="replace")
            typer.echo(
                json.dumps(
                    {
                        "entity_key": entity.entity_key,
                        "annotations": entity.annotations,
                        "expires_at": entity.expires_at,
                        "payload": payload,
                    },
                    default=str,
                )
            )
            n += 1
            if limit and n >= limit:
                break
    return n


@app.command("query")
def query(
    predicate: str = typer.Argument(..., help='Annotation predicate, e.g. type = "pageview"'),
    page_size: int = typer.Option(100, "--page-size"),
    limit: int = typer.Option(0, "--limit", help="Stop after this many entities (0 = all)"),
    rpc_url: str = rpc_url_opt(),
    api_key: str = api_key_opt(),
):
    """Print entities matching an annotation predicate as NDJSON."""
    n = asyncio.run(_query(rpc_url, api_key, predicate, page_size, limit))
    typer.echo(f"# {n} entities", err=True)


if __name__ == "__main__":
    app()
