import asyncio
import sys
from datetime import timedelta
from typing import Optional

import typer
from loguru import logger
from prometheus_client import start_http_server
from pydantic import ValidationError

from ledger_client import AsyncLedgerClient

from .config import get_settings
from .coordinator import DeadLetterQueue, RetryPolicy, RetrySupervisor
from .errors import ListenerError, ProvisioningError
from .models import SyncItem
from .runtime import build_pipeline
from .sinks import LedgerSink
from .triggers import TriggerProvisioner

app = typer.Typer(help="Umami -> ledger real-time sync")


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


@app.command()
def run(
    metrics_port: Optional[int] = typer.Option(
        None, "--metrics-port", help="Expose Prometheus metrics on this port"
    ),
    provision: Optional[bool] = typer.Option(
        None, "--provision/--no-provision", help="Install notify triggers before listening"
    ),
):
    """Listen for inserts and mirror them to the ledger store until interrupted."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    if provision is not None:
        settings = settings.model_copy(update={"PROVISION_TRIGGERS": provision})

    port = metrics_port or settings.METRICS_PORT
    if port:
        start_http_server(port)
        logger.info(f"Metrics exposed on :{port}")

    logger.info("Starting Umami -> ledger real-time sync...")
    try:
        asyncio.run(build_pipeline(settings).run())
    except (ProvisioningError, ListenerError) as e:
        logger.error(f"Real-time sync failed: {e}")
        sys.exit(1)


@app.command("setup-triggers")
def setup_triggers():
    """Install (or replace) the notify triggers on website_event and session."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    try:
        asyncio.run(TriggerProvisioner(settings.DATABASE_URL).provision())
        logger.success("Triggers installed")
    except ProvisioningError as e:
        logger.error(str(e))
        sys.exit(1)


@app.command("drop-triggers")
def drop_triggers():
    """Remove the notify triggers and their functions."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    try:
        asyncio.run(TriggerProvisioner(settings.DATABASE_URL).remove())
        logger.success("Triggers removed")
    except ProvisioningError as e:
        logger.error(str(e))
        sys.exit(1)


async def _replay(path: str, max_records: int) -> tuple[int, int]:
    settings = get_settings()
    dlq = DeadLetterQueue[SyncItem](path, mkdirs=False)
    records = await dlq.replay(max_records)
    if not records:
        return 0, 0

    written = failed = 0
    async with AsyncLedgerClient(
        {"rpc_url": settings.LEDGER_RPC_URL, "api_key": settings.LEDGER_API_KEY or ""}
    ) as client:
        sink = LedgerSink(
            client,
            source_name=settings.SOURCE_NAME,
            retention=timedelta(days=settings.RETENTION_DAYS),
            write_timeout=settings.WRITE_TIMEOUT_SEC,
        )
        supervisor = RetrySupervisor[SyncItem](
            sink,
            RetryPolicy(
                max_attempts=settings.MAX_RETRIES,
                initial_backoff_ms=settings.RETRY_DELAY_MS,
            ),
        )
        for rec in records:
            try:
                batch = [SyncItem(**raw) for raw in rec.items]
            except (TypeError, ValidationError) as e:
                logger.error(f"Skipping unreadable DLQ record from {rec.ts}: {e}")
                failed += 1
                continue
            outcome = await supervisor.run(batch)
            if outcome.ok:
                written += len(batch)
            else:
                failed += 1
    return written, failed


@app.command("replay-dlq")
def replay_dlq(
    path: Optional[str] = typer.Option(None, "--path", help="DLQ file (default: DLQ_PATH)"),
    max_records: int = typer.Option(1000, "--max-records"),
):
    """Resubmit batches that were dropped after retry exhaustion."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    dlq_path = path or settings.DLQ_PATH
    if not dlq_path:
        logger.error("No DLQ path given (use --path or DLQ_PATH)")
        sys.exit(1)

    written, failed = asyncio.run(_replay(dlq_path, max_records))
    logger.info(f"Replayed {written} items; {failed} records failed")
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    app()
