from __future__ import annotations

import asyncio
import signal
from datetime import timedelta
from typing import Optional

from loguru import logger

from ledger_client import AsyncLedgerClient

from .config import Settings
from .coordinator import BatchQueue, DeadLetterQueue, RetryPolicy, RetrySupervisor
from .errors import ListenerError
from .listener import ChangeListener
from .models import SyncItem
from .sinks import LedgerSink
from .triggers import TriggerProvisioner


class SyncPipeline:
    """Source store -> listener -> queue -> supervisor -> ledger sink.

    One instance per process; two instances against the same source store
    write every record twice.
    """

    def __init__(
        self,
        *,
        queue: BatchQueue[SyncItem],
        listener: ChangeListener,
        client: AsyncLedgerClient,
        sink: LedgerSink,
        provisioner: Optional[TriggerProvisioner] = None,
        drain_timeout: float = 30.0,
    ):
        self.queue = queue
        self.listener = listener
        self.client = client
        self.sink = sink
        self.provisioner = provisioner
        self.drain_timeout = drain_timeout
        self._stop = asyncio.Event()
        self._shut_down = False
        self._failure: Optional[BaseException] = None
        listener.on_failure = self._listener_failed

    async def start(self) -> None:
        """Install triggers (if configured), then subscribe. Errors here are fatal."""
        if self.provisioner is not None:
            await self.provisioner.provision()
        await self.listener.start()

    def _listener_failed(self, exc: BaseException) -> None:
        self._failure = exc
        self.request_stop()

    def request_stop(self) -> None:
        if not self._stop.is_set():
            logger.info("Shutting down real-time sync...")
        self._stop.set()

    async def run(self) -> None:
        """Run until SIGINT/SIGTERM, then shut down gracefully."""
        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # add_signal_handler is unavailable on Windows event loops
                pass

        try:
            await self.start()
            logger.success("Real-time sync is running!")
            logger.info(
                f"Batch size: {self.queue.batch_size}, "
                f"max retries: {self.queue.supervisor.policy.max_attempts}"
            )
            await self._stop.wait()
            if self._failure is not None:
                raise ListenerError(
                    f"Notification listener failed: {self._failure}"
                ) from self._failure
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            await self.shutdown()

    async def shutdown(self) -> None:
        """Stop listening, flush what is pending (bounded), release connections."""
        if self._shut_down:
            return
        self._shut_down = True
        await self.listener.stop()
        await self.queue.drain(timeout=self.drain_timeout)
        await self.sink.close()
        await self.client.aclose()
        logger.info("Real-time sync stopped")


def build_pipeline(settings: Settings) -> SyncPipeline:
    client = AsyncLedgerClient(
        {
            "rpc_url": settings.LEDGER_RPC_URL,
            "api_key": settings.LEDGER_API_KEY or "",
            "timeout_sec": settings.LEDGER_TIMEOUT_SEC,
        }
    )
    sink = LedgerSink(
        client,
        source_name=settings.SOURCE_NAME,
        retention=timedelta(days=settings.RETENTION_DAYS),
        write_timeout=settings.WRITE_TIMEOUT_SEC,
    )
    dlq = DeadLetterQueue[SyncItem](settings.DLQ_PATH) if settings.DLQ_PATH else None
    supervisor = RetrySupervisor[SyncItem](
        sink,
        RetryPolicy(
            max_attempts=settings.MAX_RETRIES,
            initial_backoff_ms=settings.RETRY_DELAY_MS,
        ),
        sink_name=sink.name,
        dead_letter=dlq,
    )
    queue = BatchQueue[SyncItem](
        supervisor,
        batch_size=settings.BATCH_SIZE,
        flush_delay=settings.BATCH_TIMEOUT_SEC,
        reschedule_delay=settings.RESCHEDULE_DELAY_SEC,
        queue_id=sink.name,
    )
    listener = ChangeListener(
        settings.DATABASE_URL,
        queue.enqueue,
        reconnect_delay=settings.RECONNECT_DELAY_SEC,
    )
    provisioner = None
    if settings.PROVISION_TRIGGERS:
        provisioner = TriggerProvisioner(settings.DATABASE_URL)
    return SyncPipeline(
        queue=queue,
        listener=listener,
        client=client,
        sink=sink,
        provisioner=provisioner,
        drain_timeout=settings.DRAIN_TIMEOUT_SEC,
    )
