"""
Change listener: LISTEN on the source store's notification channels.

Each notification is decoded, classified, normalized and handed to the
``on_item`` callback (normally ``BatchQueue.enqueue``). Failures are contained
per notification: a bad payload or a failing callback is logged and counted,
and the listener keeps consuming.
"""

from __future__ import annotations

import asyncio
import json
from typing import Callable, Optional, Sequence

import psycopg
from loguru import logger
from psycopg import sql as psql

from .errors import MalformedPayloadError, ProvisioningError
from .metrics import NOTIFICATIONS_TOTAL
from .models import SyncItem
from .normalizer import CHANNELS, classify, normalize


class ChangeListener:
    """Persistent LISTEN subscription feeding SyncItems to a callback."""

    def __init__(
        self,
        conninfo: str,
        on_item: Callable[[SyncItem], None],
        *,
        channels: Sequence[str] = CHANNELS,
        reconnect_delay: float = 5.0,
        on_failure: Optional[Callable[[BaseException], None]] = None,
    ):
        self._conninfo = conninfo
        self._on_item = on_item
        self._channels = tuple(channels)
        self._reconnect_delay = reconnect_delay
        self._conn: Optional[psycopg.AsyncConnection] = None
        self._task: Optional[asyncio.Task] = None
        self._stopping = False
        # Called if the consumer task dies with an unexpected error.
        self.on_failure = on_failure

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Connect and subscribe. Raises ProvisioningError if that fails."""
        try:
            await self._subscribe()
        except psycopg.Error as e:
            await self._close_conn()
            raise ProvisioningError(f"Failed to subscribe to {self._channels}: {e}") from e
        self._stopping = False
        self._task = asyncio.create_task(self._consume_forever())
        self._task.add_done_callback(self._on_task_done)
        logger.info(f"Database listeners set up for real-time sync: {', '.join(self._channels)}")

    async def stop(self) -> None:
        self._stopping = True
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"Listener task had already failed: {e}")
            self._task = None
        await self._close_conn()

    # ---------- notification handling

    def handle_notification(self, channel: str, payload: str) -> Optional[SyncItem]:
        """Decode, classify, normalize and forward one notification.

        Returns the forwarded item, or None if the notification was dropped
        or ignored.
        """
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, TypeError) as e:
            NOTIFICATIONS_TOTAL.labels(channel=channel, outcome="decode_error").inc()
            logger.warning(f"Error processing notification on {channel}: invalid JSON ({e})")
            return None

        if not isinstance(data, dict):
            NOTIFICATIONS_TOTAL.labels(channel=channel, outcome="decode_error").inc()
            logger.warning(f"Error processing notification on {channel}: payload is not an object")
            return None

        kind = classify(channel, data)
        if kind is None:
            NOTIFICATIONS_TOTAL.labels(channel=channel, outcome="ignored").inc()
            logger.debug(
                f"Ignoring notification on {channel} (event_type={data.get('event_type')})"
            )
            return None

        try:
            item = normalize(kind, data)
        except MalformedPayloadError as e:
            NOTIFICATIONS_TOTAL.labels(channel=channel, outcome="decode_error").inc()
            logger.warning(f"Error processing notification on {channel}: {e}")
            return None

        try:
            self._on_item(item)
        except Exception as e:
            NOTIFICATIONS_TOTAL.labels(channel=channel, outcome="rejected").inc()
            logger.error(f"Failed to enqueue {item.kind.value} {item.source_id}: {e}")
            return None

        NOTIFICATIONS_TOTAL.labels(channel=channel, outcome="accepted").inc()
        return item

    # ---------- connection management

    async def _subscribe(self) -> None:
        self._conn = await psycopg.AsyncConnection.connect(self._conninfo, autocommit=True)
        for channel in self._channels:
            await self._conn.execute(psql.SQL("LISTEN {}").format(psql.Identifier(channel)))

    async def _close_conn(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None and not conn.closed:
            try:
                await conn.close()
            except psycopg.Error as e:
                logger.debug(f"Ignoring error while closing listener connection: {e}")

    async def _consume_forever(self) -> None:
        while not self._stopping:
            try:
                async for notify in self._conn.notifies():
                    self.handle_notification(notify.channel, notify.payload)
            except psycopg.Error as e:
                if self._stopping:
                    return
                logger.error(f"Lost notification connection ({type(e).__name__}): {e}")
            else:
                if self._stopping:
                    return
                logger.warning("Notification stream ended; reconnecting")
            await self._reconnect()

    async def _reconnect(self) -> None:
        await self._close_conn()
        while not self._stopping:
            await asyncio.sleep(self._reconnect_delay)
            try:
                await self._subscribe()
            except psycopg.Error as e:
                logger.error(f"Reconnect failed, retrying in {self._reconnect_delay}s: {e}")
                await self._close_conn()
                continue
            logger.warning(
                "Reconnected notification listener; "
                "inserts made while disconnected are not replayed"
            )
            return

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled() or self._stopping:
            return
        exc = task.exception()
        if exc is None:
            return
        logger.opt(exception=exc).critical(f"Notification listener died: {exc}")
        if self.on_failure is not None:
            self.on_failure(exc)
