"""
Trigger provisioner: makes the source store emit a notification per insert.

Idempotent (CREATE OR REPLACE / DROP ... IF EXISTS). Must complete before the
listener subscribes, otherwise inserts made in between are never seen.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import psycopg
from loguru import logger
from psycopg import sql as psql

from .errors import ProvisioningError
from .normalizer import SESSION_CHANNEL, WEBSITE_EVENT_CHANNEL


@dataclass(frozen=True)
class WatchedTable:
    table: str
    function: str
    trigger: str
    channel: str


WATCHED_TABLES: tuple[WatchedTable, ...] = (
    WatchedTable(
        table="website_event",
        function="notify_website_event",
        trigger="website_event_notify_trigger",
        channel=WEBSITE_EVENT_CHANNEL,
    ),
    WatchedTable(
        table="session",
        function="notify_session",
        trigger="session_notify_trigger",
        channel=SESSION_CHANNEL,
    ),
)


def create_function_statement(w: WatchedTable) -> psql.Composed:
    return psql.SQL(
        "CREATE OR REPLACE FUNCTION {fn}() RETURNS trigger AS $$\n"
        "BEGIN\n"
        "  PERFORM pg_notify({channel}, row_to_json(NEW)::text);\n"
        "  RETURN NEW;\n"
        "END;\n"
        "$$ LANGUAGE plpgsql"
    ).format(fn=psql.Identifier(w.function), channel=psql.Literal(w.channel))


def drop_trigger_statement(w: WatchedTable) -> psql.Composed:
    return psql.SQL("DROP TRIGGER IF EXISTS {} ON {}").format(
        psql.Identifier(w.trigger), psql.Identifier(w.table)
    )


def create_trigger_statement(w: WatchedTable) -> psql.Composed:
    return psql.SQL(
        "CREATE TRIGGER {} AFTER INSERT ON {} FOR EACH ROW EXECUTE FUNCTION {}()"
    ).format(psql.Identifier(w.trigger), psql.Identifier(w.table), psql.Identifier(w.function))


def drop_function_statement(w: WatchedTable) -> psql.Composed:
    return psql.SQL("DROP FUNCTION IF EXISTS {}()").format(psql.Identifier(w.function))


class TriggerProvisioner:
    """Installs (or removes) the notify triggers on the watched tables."""

    def __init__(self, conninfo: str, tables: Sequence[WatchedTable] = WATCHED_TABLES):
        self._conninfo = conninfo
        self._tables = tuple(tables)

    def install_statements(self) -> list[psql.Composed]:
        out: list[psql.Composed] = []
        for w in self._tables:
            out += [
                create_function_statement(w),
                drop_trigger_statement(w),
                create_trigger_statement(w),
            ]
        return out

    def remove_statements(self) -> list[psql.Composed]:
        out: list[psql.Composed] = []
        for w in self._tables:
            out += [drop_trigger_statement(w), drop_function_statement(w)]
        return out

    async def provision(self) -> None:
        """(Re)install all triggers in one transaction. Raises ProvisioningError."""
        await self._run(self.install_statements(), "install")
        logger.info(
            f"Database triggers set up successfully on {', '.join(w.table for w in self._tables)}"
        )

    async def remove(self) -> None:
        await self._run(self.remove_statements(), "remove")
        logger.info("Database triggers removed")

    async def _run(self, statements: Sequence[psql.Composed], action: str) -> None:
        try:
            async with await psycopg.AsyncConnection.connect(self._conninfo) as conn:
                async with conn.transaction():
                    for stmt in statements:
                        await conn.execute(stmt)
        except psycopg.Error as e:
            raise ProvisioningError(f"Failed to {action} triggers: {e}") from e
