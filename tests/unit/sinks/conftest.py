"""
Fixtures for sink unit tests.
"""

import asyncio

import pytest
from types import SimpleNamespace

from ledger_client import CreateReceipt, RetryableError


def _receipts(n: int) -> list[CreateReceipt]:
    return [CreateReceipt(entity_key=f"0x{i:04x}") for i in range(n)]


@pytest.fixture()
def mock_ledger_success():
    """Ledger client mock that records calls and acknowledges every entity."""
    calls = []

    async def _create_entities(entities):
        calls.append(list(entities))
        return _receipts(len(entities))

    client = SimpleNamespace(create_entities=_create_entities)
    client._calls = calls
    return client


@pytest.fixture()
def mock_ledger_short_ack():
    """Ledger client mock that acknowledges one entity fewer than submitted."""

    async def _create_entities(entities):
        return _receipts(len(entities) - 1)

    return SimpleNamespace(create_entities=_create_entities)


@pytest.fixture()
def mock_ledger_failure():
    """Ledger client mock that always raises (for failure path tests)."""

    async def _fail(_):
        raise RetryableError("ledger unavailable")

    return SimpleNamespace(create_entities=_fail)


@pytest.fixture()
def mock_ledger_hanging():
    """Ledger client mock whose write never returns."""

    async def _hang(_):
        await asyncio.Event().wait()

    return SimpleNamespace(create_entities=_hang)
