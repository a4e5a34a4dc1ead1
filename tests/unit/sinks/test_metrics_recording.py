"""
Unit tests for metrics recording.
"""

import pytest

from umami_sync.sinks import SINK_WRITE_LATENCY, SINK_WRITES_TOTAL, LedgerSink


@pytest.mark.asyncio
async def test_metrics_success_increment(mock_ledger_success, make_item):
    """Test that successful writes increment success metrics."""
    sink = LedgerSink(mock_ledger_success)

    async with sink:
        await sink.write([make_item(1)])

    samples = list(SINK_WRITES_TOTAL.collect())[0].samples
    success_samples = [
        s
        for s in samples
        if s.labels.get("sink") == "ledger" and s.labels.get("status") == "success"
    ]
    assert len(success_samples) > 0


@pytest.mark.asyncio
async def test_metrics_failure_increment(mock_ledger_failure, make_item):
    """Test that failed writes increment failure metrics."""
    sink = LedgerSink(mock_ledger_failure)

    with pytest.raises(Exception):
        async with sink:
            await sink.write([make_item(1)])

    samples = list(SINK_WRITES_TOTAL.collect())[0].samples
    failure_samples = [
        s
        for s in samples
        if s.labels.get("sink") == "ledger" and s.labels.get("status") == "failure"
    ]
    assert len(failure_samples) > 0


@pytest.mark.asyncio
async def test_metrics_latency_recorded(mock_ledger_success, make_item):
    """Test that write latency is recorded."""
    sink = LedgerSink(mock_ledger_success)

    async with sink:
        await sink.write([make_item(1)])

    samples = list(SINK_WRITE_LATENCY.collect())[0].samples
    ledger_samples = [s for s in samples if s.labels.get("sink") == "ledger"]
    assert len(ledger_samples) > 0
