"""
Unit tests for RetryPolicy.
"""

import pytest
from pydantic import ValidationError

from ledger_client import AcknowledgementMismatch, RetryableError
from umami_sync.coordinator import RetryPolicy, default_retry_classifier
from umami_sync.models import SyncItem


def test_default_retry_classifier():
    """Transport and ledger failures are retried; construction errors are not."""
    assert default_retry_classifier(TimeoutError("socket timeout"))
    assert default_retry_classifier(RetryableError("503"))
    assert default_retry_classifier(AcknowledgementMismatch(10, 9))
    assert default_retry_classifier(ConnectionError("reset"))
    assert not default_retry_classifier(ValueError("invalid argument"))
    assert not default_retry_classifier(TypeError("bad type"))


def test_validation_error_not_retryable():
    with pytest.raises(ValidationError) as exc_info:
        SyncItem(kind="pageview", site_id="", occurred_at="2024-01-01T00:00:00Z")
    assert not default_retry_classifier(exc_info.value)


def test_default_backoff_doubles():
    rp = RetryPolicy()
    assert [rp.backoff_seconds(n) for n in range(3)] == [1.0, 2.0, 4.0]


def test_backoff_curve_monotonic_with_cap():
    """Test exponential backoff with max cap."""
    rp = RetryPolicy(initial_backoff_ms=50, max_backoff_ms=200, jitter=False)
    vals = [rp.backoff_seconds(i) for i in range(10)]
    # 50, 100, 200, 200, 200...
    assert vals[:3] == [0.05, 0.1, 0.2]
    assert all(v <= 0.2 for v in vals)


def test_backoff_with_jitter():
    """Jitter stays within ±25% of the base delay."""
    rp = RetryPolicy(initial_backoff_ms=1000, max_backoff_ms=10_000, jitter=True)
    vals = [rp.backoff_seconds(0) for _ in range(20)]
    assert all(0.75 <= v <= 1.25 for v in vals)


def test_custom_classifier():
    """Test custom error classifier."""

    def always_retry(exc: BaseException) -> bool:
        return True

    rp = RetryPolicy(classify_retryable=always_retry)
    assert rp.classify_retryable(Exception("anything"))
    assert rp.classify_retryable(ValueError("anything"))


def test_negative_attempts_rejected():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=-1)
