"""
Custom exceptions for the ledger store client.

Provides structured error handling with retry logic and observability.
"""


class LedgerOperationalError(Exception):
    """Base operational error for the ledger client."""

    pass


class RetryableError(LedgerOperationalError):
    """Temporary errors that should be retried with backoff."""

    pass


class RpcError(LedgerOperationalError):
    """The gateway answered with a JSON-RPC error object."""

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


class AcknowledgementMismatch(LedgerOperationalError):
    """The store acknowledged fewer (or more) entities than were submitted."""

    def __init__(self, submitted: int, acknowledged: int):
        super().__init__(f"Expected {submitted} receipts, got {acknowledged}")
        self.submitted = submitted
        self.acknowledged = acknowledged


def map_http_error(e: Exception) -> LedgerOperationalError:
    import httpx

    if isinstance(e, LedgerOperationalError):
        return e
    if isinstance(e, (httpx.TimeoutException, httpx.TransportError)):
        return RetryableError(str(e))
    if isinstance(e, httpx.HTTPStatusError):
        if e.response.status_code == 429 or e.response.status_code >= 500:
            return RetryableError(str(e))
        return LedgerOperationalError(str(e))
    return LedgerOperationalError(str(e))
