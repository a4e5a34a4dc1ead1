"""
Pipeline exceptions.

Decode errors are per-notification and contained by the listener; provisioning
errors are fatal at startup.
"""


class SyncError(Exception):
    """Base error for the sync pipeline."""

    pass


class MalformedPayloadError(SyncError):
    """A notification payload could not be decoded or lacks an identity field."""

    pass


class ProvisioningError(SyncError):
    """Triggers could not be installed or the listener could not subscribe."""

    pass


class QueueClosedError(SyncError):
    """Enqueue attempted after the queue started draining."""

    pass


class ListenerError(SyncError):
    """The notification listener stopped unexpectedly while running."""

    pass
