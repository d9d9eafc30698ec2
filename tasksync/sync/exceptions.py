"""
Exceptions raised by the sync engine.

Only ``ConnectivityError`` from the probe aborts a pass; the others are
turned into per-item error outcomes and charged against the retry budget.
"""


class SyncError(Exception):
    """Base class for sync engine errors."""


class ConnectivityError(SyncError):
    """The remote authority could not be reached (refused, DNS, timeout)."""


class RemoteRejectionError(SyncError):
    """The remote authority explicitly rejected a submission."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(RemoteRejectionError):
    """The remote authority's reply was missing or malformed."""


class SyncInProgressError(SyncError):
    """A sync pass was requested while another one is still running."""
