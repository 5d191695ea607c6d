"""Error taxonomy for the sync engine."""

from __future__ import annotations

DECRYPTION_FAILED = "decryption failed: wrong password or corrupted data"


class SyncError(Exception):
    """Base class for all sync failures."""


class ConfigurationMissing(SyncError):
    """No remote has been configured yet."""

    def __init__(self, message: str = "Remote sync is not configured. Run: ccc sync setup"):
        super().__init__(message)


class DecryptionError(SyncError):
    """Wrong passphrase or corrupted payload."""

    def __init__(self, message: str = DECRYPTION_FAILED):
        super().__init__(message)


class BlobFormatError(DecryptionError):
    """Malformed blob: bad magic or truncated buffer.

    Carries the same message as DecryptionError so callers can't tell a
    format problem from an authentication failure.
    """


class SnapshotFormatError(SyncError):
    """The decrypted payload is not a snapshot this version understands."""


class TransportError(SyncError):
    """The remote store could not be reached or refused the request."""


class RemoteNotFound(TransportError):
    """The requested remote file does not exist."""


class RemoteChangedError(SyncError):
    """The remote snapshot changed between fetch and upload."""

    def __init__(self, expected: int | None, actual: int | None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            "Remote profiles changed since they were fetched "
            f"(expected updatedAt={expected}, found {actual}). Run the command again."
        )


class CancelledByUser(SyncError):
    """The user declined a confirmation prompt."""
