"""Tool-level exception types.

Convention:
- Fatal errors (``TransferConnectionError``, ``DirectoryNotFoundError``,
  ``PackConfigError``) propagate to the CLI entry point, which prints
  ``Error: <message>`` and exits with status 1.  They are raised before any
  remote mutation happens.
- ``TransferError`` is per-item.  The sync executor catches it, records a
  failed ``SyncOutcome`` and carries on with the next item; it never escapes
  a sync run.
- ``RegistryError`` wraps any failed Modrinth request.  Batch operations
  (version checks, downloads, publishing) log and skip the failing item;
  redirect generation needs every project and lets it propagate.
"""

from __future__ import annotations


class McpackError(Exception):
    """Base class for all errors raised by mcpack."""


class TransferConnectionError(McpackError):
    """Raised when the transfer session cannot be established or is lost."""


class DirectoryNotFoundError(McpackError):
    """Raised when a local directory that must be scanned does not exist."""


class RemoteDirectoryMissing(McpackError):
    """Raised by a transfer session when a listed remote directory does not exist.

    The remote inventory fetcher maps this to an empty inventory; callers of
    the sync pipeline never see it.
    """


class TransferError(McpackError):
    """Raised when a single upload or delete fails."""


class RegistryError(McpackError):
    """Raised when a Modrinth API request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PackConfigError(McpackError):
    """Raised when a pack JSON config file is missing or invalid."""
