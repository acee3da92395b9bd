"""Base protocol and data classes for remote file transfer sessions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path


class EntryType(StrEnum):
    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"


@dataclass(frozen=True)
class RemoteEntry:
    """One row of a remote directory listing."""

    name: str
    size: int
    type: EntryType = EntryType.FILE


@runtime_checkable
class TransferSession(Protocol):
    """Protocol for an authenticated connection to a remote file store.

    Implementations raise ``TransferConnectionError`` when the session cannot
    be established or is lost, ``RemoteDirectoryMissing`` when a listed
    directory does not exist, and ``TransferError`` for a failed upload or
    delete of a single file.
    """

    def connect(self) -> None:
        """Open and authenticate the session."""
        ...

    def list(self, path: str) -> list[RemoteEntry]:
        """List the entries directly inside a remote directory."""
        ...

    def upload(self, local_path: Path, remote_path: str) -> None:
        """Upload a local file, replacing any remote file at the same path."""
        ...

    def delete(self, remote_path: str) -> None:
        """Delete a remote file."""
        ...

    def ensure_dir(self, path: str) -> None:
        """Create a remote directory and its parents if missing."""
        ...

    def close(self) -> None:
        """Close the session. Safe to call more than once."""
        ...
