"""Link abstraction over a recording repository endpoint.

This module provides:
- FileEntry: Listing record (path, mtime, size)
- Link: Abstract interface implemented by LocalLink and RemoteLink
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class FileEntry:
    """A file in a repository listing.

    Attributes:
        path: Path relative to the link root, "/"-separated.
        mtime: Modification time in seconds since the epoch.
        size: Size in bytes.
    """

    path: str
    mtime: float
    size: int

    @property
    def mtime_seconds(self) -> int:
        """Modification time truncated to whole seconds."""
        return int(self.mtime)


class Link(ABC):
    """Abstract file-transfer endpoint."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Return a human-readable description of the endpoint."""

    @abstractmethod
    def put_file(
        self,
        path: str,
        data: bytes,
        *,
        mtime: float | None = None,
        timeout: float | None = None,
    ) -> None:
        """Store a file atomically.

        A failed put leaves no partial file visible to list_files().

        Args:
            path: Path relative to the link root.
            data: File content.
            mtime: Modification time to stamp on the stored file.
            timeout: Request deadline in seconds, for network links.

        Raises:
            TransferError: If the file could not be stored.
        """

    @abstractmethod
    def get_file(self, path: str, *, timeout: float | None = None) -> bytes:
        """Retrieve a file.

        Args:
            path: Path relative to the link root.
            timeout: Request deadline in seconds, for network links.

        Returns:
            File content.

        Raises:
            TransferError: If the file could not be read.
        """

    @abstractmethod
    def list_files(self, prefix: str = "") -> list[FileEntry]:
        """List files under a prefix.

        Args:
            prefix: Directory prefix relative to the link root ("" for all).

        Returns:
            Snapshot sorted by path.

        Raises:
            TransferError: If the listing could not be obtained.
        """

    @abstractmethod
    def send_notification(self, event: str) -> None:
        """Signal an event to the peer.

        Best effort: failures are logged, never raised.
        """
