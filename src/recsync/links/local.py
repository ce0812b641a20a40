"""Filesystem-backed link for the host's own repository."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from recsync.core.errors import OtherTransportError
from recsync.links.base import FileEntry, Link

logger = logging.getLogger(__name__)

# Suffix of in-flight writes, never listed
TEMP_SUFFIX = ".tmp"


class LocalLink(Link):
    """Link to a directory tree on this machine.

    Paths are relative to the root and "/"-separated on every platform.
    """

    def __init__(self, root: Path | str) -> None:
        """Initialize the link.

        Args:
            root: Repository root directory, created if missing.
        """
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        """Repository root directory."""
        return self._root

    @property
    def location(self) -> str:
        """Return the local root path."""
        return f"Local folder: {self._root}"

    def _full_path(self, path: str) -> Path:
        """Map a relative path into the root, refusing escapes."""
        target = (self._root / path.lstrip("/")).resolve()
        if target != self._root and self._root not in target.parents:
            raise OtherTransportError(f"Path outside repository: {path}", path)
        return target

    def put_file(
        self,
        path: str,
        data: bytes,
        *,
        mtime: float | None = None,
        timeout: float | None = None,
    ) -> None:
        """Write a file through a temporary sibling and an atomic rename."""
        target = self._full_path(path)
        tmp_path = target.with_name(target.name + TEMP_SUFFIX)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            if mtime is not None:
                os.utime(tmp_path, (mtime, mtime))
            os.replace(tmp_path, target)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise OtherTransportError(f"Cannot write {path}: {e}", path, str(e)) from e
        logger.debug(f"Wrote {path} ({len(data)} bytes)")

    def get_file(self, path: str, *, timeout: float | None = None) -> bytes:
        target = self._full_path(path)
        try:
            return target.read_bytes()
        except OSError as e:
            raise OtherTransportError(f"Cannot read {path}: {e}", path, str(e)) from e

    def list_files(self, prefix: str = "") -> list[FileEntry]:
        base = self._full_path(prefix) if prefix else self._root
        if not base.is_dir():
            return []

        entries = []
        for dirpath, _dirnames, filenames in os.walk(base):
            for filename in filenames:
                if filename.endswith(TEMP_SUFFIX):
                    continue
                full = Path(dirpath) / filename
                try:
                    st = full.stat()
                except OSError:
                    # Removed while walking
                    continue
                rel = full.relative_to(self._root).as_posix()
                entries.append(FileEntry(path=rel, mtime=st.st_mtime, size=st.st_size))
        entries.sort(key=lambda e: e.path)
        return entries

    def send_notification(self, event: str) -> None:
        """Nothing listens on the host side; the event is only logged."""
        logger.info(f"Local notification: {event}")
