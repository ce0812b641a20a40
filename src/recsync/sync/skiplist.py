"""Skip list for file synchronization.

This module provides:
- SkipList: Decides which relative paths are never transferred
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable


class SkipList:
    """Paths excluded from transfer regardless of direction or freshness.

    An entry matches a path (relative to the project, "/"-separated) when:
    - it equals the path,
    - it names a leading directory of the path ("Intro" skips "Intro/1.wav"),
    - it equals any single path component (a style folder at any depth),
    - or it is a glob matching the path or the file name ("*.bak").
    """

    def __init__(self, entries: Iterable[str] | None = None) -> None:
        """Initialize with entries.

        Args:
            entries: Paths, folder names, or glob patterns.
        """
        self._entries: set[str] = set()
        for entry in entries or ():
            self.add(entry)

    def add(self, entry: str) -> None:
        """Add an entry."""
        entry = entry.replace("\\", "/").strip("/")
        if entry:
            self._entries.add(entry)

    @property
    def entries(self) -> frozenset[str]:
        """Normalized entries."""
        return frozenset(self._entries)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.matches(path)

    def __len__(self) -> int:
        return len(self._entries)

    def matches(self, path: str) -> bool:
        """Check if a path must be skipped.

        Args:
            path: Path relative to the project root.

        Returns:
            True if any entry matches.
        """
        rel = path.replace("\\", "/").strip("/")
        parts = rel.split("/")
        name = parts[-1]

        for entry in self._entries:
            if rel == entry or rel.startswith(entry + "/"):
                return True
            if "/" not in entry and entry in parts:
                return True
            if any(c in entry for c in "*?[") and (
                fnmatch.fnmatchcase(rel, entry) or fnmatch.fnmatchcase(name, entry)
            ):
                return True

        return False
