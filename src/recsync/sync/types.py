"""Shared types and dataclasses for merge operations.

This module provides:
- PlannedTransfer, TransferPlan: What a merge intends to move
- FileResult, MergeReport: What a merge did
- ProgressSink: Where progress and errors are reported
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from recsync.core.errors import TransferError, TransferTimeoutError
from recsync.core.types import MergeStatus, RetryDecision, TransferDirection, TransferOutcome


@dataclass(frozen=True)
class PlannedTransfer:
    """A file to copy, with the modification time of its source."""

    path: str
    direction: TransferDirection
    mtime: float


@dataclass
class TransferPlan:
    """Result of comparing two listings.

    Attributes:
        transfers: Files to copy, sorted by path.
        skipped: Paths excluded by the skip list, sorted.
        unchanged: Paths present on both sides needing no copy.
    """

    transfers: list[PlannedTransfer] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def uploads(self) -> list[PlannedTransfer]:
        return [t for t in self.transfers if t.direction is TransferDirection.UPLOAD]

    @property
    def downloads(self) -> list[PlannedTransfer]:
        return [t for t in self.transfers if t.direction is TransferDirection.DOWNLOAD]


@dataclass
class FileResult:
    """Outcome of one file in one direction."""

    path: str
    direction: TransferDirection | None
    outcome: TransferOutcome
    error: TransferError | None = None


@dataclass
class MergeReport:
    """Result of a merge.

    Attributes:
        results: Per-file outcomes in path order, skip-list matches
            included. An aborted merge has no entry past the failing file.
        status: Terminal status.
        error: The failure that ended an aborted merge.
    """

    results: list[FileResult] = field(default_factory=list)
    status: MergeStatus = MergeStatus.COMPLETED
    error: TransferError | None = None

    def outcome_for(self, path: str) -> TransferOutcome | None:
        """Get the outcome recorded for a path, if any."""
        for result in self.results:
            if result.path == path:
                return result.outcome
        return None

    def _with_outcome(self, outcome: TransferOutcome) -> list[FileResult]:
        return [r for r in self.results if r.outcome is outcome]

    @property
    def transferred(self) -> list[FileResult]:
        """Files copied successfully in either direction."""
        return self._with_outcome(TransferOutcome.SUCCEEDED)

    @property
    def uploaded(self) -> list[str]:
        return [r.path for r in self.transferred if r.direction is TransferDirection.UPLOAD]

    @property
    def downloaded(self) -> list[str]:
        return [r.path for r in self.transferred if r.direction is TransferDirection.DOWNLOAD]

    @property
    def skipped_by_user(self) -> list[str]:
        return [r.path for r in self._with_outcome(TransferOutcome.SKIPPED_BY_USER)]

    @property
    def is_aborted(self) -> bool:
        return self.status is MergeStatus.ABORTED

    @property
    def aborted_by_user(self) -> bool:
        """Check if the user chose Abort on a timeout."""
        return self.is_aborted and isinstance(self.error, TransferTimeoutError)


class ProgressSink(Protocol):
    """Receives progress messages and errors for the user."""

    def write_message(self, message: str) -> None: ...

    def write_warning(self, message: str) -> None: ...

    def write_error(self, message: str) -> None: ...


class NullProgress:
    """Progress sink that discards everything."""

    def write_message(self, message: str) -> None:
        pass

    def write_warning(self, message: str) -> None:
        pass

    def write_error(self, message: str) -> None:
        pass


# Type alias for the Retry/Ignore/Abort decision on a timed out transfer
RetryCallback = Callable[[TransferTimeoutError, str], RetryDecision]
