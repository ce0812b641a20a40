"""Bidirectional merge of two recording repositories.

This module provides:
- plan_transfers: Compare two listings and decide what moves where
- project_lock: Refuse concurrent merges of the same project
- RepoMerger: Run the plan over two links with the retry policy

Rules:
| Present on      | Condition          | Action   |
|-----------------|--------------------|----------|
| ours only       |                    | upload   |
| theirs only     |                    | download |
| both            | ours newer         | upload   |
| both            | theirs newer       | download |
| both            | same second        | nothing  |
| any             | matches skip list  | nothing  |

Modification times are compared at whole-second granularity. Files
with equal times but different content are left alone; reconciling
those would need content hashes on both sides.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from recsync.core.errors import SyncInProgressError, TransferError, TransferTimeoutError
from recsync.core.types import MergeStatus, RetryDecision, TransferDirection, TransferOutcome
from recsync.links.base import FileEntry, Link
from recsync.sync.retry import TimeoutPolicy, transfer_with_retry
from recsync.sync.skiplist import SkipList
from recsync.sync.types import (
    FileResult,
    MergeReport,
    NullProgress,
    PlannedTransfer,
    ProgressSink,
    RetryCallback,
    TransferPlan,
)

logger = logging.getLogger(__name__)

_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


@contextmanager
def project_lock(project_name: str) -> Iterator[None]:
    """Hold the merge lock of a project.

    Raises:
        SyncInProgressError: If another merge of the project is running.
    """
    with _locks_guard:
        lock = _locks.setdefault(project_name, threading.Lock())
    if not lock.acquire(blocking=False):
        raise SyncInProgressError(f"A sync of {project_name} is already running")
    try:
        yield
    finally:
        lock.release()


def plan_transfers(
    ours: list[FileEntry],
    theirs: list[FileEntry],
    skip_list: SkipList,
) -> TransferPlan:
    """Compare two listings with paths relative to the project.

    Args:
        ours: Host listing.
        theirs: Device listing.
        skip_list: Paths never transferred.

    Returns:
        Transfers sorted by path, plus skipped and unchanged paths.
    """
    our_files = {e.path: e for e in ours}
    their_files = {e.path: e for e in theirs}
    plan = TransferPlan()

    for path in sorted(our_files.keys() | their_files.keys()):
        if skip_list.matches(path):
            plan.skipped.append(path)
            continue

        mine = our_files.get(path)
        other = their_files.get(path)
        if other is None:
            plan.transfers.append(PlannedTransfer(path, TransferDirection.UPLOAD, mine.mtime))
        elif mine is None:
            plan.transfers.append(PlannedTransfer(path, TransferDirection.DOWNLOAD, other.mtime))
        elif mine.mtime_seconds > other.mtime_seconds:
            plan.transfers.append(PlannedTransfer(path, TransferDirection.UPLOAD, mine.mtime))
        elif other.mtime_seconds > mine.mtime_seconds:
            plan.transfers.append(PlannedTransfer(path, TransferDirection.DOWNLOAD, other.mtime))
        else:
            plan.unchanged.append(path)

    return plan


def _strip_prefix(entries: list[FileEntry], prefix: str) -> list[FileEntry]:
    return [
        FileEntry(path=e.path[len(prefix):], mtime=e.mtime, size=e.size)
        for e in entries
        if e.path.startswith(prefix)
    ]


class RepoMerger:
    """Reconciles the host and device copies of one project."""

    def __init__(
        self,
        project_name: str,
        ours: Link,
        theirs: Link,
        policy: TimeoutPolicy | None = None,
    ) -> None:
        """Initialize the merger.

        Args:
            project_name: Project folder name on both links.
            ours: Host repository.
            theirs: Device repository.
            policy: Transfer deadlines.
        """
        self._project = project_name
        self._ours = ours
        self._theirs = theirs
        self._policy = policy or TimeoutPolicy()

    @property
    def prefix(self) -> str:
        """Project folder prefix on both links."""
        return f"{self._project}/"

    def plan(self, skip_list: SkipList) -> TransferPlan:
        """List both sides and compute the transfer plan.

        Raises:
            TransferError: If a listing fails.
        """
        ours = _strip_prefix(self._ours.list_files(self.prefix), self.prefix)
        theirs = _strip_prefix(self._theirs.list_files(self.prefix), self.prefix)
        return plan_transfers(ours, theirs, skip_list)

    def _copy(self, item: PlannedTransfer, timeout: float) -> None:
        """Copy one file in its planned direction."""
        full_path = self.prefix + item.path
        if item.direction is TransferDirection.UPLOAD:
            source, target = self._ours, self._theirs
        else:
            source, target = self._theirs, self._ours
        data = source.get_file(full_path, timeout=timeout)
        target.put_file(full_path, data, mtime=item.mtime, timeout=timeout)

    def merge(
        self,
        skip_list: SkipList | set[str],
        progress: ProgressSink | None = None,
        retry_decision: RetryCallback | None = None,
    ) -> MergeReport:
        """Merge the two repositories.

        Transfers already done when a failure stops the merge are kept.

        Args:
            skip_list: Paths never transferred, relative to the project.
            progress: Receives per-file messages and errors.
            retry_decision: Answers timeouts. Defaults to Abort.

        Returns:
            Report of per-file outcomes and the terminal status.

        Raises:
            SyncInProgressError: If this project is already being merged.
        """
        if not isinstance(skip_list, SkipList):
            skip_list = SkipList(skip_list)
        sink = progress or NullProgress()
        decide = retry_decision or _abort_on_timeout

        with project_lock(self._project):
            return self._merge(skip_list, sink, decide)

    def _merge(
        self,
        skip_list: SkipList,
        sink: ProgressSink,
        decide: RetryCallback,
    ) -> MergeReport:
        report = MergeReport()
        try:
            plan = self.plan(skip_list)
        except TransferError as e:
            logger.error(f"Listing failed for {self._project}: {e}")
            sink.write_error(e.user_message)
            report.status = MergeStatus.ABORTED
            report.error = e
            return report

        logger.info(
            f"Merging {self._project}: {len(plan.uploads)} to send, "
            f"{len(plan.downloads)} to receive, {len(plan.skipped)} skipped, "
            f"{len(plan.unchanged)} unchanged"
        )

        # Skip-list matches are recorded in path order alongside the transfers
        steps: list[tuple[str, PlannedTransfer | None]] = sorted(
            [(t.path, t) for t in plan.transfers] + [(p, None) for p in plan.skipped],
            key=lambda step: step[0],
        )
        total = len(plan.transfers)
        i = 0
        for path, item in steps:
            if item is None:
                report.results.append(FileResult(path, None, TransferOutcome.SKIPPED_BY_POLICY))
                continue
            i += 1
            verb = "Sending" if item.direction is TransferDirection.UPLOAD else "Receiving"
            sink.write_message(f"{verb} {item.path} ({i}/{total})")
            try:
                outcome = transfer_with_retry(
                    lambda timeout, item=item: self._copy(item, timeout),
                    item.path,
                    self._policy,
                    decide,
                )
            except TransferTimeoutError as e:
                logger.warning(f"Sync aborted by user at {item.path}")
                sink.write_error(f"Sync aborted at {item.path}")
                report.results.append(FileResult(item.path, item.direction, TransferOutcome.ABORTED, e))
                report.status = MergeStatus.ABORTED
                report.error = e
                return report
            except TransferError as e:
                logger.error(f"Transfer of {item.path} failed ({e.category.value}): {e}")
                sink.write_error(e.user_message)
                report.results.append(FileResult(item.path, item.direction, TransferOutcome.ABORTED, e))
                report.status = MergeStatus.ABORTED
                report.error = e
                return report

            report.results.append(FileResult(item.path, item.direction, outcome))
            if outcome is TransferOutcome.SKIPPED_BY_USER:
                sink.write_warning(f"Skipped {item.path}")

        report.status = (
            MergeStatus.COMPLETED_WITH_SKIPS if report.skipped_by_user else MergeStatus.COMPLETED
        )
        logger.info(
            f"Merge of {self._project} {report.status.value}: "
            f"{len(report.uploaded)} sent, {len(report.downloaded)} received"
        )
        return report


def _abort_on_timeout(error: TransferTimeoutError, path: str) -> RetryDecision:
    return RetryDecision.ABORT
