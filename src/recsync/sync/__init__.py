"""Repository merge and sync session.

Architecture:
    SyncSession → InterfaceResolver → presenter → peer connects
                → RepoMerger(LocalLink, RemoteLink) → per-file retry loop
                → status file + syncCompleted notification

Components:
- **SkipList**: Paths never transferred
- **RepoMerger**: Plans and runs transfers in both directions
- **transfer_with_retry**: Retry/Ignore/Abort loop for timeouts
- **SyncSession**: State machine driving one user-initiated sync
"""

from recsync.sync.merger import RepoMerger, plan_transfers, project_lock
from recsync.sync.retry import (
    DEFAULT_MAX_TIMEOUT,
    DEFAULT_RETRY_FACTOR,
    DEFAULT_TIMEOUT,
    TimeoutPolicy,
    fixed_decision,
    transfer_with_retry,
)
from recsync.sync.session import (
    SYNC_COMPLETED_EVENT,
    VALID_TRANSITIONS,
    InvalidTransitionError,
    SessionFailure,
    SyncSession,
)
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

__all__ = [
    # Retry
    "DEFAULT_MAX_TIMEOUT",
    "DEFAULT_RETRY_FACTOR",
    "DEFAULT_TIMEOUT",
    "TimeoutPolicy",
    "fixed_decision",
    "transfer_with_retry",
    # Types
    "FileResult",
    "MergeReport",
    "NullProgress",
    "PlannedTransfer",
    "ProgressSink",
    "RetryCallback",
    "TransferPlan",
    # Merge
    "RepoMerger",
    "SkipList",
    "plan_transfers",
    "project_lock",
    # Session
    "InvalidTransitionError",
    "SYNC_COMPLETED_EVENT",
    "SessionFailure",
    "SyncSession",
    "VALID_TRANSITIONS",
]
