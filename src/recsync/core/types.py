"""Shared types for recsync.

This module defines enums used by the network, link and sync layers.
"""

from __future__ import annotations

from enum import Enum, IntEnum, auto


class InterfaceType(str, Enum):
    """Kind of network interface, inferred from its name."""

    WIFI = "wifi"
    ETHERNET = "ethernet"
    OTHER = "other"


class OperationalState(str, Enum):
    """Operational state of a network interface."""

    UP = "up"
    DOWN = "down"


class TransferDirection(IntEnum):
    """Direction of a file transfer, seen from the host."""

    UPLOAD = auto()  # host -> device
    DOWNLOAD = auto()  # device -> host


class TransferOutcome(IntEnum):
    """Outcome of one file in one direction."""

    SUCCEEDED = auto()
    SKIPPED_BY_POLICY = auto()
    SKIPPED_BY_USER = auto()
    ABORTED = auto()


class MergeStatus(str, Enum):
    """Terminal status of a merge."""

    COMPLETED = "completed"
    COMPLETED_WITH_SKIPS = "completed_with_skips"
    ABORTED = "aborted"


class RetryDecision(Enum):
    """Answer to a timed out transfer."""

    RETRY = auto()
    IGNORE = auto()
    ABORT = auto()


class SessionState(str, Enum):
    """State of a sync session.

    Flow: IDLE -> RESOLVING_ADDRESS -> AWAITING_PEER -> MERGING
    -> FINALIZING -> COMPLETED, with FAILED reachable from any
    non-terminal state.
    """

    IDLE = "idle"
    RESOLVING_ADDRESS = "resolving_address"
    AWAITING_PEER = "awaiting_peer"
    MERGING = "merging"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"
