"""Sync session state machine.

States:
    IDLE -> RESOLVING_ADDRESS -> AWAITING_PEER -> MERGING -> FINALIZING -> COMPLETED
    any non-terminal state -> FAILED

All state transitions are validated. A failed session is not restarted;
the caller creates a new one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from recsync.core.errors import (
    ErrorCategory,
    RecsyncError,
    ResolutionError,
    SampleProjectError,
    SyncInProgressError,
    TransferError,
)
from recsync.core.types import SessionState
from recsync.links.base import Link
from recsync.network.interfaces import InterfaceResolver, ResolvedAddress
from recsync.sync.merger import RepoMerger
from recsync.sync.retry import TimeoutPolicy
from recsync.sync.types import MergeReport, NullProgress, ProgressSink, RetryCallback

if TYPE_CHECKING:
    from recsync.project import Project

logger = logging.getLogger(__name__)

SYNC_COMPLETED_EVENT = "syncCompleted"

# Valid state transitions
VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.IDLE: {SessionState.RESOLVING_ADDRESS, SessionState.FAILED},
    SessionState.RESOLVING_ADDRESS: {SessionState.AWAITING_PEER, SessionState.FAILED},
    SessionState.AWAITING_PEER: {SessionState.MERGING, SessionState.FAILED},
    SessionState.MERGING: {SessionState.FINALIZING, SessionState.FAILED},
    SessionState.FINALIZING: {SessionState.COMPLETED, SessionState.FAILED},
    SessionState.COMPLETED: set(),  # Terminal
    SessionState.FAILED: set(),  # Terminal
}


class InvalidTransitionError(Exception):
    """Raised when attempting invalid state transition."""


@dataclass(frozen=True)
class SessionFailure:
    """Why a session ended in FAILED."""

    category: ErrorCategory
    message: str
    error: Exception | None = None


class SyncSession:
    """One user-initiated synchronization of a project with a device.

    Usage:
        session = SyncSession(project, LocalLink(data_folder), presenter=show_address)
        if session.start() is SessionState.AWAITING_PEER:
            # the device scans the address and the user confirms it
            session.peer_connected(RemoteLink(DeviceConfig(device_address)))
    """

    def __init__(
        self,
        project: Project,
        our_link: Link,
        resolver: InterfaceResolver | None = None,
        presenter: Callable[[str], None] | None = None,
        progress: ProgressSink | None = None,
        retry_decision: RetryCallback | None = None,
        policy: TimeoutPolicy | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            project: Project to synchronize.
            our_link: Link to the host data folder (parent of project folders).
            resolver: Local address resolver.
            presenter: Shows the local address to the user (e.g. as a code
                to scan).
            progress: Receives messages and errors.
            retry_decision: Answers transfer timeouts.
            policy: Transfer deadlines.
        """
        self.project = project
        self.our_link = our_link
        self.their_link: Link | None = None
        self.skip_list = project.skip_list()

        self._resolver = resolver or InterfaceResolver()
        self._presenter = presenter
        self._progress = progress or NullProgress()
        self._retry_decision = retry_decision
        self._policy = policy or TimeoutPolicy()

        self._state = SessionState.IDLE
        self.address: ResolvedAddress | None = None
        self.report: MergeReport | None = None
        self.failure: SessionFailure | None = None

    @property
    def state(self) -> SessionState:
        """Get current session state."""
        return self._state

    def _transition_to(self, new_state: SessionState) -> None:
        if new_state not in VALID_TRANSITIONS[self._state]:
            raise InvalidTransitionError(
                f"Cannot transition from {self._state.name} to {new_state.name}"
            )
        logger.debug(f"Session {self.project.name}: {self._state.name} -> {new_state.name}")
        self._state = new_state

    def _fail(self, error: RecsyncError, already_reported: bool = False) -> SessionState:
        """Move to FAILED and surface the failure once."""
        message = error.user_message
        self.failure = SessionFailure(category=error.category, message=message, error=error)
        logger.error(f"Sync of {self.project.name} failed ({error.category.value}): {error}")
        if not already_reported:
            self._progress.write_error(message)
        self._transition_to(SessionState.FAILED)
        return self._state

    def start(self) -> SessionState:
        """Resolve the local address and present it to the user.

        Returns:
            AWAITING_PEER on success, FAILED otherwise.
        """
        if not self.project.is_real_project:
            return self._fail(SampleProjectError(f"{self.project.name} is the sample project"))

        self._transition_to(SessionState.RESOLVING_ADDRESS)
        try:
            self.address = self._resolver.resolve()
        except ResolutionError as e:
            return self._fail(e)

        if self._presenter:
            self._presenter(self.address.ip_address)
        self._transition_to(SessionState.AWAITING_PEER)
        return self._state

    def peer_connected(self, their_link: Link) -> SessionState:
        """Merge with the device that just connected, then finalize.

        Args:
            their_link: Link to the device.

        Returns:
            COMPLETED or FAILED.
        """
        self._transition_to(SessionState.MERGING)
        self.their_link = their_link

        merger = RepoMerger(self.project.name, self.our_link, their_link, self._policy)
        try:
            self.report = merger.merge(self.skip_list, self._progress, self._retry_decision)
        except SyncInProgressError as e:
            return self._fail(e)

        if self.report.is_aborted:
            error = self.report.error or TransferError("Merge aborted")
            # The merger already told the user about the failing file
            return self._fail(error, already_reported=True)

        self._transition_to(SessionState.FINALIZING)
        self._finalize(their_link)
        self._transition_to(SessionState.COMPLETED)
        self._progress.write_message("Sync completed successfully")
        return self._state

    def _finalize(self, their_link: Link) -> None:
        """Push the recording-status file and signal completion.

        Both steps are best effort: a failure is reported but does not
        fail the session.
        """
        try:
            info_path = self.project.write_status_info()
            their_link.put_file(
                self.project.status_info_remote_path,
                info_path.read_bytes(),
                timeout=self._policy.timeout,
            )
        except TransferError as e:
            logger.warning(f"Could not update status file on device: {e}")
            self._progress.write_warning(e.user_message)
        except OSError as e:
            logger.warning(f"Could not write status file: {e}")
            self._progress.write_warning(f"Could not write the recording status file: {e}")

        their_link.send_notification(SYNC_COMPLETED_EVENT)
