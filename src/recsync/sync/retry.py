"""Timeout escalation and the Retry/Ignore/Abort loop for one file.

This module provides:
- TimeoutPolicy: Default timeout and how it grows on each retry
- transfer_with_retry: Run one transfer, consulting the user on timeouts
- fixed_decision: Automated decision callback
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from recsync.core.config import DeviceConfig
from recsync.core.errors import TransferTimeoutError
from recsync.core.types import RetryDecision, TransferOutcome
from recsync.sync.types import RetryCallback

logger = logging.getLogger(__name__)

# Default timeout configuration
DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_RETRY_FACTOR = 2.0
DEFAULT_MAX_TIMEOUT = 300.0  # seconds


@dataclass(frozen=True)
class TimeoutPolicy:
    """Per-request deadlines for transfers.

    Attributes:
        timeout: Deadline of the first attempt.
        factor: Multiplier applied on each user-requested retry.
        max_timeout: Upper bound; deadlines never become indefinite.
    """

    timeout: float = DEFAULT_TIMEOUT
    factor: float = DEFAULT_RETRY_FACTOR
    max_timeout: float = DEFAULT_MAX_TIMEOUT

    @classmethod
    def from_config(cls, config: DeviceConfig) -> TimeoutPolicy:
        """Build the policy from device settings."""
        return cls(
            timeout=config.timeout,
            factor=config.retry_timeout_factor,
            max_timeout=config.max_timeout,
        )

    def escalate(self, timeout: float) -> float:
        """Get the deadline for the next attempt after a timeout."""
        return min(timeout * self.factor, self.max_timeout)


def transfer_with_retry(
    transfer: Callable[[float], None],
    path: str,
    policy: TimeoutPolicy,
    decide: RetryCallback,
) -> TransferOutcome:
    """Run a transfer, asking what to do each time it times out.

    Only timeouts reach the decision callback. Any other TransferError
    propagates unchanged on the first occurrence.

    Args:
        transfer: Performs the copy with the given deadline in seconds.
        path: Relative path, shown to the decision callback.
        policy: Deadlines to use.
        decide: Blocking Retry/Ignore/Abort callback.

    Returns:
        SUCCEEDED, or SKIPPED_BY_USER when the user chose Ignore.

    Raises:
        TransferTimeoutError: If the user chose Abort.
        TransferError: On any non-timeout failure.
    """
    timeout = policy.timeout
    attempt = 1

    while True:
        try:
            transfer(timeout)
            return TransferOutcome.SUCCEEDED
        except TransferTimeoutError as e:
            decision = decide(e, path)
            logger.info(
                f"Attempt {attempt} for {path} timed out after {timeout:.0f}s: "
                f"user chose {decision.name}"
            )
            if decision is RetryDecision.RETRY:
                timeout = policy.escalate(timeout)
                attempt += 1
                continue
            if decision is RetryDecision.IGNORE:
                return TransferOutcome.SKIPPED_BY_USER
            raise


def fixed_decision(decision: RetryDecision, max_retries: int = 3) -> RetryCallback:
    """Build a callback that always answers the same way.

    A RETRY policy falls back to ABORT once a file has been retried
    max_retries times, so unattended runs cannot loop forever.

    Args:
        decision: Answer to give.
        max_retries: Retries allowed per file for a RETRY policy.

    Returns:
        Decision callback.
    """
    retries: dict[str, int] = {}

    def decide(error: TransferTimeoutError, path: str) -> RetryDecision:
        if decision is not RetryDecision.RETRY:
            return decision
        retries[path] = retries.get(path, 0) + 1
        if retries[path] > max_retries:
            logger.warning(f"Giving up on {path} after {max_retries} retries")
            return RetryDecision.ABORT
        return RetryDecision.RETRY

    return decide
