"""Core module - Shared configuration and types."""

from recsync.core.config import DEFAULT_DEVICE_PORT, DeviceConfig
from recsync.core.types import (
    InterfaceType,
    MergeStatus,
    OperationalState,
    RetryDecision,
    SessionState,
    TransferDirection,
    TransferOutcome,
)

__all__ = [
    # Config
    "DEFAULT_DEVICE_PORT",
    "DeviceConfig",
    # Types
    "InterfaceType",
    "MergeStatus",
    "OperationalState",
    "RetryDecision",
    "SessionState",
    "TransferDirection",
    "TransferOutcome",
]
