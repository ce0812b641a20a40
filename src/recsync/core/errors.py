"""Error taxonomy for address resolution and file transfers.

This module provides:
- ErrorCategory: The user-facing diagnostic categories
- MESSAGES: One fixed message per category
- Exception classes for resolution and transfer failures
- classify_http_error: Map an httpx exception to a TransferError
"""

from __future__ import annotations

import socket
from enum import Enum

import httpx


class ErrorCategory(str, Enum):
    """Categories of failures surfaced to the user."""

    NO_ACTIVE_INTERFACES = "no_active_interfaces"
    NO_ROUTABLE_INTERFACE = "no_routable_interface"
    NAME_RESOLUTION_FAILURE = "name_resolution_failure"
    CONNECT_FAILURE = "connect_failure"
    CONNECTION_CLOSED = "connection_closed"
    TIMEOUT = "timeout"
    OTHER_TRANSPORT_ERROR = "other_transport_error"
    SAMPLE_PROJECT = "sample_project"


MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.NO_ACTIVE_INTERFACES: (
        "This computer does not seem to be connected to any network. "
        "Connect to the same WiFi network as the device and try again."
    ),
    ErrorCategory.NO_ROUTABLE_INTERFACE: (
        "Could not work out which network address the device should use to "
        "reach this computer. Check the network connection and try again."
    ),
    ErrorCategory.NAME_RESOLUTION_FAILURE: (
        "Could not make sense of the address you gave for the device. "
        "Please try again."
    ),
    ErrorCategory.CONNECT_FAILURE: (
        "Could not connect to the device. Check to be sure the devices are "
        "on the same WiFi network and that there is not a firewall blocking "
        "things."
    ),
    ErrorCategory.CONNECTION_CLOSED: (
        "The connection to the device closed unexpectedly. Please don't try "
        "to use the device for other things during the transfer. If the "
        "device is going to sleep, you can change settings to prevent this."
    ),
    ErrorCategory.TIMEOUT: (
        "Copying {path} took too long. Choose Abort to stop the sync (but not "
        "roll back anything already synchronized), Retry to attempt this file "
        "again with a longer timeout, or Ignore to skip this file and keep "
        "the existing one on this computer."
    ),
    ErrorCategory.OTHER_TRANSPORT_ERROR: (
        "Something went wrong with the transfer. The system message is "
        "{detail}. Please try again, or report the problem if it keeps "
        "happening."
    ),
    ErrorCategory.SAMPLE_PROJECT: (
        "Sorry, device synchronization does not yet work properly with the "
        "Sample project. Please try a real one."
    ),
}


def message_for(
    category: ErrorCategory, path: str = "", detail: str = ""
) -> str:
    """Get the user-facing message for a category.

    Args:
        category: Failure category.
        path: File path, for per-file messages.
        detail: Underlying diagnostic text.

    Returns:
        Formatted message.
    """
    return MESSAGES[category].format(path=path, detail=detail)


class RecsyncError(Exception):
    """Base exception for recsync errors."""

    category: ErrorCategory = ErrorCategory.OTHER_TRANSPORT_ERROR

    @property
    def user_message(self) -> str:
        """Get the message shown to the user."""
        return message_for(self.category, detail=str(self))


# === Address resolution ===


class ResolutionError(RecsyncError):
    """No local address could be resolved."""


class NoActiveInterfacesError(ResolutionError):
    """No network interface is up with IPv4 enabled."""

    category = ErrorCategory.NO_ACTIVE_INTERFACES


class NoRoutableInterfaceError(ResolutionError):
    """No candidate interface has a usable routing metric."""

    category = ErrorCategory.NO_ROUTABLE_INTERFACE


# === Session guards ===


class SampleProjectError(RecsyncError):
    """Sample projects cannot be synchronized."""

    category = ErrorCategory.SAMPLE_PROJECT


class SyncInProgressError(RecsyncError):
    """Another merge of the same project is running."""


# === Transfers ===


class TransferError(RecsyncError):
    """A link operation failed.

    Attributes:
        path: Relative path of the file involved, if any.
        detail: Diagnostic text of the underlying transport.
    """

    category = ErrorCategory.OTHER_TRANSPORT_ERROR

    def __init__(self, message: str, path: str = "", detail: str = "") -> None:
        super().__init__(message)
        self.path = path
        self.detail = detail or message

    @property
    def user_message(self) -> str:
        """Get the message shown to the user."""
        return message_for(self.category, path=self.path, detail=self.detail)


class NameResolutionError(TransferError):
    """The device address could not be resolved."""

    category = ErrorCategory.NAME_RESOLUTION_FAILURE


class ConnectFailureError(TransferError):
    """The device could not be reached."""

    category = ErrorCategory.CONNECT_FAILURE


class ConnectionClosedError(TransferError):
    """The device dropped the connection mid-transfer."""

    category = ErrorCategory.CONNECTION_CLOSED


class TransferTimeoutError(TransferError):
    """A transfer exceeded its deadline."""

    category = ErrorCategory.TIMEOUT


class OtherTransportError(TransferError):
    """Any other transfer failure."""

    category = ErrorCategory.OTHER_TRANSPORT_ERROR


# Fragments of resolver errors across platforms
_RESOLVER_MESSAGES = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)


def _is_name_resolution_failure(exc: BaseException) -> bool:
    """Check whether an exception chain ends in a resolver failure."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return True
        if any(m in str(current).lower() for m in _RESOLVER_MESSAGES):
            return True
        current = current.__cause__ or current.__context__
    return False


def classify_http_error(
    exc: httpx.HTTPError | httpx.InvalidURL, path: str = ""
) -> TransferError:
    """Map an httpx exception to the matching TransferError.

    Args:
        exc: Exception raised by httpx.
        path: Relative path of the file being transferred.

    Returns:
        TransferError subclass carrying the transport diagnostic.
    """
    detail = str(exc) or type(exc).__name__

    if isinstance(exc, httpx.HTTPStatusError):
        if exc.response.status_code == 408:
            return TransferTimeoutError(f"Device timed out on {path}", path, detail)
        return OtherTransportError(
            f"Device answered {exc.response.status_code} for {path}", path, detail
        )
    if isinstance(exc, httpx.TimeoutException):
        return TransferTimeoutError(f"Timed out transferring {path}", path, detail)
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return NameResolutionError(f"Invalid device address: {detail}", path, detail)
    if isinstance(exc, httpx.ConnectError):
        if _is_name_resolution_failure(exc):
            return NameResolutionError(f"Cannot resolve device address: {detail}", path, detail)
        return ConnectFailureError(f"Cannot connect to device: {detail}", path, detail)
    if isinstance(exc, (httpx.RemoteProtocolError, httpx.ReadError, httpx.WriteError)):
        return ConnectionClosedError(f"Connection closed during {path}", path, detail)
    return OtherTransportError(f"Transfer of {path} failed: {detail}", path, detail)
