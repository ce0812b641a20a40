"""Shared configuration classes for recsync.

This module defines the connection settings used by RemoteLink and the
merge engine.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_DEVICE_PORT = 8087


@dataclass
class DeviceConfig:
    """Configuration for connecting to a companion device.

    Attributes:
        address: Device address as entered or scanned ("192.168.1.20",
            "192.168.1.20:8087" or a full "http://" URL).
        port: Port used when the address does not carry one.
        timeout: Default per-request timeout in seconds.
        retry_timeout_factor: Multiplier applied to the timeout each time
            the user asks to retry a timed out transfer.
        max_timeout: Upper bound for escalated timeouts in seconds.
    """

    address: str
    port: int = DEFAULT_DEVICE_PORT
    timeout: float = 30.0
    retry_timeout_factor: float = 2.0
    max_timeout: float = 300.0

    def __post_init__(self) -> None:
        """Normalize the device address."""
        self.address = self.address.strip().rstrip("/")

    @property
    def base_url(self) -> str:
        """Get the HTTP base URL of the device.

        Returns:
            URL with scheme and port, without trailing slash.
        """
        url = self.address
        if not url.startswith(("http://", "https://")):
            url = "http://" + url
        host_part = url.split("://", 1)[1]
        # Bracketed IPv6 literals carry colons of their own
        has_port = ":" in host_part.rsplit("]", 1)[-1]
        if not has_port:
            url = f"{url}:{self.port}"
        return url

