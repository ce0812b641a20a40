"""HTTP-backed link to the companion device.

This module provides:
- RemoteLink: Link speaking the device HTTP protocol

Protocol (paths are URL path segments relative to the device root):
- GET  /list/<prefix>  -> JSON list of {"path", "mtime", "size"}
- GET  /files/<path>   -> file content
- PUT  /files/<path>   <- file content, optional X-Mtime header
- POST /notify/<event>
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from recsync.core.config import DeviceConfig
from recsync.core.errors import OtherTransportError, TransferError, classify_http_error
from recsync.links.base import FileEntry, Link

logger = logging.getLogger(__name__)

MTIME_HEADER = "X-Mtime"


class RemoteLink(Link):
    """Link to a device reachable over HTTP."""

    def __init__(
        self,
        config: DeviceConfig,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the link.

        Args:
            config: Device address and timeouts.
            client: Preconfigured HTTP client (tests, custom transports).
                Defaults to a client bound to the device base URL.
        """
        self._config = config
        self._owns_client = client is None
        try:
            self._client = client or httpx.Client(
                base_url=config.base_url,
                timeout=config.timeout,
            )
        except httpx.InvalidURL as e:
            raise classify_http_error(e) from e

    @property
    def config(self) -> DeviceConfig:
        """Device configuration."""
        return self._config

    @property
    def location(self) -> str:
        """Return the device base URL."""
        return f"Device: {self._config.base_url}"

    def close(self) -> None:
        """Close the HTTP client if this link created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> RemoteLink:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _request(
        self,
        method: str,
        url: str,
        path: str,
        timeout: float | None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and map every failure to a TransferError."""
        effective_timeout = timeout if timeout is not None else self._config.timeout
        try:
            response = self._client.request(method, url, timeout=effective_timeout, **kwargs)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise classify_http_error(e, path) from e
        return response

    def put_file(
        self,
        path: str,
        data: bytes,
        *,
        mtime: float | None = None,
        timeout: float | None = None,
    ) -> None:
        """Upload a file; the device stores it atomically."""
        headers = {"Content-Type": "application/octet-stream"}
        if mtime is not None:
            headers[MTIME_HEADER] = repr(float(mtime))
        self._request(
            "PUT",
            f"/files/{quote(path)}",
            path,
            timeout,
            content=data,
            headers=headers,
        )
        logger.debug(f"Uploaded {path} ({len(data)} bytes)")

    def get_file(self, path: str, *, timeout: float | None = None) -> bytes:
        response = self._request("GET", f"/files/{quote(path)}", path, timeout)
        return response.content

    def list_files(self, prefix: str = "") -> list[FileEntry]:
        response = self._request("GET", f"/list/{quote(prefix)}", prefix, None)
        try:
            entries = [
                FileEntry(path=item["path"], mtime=float(item["mtime"]), size=int(item["size"]))
                for item in response.json()
            ]
        except (ValueError, KeyError, TypeError) as e:
            raise OtherTransportError(
                f"Malformed listing from device: {e}", prefix, str(e)
            ) from e
        entries.sort(key=lambda e: e.path)
        return entries

    def send_notification(self, event: str) -> None:
        try:
            self._request("POST", f"/notify/{quote(event)}", "", None)
        except TransferError as e:
            logger.warning(f"Notification {event!r} not delivered: {e}")
