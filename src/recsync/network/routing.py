"""Routing metric probe over the OS IPv4 forwarding table.

This module provides:
- RouteRow: One row of the forwarding table (interface index, metric)
- parse_forward_table: Parse a Windows MIB_IPFORWARDTABLE buffer
- parse_addr_table: Parse a Windows MIB_IPADDRTABLE buffer
- parse_proc_route: Parse Linux /proc/net/route text
- WindowsRouteTable / ProcRouteTable: Platform table sources
- WindowsAddressTable: IPv4 address to interface index on Windows
- RoutingMetricProbe: Lowest metric of the routes of one interface

The probe reads the same table the networking stack uses to pick the
outbound route, so the lowest metric is the interface the OS would
actually send through.
"""

from __future__ import annotations

import ctypes
import logging
import socket
import struct
import sys
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Worst possible metric: loses against any real route
METRIC_UNAVAILABLE = sys.maxsize

# Win32 status codes returned by the iphlpapi table exports
NO_ERROR = 0
ERROR_INSUFFICIENT_BUFFER = 122

# MIB_IPFORWARDTABLE: DWORD dwNumEntries, then MIB_IPFORWARDROW[dwNumEntries]
_TABLE_HEADER = struct.Struct("<I")
# MIB_IPFORWARDROW is 14 DWORDs
_FORWARD_ROW = struct.Struct("<14I")
_ROW_IF_INDEX = 4  # dwForwardIfIndex
_ROW_METRIC = 9  # dwForwardMetric1
# MIB_IPADDRROW: dwAddr (network order), dwIndex, dwMask, dwBCastAddr,
# dwReasmSize, unused1, wType
_ADDR_ROW = struct.Struct("<4sIIIIHH")

PROC_ROUTE_PATH = Path("/proc/net/route")


class RouteTableError(Exception):
    """The forwarding table could not be fetched."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class RouteRow:
    """A forwarding table row reduced to what ranking needs."""

    interface_index: int
    metric: int


def _unpack_rows(buffer: bytes, row: struct.Struct, table: str) -> Iterator[tuple[Any, ...]]:
    """Unpack the rows of a counted iphlpapi table.

    Raises:
        ValueError: If the buffer is shorter than its header announces.
    """
    if len(buffer) < _TABLE_HEADER.size:
        raise ValueError(f"{table} buffer has no header")
    (count,) = _TABLE_HEADER.unpack_from(buffer, 0)
    expected = _TABLE_HEADER.size + count * row.size
    if len(buffer) < expected:
        raise ValueError(
            f"{table} truncated: {count} rows need {expected} bytes, "
            f"got {len(buffer)}"
        )
    for i in range(count):
        yield row.unpack_from(buffer, _TABLE_HEADER.size + i * row.size)


def parse_forward_table(buffer: bytes) -> list[RouteRow]:
    """Parse a MIB_IPFORWARDTABLE buffer.

    Args:
        buffer: Raw table: a 4-byte entry count followed by fixed-size rows.

    Returns:
        Rows in table order.

    Raises:
        ValueError: If the buffer is shorter than its header announces.
    """
    return [
        RouteRow(interface_index=fields[_ROW_IF_INDEX], metric=fields[_ROW_METRIC])
        for fields in _unpack_rows(buffer, _FORWARD_ROW, "Forwarding table")
    ]


def parse_addr_table(buffer: bytes) -> list[tuple[str, int]]:
    """Parse a MIB_IPADDRTABLE buffer.

    Returns:
        (IPv4 address, interface index) pairs in table order.

    Raises:
        ValueError: If the buffer is shorter than its header announces.
    """
    return [
        (socket.inet_ntoa(fields[0]), fields[1])
        for fields in _unpack_rows(buffer, _ADDR_ROW, "Address table")
    ]


def parse_proc_route(
    text: str,
    name_to_index: Callable[[str], int] = socket.if_nametoindex,
) -> list[RouteRow]:
    """Parse the content of /proc/net/route.

    Rows naming an interface that no longer exists are dropped.

    Args:
        text: File content, header line first.
        name_to_index: Maps an interface name to its index.

    Returns:
        Rows in file order.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []

    header = lines[0].split()
    try:
        iface_col = header.index("Iface")
        metric_col = header.index("Metric")
    except ValueError as e:
        raise ValueError(f"Unexpected /proc/net/route header: {lines[0]!r}") from e

    indexes: dict[str, int | None] = {}
    rows = []
    for line in lines[1:]:
        fields = line.split()
        if len(fields) <= max(iface_col, metric_col):
            continue
        name = fields[iface_col]
        if name not in indexes:
            try:
                indexes[name] = name_to_index(name)
            except OSError:
                indexes[name] = None
        index = indexes[name]
        if index is None:
            continue
        rows.append(RouteRow(interface_index=index, metric=int(fields[metric_col])))
    return rows


def effective_metric(rows: Iterable[RouteRow], interface_index: int) -> int:
    """Get the lowest metric among the rows of one interface.

    Returns:
        Minimum metric, or METRIC_UNAVAILABLE if no row matches.
    """
    best = METRIC_UNAVAILABLE
    for row in rows:
        if row.interface_index == interface_index and row.metric < best:
            best = row.metric
    return best


class RouteTableSource(ABC):
    """Abstract source of the IPv4 forwarding table."""

    @abstractmethod
    def fetch(self) -> list[RouteRow]:
        """Fetch a snapshot of the table.

        Raises:
            RouteTableError: If the OS refuses the query.
        """


@contextmanager
def _route_buffer(size: int) -> Iterator[Any]:
    """Allocate a table buffer owned by a single fetch.

    The buffer is zeroed when the block exits, whether the fetch
    succeeded, failed or raised while parsing. Its memory is returned to
    ctypes once the fetch drops its last reference.
    """
    buffer = ctypes.create_string_buffer(size)
    try:
        yield buffer
    finally:
        ctypes.memset(buffer, 0, size)


def _fetch_iphlpapi_table(
    get_table: Callable[..., int],
    name: str,
    parse: Callable[[bytes], list[T]],
) -> list[T]:
    """Read an iphlpapi table in two phases: size query, then copy.

    Args:
        get_table: Export taking (buffer, size_ptr, order).
        name: Export name, for error messages.
        parse: Parser of the copied table.

    Raises:
        RouteTableError: If either call fails.
        ValueError: If the copied table is malformed.
    """
    size = ctypes.c_ulong(0)

    status = get_table(None, ctypes.pointer(size), False)
    if status not in (NO_ERROR, ERROR_INSUFFICIENT_BUFFER):
        raise RouteTableError(f"{name} size query failed: {status}", status)
    if size.value == 0:
        return []

    with _route_buffer(size.value) as buffer:
        status = get_table(buffer, ctypes.pointer(size), False)
        if status != NO_ERROR:
            raise RouteTableError(f"{name} failed: {status}", status)
        return parse(buffer.raw[: size.value])


class WindowsRouteTable(RouteTableSource):
    """Forwarding table from iphlpapi GetIpForwardTable."""

    def __init__(self, get_table: Callable[..., int] | None = None) -> None:
        """Initialize the source.

        Args:
            get_table: GetIpForwardTable(buffer, size_ptr, order) compatible
                callable. Defaults to the iphlpapi export.
        """
        self._get_table = get_table

    def _api(self) -> Callable[..., int]:
        if self._get_table is None:
            self._get_table = ctypes.windll.iphlpapi.GetIpForwardTable  # type: ignore[attr-defined]
        return self._get_table

    def fetch(self) -> list[RouteRow]:
        return _fetch_iphlpapi_table(self._api(), "GetIpForwardTable", parse_forward_table)


class WindowsAddressTable:
    """IPv4 address to interface index map from iphlpapi GetIpAddrTable.

    Windows names interfaces differently in psutil ("Wi-Fi") and in
    socket.if_nameindex() ("wireless_32768"); the address table links
    the two through the addresses they share.
    """

    def __init__(self, get_table: Callable[..., int] | None = None) -> None:
        """Initialize the source.

        Args:
            get_table: GetIpAddrTable(buffer, size_ptr, order) compatible
                callable. Defaults to the iphlpapi export.
        """
        self._get_table = get_table

    def _api(self) -> Callable[..., int]:
        if self._get_table is None:
            self._get_table = ctypes.windll.iphlpapi.GetIpAddrTable  # type: ignore[attr-defined]
        return self._get_table

    def fetch(self) -> dict[str, int]:
        """Get the interface index of every local IPv4 address.

        Raises:
            RouteTableError: If the OS refuses the query.
            ValueError: If the table is malformed.
        """
        rows = _fetch_iphlpapi_table(self._api(), "GetIpAddrTable", parse_addr_table)
        return dict(rows)


class ProcRouteTable(RouteTableSource):
    """Forwarding table from the Linux procfs."""

    def __init__(
        self,
        path: Path = PROC_ROUTE_PATH,
        name_to_index: Callable[[str], int] = socket.if_nametoindex,
    ) -> None:
        self._path = path
        self._name_to_index = name_to_index

    def fetch(self) -> list[RouteRow]:
        try:
            text = self._path.read_text(encoding="ascii")
        except OSError as e:
            raise RouteTableError(f"Cannot read {self._path}: {e}") from e
        return parse_proc_route(text, self._name_to_index)


class UnsupportedRouteTable(RouteTableSource):
    """Placeholder for platforms without a table reader."""

    def fetch(self) -> list[RouteRow]:
        raise RouteTableError(f"No forwarding table reader for {sys.platform}")


def default_route_source() -> RouteTableSource:
    """Get the table source for the running platform."""
    if sys.platform == "win32":
        return WindowsRouteTable()
    if sys.platform.startswith("linux"):
        return ProcRouteTable()
    return UnsupportedRouteTable()


class RoutingMetricProbe:
    """Reports the effective routing metric of an interface."""

    def __init__(self, source: RouteTableSource | None = None) -> None:
        """Initialize the probe.

        Args:
            source: Table source. Defaults to the running platform's.
        """
        self._source = source or default_route_source()

    def metric_for(self, interface_index: int) -> int:
        """Get the lowest metric among the routes of an interface.

        Args:
            interface_index: OS interface index.

        Returns:
            Minimum metric, or METRIC_UNAVAILABLE if the table cannot be
            read or has no route for the interface.
        """
        try:
            rows = self._source.fetch()
        except (RouteTableError, ValueError) as e:
            logger.warning(f"Routing table unavailable: {e}")
            return METRIC_UNAVAILABLE

        metric = effective_metric(rows, interface_index)
        logger.debug(f"Interface {interface_index}: metric {metric}")
        return metric
