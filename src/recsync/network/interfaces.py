"""Local address resolution for device synchronization.

This module provides:
- NetworkInterfaceRecord: Snapshot of one interface
- enumerate_interfaces: Build records from psutil and the OS index table
- InterfaceResolver: Pick the IPv4 address the OS routes through

Ranking is by routing metric only. When several interfaces share the
lowest metric the first one enumerated wins; the OS does not guarantee
a stable enumeration order across calls, so the winner may differ
between two resolutions on a machine with tied interfaces.
"""

from __future__ import annotations

import ipaddress
import logging
import math
import socket
import sys
from collections.abc import Callable
from dataclasses import dataclass, field

import psutil

from recsync.core.errors import NoActiveInterfacesError, NoRoutableInterfaceError
from recsync.core.types import InterfaceType, OperationalState
from recsync.network.routing import (
    METRIC_UNAVAILABLE,
    RouteTableError,
    RoutingMetricProbe,
    WindowsAddressTable,
)

logger = logging.getLogger(__name__)

# Name fragments, checked in order, that reveal the interface kind
_WIFI_PREFIXES = ("wl", "wlan", "wi-fi", "wifi", "wireless", "airport")
_ETHERNET_PREFIXES = ("eth", "en", "ethernet", "local area connection")


@dataclass
class NetworkInterfaceRecord:
    """One network interface, as enumerated for a single resolution."""

    name: str
    index: int
    type: InterfaceType
    state: OperationalState
    supports_ipv4: bool
    ipv4_addresses: list[str] = field(default_factory=list)

    @property
    def is_candidate(self) -> bool:
        """Check if the interface is up with IPv4 enabled."""
        return self.state is OperationalState.UP and self.supports_ipv4


@dataclass(frozen=True)
class ResolvedAddress:
    """The winning local address."""

    ip_address: str
    interface_type: InterfaceType
    metric: int
    interface_name: str = ""


def guess_interface_type(name: str) -> InterfaceType:
    """Infer the interface kind from its name.

    Args:
        name: OS interface name ("wlan0", "eth0", "Wi-Fi", "Ethernet 2").

    Returns:
        WIFI, ETHERNET, or OTHER.
    """
    lowered = name.lower()
    if lowered.startswith(_WIFI_PREFIXES):
        return InterfaceType.WIFI
    if lowered.startswith(_ETHERNET_PREFIXES):
        return InterfaceType.ETHERNET
    return InterfaceType.OTHER


def windows_address_indexes() -> dict[str, int]:
    """Map local IPv4 addresses to interface indexes through iphlpapi."""
    return WindowsAddressTable().fetch()


def enumerate_interfaces(
    address_indexes: Callable[[], dict[str, int]] | None = None,
) -> list[NetworkInterfaceRecord]:
    """Enumerate the machine's network interfaces.

    The OS index is looked up by name first. Windows names interfaces
    differently in psutil and in socket.if_nameindex(), so there the index
    is found through the interface's IPv4 addresses instead. Interfaces
    without an index are left out since they cannot be matched against
    the routing table.

    Args:
        address_indexes: Returns an IPv4 address -> interface index map.
            Defaults to the iphlpapi address table on Windows.

    Returns:
        Records in OS enumeration order.
    """
    stats = psutil.net_if_stats()
    addrs = psutil.net_if_addrs()
    indexes = {name: index for index, name in socket.if_nameindex()}

    if address_indexes is None and sys.platform == "win32":
        address_indexes = windows_address_indexes
    by_address: dict[str, int] = {}
    if address_indexes is not None:
        try:
            by_address = address_indexes()
        except (RouteTableError, ValueError) as e:
            logger.warning(f"Address table unavailable: {e}")

    records = []
    for name, nic_addrs in addrs.items():
        ipv4 = [a.address for a in nic_addrs if a.family == socket.AF_INET]
        index = indexes.get(name)
        if index is None:
            index = next((by_address[a] for a in ipv4 if a in by_address), None)
        if index is None:
            logger.debug(f"Skipping interface {name}: no OS index")
            continue
        nic_stats = stats.get(name)
        records.append(
            NetworkInterfaceRecord(
                name=name,
                index=index,
                type=guess_interface_type(name),
                state=(
                    OperationalState.UP
                    if nic_stats is not None and nic_stats.isup
                    else OperationalState.DOWN
                ),
                supports_ipv4=bool(ipv4),
                ipv4_addresses=ipv4,
            )
        )
    return records


def _is_unicast(address: str) -> bool:
    try:
        ip = ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return not (ip.is_loopback or ip.is_multicast or ip.is_unspecified)


class InterfaceResolver:
    """Resolves the local IPv4 address a peer device should contact."""

    def __init__(
        self,
        enumerate_fn: Callable[[], list[NetworkInterfaceRecord]] = enumerate_interfaces,
        probe: RoutingMetricProbe | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            enumerate_fn: Returns the current interfaces.
            probe: Routing metric probe. Defaults to the platform probe.
        """
        self._enumerate = enumerate_fn
        self._probe = probe or RoutingMetricProbe()

    def resolve(self) -> ResolvedAddress:
        """Get the address of the interface with the lowest routing metric.

        Returns:
            The winning address.

        Raises:
            NoActiveInterfacesError: If no interface is up with IPv4.
            NoRoutableInterfaceError: If no candidate has a usable metric.
        """
        candidates = [nic for nic in self._enumerate() if nic.is_candidate]
        if not candidates:
            raise NoActiveInterfacesError("No network interface is up with IPv4 enabled")

        best_metric: float = math.inf
        winner: ResolvedAddress | None = None
        for nic in candidates:
            for address in nic.ipv4_addresses:
                if not _is_unicast(address):
                    continue
                metric = self._probe.metric_for(nic.index)
                logger.debug(f"Candidate {address} on {nic.name} ({nic.type.value}): metric {metric}")
                if metric == METRIC_UNAVAILABLE:
                    continue
                # Strictly lower only: ties keep the first enumerated
                if metric < best_metric:
                    best_metric = metric
                    winner = ResolvedAddress(
                        ip_address=address,
                        interface_type=nic.type,
                        metric=metric,
                        interface_name=nic.name,
                    )

        if winner is None:
            raise NoRoutableInterfaceError(
                f"None of {len(candidates)} active interfaces has a route"
            )

        logger.info(
            f"Local IP address to use for device synchronization: "
            f"{winner.ip_address} ({winner.interface_name}, metric {winner.metric})"
        )
        return winner
