"""Tests for local address resolution."""

from __future__ import annotations

import socket
from collections import namedtuple
from unittest.mock import patch

import pytest

from recsync.core.errors import NoActiveInterfacesError, NoRoutableInterfaceError
from recsync.core.types import InterfaceType, OperationalState
from recsync.network.interfaces import (
    InterfaceResolver,
    NetworkInterfaceRecord,
    enumerate_interfaces,
    guess_interface_type,
)
from recsync.network.routing import METRIC_UNAVAILABLE, RouteTableError

Snicaddr = namedtuple("Snicaddr", ["family", "address", "netmask", "broadcast", "ptp"])
Snicstats = namedtuple("Snicstats", ["isup", "duplex", "speed", "mtu", "flags"])


class FakeProbe:
    """Probe answering from a fixed index -> metric table."""

    def __init__(self, metrics: dict[int, int]) -> None:
        self.metrics = metrics
        self.queried: list[int] = []

    def metric_for(self, interface_index: int) -> int:
        self.queried.append(interface_index)
        return self.metrics.get(interface_index, METRIC_UNAVAILABLE)


def make_nic(
    name: str,
    index: int,
    address: str,
    state: OperationalState = OperationalState.UP,
    type: InterfaceType = InterfaceType.ETHERNET,
) -> NetworkInterfaceRecord:
    """Create an IPv4 interface record."""
    return NetworkInterfaceRecord(
        name=name,
        index=index,
        type=type,
        state=state,
        supports_ipv4=True,
        ipv4_addresses=[address],
    )


def make_resolver(nics: list[NetworkInterfaceRecord], metrics: dict[int, int]) -> InterfaceResolver:
    """Create a resolver over fixed interfaces and metrics."""
    return InterfaceResolver(enumerate_fn=lambda: nics, probe=FakeProbe(metrics))  # type: ignore[arg-type]


class TestGuessInterfaceType:
    """Tests for guess_interface_type."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("wlan0", InterfaceType.WIFI),
            ("wlp3s0", InterfaceType.WIFI),
            ("Wi-Fi", InterfaceType.WIFI),
            ("eth0", InterfaceType.ETHERNET),
            ("enp0s31f6", InterfaceType.ETHERNET),
            ("Ethernet 2", InterfaceType.ETHERNET),
            ("tun0", InterfaceType.OTHER),
        ],
    )
    def test_names(self, name: str, expected: InterfaceType) -> None:
        """Should recognize common interface names."""
        assert guess_interface_type(name) is expected


class TestInterfaceResolver:
    """Tests for InterfaceResolver.resolve."""

    def test_lowest_metric_wins(self) -> None:
        """Should pick the interface with the smallest metric."""
        nics = [
            make_nic("Wi-Fi", 7, "192.168.1.10", type=InterfaceType.WIFI),
            make_nic("Ethernet", 12, "10.0.0.5"),
        ]
        resolved = make_resolver(nics, {7: 25, 12: 35}).resolve()
        assert resolved.ip_address == "192.168.1.10"
        assert resolved.interface_type is InterfaceType.WIFI
        assert resolved.metric == 25
        assert resolved.interface_name == "Wi-Fi"

    def test_down_interface_ignored(self) -> None:
        """Should not consider interfaces that are down."""
        nics = [
            make_nic("eth0", 2, "10.0.0.5", state=OperationalState.DOWN),
            make_nic("wlan0", 3, "192.168.1.10", type=InterfaceType.WIFI),
        ]
        resolved = make_resolver(nics, {2: 1, 3: 50}).resolve()
        assert resolved.ip_address == "192.168.1.10"

    def test_tie_keeps_first_enumerated(self) -> None:
        """Should keep the first interface when metrics are equal."""
        nics = [make_nic("eth0", 2, "10.0.0.5"), make_nic("eth1", 3, "10.0.1.5")]
        resolver = make_resolver(nics, {2: 10, 3: 10})
        assert resolver.resolve().ip_address == "10.0.0.5"
        assert resolver.resolve().ip_address == "10.0.0.5"

    def test_no_active_interfaces(self) -> None:
        """Should raise NoActiveInterfacesError when nothing is up with IPv4."""
        nics = [make_nic("eth0", 2, "10.0.0.5", state=OperationalState.DOWN)]
        ipv6_only = NetworkInterfaceRecord(
            name="eth1",
            index=3,
            type=InterfaceType.ETHERNET,
            state=OperationalState.UP,
            supports_ipv4=False,
        )
        with pytest.raises(NoActiveInterfacesError):
            make_resolver([*nics, ipv6_only], {2: 1, 3: 1}).resolve()

    def test_no_interfaces_at_all(self) -> None:
        """Should raise NoActiveInterfacesError on an empty enumeration."""
        with pytest.raises(NoActiveInterfacesError):
            make_resolver([], {}).resolve()

    def test_all_metrics_unavailable(self) -> None:
        """Should raise NoRoutableInterfaceError when no candidate has a route."""
        nics = [make_nic("eth0", 2, "10.0.0.5")]
        with pytest.raises(NoRoutableInterfaceError):
            make_resolver(nics, {}).resolve()

    def test_loopback_skipped(self) -> None:
        """Should never return a loopback address."""
        nics = [make_nic("lo", 1, "127.0.0.1", type=InterfaceType.OTHER), make_nic("eth0", 2, "10.0.0.5")]
        resolved = make_resolver(nics, {1: 0, 2: 100}).resolve()
        assert resolved.ip_address == "10.0.0.5"

    def test_only_loopback(self) -> None:
        """Should raise NoRoutableInterfaceError when only loopback has a route."""
        nics = [make_nic("lo", 1, "127.0.0.1", type=InterfaceType.OTHER)]
        with pytest.raises(NoRoutableInterfaceError):
            make_resolver(nics, {1: 0}).resolve()


class TestEnumerateInterfaces:
    """Tests for enumerate_interfaces over psutil."""

    def test_builds_records(self) -> None:
        """Should combine psutil addresses, stats and OS indexes."""
        addrs = {
            "eth0": [Snicaddr(socket.AF_INET, "10.0.0.5", "255.255.255.0", None, None)],
            "wlan0": [Snicaddr(socket.AF_INET6, "fe80::1", None, None, None)],
            "ghost": [Snicaddr(socket.AF_INET, "10.9.9.9", None, None, None)],
        }
        stats = {
            "eth0": Snicstats(True, 2, 1000, 1500, ""),
            "wlan0": Snicstats(False, 0, 0, 1500, ""),
        }
        with (
            patch("recsync.network.interfaces.psutil.net_if_addrs", return_value=addrs),
            patch("recsync.network.interfaces.psutil.net_if_stats", return_value=stats),
            patch(
                "recsync.network.interfaces.socket.if_nameindex",
                return_value=[(2, "eth0"), (3, "wlan0")],
            ),
        ):
            records = enumerate_interfaces(address_indexes=dict)

        assert [r.name for r in records] == ["eth0", "wlan0"]
        eth0, wlan0 = records
        assert eth0.index == 2
        assert eth0.is_candidate
        assert eth0.ipv4_addresses == ["10.0.0.5"]
        assert eth0.type is InterfaceType.ETHERNET
        assert wlan0.state is OperationalState.DOWN
        assert not wlan0.supports_ipv4
        assert not wlan0.is_candidate

    def test_friendly_names_matched_by_address(self) -> None:
        """Should find the index through the address table when names differ."""
        addrs = {
            "Wi-Fi": [Snicaddr(socket.AF_INET, "192.168.1.10", "255.255.255.0", None, None)],
            "Ethernet": [Snicaddr(socket.AF_INET, "10.0.0.5", "255.255.255.0", None, None)],
        }
        stats = {
            "Wi-Fi": Snicstats(True, 2, 300, 1500, ""),
            "Ethernet": Snicstats(True, 2, 1000, 1500, ""),
        }
        with (
            patch("recsync.network.interfaces.psutil.net_if_addrs", return_value=addrs),
            patch("recsync.network.interfaces.psutil.net_if_stats", return_value=stats),
            patch(
                "recsync.network.interfaces.socket.if_nameindex",
                return_value=[(7, "wireless_32768"), (12, "ethernet_32768")],
            ),
        ):
            records = enumerate_interfaces(
                address_indexes=lambda: {"192.168.1.10": 7, "10.0.0.5": 12}
            )
            resolver = InterfaceResolver(
                enumerate_fn=lambda: enumerate_interfaces(
                    address_indexes=lambda: {"192.168.1.10": 7, "10.0.0.5": 12}
                ),
                probe=FakeProbe({7: 25, 12: 35}),  # type: ignore[arg-type]
            )
            resolved = resolver.resolve()

        assert [(r.name, r.index) for r in records] == [("Wi-Fi", 7), ("Ethernet", 12)]
        assert records[0].type is InterfaceType.WIFI
        assert resolved.ip_address == "192.168.1.10"
        assert resolved.interface_name == "Wi-Fi"

    def test_address_table_failure_falls_back_to_names(self) -> None:
        """Should still match by name when the address table cannot be read."""
        addrs = {"eth0": [Snicaddr(socket.AF_INET, "10.0.0.5", None, None, None)]}
        stats = {"eth0": Snicstats(True, 2, 1000, 1500, "")}

        def broken_table() -> dict[str, int]:
            raise RouteTableError("denied", 5)

        with (
            patch("recsync.network.interfaces.psutil.net_if_addrs", return_value=addrs),
            patch("recsync.network.interfaces.psutil.net_if_stats", return_value=stats),
            patch("recsync.network.interfaces.socket.if_nameindex", return_value=[(2, "eth0")]),
        ):
            records = enumerate_interfaces(address_indexes=broken_table)

        assert [(r.name, r.index) for r in records] == [("eth0", 2)]
