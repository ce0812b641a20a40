"""Network module - Local address resolution by routing metric."""

from recsync.network.interfaces import (
    InterfaceResolver,
    NetworkInterfaceRecord,
    ResolvedAddress,
    enumerate_interfaces,
    guess_interface_type,
    windows_address_indexes,
)
from recsync.network.routing import (
    METRIC_UNAVAILABLE,
    ProcRouteTable,
    RouteRow,
    RouteTableError,
    RouteTableSource,
    RoutingMetricProbe,
    WindowsAddressTable,
    WindowsRouteTable,
    effective_metric,
    parse_addr_table,
    parse_forward_table,
    parse_proc_route,
)

__all__ = [
    # Interfaces
    "InterfaceResolver",
    "NetworkInterfaceRecord",
    "ResolvedAddress",
    "enumerate_interfaces",
    "guess_interface_type",
    "windows_address_indexes",
    # Routing
    "METRIC_UNAVAILABLE",
    "ProcRouteTable",
    "RouteRow",
    "RouteTableError",
    "RouteTableSource",
    "RoutingMetricProbe",
    "WindowsAddressTable",
    "WindowsRouteTable",
    "effective_metric",
    "parse_addr_table",
    "parse_forward_table",
    "parse_proc_route",
]
