"""Address command for recsync CLI.

Commands:
- address: Print the local address a device should connect to
"""

from __future__ import annotations

import sys

import click

from recsync.core.errors import ResolutionError
from recsync.network.interfaces import InterfaceResolver


@click.command()
@click.option("--details", is_flag=True, help="Show the interface and its routing metric.")
def address(details: bool) -> None:
    """Print the local IP address to give to the device."""
    try:
        resolved = InterfaceResolver().resolve()
    except ResolutionError as e:
        click.echo(f"Error: {e.user_message}", err=True)
        sys.exit(1)

    click.echo(resolved.ip_address)
    if details:
        click.echo(f"  Interface: {resolved.interface_name} ({resolved.interface_type.value})")
        click.echo(f"  Metric:    {resolved.metric}")
