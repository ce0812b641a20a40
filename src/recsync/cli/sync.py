"""Sync command for recsync CLI.

Commands:
- sync: Merge a recording project with a companion device
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from recsync.cli.config import get_data_folder, get_timeout, load_config, save_config
from recsync.core.config import DeviceConfig
from recsync.core.errors import TransferTimeoutError
from recsync.core.types import RetryDecision, SessionState
from recsync.links.base import Link
from recsync.links.local import LocalLink
from recsync.links.remote import RemoteLink
from recsync.network.interfaces import InterfaceResolver
from recsync.project import Project
from recsync.sync.retry import DEFAULT_TIMEOUT, TimeoutPolicy, fixed_decision
from recsync.sync.session import SyncSession
from recsync.sync.types import RetryCallback

TIMEOUT_CHOICES = ("ask", "retry", "ignore", "abort")


class ClickProgress:
    """Progress sink printing to the terminal."""

    def write_message(self, message: str) -> None:
        click.echo(message)

    def write_warning(self, message: str) -> None:
        click.secho(f"Warning: {message}", fg="yellow", err=True)

    def write_error(self, message: str) -> None:
        click.secho(f"Error: {message}", fg="red", err=True)


def ask_on_timeout(error: TransferTimeoutError, path: str) -> RetryDecision:
    """Ask the user how to handle a transfer that timed out."""
    click.secho(error.user_message, fg="yellow", err=True)
    choice = click.prompt(
        "Abort, retry or ignore?",
        type=click.Choice(["abort", "retry", "ignore"], case_sensitive=False),
        default="retry",
    )
    return RetryDecision[choice.upper()]


def show_address(ip_address: str) -> None:
    click.echo(f"On the device, connect to: {ip_address}")


@contextmanager
def open_device_link(config: DeviceConfig) -> Iterator[Link]:
    """Open a link to the device at the configured address."""
    with RemoteLink(config) as link:
        yield link


def _retry_callback(on_timeout: str) -> RetryCallback:
    if on_timeout == "ask":
        return ask_on_timeout
    return fixed_decision(RetryDecision[on_timeout.upper()])


@click.command()
@click.argument("project")
@click.option("--device", "-d", "device_address", help="Device address (prompted if omitted).")
@click.option(
    "--data-folder",
    type=click.Path(file_okay=False, path_type=Path),
    help="Folder holding the projects (default from config).",
)
@click.option("--skip", "-s", multiple=True, help="Style or path to leave out; repeatable.")
@click.option(
    "--on-timeout",
    type=click.Choice(TIMEOUT_CHOICES),
    default="ask",
    show_default=True,
    help="What to do when a transfer times out.",
)
@click.option("--timeout", type=float, help="Per-transfer timeout in seconds.")
def sync(
    project: str,
    device_address: str | None,
    data_folder: Path | None,
    skip: tuple[str, ...],
    on_timeout: str,
    timeout: float | None,
) -> None:
    """Synchronize PROJECT with a companion device.

    Prints this machine's address for the device, then merges the
    project in both directions: the newer copy of each file wins.
    """
    data_folder = data_folder or get_data_folder()
    timeout = timeout or get_timeout() or DEFAULT_TIMEOUT

    proj = Project.open(data_folder, project, styles_to_skip=skip)
    progress = ClickProgress()
    session = SyncSession(
        proj,
        LocalLink(data_folder),
        resolver=InterfaceResolver(),
        presenter=show_address,
        progress=progress,
        retry_decision=_retry_callback(on_timeout),
        policy=TimeoutPolicy(timeout=timeout),
    )

    if session.start() is SessionState.FAILED:
        sys.exit(1)

    config = load_config()
    if not device_address:
        device_address = click.prompt(
            "Device address", default=config.get("device_address") or None
        )
    if device_address != config.get("device_address"):
        config["device_address"] = device_address
        save_config(config)

    device_config = DeviceConfig(address=device_address, timeout=timeout)
    with open_device_link(device_config) as their_link:
        state = session.peer_connected(their_link)

    if state is SessionState.FAILED:
        sys.exit(1)

    report = session.report
    if report is not None:
        click.echo(
            f"  {len(report.uploaded)} sent, {len(report.downloaded)} received, "
            f"{len(report.skipped_by_user)} skipped"
        )
