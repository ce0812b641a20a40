"""Command-line interface for recsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- address: Print the local address a device should connect to
- sync: Merge a recording project with a companion device
- device: Serve a folder as an emulated companion device
- config: Show or change stored settings
"""

from __future__ import annotations

import logging
import sys

import click

from recsync.cli.address import address
from recsync.cli.config import (
    config_cmd,
    get_config_dir,
    get_config_file,
    get_data_folder,
    load_config,
    save_config,
)
from recsync.cli.device import device
from recsync.cli.sync import sync


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the recsync package to stderr.

    Args:
        verbose: Log at INFO level instead of WARNING.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    root_logger = logging.getLogger("recsync")
    root_logger.setLevel(logging.INFO if verbose else logging.WARNING)

    # Replace handlers from an earlier invocation in the same process
    for old_handler in list(root_logger.handlers):
        root_logger.removeHandler(old_handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(handler)


@click.group()
@click.version_option(package_name="recsync")
@click.option("--verbose", "-v", is_flag=True, help="Show informational log messages.")
def cli(verbose: bool) -> None:
    """recsync - Synchronize audio recordings with a companion device."""
    setup_logging(verbose)


cli.add_command(address)
cli.add_command(sync)
cli.add_command(device)
cli.add_command(config_cmd)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "setup_logging",
    "get_config_dir",
    "get_config_file",
    "get_data_folder",
    "load_config",
    "save_config",
]
