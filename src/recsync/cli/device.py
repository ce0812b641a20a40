"""Device command for recsync CLI.

Commands:
- device: Serve a folder as an emulated companion device
"""

from __future__ import annotations

from pathlib import Path

import click

from recsync.core.config import DEFAULT_DEVICE_PORT


@click.command()
@click.argument("root", type=click.Path(file_okay=False, path_type=Path))
@click.option("--host", default="0.0.0.0", show_default=True, help="Interface to listen on.")
@click.option("--port", default=DEFAULT_DEVICE_PORT, show_default=True, help="Port to listen on.")
def device(root: Path, host: str, port: int) -> None:
    """Serve ROOT over the device protocol, as a phone would."""
    from recsync.device import run_device

    click.echo(f"Serving {root.resolve()} as a device on {host}:{port}")
    run_device(root, host=host, port=port)
