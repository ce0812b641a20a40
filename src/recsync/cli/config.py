"""Configuration utilities and the config command for the recsync CLI.

Commands:
- config show: Print the stored configuration
- config set: Store one setting
"""

from __future__ import annotations

import json
from pathlib import Path

import click

# Settings accepted by 'recsync config set'
CONFIG_KEYS = ("data_folder", "device_address", "timeout")


def get_config_dir() -> Path:
    """Get the directory holding recsync's per-user settings."""
    return Path.home() / ".recsync"


def get_config_file() -> Path:
    """Get the JSON file storing the data folder, device address and timeout."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load the stored settings.

    Returns:
        Settings keyed by CONFIG_KEYS names; empty before the first
        'config set' or sync.
    """
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Store the settings, creating the settings directory on first use.

    Args:
        config: Full settings, replacing what was stored.
    """
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_data_folder() -> Path:
    """Get the folder holding the recording projects.

    Returns:
        Path to the data folder (configured or default ~/recsync).
    """
    config = load_config()
    if config.get("data_folder"):
        return Path(config["data_folder"]).expanduser().resolve()
    return Path.home() / "recsync"


def get_timeout() -> float | None:
    """Get the configured transfer timeout in seconds, if any."""
    value = load_config().get("timeout")
    return float(value) if value else None


@click.group("config")
def config_cmd() -> None:
    """Show or change stored settings."""


@config_cmd.command("show")
def show() -> None:
    """Print the stored configuration."""
    config = load_config()
    click.echo(f"Config file: {get_config_file()}")
    for key in CONFIG_KEYS:
        click.echo(f"  {key}: {config.get(key, '(not set)')}")


@config_cmd.command("set")
@click.argument("key", type=click.Choice(CONFIG_KEYS))
@click.argument("value")
def set_value(key: str, value: str) -> None:
    """Store one setting."""
    if key == "timeout":
        try:
            if float(value) <= 0:
                raise ValueError(value)
        except ValueError:
            click.echo(f"Error: timeout must be a positive number, got {value!r}", err=True)
            raise SystemExit(1) from None
    config = load_config()
    config[key] = value
    save_config(config)
    click.echo(f"{key} = {value}")
