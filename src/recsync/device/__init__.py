"""Device module - HTTP emulator of the companion device."""

from recsync.device.app import create_device_app, run_device

__all__ = [
    "create_device_app",
    "run_device",
]
