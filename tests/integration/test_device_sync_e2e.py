"""End-to-end synchronization against the device emulator.

The host side runs a real SyncSession; the device side is the FastAPI
emulator reached through RemoteLink over an in-process transport.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from recsync.core.config import DeviceConfig
from recsync.core.types import InterfaceType, MergeStatus, SessionState
from recsync.device.app import create_device_app
from recsync.links.local import LocalLink
from recsync.links.remote import RemoteLink
from recsync.network.interfaces import ResolvedAddress
from recsync.project import Project
from recsync.sync.session import SYNC_COMPLETED_EVENT, SyncSession

OLD = 1_700_000_000.0
NEW = 1_700_000_500.0


class StaticResolver:
    """Resolver returning a fixed address."""

    def resolve(self) -> ResolvedAddress:
        return ResolvedAddress("192.168.1.10", InterfaceType.WIFI, 25, "wlan0")


def write(root: Path, path: str, data: bytes, mtime: float) -> None:
    """Create a file with a given modification time."""
    target = root / path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    os.utime(target, (mtime, mtime))


@pytest.fixture
def host_folder(tmp_path: Path) -> Path:
    """Create the host data folder."""
    folder = tmp_path / "host"
    write(folder, "Proj/Mark/1/1.wav", b"host take", NEW)
    write(folder, "Proj/Mark/1/2.wav", b"old host take", OLD)
    write(folder, "Proj/Heading/1/1.wav", b"heading", NEW)
    return folder


@pytest.fixture
def device_folder(tmp_path: Path) -> Path:
    """Create the device repository."""
    folder = tmp_path / "device"
    write(folder, "Proj/Mark/1/2.wav", b"device take", NEW)
    write(folder, "Proj/Mark/2/1.wav", b"device only", OLD)
    return folder


@pytest.fixture
def device_app(device_folder: Path) -> FastAPI:
    """Create the device emulator."""
    return create_device_app(device_folder)


@pytest.fixture
def device_link(device_app: FastAPI) -> Generator[RemoteLink, None, None]:
    """Create a RemoteLink talking to the emulator in-process."""
    with TestClient(device_app, base_url="http://device:8087") as client:
        yield RemoteLink(DeviceConfig(address="device"), client=client)


def run_sync(host_folder: Path, link: RemoteLink) -> SyncSession:
    """Run one complete session of Proj against the device."""
    project = Project.open(host_folder, "Proj", styles_to_skip=["Heading"])
    session = SyncSession(project, LocalLink(host_folder), resolver=StaticResolver())
    assert session.start() is SessionState.AWAITING_PEER
    session.peer_connected(link)
    return session


class TestDeviceSync:
    """Full sessions against the device emulator."""

    def test_bidirectional_sync(
        self,
        host_folder: Path,
        device_folder: Path,
        device_app: FastAPI,
        device_link: RemoteLink,
    ) -> None:
        """Should merge both ways, push the status file and notify."""
        session = run_sync(host_folder, device_link)

        assert session.state is SessionState.COMPLETED
        assert session.report is not None
        assert session.report.status is MergeStatus.COMPLETED
        assert session.report.uploaded == ["Mark/1/1.wav"]
        assert session.report.downloaded == ["Mark/1/2.wav", "Mark/2/1.wav"]

        assert (device_folder / "Proj/Mark/1/1.wav").read_bytes() == b"host take"
        assert (device_folder / "Proj/Mark/1/1.wav").stat().st_mtime == NEW
        assert (host_folder / "Proj/Mark/1/2.wav").read_bytes() == b"device take"
        assert (host_folder / "Proj/Mark/2/1.wav").read_bytes() == b"device only"
        assert not (device_folder / "Proj/Heading").exists()

        assert (device_folder / "Proj/info.txt").read_text() == "Mark;1:2,2:1\n"
        assert device_app.state.notifications == [SYNC_COMPLETED_EVENT]

    def test_second_sync_transfers_nothing(
        self,
        host_folder: Path,
        device_link: RemoteLink,
    ) -> None:
        """Should find both sides identical after a sync."""
        run_sync(host_folder, device_link)
        session = run_sync(host_folder, device_link)

        assert session.state is SessionState.COMPLETED
        assert session.report is not None
        assert session.report.transferred == []
