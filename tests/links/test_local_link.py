"""Tests for the filesystem-backed link."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from recsync.core.errors import OtherTransportError
from recsync.links.local import TEMP_SUFFIX, LocalLink


@pytest.fixture
def link(tmp_path: Path) -> LocalLink:
    """Create a LocalLink over a temporary directory."""
    return LocalLink(tmp_path / "repo")


class TestLocalLink:
    """Tests for LocalLink."""

    def test_creates_root(self, tmp_path: Path) -> None:
        """Should create a missing root directory."""
        link = LocalLink(tmp_path / "new" / "root")
        assert link.root.is_dir()
        assert str(link.root) in link.location

    def test_put_then_get(self, link: LocalLink) -> None:
        """Should store a file and read it back."""
        link.put_file("Proj/Book/1/1.wav", b"audio")
        assert link.get_file("Proj/Book/1/1.wav") == b"audio"
        assert (link.root / "Proj" / "Book" / "1" / "1.wav").read_bytes() == b"audio"

    def test_put_overwrites(self, link: LocalLink) -> None:
        """Should replace an existing file."""
        link.put_file("a.wav", b"old")
        link.put_file("a.wav", b"new")
        assert link.get_file("a.wav") == b"new"

    def test_put_preserves_mtime(self, link: LocalLink) -> None:
        """Should stamp the given modification time."""
        link.put_file("a.wav", b"x", mtime=1_700_000_000.0)
        assert os.stat(link.root / "a.wav").st_mtime == 1_700_000_000.0

    def test_put_failure_leaves_no_partial_file(self, link: LocalLink) -> None:
        """Should remove the temporary file when the rename fails."""
        with patch("recsync.links.local.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OtherTransportError) as exc_info:
                link.put_file("Proj/a.wav", b"audio")

        assert exc_info.value.path == "Proj/a.wav"
        assert "disk full" in exc_info.value.user_message
        assert not (link.root / "Proj" / "a.wav").exists()
        assert not (link.root / "Proj" / ("a.wav" + TEMP_SUFFIX)).exists()
        assert link.list_files() == []

    def test_get_missing_file(self, link: LocalLink) -> None:
        """Should raise OtherTransportError for a missing file."""
        with pytest.raises(OtherTransportError):
            link.get_file("missing.wav")

    def test_list_files_sorted_with_metadata(self, link: LocalLink) -> None:
        """Should list files sorted by path with size and mtime."""
        link.put_file("Proj/b.wav", b"bb", mtime=1_700_000_100.0)
        link.put_file("Proj/Book/a.wav", b"a", mtime=1_700_000_000.0)
        entries = link.list_files()
        assert [e.path for e in entries] == ["Proj/Book/a.wav", "Proj/b.wav"]
        assert entries[1].size == 2
        assert entries[1].mtime_seconds == 1_700_000_100

    def test_list_files_prefix(self, link: LocalLink) -> None:
        """Should only list files under the prefix."""
        link.put_file("Proj/a.wav", b"a")
        link.put_file("Other/b.wav", b"b")
        assert [e.path for e in link.list_files("Proj/")] == ["Proj/a.wav"]

    def test_list_missing_prefix(self, link: LocalLink) -> None:
        """Should return an empty listing for a missing folder."""
        assert link.list_files("Nothing/") == []

    def test_list_skips_temporary_files(self, link: LocalLink) -> None:
        """Should never list in-flight writes."""
        link.put_file("Proj/a.wav", b"a")
        (link.root / "Proj" / ("b.wav" + TEMP_SUFFIX)).write_bytes(b"partial")
        assert [e.path for e in link.list_files()] == ["Proj/a.wav"]

    def test_refuses_paths_outside_root(self, link: LocalLink) -> None:
        """Should refuse paths escaping the root."""
        with pytest.raises(OtherTransportError):
            link.put_file("../escape.wav", b"x")
        with pytest.raises(OtherTransportError):
            link.get_file("../../etc/passwd")

    def test_send_notification_is_noop(self, link: LocalLink) -> None:
        """Should accept notifications without side effects."""
        link.send_notification("syncCompleted")
        assert link.list_files() == []
