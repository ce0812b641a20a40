"""Tests for the skip list."""

from __future__ import annotations

from recsync.sync.skiplist import SkipList


class TestSkipList:
    """Tests for SkipList matching."""

    def test_empty(self) -> None:
        """Should match nothing when empty."""
        skip = SkipList()
        assert len(skip) == 0
        assert not skip.matches("Book/1/1.wav")

    def test_exact_path(self) -> None:
        """Should match an exact relative path."""
        assert SkipList(["info.txt"]).matches("info.txt")

    def test_leading_directory(self) -> None:
        """Should match everything under a listed directory."""
        skip = SkipList(["Book/Intro"])
        assert skip.matches("Book/Intro/1.wav")
        assert not skip.matches("Book/Introduction/1.wav")

    def test_component_anywhere(self) -> None:
        """Should match a folder name at any depth."""
        skip = SkipList(["Heading"])
        assert skip.matches("Book/Heading/1.wav")
        assert skip.matches("Heading/1.wav")
        assert not skip.matches("Book/Headings/1.wav")

    def test_glob(self) -> None:
        """Should match glob patterns on the file name or full path."""
        skip = SkipList(["*.bak", "Book/*/draft.wav"])
        assert skip.matches("Book/1/2.bak")
        assert skip.matches("Book/3/draft.wav")
        assert not skip.matches("Book/3/final.wav")

    def test_normalizes_entries(self) -> None:
        """Should ignore surrounding slashes and backslashes."""
        skip = SkipList(["/Book\\Intro/", ""])
        assert skip.entries == frozenset({"Book/Intro"})
        assert skip.matches("Book\\Intro\\1.wav")

    def test_contains_and_add(self) -> None:
        """Should support 'in' and adding entries later."""
        skip = SkipList()
        skip.add("Intro")
        assert "Intro/1.wav" in skip
        assert "Outro/1.wav" not in skip
        assert 42 not in skip
