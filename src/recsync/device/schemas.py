"""Pydantic schemas for the device HTTP protocol."""

from __future__ import annotations

from pydantic import BaseModel

from recsync.links.base import FileEntry


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


class FileEntryResponse(BaseModel):
    """One file in a listing."""

    path: str
    mtime: float
    size: int


def entry_to_response(entry: FileEntry) -> FileEntryResponse:
    """Convert a link listing entry to its response model."""
    return FileEntryResponse(path=entry.path, mtime=entry.mtime, size=entry.size)
