"""Links - Transfer endpoints for the host folder and the device."""

from recsync.links.base import FileEntry, Link
from recsync.links.local import TEMP_SUFFIX, LocalLink
from recsync.links.remote import MTIME_HEADER, RemoteLink

__all__ = [
    "FileEntry",
    "Link",
    "LocalLink",
    "MTIME_HEADER",
    "RemoteLink",
    "TEMP_SUFFIX",
]
