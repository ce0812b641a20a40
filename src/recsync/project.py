"""Recording project as seen by device synchronization.

A project is a folder under the data folder laid out as
``<project>/<book>/<chapter>/<n>.wav``. The sync core needs its name,
whether it is the bundled sample, the folders to skip, and the
recording-status file advertised to the device after a sync.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from recsync.sync.skiplist import SkipList

logger = logging.getLogger(__name__)

SAMPLE_PROJECT_NAME = "Sample"
INFO_FILE_NAME = "info.txt"
RECORDING_SUFFIXES = frozenset({".wav", ".mp3", ".ogg", ".flac"})


def _chapter_key(name: str) -> tuple[int, int | str]:
    return (0, int(name)) if name.isdigit() else (1, name)


@dataclass
class Project:
    """A recording project on the host.

    Attributes:
        name: Project folder name, shared with the device.
        root: Project folder on the host.
        is_sample: Whether this is the bundled sample project.
        styles_to_skip: Style folders never synchronized.
    """

    name: str
    root: Path
    is_sample: bool = False
    styles_to_skip: set[str] = field(default_factory=set)

    @classmethod
    def open(
        cls,
        data_folder: Path,
        name: str,
        styles_to_skip: Iterable[str] = (),
    ) -> Project:
        """Open a project by name inside the data folder."""
        return cls(
            name=name,
            root=Path(data_folder) / name,
            is_sample=name == SAMPLE_PROJECT_NAME,
            styles_to_skip=set(styles_to_skip),
        )

    @property
    def is_real_project(self) -> bool:
        return not self.is_sample

    @property
    def status_info_path(self) -> Path:
        """Local path of the recording-status file."""
        return self.root / INFO_FILE_NAME

    @property
    def status_info_remote_path(self) -> str:
        """Device path of the recording-status file."""
        return f"{self.name}/{INFO_FILE_NAME}"

    def skip_list(self) -> SkipList:
        """Get the paths excluded from merging.

        The status file is written after the merge, so it never takes
        part in it.
        """
        return SkipList([*self.styles_to_skip, INFO_FILE_NAME])

    def status_info_content(self) -> str:
        """Build the recording-status file.

        One line per book: ``<book>;<chapter>:<count>,...`` listing how many
        recordings each chapter folder holds. Books without recordings are
        left out.
        """
        if not self.root.is_dir():
            return ""

        skip = self.skip_list()
        lines = []
        for book in sorted(p for p in self.root.iterdir() if p.is_dir()):
            if skip.matches(book.name):
                continue
            counts = []
            chapters = [p for p in book.iterdir() if p.is_dir()]
            for chapter in sorted(chapters, key=lambda p: _chapter_key(p.name)):
                count = sum(
                    1
                    for f in chapter.iterdir()
                    if f.is_file() and f.suffix.lower() in RECORDING_SUFFIXES
                )
                if count:
                    counts.append(f"{chapter.name}:{count}")
            if counts:
                lines.append(f"{book.name};{','.join(counts)}")
        return "\n".join(lines) + ("\n" if lines else "")

    def write_status_info(self) -> Path:
        """Write the recording-status file into the project folder."""
        path = self.status_info_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.status_info_content(), encoding="utf-8")
        logger.debug(f"Wrote {path}")
        return path
