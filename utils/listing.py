"""Directory listing with per-entry permission metadata."""

from __future__ import annotations

import os
import re
import stat
from dataclasses import dataclass, field, asdict
from typing import Any

from utils.errors import NotADirectory
from utils.permissions import PermissionProbe, is_executable, is_readable, is_writable
from utils.safe_path import ConfinedPath

IMAGE_PATTERN = re.compile(r'\.(jpe?g|png|gif|webp)$', re.IGNORECASE)


@dataclass(frozen=True)
class FileEntry:
    """Snapshot of one directory child at listing time."""
    name: str
    path: str
    size: int
    mtime: int
    is_dir: bool
    is_readable: bool
    is_writable: bool
    is_executable: bool
    is_deleteable: bool
    is_image: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Listing:
    """Result of listing one directory."""
    is_writable: bool
    entries: list[FileEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            'success': True,
            'is_writable': self.is_writable,
            'results': [entry.to_dict() for entry in self.entries],
        }


class DirectoryLister:
    """List the immediate children of a confined directory.

    Entries come back in filesystem enumeration order.
    """

    def __init__(self, probe: PermissionProbe | None = None, exclude: tuple[str, ...] = ()):
        self.probe = probe or PermissionProbe()
        self.exclude = frozenset(exclude)

    def list(self, directory: ConfinedPath) -> Listing:
        """List *directory*.

        Raises ``NotADirectory`` if the path is not a directory. Children
        that cannot be stat'ed (for example removed mid-listing) are left out.
        """
        dir_path = directory.value
        if not os.path.isdir(dir_path):
            raise NotADirectory()

        parent_writable = is_writable(dir_path)
        listing = Listing(is_writable=parent_writable)

        try:
            names = os.listdir(dir_path)
        except OSError as exc:
            raise NotADirectory() from exc

        for name in names:
            if name in self.exclude:
                continue
            entry = self._entry(directory, name, parent_writable)
            if entry is not None:
                listing.entries.append(entry)
        return listing

    def _entry(self, directory: ConfinedPath, name: str, parent_writable: bool) -> FileEntry | None:
        full_path = os.path.join(directory.value, name)
        try:
            st = os.stat(full_path)
        except OSError:
            return None

        is_dir = stat.S_ISDIR(st.st_mode)
        # A symlinked directory is removed by unlinking the link itself
        if is_dir and not os.path.islink(full_path):
            deleteable = parent_writable and self.probe.is_recursively_deletable(full_path)
        else:
            deleteable = parent_writable

        return FileEntry(
            name=name,
            path=os.path.relpath(full_path, directory.root).replace(os.sep, '/'),
            size=int(st.st_size),
            mtime=int(st.st_mtime),
            is_dir=is_dir,
            is_readable=is_readable(full_path),
            is_writable=is_writable(full_path),
            is_executable=is_executable(full_path),
            is_deleteable=deleteable,
            is_image=bool(not is_dir and stat.S_ISREG(st.st_mode) and IMAGE_PATTERN.search(name)),
        )
