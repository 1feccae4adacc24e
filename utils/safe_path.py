"""Path traversal prevention utilities.

Every file operation that accepts a client-supplied path MUST go through
``PathResolver.resolve`` before touching the filesystem. Only the resolver
constructs ``ConfinedPath`` values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from utils.errors import InvalidPath


@dataclass(frozen=True)
class ConfinedPath:
    """A canonical absolute path proven to lie inside the root directory."""
    value: str
    root: str

    @property
    def relative(self) -> str:
        """Path relative to the root, ``''`` for the root itself."""
        if self.value == self.root:
            return ''
        return os.path.relpath(self.value, self.root)

    @property
    def name(self) -> str:
        return os.path.basename(self.value)

    @property
    def is_root(self) -> bool:
        return self.value == self.root

    def __fspath__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class PathResolver:
    """Resolve untrusted paths against a fixed root directory.

    Usage:
        resolver = PathResolver('/srv/files')
        target = resolver.resolve('reports/2024')
    """

    def __init__(self, root: str | os.PathLike):
        self.root = os.path.realpath(os.fspath(root))

    def contains(self, real_path: str) -> bool:
        """Return True if the canonical *real_path* is the root or below it."""
        if real_path == self.root:
            return True
        prefix = self.root if self.root.endswith(os.sep) else self.root + os.sep
        return real_path.startswith(prefix)

    def resolve(self, raw_path: str | None) -> ConfinedPath:
        """Resolve *raw_path* to a ``ConfinedPath``.

        Relative paths are taken relative to the root. The target must exist
        and its symlink-resolved location must stay inside the root.

        Raises ``InvalidPath`` for escapes and missing targets alike, so a
        caller cannot probe for files outside the root.
        """
        raw = raw_path or ''
        if '\x00' in raw:
            raise InvalidPath()

        candidate = raw if os.path.isabs(raw) else os.path.join(self.root, raw)
        real = os.path.realpath(candidate)

        if not os.path.exists(real) or not self.contains(real):
            raise InvalidPath()
        return ConfinedPath(value=real, root=self.root)


def safe_basename(name: str | None) -> str:
    """Strip directory components from a client-supplied file name.

    Both ``/`` and ``\\`` are treated as separators. Returns ``''`` for names
    that reduce to nothing, ``.`` or ``..``.
    """
    base = (name or '').replace('\\', '/').rstrip('/').split('/')[-1]
    base = base.replace('\x00', '')
    if base in ('', '.', '..'):
        return ''
    return base
