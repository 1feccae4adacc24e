"""Permission probing for directory subtrees."""

from __future__ import annotations

import os

from utils.safe_path import ConfinedPath


def is_readable(path: str) -> bool:
    return os.access(path, os.R_OK)


def is_writable(path: str) -> bool:
    return os.access(path, os.W_OK)


def is_executable(path: str) -> bool:
    return os.access(path, os.X_OK)


class PermissionProbe:
    """Decide whether a directory subtree could be deleted as a whole.

    The answer is advisory only: the tree may change right after the probe
    runs, so the deleter never relies on it.
    """

    def is_recursively_deletable(self, path: ConfinedPath | str) -> bool:
        """Return True if every directory in the subtree is readable and writable.

        Walks the tree with an explicit stack and stops at the first
        directory that fails the check. Files are not checked. Symlinked
        directories are not descended into: deleting the subtree only
        unlinks them, so their targets do not matter.
        """
        stack = [os.fspath(path)]
        while stack:
            current = stack.pop()
            if not (is_readable(current) and is_writable(current)):
                return False
            try:
                with os.scandir(current) as it:
                    for entry in it:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(entry.path)
            except OSError:
                # Vanished or became unreadable since the access check
                return False
        return True
