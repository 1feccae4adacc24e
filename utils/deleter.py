"""Recursive, best-effort deletion of files and directory trees."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field

from utils.safe_path import ConfinedPath

logger = logging.getLogger('filedeck.fs.delete')


@dataclass
class DeleteResult:
    """Outcome of a delete: paths (root-relative) that could not be removed."""
    failed: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


class RecursiveDeleter:
    """Delete a file or a whole subtree.

    Deletion is immediate and irreversible. Failures on individual nodes do
    not stop the walk: remaining siblings are still attempted and every node
    left behind is reported in the result.
    """

    def delete(self, target: ConfinedPath) -> DeleteResult:
        result = DeleteResult()
        root = target.root

        def record(path: str, exc: OSError) -> None:
            rel = os.path.relpath(path, root).replace(os.sep, '/')
            logger.warning('Could not delete %s: %s', rel, exc.strerror or exc)
            result.failed.append(rel)

        # (path, children_done) pairs; a directory is pushed twice so it is
        # removed only after its children have been handled.
        stack: list[tuple[str, bool]] = [(target.value, False)]
        while stack:
            path, children_done = stack.pop()

            if children_done:
                try:
                    os.rmdir(path)
                except FileNotFoundError:
                    pass
                except OSError as exc:
                    record(path, exc)
                continue

            try:
                st = os.lstat(path)
            except FileNotFoundError:
                # Already gone, someone else removed it
                continue
            except OSError as exc:
                record(path, exc)
                continue

            if not stat.S_ISDIR(st.st_mode):
                # Files and symlinks (including links to directories)
                try:
                    os.unlink(path)
                except FileNotFoundError:
                    pass
                except OSError as exc:
                    record(path, exc)
                continue

            stack.append((path, True))
            try:
                with os.scandir(path) as it:
                    for entry in it:
                        stack.append((entry.path, False))
            except OSError as exc:
                # Children cannot be enumerated; the rmdir below will fail
                # and report the directory.
                logger.debug('Could not read %s: %s', path, exc)

        return result
