"""Zip archive creation for files and directory trees.

The archive is written to a temporary file first and streamed from there.
The temporary file is a scoped resource: ``ArchiveJob.cleanup`` runs on every
exit path, including a client disconnecting mid-stream.
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
import tempfile
import zipfile
from dataclasses import dataclass, field
from typing import AsyncIterator

from utils.errors import ArchiveCreationFailed
from utils.safe_path import ConfinedPath, PathResolver

logger = logging.getLogger('filedeck.fs.zip')

CHUNK_SIZE = 64 * 1024


@dataclass
class ArchiveJob:
    """State of one archive request."""
    target: ConfinedPath
    temp_path: str = ''
    entries: dict[str, str] = field(default_factory=dict)

    @property
    def download_name(self) -> str:
        return f'{self.target.name or "archive"}.zip'

    @property
    def size(self) -> int:
        return os.path.getsize(self.temp_path)

    def cleanup(self) -> None:
        """Remove the temporary archive file if it still exists."""
        if not self.temp_path:
            return
        try:
            os.unlink(self.temp_path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning('Could not remove temporary archive %s: %s', self.temp_path, exc)
        self.temp_path = ''

    async def stream(self, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Yield the archive bytes, then remove the temporary file.

        Cleanup also runs when the consumer stops early or the task is
        cancelled.
        """
        loop = asyncio.get_event_loop()
        try:
            with open(self.temp_path, 'rb') as f:
                while True:
                    chunk = await loop.run_in_executor(None, f.read, chunk_size)
                    if not chunk:
                        break
                    yield chunk
        finally:
            self.cleanup()


class Archiver:
    """Build zip archives of confined files and directories."""

    def __init__(self, resolver: PathResolver, tmp_dir: str | None = None):
        self.resolver = resolver
        self.tmp_dir = tmp_dir

    def collect(self, target: ConfinedPath) -> dict[str, str]:
        """Map archive entry names to source paths for *target*.

        A file maps to its base name. A directory is walked depth-first with
        an explicit stack; only regular files become entries, named by their
        ``/``-separated path relative to *target*. Symlinked directories are
        not followed and symlinked files are included only when their real
        location is inside the root. Entries whose names are not valid UTF-8
        are skipped.
        """
        if not os.path.isdir(target.value):
            return {target.name: target.value}

        entries: dict[str, str] = {}
        stack = [target.value]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    children = list(it)
            except OSError as exc:
                raise ArchiveCreationFailed() from exc

            for entry in children:
                if entry.is_dir(follow_symlinks=False):
                    stack.append(entry.path)
                    continue
                source = entry.path
                if entry.is_symlink():
                    source = os.path.realpath(entry.path)
                    if not self.resolver.contains(source):
                        logger.debug('Skipping symlink leaving the root: %s', entry.path)
                        continue
                try:
                    if not stat.S_ISREG(os.stat(source).st_mode):
                        continue
                except OSError:
                    # Dangling link or entry removed during the walk
                    continue
                name = os.path.relpath(entry.path, target.value).replace(os.sep, '/')
                try:
                    name.encode('utf-8')
                except UnicodeEncodeError:
                    # Undecodable bytes on disk; zip member names must be UTF-8
                    logger.warning('Skipping %r: name is not valid UTF-8', entry.path)
                    continue
                entries[name] = source
        return entries

    def archive(self, target: ConfinedPath) -> ArchiveJob:
        """Write the archive for *target* to a temporary file.

        Raises ``ArchiveCreationFailed`` if the temporary file cannot be
        created or written; no temporary file is left behind in that case.
        """
        job = ArchiveJob(target=target)
        try:
            fd, job.temp_path = tempfile.mkstemp(prefix='filedeck-', suffix='.zip', dir=self.tmp_dir)
            os.close(fd)
        except OSError as exc:
            logger.error('Could not create temporary archive: %s', exc)
            raise ArchiveCreationFailed() from exc

        built = False
        try:
            # The temp file may sit inside the archived tree
            job.entries = {
                name: source for name, source in self.collect(target).items()
                if os.path.realpath(source) != os.path.realpath(job.temp_path)
            }
            with zipfile.ZipFile(job.temp_path, 'w', compression=zipfile.ZIP_DEFLATED, allowZip64=True) as zf:
                for name, source in job.entries.items():
                    zf.write(source, arcname=name)
            built = True
        except (OSError, zipfile.BadZipFile, ValueError) as exc:
            logger.error('Could not write archive for %s: %s', target.relative or '.', exc)
            raise ArchiveCreationFailed() from exc
        finally:
            if not built:
                job.cleanup()

        logger.info('Built archive of %s with %d entries', target.relative or '.', len(job.entries))
        return job
