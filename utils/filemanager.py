"""FileManager: the confined filesystem operations behind the HTTP endpoint.

All components are built from one ``Settings`` value; nothing here reads
process-wide configuration.
"""

from __future__ import annotations

import os

from config import ENTRY_POINT_NAME, Settings
from utils.archiver import ArchiveJob, Archiver
from utils.deleter import RecursiveDeleter
from utils.errors import (
    BadRequest,
    FileNotFound,
    InvalidPath,
    NotADirectory,
    OperationFailed,
    PartialFailure,
)
from utils.listing import DirectoryLister, Listing
from utils.logging import fs_logger as logger
from utils.mimetype import sniff_mimetype
from utils.permissions import PermissionProbe
from utils.safe_path import ConfinedPath, PathResolver, safe_basename


class FileManager:
    """Facade over the resolver, lister, deleter and archiver.

    Usage:
        manager = FileManager(Settings.create('/srv/files'))
        listing = manager.list_directory('reports')
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.resolver = PathResolver(settings.root)
        self.probe = PermissionProbe()
        self.lister = DirectoryLister(self.probe, exclude=(ENTRY_POINT_NAME,))
        self.deleter = RecursiveDeleter()
        self.archiver = Archiver(self.resolver, tmp_dir=settings.tmp_dir)

    @property
    def root(self) -> str:
        return self.resolver.root

    def resolve(self, raw_path: str | None) -> ConfinedPath:
        return self.resolver.resolve(raw_path)

    def list_directory(self, raw_path: str | None) -> Listing:
        return self.lister.list(self.resolve(raw_path))

    def delete(self, raw_path: str | None) -> None:
        """Delete a file or subtree.

        Raises ``PartialFailure`` listing every path left behind.
        """
        target = self.resolve(raw_path)
        if target.is_root:
            # The root is the confinement boundary, never a deletion target
            raise InvalidPath()

        result = self.deleter.delete(target)
        if not result.success:
            logger.warning('Partial delete of %s: %d entries left', target.relative, len(result.failed))
            raise PartialFailure(result.failed)
        logger.info('Deleted %s', target.relative)

    def mkdir(self, raw_path: str | None, name: str | None) -> str:
        """Create folder *name* inside the directory *raw_path*.

        Only the base name of *name* is used. Returns the new folder's
        root-relative path.
        """
        parent = self.resolve(raw_path)
        if not os.path.isdir(parent.value):
            raise NotADirectory()

        base = safe_basename(name)
        if not base:
            raise BadRequest('Invalid folder name')

        path = os.path.join(parent.value, base)
        try:
            os.mkdir(path)
        except FileExistsError as exc:
            raise OperationFailed('Folder already exists') from exc
        except OSError as exc:
            logger.warning('mkdir failed for %s: %s', base, exc)
            raise OperationFailed('Could not create folder') from exc

        logger.info('Created folder %s', os.path.relpath(path, self.root))
        return os.path.relpath(path, self.root).replace(os.sep, '/')

    def upload_target(self, raw_path: str | None, filename: str | None) -> str:
        """Return the absolute path an uploaded *filename* should be written to.

        The client file name is reduced to its base name, so ``../evil.sh``
        lands as ``evil.sh`` inside the target directory.
        """
        directory = self.resolve(raw_path)
        if not os.path.isdir(directory.value):
            raise NotADirectory()

        base = safe_basename(filename)
        if not base:
            raise BadRequest('Invalid file name')

        target = os.path.join(directory.value, base)
        if os.path.islink(target):
            # Writing through a link could land outside the root
            raise InvalidPath()
        if os.path.isdir(target):
            raise OperationFailed('A folder with that name already exists')
        return target

    def download(self, raw_path: str | None) -> tuple[ConfinedPath, str]:
        """Resolve a file for download and sniff its Content-Type."""
        target = self.resolve(raw_path)
        if not os.path.isfile(target.value):
            raise FileNotFound()
        return target, sniff_mimetype(target.value)

    def archive(self, raw_path: str | None) -> ArchiveJob:
        target = self.resolve(raw_path)
        return self.archiver.archive(target)
