"""Content-Type detection for downloads."""

from __future__ import annotations

import logging
import mimetypes

import magic

logger = logging.getLogger('filedeck.fs.mime')

DEFAULT_MIMETYPE = 'application/octet-stream'

# libmagic answers that say little more than "some bytes"; the file
# extension is a better guess for these
_GENERIC = {
    'application/octet-stream',
    'application/x-empty',
    'application/zip',
    'inode/x-empty',
    'text/plain',
}


def sniff_mimetype(path: str) -> str:
    """Guess the Content-Type of the file at *path*.

    libmagic looks at the content first. When it only recognizes a generic
    container or plain text, the file extension decides.
    """
    try:
        sniffed = magic.from_file(path, mime=True)
    except (OSError, magic.MagicException) as exc:
        logger.debug('libmagic could not read %s: %s', path, exc)
        sniffed = None

    if sniffed and sniffed not in _GENERIC:
        return sniffed

    guessed, _ = mimetypes.guess_type(path)
    if guessed:
        return guessed

    if sniffed in ('text/plain', 'application/zip'):
        return sniffed
    return DEFAULT_MIMETYPE
