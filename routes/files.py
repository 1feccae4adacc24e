"""File manager endpoint.

A single URL serves the UI and every file action. The action is chosen by
the ``do`` parameter and the target by ``file``, both relative to the
configured root:

    GET  /?do=list&file=reports
    POST /  do=delete file=reports/old.txt xsrf=<token>
"""

from __future__ import annotations

import asyncio
import os
from urllib.parse import quote

from quart import Blueprint, Response, current_app, jsonify, render_template, request

from config import VERSION
from routes.auth import ensure_csrf_token
from utils.archiver import ArchiveJob
from utils.errors import ArchiveCreationFailed, BadRequest, MethodNotAllowed, OperationFailed
from utils.filemanager import FileManager
from utils.logging import fs_logger as logger

files_bp = Blueprint('files', __name__)

CHUNK_SIZE = 64 * 1024


def get_manager() -> FileManager:
    return current_app.extensions['filedeck.manager']


def _sanitize_download_filename(name: str, default: str = 'download') -> str:
    """Sanitize filename for Content-Disposition header (prevent header injection)."""
    s = os.path.basename((name or '').strip())
    s = s.replace('\r', '').replace('\n', '').replace('"', '')
    return s[:180] or default


def _content_disposition_attachment(filename: str) -> str:
    fn = _sanitize_download_filename(filename)
    # RFC 5987 filename* for non-ASCII names
    return f"attachment; filename=\"{fn}\"; filename*=UTF-8''{quote(fn, safe='')}"


async def _run_blocking(func, *args):
    """Run filesystem work in the default executor so the event loop stays free."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, func, *args)


async def _iter_file(path: str):
    f = await _run_blocking(open, path, 'rb')
    try:
        while True:
            chunk = await _run_blocking(f.read, CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        f.close()


def _build_archive(manager: FileManager, raw_path: str | None) -> tuple[ArchiveJob, int]:
    job = manager.archive(raw_path)
    try:
        return job, job.size
    except OSError as exc:
        job.cleanup()
        raise ArchiveCreationFailed() from exc


# ─── Actions ───────────────────────────────────────────────────────

async def _do_list(manager: FileManager, values):
    listing = await _run_blocking(manager.list_directory, values.get('file'))
    return jsonify(listing.to_dict())


async def _do_delete(manager: FileManager, values):
    await _run_blocking(manager.delete, values.get('file'))
    return jsonify({'success': True})


async def _do_mkdir(manager: FileManager, values):
    await _run_blocking(manager.mkdir, values.get('file'), (values.get('name') or '').strip())
    return jsonify({'success': True})


async def _do_upload(manager: FileManager, values):
    files = await request.files
    upload = files.get('file_data')
    if upload is None:
        raise BadRequest('No file uploaded')

    target = await _run_blocking(manager.upload_target, values.get('file'), upload.filename)
    try:
        await upload.save(target)
    except OSError as exc:
        logger.warning('Upload of %s failed: %s', os.path.basename(target), exc)
        raise OperationFailed('Could not store uploaded file') from exc

    logger.info('Uploaded %s', os.path.relpath(target, manager.root))
    return jsonify({'success': True})


async def _do_download(manager: FileManager, values):
    target, mimetype = await _run_blocking(manager.download, values.get('file'))
    size = await _run_blocking(os.path.getsize, target.value)
    response = Response(_iter_file(target.value), mimetype=mimetype)
    response.headers['Content-Disposition'] = _content_disposition_attachment(target.name)
    response.headers['Content-Length'] = str(size)
    return response


async def _do_zip(manager: FileManager, values):
    job, size = await _run_blocking(_build_archive, manager, values.get('file'))
    response = Response(job.stream(CHUNK_SIZE), mimetype='application/zip')
    response.headers['Content-Disposition'] = _content_disposition_attachment(job.download_name)
    response.headers['Content-Length'] = str(size)
    return response


# action -> (allowed method, handler)
ACTIONS = {
    'list': ('GET', _do_list),
    'download': ('GET', _do_download),
    'zip': ('GET', _do_zip),
    'delete': ('POST', _do_delete),
    'mkdir': ('POST', _do_mkdir),
    'upload': ('POST', _do_upload),
}


@files_bp.route('/', methods=['GET', 'POST'])
async def index():
    """Serve the UI, or dispatch the action named by ``do``."""
    values = await request.values
    action = values.get('do')

    if not action:
        if request.method != 'GET':
            raise BadRequest('Unknown action')
        manager = get_manager()
        return await render_template(
            'index.html',
            csrf_token=ensure_csrf_token(),
            max_upload_size=manager.settings.max_upload_size,
            login_enabled=manager.settings.login_enabled,
            version=VERSION,
        )

    if action not in ACTIONS:
        raise BadRequest('Unknown action')
    method, handler = ACTIONS[action]
    if request.method != method:
        raise MethodNotAllowed()

    return await handler(get_manager(), values)

