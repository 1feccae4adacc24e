"""Error taxonomy for FileDeck.

Every error carries the HTTP status ``code`` and the user-facing ``msg``
that end up in the ``{"error": {"code": ..., "msg": ...}}`` response body.
"""

from __future__ import annotations

from typing import Any


class FileDeckError(Exception):
    """Base class for errors reported to the client as JSON."""
    code = 500
    msg = 'Internal error'

    def __init__(self, msg: str | None = None):
        if msg is not None:
            self.msg = msg
        super().__init__(self.msg)

    def to_dict(self) -> dict[str, Any]:
        return {'error': {'code': self.code, 'msg': self.msg}}


class BadRequest(FileDeckError):
    code = 400
    msg = 'Bad request'


class Unauthorized(FileDeckError):
    code = 401
    msg = 'Not logged in'


class InvalidPath(FileDeckError):
    """Path escapes the root or does not exist. The two are not distinguished."""
    code = 403
    msg = 'Invalid Path'


class XsrfFailure(FileDeckError):
    code = 403
    msg = 'XSRF Failure'


class FileNotFound(FileDeckError):
    code = 404
    msg = 'File not found'


class NotADirectory(FileDeckError):
    code = 412
    msg = 'Not a Directory'


class ArchiveCreationFailed(FileDeckError):
    code = 500
    msg = 'Zip creation failed'


class OperationFailed(FileDeckError):
    code = 500
    msg = 'Operation failed'


class PartialFailure(FileDeckError):
    """Some nodes of a recursive delete could not be removed."""
    code = 500
    msg = 'Some entries could not be deleted'

    def __init__(self, failed: list[str], msg: str | None = None):
        self.failed = list(failed)
        super().__init__(msg)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data['failed'] = self.failed
        return data


class MethodNotAllowed(FileDeckError):
    code = 405
    msg = 'Method not allowed'


class PayloadTooLarge(FileDeckError):
    code = 413
    msg = 'File too large'
