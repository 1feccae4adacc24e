"""Authorization and request authenticity checks.

Both checks are pure predicates over explicit values; the app supplies the
session and request data.
"""

from __future__ import annotations

import hmac
import secrets
from typing import Mapping, Any

from werkzeug.security import check_password_hash

CSRF_SESSION_KEY = '_csrf_token'
LOGIN_SESSION_KEY = 'logged_in'


def new_csrf_token() -> str:
    return secrets.token_hex(16)


def is_authorized(session: Mapping[str, Any], login_enabled: bool = True) -> bool:
    """Return True if the session belongs to a logged-in user."""
    if not login_enabled:
        return True
    return bool(session.get(LOGIN_SESSION_KEY))


def is_authentic(session_token: str | None, request_token: str | None) -> bool:
    """Return True if *request_token* matches the per-session secret."""
    if not session_token or not request_token:
        return False
    return hmac.compare_digest(str(session_token), str(request_token))


def verify_password(password_hash: str, password: str | None) -> bool:
    if not password_hash or not password:
        return False
    return check_password_hash(password_hash, password)
