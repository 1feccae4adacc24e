"""Configuration settings for FileDeck.

Values come from ``FILEDECK_*`` environment variables and fall back to the
defaults below when a variable is missing or malformed.
"""

from __future__ import annotations

import logging
import os
import secrets
import tempfile
from dataclasses import dataclass

from utils.sizes import parse_size

logger = logging.getLogger('filedeck.config')

VERSION = '1.0.0'

# Name of the service entry point, never shown in listings.
ENTRY_POINT_NAME = 'app.py'


def _get_env(key: str, default: str) -> str:
    """Get environment variable with FILEDECK_ prefix."""
    return os.environ.get(f'FILEDECK_{key}', default)


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    try:
        return int(_get_env(key, str(default)))
    except ValueError:
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    val = _get_env(key, '').lower()
    if val in ('true', '1', 'yes', 'on'):
        return True
    if val in ('false', '0', 'no', 'off'):
        return False
    return default


# Server settings
HOST = _get_env('HOST', '0.0.0.0')
PORT = _get_env_int('PORT', 5050)
DEBUG = _get_env_bool('DEBUG', False)

# Logging settings
LOG_LEVEL = _get_env('LOG_LEVEL', 'DEBUG' if DEBUG else 'INFO').upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Filesystem settings
ROOT_DIR = _get_env('ROOT', os.getcwd())
TMP_DIR = _get_env('TMP_DIR', tempfile.gettempdir())

# Authentication settings
LOGIN_ENABLED = _get_env_bool('LOGIN_ENABLED', True)
PASSWORD = _get_env('PASSWORD', '')
PASSWORD_HASH = _get_env('PASSWORD_HASH', '')
SECRET_KEY = _get_env('SECRET_KEY', '')

# Upload limits, PHP-style size strings ("8M", "512k")
POST_MAX_SIZE = _get_env('POST_MAX_SIZE', '8M')
UPLOAD_MAX_FILESIZE = _get_env('UPLOAD_MAX_FILESIZE', '2M')


@dataclass(frozen=True)
class Settings:
    """Resolved configuration, built once at startup and passed to components."""
    root: str
    tmp_dir: str
    max_upload_size: int
    login_enabled: bool = True
    password_hash: str = ''
    secret_key: str = ''
    debug: bool = False

    @classmethod
    def create(
        cls,
        root: str | os.PathLike,
        *,
        tmp_dir: str | os.PathLike | None = None,
        post_max_size: str = '8M',
        upload_max_filesize: str = '2M',
        login_enabled: bool = True,
        password: str = '',
        password_hash: str = '',
        secret_key: str = '',
        debug: bool = False,
    ) -> 'Settings':
        """Canonicalize *root* and derive the remaining settings.

        Raises ``ValueError`` if *root* is not an existing directory.
        """
        real_root = os.path.realpath(os.fspath(root))
        if not os.path.isdir(real_root):
            raise ValueError(f'Root directory does not exist: {real_root}')

        if login_enabled and not password_hash:
            # Imported lazily so config stays importable without werkzeug
            from werkzeug.security import generate_password_hash

            if not password:
                password = secrets.token_urlsafe(12)
                logger.warning('No password configured, generated one: %s', password)
            password_hash = generate_password_hash(password)

        return cls(
            root=real_root,
            tmp_dir=os.fspath(tmp_dir) if tmp_dir else tempfile.gettempdir(),
            max_upload_size=min(parse_size(post_max_size), parse_size(upload_max_filesize)),
            login_enabled=login_enabled,
            password_hash=password_hash,
            secret_key=secret_key or secrets.token_hex(32),
            debug=debug,
        )

    @classmethod
    def from_env(cls) -> 'Settings':
        """Build settings from the module-level environment values."""
        return cls.create(
            ROOT_DIR,
            tmp_dir=TMP_DIR,
            post_max_size=POST_MAX_SIZE,
            upload_max_filesize=UPLOAD_MAX_FILESIZE,
            login_enabled=LOGIN_ENABLED,
            password=PASSWORD,
            password_hash=PASSWORD_HASH,
            secret_key=SECRET_KEY,
            debug=DEBUG,
        )
