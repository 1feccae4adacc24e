"""Pytest configuration and fixtures."""

import errno
import os
import stat

import pytest

from app import create_app
from config import Settings

TEST_PASSWORD = 'test-password'
CSRF_TOKEN = 'test-csrf-token'


@pytest.fixture
def root_dir(tmp_path):
    """Create a small file tree to serve as the root directory.

    root/
        a.txt
        app.py            (entry point, hidden from listings)
        reports/
            q1.csv
            sub/b.txt
        uploads/
    """
    root = tmp_path / 'root'
    (root / 'reports' / 'sub').mkdir(parents=True)
    (root / 'uploads').mkdir()
    (root / 'a.txt').write_bytes(b'alpha\n')
    (root / 'app.py').write_text('# entry point\n')
    (root / 'reports' / 'q1.csv').write_text('quarter,total\n1,100\n')
    (root / 'reports' / 'sub' / 'b.txt').write_bytes(b'bravo\n')
    return root


@pytest.fixture
def outside_dir(tmp_path):
    """A directory next to the root that must never be reachable."""
    outside = tmp_path / 'outside'
    outside.mkdir()
    (outside / 'secret.txt').write_text('top secret\n')
    return outside


@pytest.fixture
def archive_tmp(tmp_path):
    path = tmp_path / 'archives'
    path.mkdir()
    return path


@pytest.fixture
def settings(root_dir, archive_tmp):
    return Settings.create(
        root_dir,
        tmp_dir=archive_tmp,
        password=TEST_PASSWORD,
        secret_key='test-secret-key',
    )


@pytest.fixture
def app(settings):
    """Create application for testing."""
    app = create_app(settings)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
async def auth_client(app):
    """Create an authenticated test client with a CSRF token."""
    c = app.test_client()
    async with c.session_transaction() as sess:
        sess['logged_in'] = True
        sess['_csrf_token'] = CSRF_TOKEN
    return c


@pytest.fixture
def chmod():
    """chmod helper that restores the original modes after the test."""
    changed = []

    def _chmod(path, mode):
        changed.append((path, stat.S_IMODE(os.stat(path).st_mode)))
        os.chmod(path, mode)

    yield _chmod

    for path, mode in reversed(changed):
        try:
            os.chmod(path, mode)
        except FileNotFoundError:
            pass



@pytest.fixture
def deep_tree(tmp_path):
    """Build a chain of nested directories deeper than the recursion limit used in tests."""
    def _build(name='deep', depth=400):
        top = tmp_path / name
        top.mkdir()
        path = top
        for _ in range(depth):
            path = path / 'd'
            path.mkdir()
        (path / 'leaf.txt').write_bytes(b'leaf\n')
        return top
    return _build


@pytest.fixture
def low_recursion_limit():
    """Lower the recursion limit so a recursive tree walk would fail."""
    import sys
    old = sys.getrecursionlimit()
    sys.setrecursionlimit(250)
    try:
        yield 250
    finally:
        sys.setrecursionlimit(old)


@pytest.fixture
def deny_removal(monkeypatch):
    """Make the deleter's os.unlink / os.rmdir fail with EACCES for chosen paths.

    Works regardless of the user running the tests, root included.
    """
    def _deny(*suffixes, func='unlink'):
        real = getattr(os, func)

        def guarded(path, *args, **kwargs):
            if os.fspath(path).endswith(suffixes):
                raise PermissionError(errno.EACCES, 'Permission denied', os.fspath(path))
            return real(path, *args, **kwargs)

        monkeypatch.setattr(f'utils.deleter.os.{func}', guarded)
    return _deny
