"""Login, logout and the per-request access guard."""

from __future__ import annotations

from quart import Blueprint, current_app, jsonify, redirect, render_template, request, session, url_for

from config import VERSION
from utils.auth import (
    CSRF_SESSION_KEY,
    LOGIN_SESSION_KEY,
    is_authentic,
    is_authorized,
    new_csrf_token,
    verify_password,
)
from utils.errors import Unauthorized, XsrfFailure
from utils.logging import auth_logger as logger

auth_bp = Blueprint('auth', __name__)

OPEN_ENDPOINTS = {'auth.login', 'auth.logout', 'auth.status', 'static'}
MUTATING_METHODS = ('POST', 'PUT', 'PATCH', 'DELETE')


def ensure_csrf_token() -> str:
    """Return the session's authenticity token, creating it on first use."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = new_csrf_token()
        session[CSRF_SESSION_KEY] = token
    return token


async def auth_guard():
    """Run before every request: authorization first, then authenticity."""
    if request.endpoint in OPEN_ENDPOINTS:
        return None

    settings = current_app.config['FILEDECK_SETTINGS']
    if not is_authorized(session, settings.login_enabled):
        if request.method in MUTATING_METHODS or request.args.get('do'):
            raise Unauthorized()
        return redirect(url_for('auth.login'))

    if request.method in MUTATING_METHODS:
        form = await request.form
        token = form.get('xsrf') or request.headers.get('X-XSRF-Token')
        if not is_authentic(session.get(CSRF_SESSION_KEY), token):
            logger.warning('XSRF check failed for %s %s', request.method, request.path)
            raise XsrfFailure()
    return None


@auth_bp.route('/login', methods=['GET', 'POST'])
async def login():
    settings = current_app.config['FILEDECK_SETTINGS']
    if not settings.login_enabled or session.get(LOGIN_SESSION_KEY):
        return redirect(url_for('files.index'))

    error = None
    if request.method == 'POST':
        form = await request.form
        if verify_password(settings.password_hash, form.get('p')):
            session.clear()
            session[LOGIN_SESSION_KEY] = True
            ensure_csrf_token()
            logger.info('Login from %s', request.remote_addr)
            return redirect(url_for('files.index'))
        logger.warning('Failed login from %s', request.remote_addr)
        error = 'Wrong password'

    return await render_template('login.html', error=error, version=VERSION), (401 if error else 200)


@auth_bp.route('/logout')
async def logout():
    session.clear()
    return redirect(url_for('auth.login'))


@auth_bp.route('/auth/status')
async def status():
    settings = current_app.config['FILEDECK_SETTINGS']
    return jsonify({
        'logged_in': is_authorized(session, settings.login_enabled),
        'login_enabled': settings.login_enabled,
    })
