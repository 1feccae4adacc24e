"""FileDeck - browse, upload, download and zip files below one root directory.

Run with ``python app.py``; configuration comes from ``FILEDECK_*``
environment variables (see config.py).
"""

from __future__ import annotations

from quart import Quart, jsonify
from werkzeug.exceptions import RequestEntityTooLarge

from config import HOST, PORT, VERSION, Settings
from routes import register_blueprints
from utils.errors import FileDeckError, PayloadTooLarge
from utils.filemanager import FileManager
from utils.logging import app_logger as logger, set_log_level

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'X-XSS-Protection': '1; mode=block',
}


def create_app(settings: Settings | None = None) -> Quart:
    """Build the Quart app around one immutable ``Settings`` value."""
    settings = settings or Settings.from_env()

    app = Quart(__name__)
    app.secret_key = settings.secret_key
    app.config['FILEDECK_SETTINGS'] = settings
    app.config['MAX_CONTENT_LENGTH'] = settings.max_upload_size or None
    app.config.setdefault('SESSION_COOKIE_HTTPONLY', True)
    app.config.setdefault('SESSION_COOKIE_SAMESITE', 'Lax')
    app.extensions['filedeck.manager'] = FileManager(settings)

    register_blueprints(app)

    @app.errorhandler(FileDeckError)
    async def handle_filedeck_error(error: FileDeckError):
        return jsonify(error.to_dict()), error.code

    @app.errorhandler(RequestEntityTooLarge)
    async def handle_too_large(error):
        err = PayloadTooLarge()
        return jsonify(err.to_dict()), err.code

    @app.after_request
    async def add_security_headers(response):
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    return app


def main() -> None:
    settings = Settings.from_env()
    app = create_app(settings)
    if settings.debug:
        set_log_level('DEBUG')
    logger.info('FileDeck %s serving %s on %s:%d', VERSION, settings.root, HOST, PORT)
    logger.info('Maximum upload size: %d bytes', settings.max_upload_size)
    app.run(host=HOST, port=PORT, debug=settings.debug)


if __name__ == '__main__':
    main()
