# Routes package - registers all blueprints with the Quart app


def register_blueprints(app):
    """Register all route blueprints with the app."""
    from .auth import auth_bp, auth_guard
    from .files import files_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(files_bp)
    app.before_request(auth_guard)
