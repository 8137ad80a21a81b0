"""API package wiring for the Niveshak backend."""

from flask import Flask

from .auth import attach_admin_from_credentials, bp as auth_bp
from .content import bp as content_bp
from .images import bp as images_bp
from .migrations import bp as migrations_bp
from .uploads import bp as uploads_bp


def init_app(app: Flask) -> None:
    """Register all API blueprints on the given application."""

    app.before_request(attach_admin_from_credentials)

    app.register_blueprint(auth_bp)
    app.register_blueprint(content_bp)
    app.register_blueprint(images_bp)
    app.register_blueprint(migrations_bp)
    app.register_blueprint(uploads_bp)
