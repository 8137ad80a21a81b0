import logging
import os

from flask import Flask, jsonify
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from niveshak_backend.api import init_app as init_api
from niveshak_backend.cli import init_app as init_cli
from niveshak_backend.config import DEFAULT_MAX_CONCURRENT_UPLOADS
from niveshak_backend.models import get_database_url
from niveshak_backend.services.storage import (
    init_media_storage,
    load_media_storage_settings,
)


def create_app(test_config: dict | None = None) -> Flask:
    """Application factory for the Niveshak content backend."""
    app = Flask(__name__)

    app.config["AUTH_SECRET"] = os.environ.get("NIVESHAK_AUTH_SECRET")
    app.config["R2_PUBLIC_DOMAIN"] = os.environ.get("R2_PUBLIC_DOMAIN")
    app.config["MIGRATION_CONCURRENCY"] = _read_concurrency(app)
    if test_config:
        app.config.update(test_config)

    _configure_logging(app)
    if not app.config.get("TESTING"):
        _init_database(app)
        _init_media_storage(app)

    @app.get("/healthz")
    def healthcheck():
        return jsonify(status="ok")

    @app.get("/api/healthz")
    def api_healthcheck():
        return jsonify(status="ok")

    init_api(app)
    init_cli(app)

    return app


def _configure_logging(app: Flask) -> None:
    """Ensure application and root loggers emit INFO-level logs."""

    logging.basicConfig(level=logging.INFO)
    logging.getLogger().setLevel(logging.INFO)
    app.logger.setLevel(logging.INFO)


def _read_concurrency(app: Flask) -> int:
    concurrency_env = os.environ.get("NIVESHAK_MIGRATION_CONCURRENCY")
    if not concurrency_env:
        return DEFAULT_MAX_CONCURRENT_UPLOADS
    try:
        concurrency = int(concurrency_env)
    except ValueError:
        app.logger.warning(
            "invalid NIVESHAK_MIGRATION_CONCURRENCY=%s; using %s",
            concurrency_env,
            DEFAULT_MAX_CONCURRENT_UPLOADS,
        )
        return DEFAULT_MAX_CONCURRENT_UPLOADS
    return max(concurrency, 1)


def _init_database(app: Flask) -> None:
    """Configure the SQLAlchemy session factory for request handlers."""

    try:
        database_url = get_database_url()
    except RuntimeError:
        app.logger.warning(
            "DATABASE_URL not set; database-backed features disabled"
        )
        return

    engine = create_engine(database_url, pool_pre_ping=True)
    SessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )
    app.extensions["db_engine"] = engine
    app.extensions["db_sessionmaker"] = SessionLocal


def _init_media_storage(app: Flask) -> None:
    """Configure the R2 client used to presign uploads."""

    settings = load_media_storage_settings(os.environ)
    if settings is None:
        app.logger.warning(
            "R2_* variables incomplete; presigned uploads disabled"
        )
        return

    app.extensions["media_storage"] = init_media_storage(settings)
    app.config["R2_PUBLIC_DOMAIN"] = settings.public_domain
    app.logger.info(
        "media storage configured",
        extra={
            "bucket": settings.bucket,
            "expires_in": settings.presign_expiry_seconds,
        },
    )


app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000)
