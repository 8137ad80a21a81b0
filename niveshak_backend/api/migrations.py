"""Admin action that moves inline images to managed storage."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from niveshak_backend.api.deps import (
    get_current_admin,
    get_entity_repository,
    get_media_storage,
)
from niveshak_backend.services.migration import (
    MigrationAbortedError,
    MigrationSettings,
    init_media_migrator,
)

bp = Blueprint("migrations", __name__, url_prefix="/api/admin/migrations")


def build_migration_settings(app) -> MigrationSettings:
    return MigrationSettings(
        max_concurrent_uploads=app.config["MIGRATION_CONCURRENCY"],
    )


@bp.post("/media")
def migrate_media():
    """Run one migration pass and return its structured summary."""

    try:
        repository = get_entity_repository()
    except RuntimeError as exc:
        return jsonify(error=str(exc)), 503

    admin = get_current_admin()
    migrator = init_media_migrator(
        repository,
        get_media_storage(),
        admin,
        settings=build_migration_settings(current_app),
    )

    current_app.logger.info(
        "media migration requested", extra={"admin_id": str(admin.id)}
    )
    try:
        migration_run = migrator.run()
    except MigrationAbortedError as exc:
        return jsonify(exc.run.to_dict()), 500

    return jsonify(migration_run.to_dict())
