"""Flask CLI commands for operators."""

from __future__ import annotations

import click
from flask import Flask, current_app
from flask.cli import with_appcontext
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash

from niveshak_backend.api.auth import normalize_email
from niveshak_backend.api.migrations import build_migration_settings
from niveshak_backend.models import AdminUser
from niveshak_backend.services.auth_tokens import AdminPrincipal
from niveshak_backend.services.migration import (
    MigrationAbortedError,
    MigrationRun,
    init_media_migrator,
)
from niveshak_backend.services.repository import SqlEntityRepository


def init_app(app: Flask) -> None:
    """Register operator commands on ``app.cli``."""

    app.cli.add_command(create_admin_command)
    app.cli.add_command(migrate_media_command)


def _require_sessionmaker():
    session_factory = current_app.extensions.get("db_sessionmaker")
    if session_factory is None:
        raise click.ClickException("DATABASE_URL is not configured")
    return session_factory


@click.command("create-admin")
@click.option("--email", required=True)
@click.option("--name", default=None)
@click.password_option()
@with_appcontext
def create_admin_command(email: str, name: str | None, password: str) -> None:
    """Create an admin account for the content panel."""

    session_factory = _require_sessionmaker()
    normalized = normalize_email(email)
    if not normalized:
        raise click.BadParameter("email must not be blank", param_hint="--email")

    try:
        with session_factory() as session:
            existing = session.scalar(
                select(AdminUser).where(func.lower(AdminUser.email) == normalized)
            )
            if existing:
                raise click.ClickException(f"admin {normalized} already exists")
            session.add(
                AdminUser(
                    email=normalized,
                    name=name,
                    password_hash=generate_password_hash(password),
                )
            )
            session.commit()
    except SQLAlchemyError as exc:
        raise click.ClickException(f"failed to create admin: {exc}") from exc

    click.echo(f"created admin {normalized}")


@click.command("migrate-media")
@click.option(
    "--admin-email",
    required=True,
    help="Admin the uploads are issued for.",
)
@with_appcontext
def migrate_media_command(admin_email: str) -> None:
    """Move inline images to R2.

    Exits 0 when clean, 1 when some assets were skipped, 2 when aborted.
    """

    session_factory = _require_sessionmaker()
    principal = _load_principal(session_factory, admin_email)

    migrator = init_media_migrator(
        SqlEntityRepository(session_factory),
        current_app.extensions.get("media_storage"),
        principal,
        settings=build_migration_settings(current_app),
    )

    try:
        migration_run = migrator.run(progress=_echo_progress)
    except MigrationAbortedError as exc:
        migration_run = exc.run

    _echo_summary(migration_run)
    click.get_current_context().exit(migration_run.exit_code)


def _load_principal(session_factory, admin_email: str) -> AdminPrincipal:
    normalized = normalize_email(admin_email)
    try:
        with session_factory() as session:
            admin = session.scalar(
                select(AdminUser).where(func.lower(AdminUser.email) == normalized)
            )
    except SQLAlchemyError as exc:
        raise click.ClickException(f"failed to load admin: {exc}") from exc
    if admin is None:
        raise click.ClickException(f"no admin with email {admin_email!r}")
    return AdminPrincipal(id=admin.id, email=admin.email)


def _echo_progress(percent: int, message: str) -> None:
    click.echo(f"[{percent:3d}%] {message}")


def _echo_summary(migration_run: MigrationRun) -> None:
    for entity_name, moved in migration_run.moved_by_type.items():
        click.echo(f"  {entity_name}: {moved} moved")
    for error in migration_run.errors:
        click.echo(f"  ! {error}", err=True)
    click.echo(migration_run.summary())
