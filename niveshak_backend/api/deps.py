"""Shared API dependencies and helpers."""

from flask import current_app, g
from sqlalchemy.orm import sessionmaker

from niveshak_backend.services.auth_tokens import AdminPrincipal
from niveshak_backend.services.repository import SqlEntityRepository
from niveshak_backend.services.storage import R2MediaStorage


def get_sessionmaker() -> sessionmaker:
    """Return the configured SQLAlchemy session factory."""

    session_factory: sessionmaker | None = current_app.extensions.get(
        "db_sessionmaker"
    )
    if session_factory is None:
        raise RuntimeError("database session factory is not configured")
    return session_factory


def get_entity_repository() -> SqlEntityRepository:
    """Return a repository bound to the configured session factory."""

    return SqlEntityRepository(get_sessionmaker())


def get_media_storage() -> R2MediaStorage | None:
    """Return the managed storage client, or ``None`` when unconfigured."""

    return current_app.extensions.get("media_storage")


def get_public_media_base() -> str:
    """Return the public base URL for managed keys ('' when unconfigured)."""

    return current_app.config.get("R2_PUBLIC_DOMAIN") or ""


def get_current_admin() -> AdminPrincipal:
    """Return the authenticated admin attached by the auth middleware."""

    admin = getattr(g, "admin", None)
    if admin is None:
        raise RuntimeError("no authenticated admin on request context")
    return admin
