"""Admin authentication endpoints and the request guard for admin routes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import uuid

import jwt
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from werkzeug.security import check_password_hash

from niveshak_backend.api.deps import get_sessionmaker
from niveshak_backend.models import AdminUser
from niveshak_backend.services.auth_tokens import (
    AdminPrincipal,
    AuthSettings,
    TokenType,
    apply_auth_cookies,
    clear_auth_cookies,
    decode_token,
    extract_bearer_token,
    issue_token_pair,
)

_PROTECTED_PATH_PREFIXES = ("/api/admin/", "/api/uploads/")
bp = Blueprint("auth", __name__, url_prefix="/api/auth")


class AuthFailure(Exception):
    """A request could not be tied to an admin; carries the HTTP answer."""

    def __init__(self, message: str = "Unauthorized", status: int = 401):
        super().__init__(message)
        self.message = message
        self.status = status

    def to_response(self):
        return jsonify(error=self.message), self.status


@dataclass(frozen=True)
class _AuthEnv:
    settings: AuthSettings
    session_factory: sessionmaker


def attach_admin_from_credentials():
    """Resolve the caller on admin routes and attach it to ``g``."""

    if not _is_protected(request.path or ""):
        return None

    try:
        env = _load_env()
        admin = _admin_from_token(env, _access_token(env), "access")
    except AuthFailure as failure:
        return failure.to_response()

    g.admin = AdminPrincipal(id=admin.id, email=admin.email)
    return None


def _is_protected(path: str) -> bool:
    return path.startswith(_PROTECTED_PATH_PREFIXES)


@bp.post("/login")
def login():
    """Check an admin's password, then hand out a fresh token pair."""

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    email = normalize_email(payload.get("email"))
    password = payload.get("password")
    if not email or not password:
        return jsonify(error="email and password are required"), 400

    try:
        env = _load_env()
        admin = _verify_password(env, email, password)
    except AuthFailure as failure:
        return failure.to_response()

    return _session_response(env, admin)


@bp.post("/refresh")
def refresh_tokens():
    """Exchange the refresh cookie for a new token pair."""

    try:
        env = _load_env()
        refresh_token = request.cookies.get(env.settings.refresh_cookie_name)
        admin = _admin_from_token(env, refresh_token, "refresh")
    except AuthFailure as failure:
        return failure.to_response()

    return _session_response(env, admin)


@bp.post("/logout")
def logout():
    """Drop both auth cookies. Outstanding bearer tokens expire on their own."""

    try:
        settings = AuthSettings.load()
    except RuntimeError as exc:
        return jsonify(error=str(exc)), 503

    response = jsonify(status="ok")
    clear_auth_cookies(response, settings=settings)
    return response


@bp.get("/me")
def get_me():
    try:
        env = _load_env()
        admin = _admin_from_token(env, _access_token(env), "access")
    except AuthFailure as failure:
        return failure.to_response()

    return jsonify(admin=_serialize_admin(admin))


def normalize_email(value) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip().lower()
    return value or None


def _load_env() -> _AuthEnv:
    try:
        return _AuthEnv(
            settings=AuthSettings.load(), session_factory=get_sessionmaker()
        )
    except RuntimeError as exc:
        raise AuthFailure(str(exc), 503) from exc


def _access_token(env: _AuthEnv) -> str | None:
    # Scripts send a bearer header; the admin panel relies on the cookie.
    return extract_bearer_token(
        request.headers.get("Authorization")
    ) or request.cookies.get(env.settings.access_cookie_name)


def _verify_password(env: _AuthEnv, email: str, password: str) -> AdminUser:
    try:
        with env.session_factory() as session:
            admin = session.scalar(
                select(AdminUser).where(func.lower(AdminUser.email) == email)
            )
            if admin is None or not check_password_hash(
                admin.password_hash, password
            ):
                current_app.logger.warning(
                    "failed admin login", extra={"email": email}
                )
                raise AuthFailure("invalid credentials")

            admin.last_login_at = datetime.now(timezone.utc)
            session.commit()
    except SQLAlchemyError as exc:
        current_app.logger.exception("failed to authenticate admin")
        raise AuthFailure("database failure during login", 500) from exc

    current_app.logger.info("admin logged in", extra={"admin_id": str(admin.id)})
    return admin


def _admin_from_token(
    env: _AuthEnv, token: str | None, expected_type: TokenType
) -> AdminUser:
    if not token:
        raise AuthFailure()

    try:
        claims = decode_token(
            token, settings=env.settings, expected_type=expected_type
        )
        admin_id = uuid.UUID(str(claims.get("sub")))
    except jwt.ExpiredSignatureError as exc:
        raise AuthFailure("token expired") from exc
    except (jwt.InvalidTokenError, ValueError) as exc:
        current_app.logger.warning("invalid %s token: %s", expected_type, exc)
        raise AuthFailure() from exc

    try:
        with env.session_factory() as session:
            admin = session.get(AdminUser, admin_id)
    except SQLAlchemyError as exc:
        current_app.logger.exception("failed to load admin for request")
        raise AuthFailure("failed to load admin", 500) from exc

    if admin is None:
        raise AuthFailure()
    return admin


def _session_response(env: _AuthEnv, admin: AdminUser):
    tokens = issue_token_pair(admin.id, settings=env.settings)
    response = jsonify(
        admin=_serialize_admin(admin),
        accessToken=tokens.access_token,
        accessTokenExpiresAt=tokens.access_expires_at.isoformat(),
    )
    apply_auth_cookies(response, tokens, settings=env.settings)
    return response


def _serialize_admin(admin: AdminUser) -> dict[str, str | None]:
    return {
        "id": str(admin.id),
        "email": admin.email,
        "name": admin.name,
        "lastLoginAt": (
            admin.last_login_at.isoformat() if admin.last_login_at else None
        ),
    }
