"""JWT helpers for issuing and verifying admin credentials."""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

import jwt
from flask import Response, current_app

AccessTokenType = Literal["access"]
RefreshTokenType = Literal["refresh"]
TokenType = AccessTokenType | RefreshTokenType

DEFAULT_ACCESS_TOKEN_TTL = timedelta(minutes=15)
DEFAULT_REFRESH_TOKEN_TTL = timedelta(days=7)
DEFAULT_ACCESS_COOKIE_NAME = "nv_access"
DEFAULT_REFRESH_COOKIE_NAME = "nv_refresh"
DEFAULT_COOKIE_PATH = "/"
DEFAULT_COOKIE_SAMESITE: Literal["Lax", "Strict", "None"] = "Lax"
DEFAULT_JWT_ALGORITHM = "HS256"
DEFAULT_TOKEN_ISSUER = "niveshak-admin"
BEARER_PREFIX = "bearer "

_REQUIRED_CLAIMS = ["sub", "type", "iat", "exp", "iss"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuthSettings:
    """How admin tokens are signed and where the browser keeps them."""

    secret: str
    access_token_ttl: timedelta = DEFAULT_ACCESS_TOKEN_TTL
    refresh_token_ttl: timedelta = DEFAULT_REFRESH_TOKEN_TTL
    access_cookie_name: str = DEFAULT_ACCESS_COOKIE_NAME
    refresh_cookie_name: str = DEFAULT_REFRESH_COOKIE_NAME
    cookie_path: str = DEFAULT_COOKIE_PATH
    cookie_samesite: Literal["Lax", "Strict", "None"] = DEFAULT_COOKIE_SAMESITE
    cookie_secure: bool = True
    cookie_httponly: bool = True
    algorithm: str = DEFAULT_JWT_ALGORITHM
    issuer: str = DEFAULT_TOKEN_ISSUER

    @classmethod
    def load(cls, app=None) -> "AuthSettings":
        """Build settings from Flask config, falling back to the environment.

        ``AUTH_ACCESS_TOKEN_MINUTES`` and ``AUTH_COOKIE_SECURE`` may be set in
        app config to shorten tokens or allow plain-HTTP local development.
        """

        app = app or _try_get_current_app()
        config = app.config if app else {}

        secret = config.get("AUTH_SECRET") or os.environ.get(
            "NIVESHAK_AUTH_SECRET"
        )
        if not secret:
            raise RuntimeError("NIVESHAK_AUTH_SECRET is not configured")

        overrides: dict[str, Any] = {}
        if config.get("AUTH_ACCESS_TOKEN_MINUTES"):
            overrides["access_token_ttl"] = timedelta(
                minutes=int(config["AUTH_ACCESS_TOKEN_MINUTES"])
            )
        if "AUTH_COOKIE_SECURE" in config:
            overrides["cookie_secure"] = bool(config["AUTH_COOKIE_SECURE"])
        return cls(secret=secret, **overrides)


@dataclass(frozen=True, slots=True)
class AdminPrincipal:
    """An authenticated admin, as seen by services that need a caller."""

    id: uuid.UUID
    email: str


@dataclass(frozen=True)
class TokenPair:
    """Freshly signed access/refresh tokens and when each one lapses."""

    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime
    refresh_token_id: str


def issue_token_pair(
    admin_id: uuid.UUID | str,
    settings: AuthSettings | None = None,
    refresh_token_id: str | None = None,
) -> TokenPair:
    """Sign an access token and its paired refresh token for ``admin_id``.

    The access token records the refresh token's ``jti`` so both can be
    traced back to the same login.
    """

    settings = settings or AuthSettings.load()
    issued_at = _now()
    refresh_id = refresh_token_id or uuid.uuid4().hex
    access_expires_at = issued_at + settings.access_token_ttl
    refresh_expires_at = issued_at + settings.refresh_token_ttl

    def sign(token_type: TokenType, expires_at: datetime, **claims: str) -> str:
        payload = {
            "sub": str(admin_id),
            "type": token_type,
            "iss": settings.issuer,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            **claims,
        }
        return jwt.encode(payload, settings.secret, algorithm=settings.algorithm)

    return TokenPair(
        access_token=sign("access", access_expires_at, refresh=refresh_id),
        refresh_token=sign("refresh", refresh_expires_at, jti=refresh_id),
        access_expires_at=access_expires_at,
        refresh_expires_at=refresh_expires_at,
        refresh_token_id=refresh_id,
    )


def decode_token(
    token: str,
    settings: AuthSettings | None = None,
    expected_type: TokenType | None = None,
) -> dict[str, Any]:
    """Verify signature, expiry and issuer; optionally pin the token type.

    Raises ``jwt.InvalidTokenError`` subclasses for bad tokens and
    ``ValueError`` when the type does not match ``expected_type``.
    """

    settings = settings or AuthSettings.load()
    claims = jwt.decode(
        token,
        settings.secret,
        algorithms=[settings.algorithm],
        issuer=settings.issuer,
        options={"require": _REQUIRED_CLAIMS},
    )
    if expected_type and claims["type"] != expected_type:
        raise ValueError(
            f"unexpected token type {claims['type']!r}; expected {expected_type!r}"
        )
    return claims


def extract_bearer_token(header_value: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""

    value = (header_value or "").strip()
    if not value.lower().startswith(BEARER_PREFIX):
        return None
    return value[len(BEARER_PREFIX) :].strip() or None


def _cookie_options(settings: AuthSettings) -> dict[str, Any]:
    return {
        "path": settings.cookie_path,
        "secure": settings.cookie_secure,
        "httponly": settings.cookie_httponly,
        "samesite": settings.cookie_samesite,
    }


def apply_auth_cookies(
    response: Response, tokens: TokenPair, settings: AuthSettings | None = None
) -> None:
    """Store both tokens in HttpOnly cookies that expire with the tokens."""

    settings = settings or AuthSettings.load()
    options = _cookie_options(settings)
    response.set_cookie(
        settings.access_cookie_name,
        tokens.access_token,
        max_age=int(settings.access_token_ttl.total_seconds()),
        expires=tokens.access_expires_at,
        **options,
    )
    response.set_cookie(
        settings.refresh_cookie_name,
        tokens.refresh_token,
        max_age=int(settings.refresh_token_ttl.total_seconds()),
        expires=tokens.refresh_expires_at,
        **options,
    )


def clear_auth_cookies(
    response: Response, settings: AuthSettings | None = None
) -> None:
    settings = settings or AuthSettings.load()
    options = _cookie_options(settings)
    for name in (settings.access_cookie_name, settings.refresh_cookie_name):
        response.delete_cookie(name, **options)


def _try_get_current_app():
    try:
        return current_app._get_current_object()
    except RuntimeError:
        return None
