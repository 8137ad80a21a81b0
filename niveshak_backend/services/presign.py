"""Issue short-lived upload tickets for the managed media bucket."""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import PurePosixPath

from werkzeug.utils import secure_filename

from niveshak_backend.services.auth_tokens import AdminPrincipal
from niveshak_backend.services.storage import MediaStorageError, R2MediaStorage

logger = logging.getLogger(__name__)

_RANDOM_SUFFIX_BYTES = 5


class UploadError(RuntimeError):
    """Base class for failures anywhere in the upload pipeline."""


class UnauthorizedError(UploadError):
    """The caller could not be resolved to an authenticated admin."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class InvalidInputError(UploadError):
    """The presign request was missing a filename or content type."""


class UpstreamConfigurationError(UploadError):
    """Storage credentials or bucket are not configured server-side."""


@dataclass(frozen=True, slots=True)
class UploadTicket:
    """One-shot write authorization for a single storage key."""

    upload_url: str
    public_url: str
    key: str

    def to_dict(self) -> dict[str, str]:
        return {
            "uploadUrl": self.upload_url,
            "publicUrl": self.public_url,
            "key": self.key,
        }


def generate_storage_key(filename: str) -> str:
    """Build a fresh object key from a client filename.

    The filename only contributes a sanitized stem and its extension; the
    millisecond timestamp plus random suffix keeps concurrent keys apart.
    """

    safe_name = secure_filename(filename or "") or "upload"
    path = PurePosixPath(safe_name)
    stem = path.stem or "upload"
    suffix = path.suffix.lower()
    timestamp_ms = time.time_ns() // 1_000_000
    random_part = secrets.token_hex(_RANDOM_SUFFIX_BYTES)
    return f"{stem}_{timestamp_ms}_{random_part}{suffix}"


def issue_upload_ticket(
    *,
    filename: str | None,
    content_type: str | None,
    principal: AdminPrincipal | None,
    storage: R2MediaStorage | None,
) -> UploadTicket:
    """Authenticate the caller and sign a PUT URL for a server-chosen key."""

    if principal is None:
        raise UnauthorizedError()

    filename = (filename or "").strip() if isinstance(filename, str) else ""
    content_type = (
        (content_type or "").strip() if isinstance(content_type, str) else ""
    )
    if not filename or not content_type:
        raise InvalidInputError("Missing filename or contentType")

    if storage is None:
        logger.error("presign requested but media storage is not configured")
        raise UpstreamConfigurationError("media storage is not configured")

    key = generate_storage_key(filename)
    try:
        upload_url = storage.generate_upload_url(
            key=key, content_type=content_type
        )
    except MediaStorageError as exc:
        raise UpstreamConfigurationError(str(exc)) from exc

    logger.info(
        "issued upload ticket",
        extra={
            "key": key,
            "content_type": content_type,
            "admin_id": str(principal.id),
            "expires_in": storage.presign_expiry_seconds,
        },
    )
    return UploadTicket(
        upload_url=upload_url,
        public_url=storage.public_url(key),
        key=key,
    )
