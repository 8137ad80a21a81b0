"""Client side of the upload pipeline: presign, then PUT straight to storage."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from niveshak_backend.config import (
    DEFAULT_PRESIGN_TIMEOUT_SECONDS,
    DEFAULT_UPLOAD_TIMEOUT_SECONDS,
)
from niveshak_backend.services.auth_tokens import AdminPrincipal
from niveshak_backend.services.media import ImagePayload
from niveshak_backend.services.presign import (
    InvalidInputError,
    UnauthorizedError,
    UploadError,
    UploadTicket,
    UpstreamConfigurationError,
    issue_upload_ticket,
)
from niveshak_backend.services.storage import R2MediaStorage

logger = logging.getLogger(__name__)

_ERROR_BODY_LIMIT = 512


class PresignRequestFailed(UploadError):
    """The presign endpoint could not be reached or answered unexpectedly."""


class StorageWriteFailed(UploadError):
    """The direct PUT to storage failed or timed out; safe to retry."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            base = f"{base} (status {self.status_code})"
        if self.detail:
            base = f"{base}: {self.detail}"
        return base


class PresignIssuer(Protocol):
    """Anything that can turn a filename and content type into a ticket."""

    def __call__(self, *, filename: str, content_type: str) -> UploadTicket: ...


@dataclass(slots=True)
class LocalPresignIssuer:
    """Issue tickets in-process on behalf of an already-authenticated admin."""

    storage: R2MediaStorage | None
    principal: AdminPrincipal | None

    def __call__(self, *, filename: str, content_type: str) -> UploadTicket:
        return issue_upload_ticket(
            filename=filename,
            content_type=content_type,
            principal=self.principal,
            storage=self.storage,
        )


class HttpPresignIssuer:
    """Request tickets from a remote ``POST /api/uploads/presign`` endpoint."""

    def __init__(
        self,
        endpoint_url: str,
        access_token: str | None,
        *,
        http: Any = requests,
        timeout: float = DEFAULT_PRESIGN_TIMEOUT_SECONDS,
    ) -> None:
        self._endpoint_url = endpoint_url
        self._access_token = access_token
        self._http = http
        self._timeout = timeout

    def __call__(self, *, filename: str, content_type: str) -> UploadTicket:
        headers = {"Content-Type": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"

        try:
            response = self._http.post(
                self._endpoint_url,
                json={"filename": filename, "contentType": content_type},
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise PresignRequestFailed(
                f"failed to reach presign endpoint: {exc}"
            ) from exc

        message = _error_message(response)
        if response.status_code == 401:
            raise UnauthorizedError(message or "Unauthorized")
        if response.status_code == 400:
            raise InvalidInputError(message or "invalid presign request")
        if response.status_code == 503:
            raise UpstreamConfigurationError(
                message or "media storage is not configured"
            )
        if not response.ok:
            raise PresignRequestFailed(
                f"presign endpoint returned {response.status_code}: {message}"
            )

        try:
            body = response.json()
            return UploadTicket(
                upload_url=body["uploadUrl"],
                public_url=body["publicUrl"],
                key=body["key"],
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise PresignRequestFailed("invalid presign response") from exc


class UploadClient:
    """Upload one binary payload and hand back its permanent public URL.

    The client never retries; a failed write leaves nothing behind because the
    bucket only creates an object when a PUT succeeds.
    """

    def __init__(
        self,
        issuer: PresignIssuer,
        *,
        http: Any = requests,
        timeout: float = DEFAULT_UPLOAD_TIMEOUT_SECONDS,
    ) -> None:
        self._issuer = issuer
        self._http = http
        self._timeout = timeout

    def upload(self, payload: ImagePayload, path_hint: str) -> str:
        ticket = self._issuer(
            filename=path_hint, content_type=payload.content_type
        )

        try:
            response = self._http.put(
                ticket.upload_url,
                data=payload.data,
                headers={"Content-Type": payload.content_type},
                timeout=self._timeout,
            )
        except requests.Timeout as exc:
            raise StorageWriteFailed("storage upload timed out") from exc
        except requests.RequestException as exc:
            raise StorageWriteFailed(f"storage upload failed: {exc}") from exc

        if not response.ok:
            logger.warning(
                "storage rejected upload",
                extra={"key": ticket.key, "status": response.status_code},
            )
            raise StorageWriteFailed(
                "Failed to upload to storage",
                status_code=response.status_code,
                detail=(response.text or "")[:_ERROR_BODY_LIMIT] or None,
            )

        logger.info(
            "uploaded media",
            extra={"key": ticket.key, "bytes": len(payload.data)},
        )
        return ticket.public_url


def _error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:_ERROR_BODY_LIMIT]
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return ""
