"""R2 (S3-compatible) helpers for minting presigned upload URLs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.client import BaseClient
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from niveshak_backend.config import DEFAULT_PRESIGN_EXPIRY_SECONDS


@dataclass(slots=True)
class MediaStorageSettings:
    """Configuration block for the managed media bucket."""

    bucket: str
    public_domain: str
    account_id: Optional[str] = None
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region_name: str = "auto"
    presign_expiry_seconds: int = DEFAULT_PRESIGN_EXPIRY_SECONDS

    def resolved_endpoint(self) -> str | None:
        if self.endpoint_url:
            return self.endpoint_url
        if self.account_id:
            return f"https://{self.account_id}.r2.cloudflarestorage.com"
        return None


class MediaStorageError(RuntimeError):
    """Raised when the storage client cannot sign a request."""


class R2MediaStorage:
    """Wrapper around boto3 that only ever signs writes; it never uploads."""

    def __init__(self, settings: MediaStorageSettings) -> None:
        self._settings = settings
        self._client: BaseClient = boto3.client(
            "s3",
            region_name=settings.region_name,
            endpoint_url=settings.resolved_endpoint(),
            aws_access_key_id=settings.access_key_id,
            aws_secret_access_key=settings.secret_access_key,
            config=BotoConfig(signature_version="s3v4"),
        )

    @property
    def bucket(self) -> str:
        return self._settings.bucket

    @property
    def public_domain(self) -> str:
        return self._settings.public_domain.rstrip("/")

    @property
    def presign_expiry_seconds(self) -> int:
        return self._settings.presign_expiry_seconds

    def public_url(self, key: str) -> str:
        return f"{self.public_domain}/{key}"

    def generate_upload_url(
        self,
        *,
        key: str,
        content_type: str,
        expires_in: int | None = None,
    ) -> str:
        """Return a PUT URL scoped to exactly ``key`` and ``content_type``."""

        try:
            return self._client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self._settings.bucket,
                    "Key": key,
                    "ContentType": content_type,
                },
                ExpiresIn=expires_in or self._settings.presign_expiry_seconds,
                HttpMethod="PUT",
            )
        except (BotoCoreError, ClientError) as exc:  # pragma: no cover - external
            raise MediaStorageError("failed to sign upload URL") from exc


def load_media_storage_settings(environ) -> MediaStorageSettings | None:
    """Build settings from R2_* variables; ``None`` when any are missing."""

    bucket = environ.get("R2_BUCKET_NAME")
    public_domain = environ.get("R2_PUBLIC_DOMAIN")
    access_key_id = environ.get("R2_ACCESS_KEY_ID")
    secret_access_key = environ.get("R2_SECRET_ACCESS_KEY")
    account_id = environ.get("R2_ACCOUNT_ID")
    endpoint_url = environ.get("R2_ENDPOINT_URL")

    if not bucket or not public_domain or not access_key_id or not secret_access_key:
        return None
    if not account_id and not endpoint_url:
        return None

    expiry_env = environ.get("NIVESHAK_PRESIGN_EXPIRY_SECONDS")
    try:
        expiry = int(expiry_env) if expiry_env else DEFAULT_PRESIGN_EXPIRY_SECONDS
    except ValueError:
        expiry = DEFAULT_PRESIGN_EXPIRY_SECONDS

    return MediaStorageSettings(
        bucket=bucket,
        public_domain=public_domain,
        account_id=account_id,
        endpoint_url=endpoint_url,
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        presign_expiry_seconds=expiry if expiry > 0 else DEFAULT_PRESIGN_EXPIRY_SECONDS,
    )


def init_media_storage(settings: MediaStorageSettings) -> R2MediaStorage:
    """Factory to mirror the init_* pattern used across services."""

    return R2MediaStorage(settings)
