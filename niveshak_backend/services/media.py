"""Media references: where an entity's image lives and which URL to show."""

from __future__ import annotations

import base64
import binascii
import mimetypes
import re
from dataclasses import dataclass
from typing import Union

from niveshak_backend.config import (
    DEFAULT_MAX_INLINE_IMAGE_BYTES,
    INLINE_IMAGE_PREFIX,
    MANAGED_STORAGE_PROVIDER,
)
from niveshak_backend.config.media import DEFAULT_INLINE_MIME_TYPE

_DATA_URI_MIME = re.compile(r":(.*?);")
_KNOWN_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/svg+xml": ".svg",
}


class InlineImageError(ValueError):
    """Raised when an inline data URI cannot be turned into bytes."""


@dataclass(frozen=True, slots=True)
class InlineImage:
    """Image bytes serialized into the column as a data URI."""

    data_uri: str


@dataclass(frozen=True, slots=True)
class ExternalImage:
    """Image hosted somewhere we do not control."""

    url: str


@dataclass(frozen=True, slots=True)
class ManagedImage:
    """Image stored in the managed bucket under ``key``."""

    key: str


MediaReference = Union[InlineImage, ExternalImage, ManagedImage]


@dataclass(frozen=True, slots=True)
class ImagePayload:
    """Binary image ready to be uploaded."""

    data: bytes
    content_type: str

    @property
    def extension(self) -> str:
        return extension_for_mime_type(self.content_type)


def is_inline_image(value: str | None) -> bool:
    """Return True when ``value`` is an inline data URI image."""

    return bool(value) and value.startswith(INLINE_IMAGE_PREFIX)


def is_managed(provider_tag: str | None, managed_key: str | None) -> bool:
    return provider_tag == MANAGED_STORAGE_PROVIDER and bool(managed_key)


def resolve_media_url(
    legacy_value: str | None,
    managed_key: str | None,
    provider_tag: str | None,
    *,
    public_base: str,
) -> str:
    """Return the URL that should be shown for an image-bearing field.

    Managed rows resolve to ``{public_base}/{managed_key}``. Every other row
    returns ``legacy_value`` untouched, inline data URIs included.
    """

    if is_managed(provider_tag, managed_key):
        return f"{public_base.rstrip('/')}/{managed_key}"
    return legacy_value or ""


def decode_media_reference(
    legacy_value: str | None,
    managed_key: str | None,
    provider_tag: str | None,
) -> MediaReference | None:
    """Turn the stored column triple into an explicit variant.

    Returns ``None`` when the row carries no image at all.
    """

    if is_managed(provider_tag, managed_key):
        return ManagedImage(key=managed_key)
    if not legacy_value:
        return None
    if is_inline_image(legacy_value):
        return InlineImage(data_uri=legacy_value)
    return ExternalImage(url=legacy_value)


def display_url(reference: MediaReference | None, *, public_base: str) -> str:
    """Return the URL a browser should load for ``reference``."""

    if reference is None:
        return ""
    if isinstance(reference, ManagedImage):
        return f"{public_base.rstrip('/')}/{reference.key}"
    if isinstance(reference, InlineImage):
        return reference.data_uri
    return reference.url


def decode_inline_image(
    data_uri: str,
    *,
    max_bytes: int | None = DEFAULT_MAX_INLINE_IMAGE_BYTES,
) -> ImagePayload:
    """Decode a ``data:image/...;base64,...`` value into raw bytes."""

    if not is_inline_image(data_uri):
        raise InlineImageError("value is not an inline image")

    header, separator, encoded = data_uri.partition(",")
    if not separator or not encoded:
        raise InlineImageError("inline image has no payload")

    match = _DATA_URI_MIME.search(header)
    content_type = (match.group(1) if match else "") or DEFAULT_INLINE_MIME_TYPE

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InlineImageError("inline image is not valid base64") from exc

    if not data:
        raise InlineImageError("inline image payload was empty")
    if max_bytes is not None and len(data) > max_bytes:
        raise InlineImageError(
            f"inline image is {len(data)} bytes; limit is {max_bytes}"
        )

    return ImagePayload(data=data, content_type=content_type)


def extension_for_mime_type(content_type: str) -> str:
    """Return a file extension (with dot) for an image MIME type."""

    normalized = (content_type or "").split(";", 1)[0].strip().lower()
    if normalized in _KNOWN_EXTENSIONS:
        return _KNOWN_EXTENSIONS[normalized]
    return mimetypes.guess_extension(normalized) or ".jpg"
