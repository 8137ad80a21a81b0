"""Static configuration shipped with the codebase."""

# Media defaults live in media.py.
from .media import (
    DEFAULT_MAX_CONCURRENT_UPLOADS,
    DEFAULT_MAX_INLINE_IMAGE_BYTES,
    DEFAULT_PRESIGN_EXPIRY_SECONDS,
    DEFAULT_PRESIGN_TIMEOUT_SECONDS,
    DEFAULT_UPLOAD_TIMEOUT_SECONDS,
    INLINE_IMAGE_PREFIX,
    MANAGED_STORAGE_PROVIDER,
)

__all__ = [
    "DEFAULT_MAX_CONCURRENT_UPLOADS",
    "DEFAULT_MAX_INLINE_IMAGE_BYTES",
    "DEFAULT_PRESIGN_EXPIRY_SECONDS",
    "DEFAULT_PRESIGN_TIMEOUT_SECONDS",
    "DEFAULT_UPLOAD_TIMEOUT_SECONDS",
    "INLINE_IMAGE_PREFIX",
    "MANAGED_STORAGE_PROVIDER",
]
