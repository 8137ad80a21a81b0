"""Defaults for managed media storage that are tracked in Git."""

# Provider tag stored in ``storage_provider`` for rows backed by the R2 bucket.
MANAGED_STORAGE_PROVIDER = "r2"

# Self-describing prefix of inline (data URI) images.
INLINE_IMAGE_PREFIX = "data:image"
DEFAULT_INLINE_MIME_TYPE = "image/png"

DEFAULT_PRESIGN_EXPIRY_SECONDS = 15 * 60
DEFAULT_PRESIGN_TIMEOUT_SECONDS = 30
DEFAULT_UPLOAD_TIMEOUT_SECONDS = 60

DEFAULT_MAX_CONCURRENT_UPLOADS = 4
DEFAULT_MAX_INLINE_IMAGE_BYTES = 10 * 1024 * 1024

# Read-through image proxy, assets are immutable by key.
FETCH_IMAGE_CACHE_CONTROL = "public, max-age=86400"
FETCH_IMAGE_TIMEOUT_SECONDS = 20
