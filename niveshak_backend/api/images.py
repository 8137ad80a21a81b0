"""Read-through proxy for images hosted on Google Drive."""

from flask import Blueprint, Response, current_app, jsonify, request
import requests

from niveshak_backend.config.media import (
    FETCH_IMAGE_CACHE_CONTROL,
    FETCH_IMAGE_TIMEOUT_SECONDS,
)

bp = Blueprint("images", __name__, url_prefix="/api")

GOOGLE_DRIVE_DOWNLOAD_URL = "https://drive.google.com/uc"


@bp.get("/fetch-image")
def fetch_image():
    """Relay a Drive file so it can be embedded without CORS trouble."""

    drive_id = (request.args.get("id") or "").strip()
    if not drive_id:
        return jsonify(error="Missing Google Drive ID"), 400

    try:
        upstream = requests.get(
            GOOGLE_DRIVE_DOWNLOAD_URL,
            params={"export": "download", "id": drive_id},
            timeout=FETCH_IMAGE_TIMEOUT_SECONDS,
        )
    except requests.RequestException:
        current_app.logger.exception("image proxy request failed")
        return jsonify(error="Internal Server Error"), 500

    if not upstream.ok:
        return (
            jsonify(error=f"Failed to fetch image: {upstream.reason}"),
            upstream.status_code,
        )

    response = Response(
        upstream.content,
        content_type=upstream.headers.get("Content-Type") or "image/jpeg",
    )
    response.headers["Cache-Control"] = FETCH_IMAGE_CACHE_CONTROL
    return response
