"""Presigned upload endpoint for the admin panel."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from niveshak_backend.api.deps import get_current_admin, get_media_storage
from niveshak_backend.services.presign import (
    InvalidInputError,
    UnauthorizedError,
    UpstreamConfigurationError,
    issue_upload_ticket,
)

bp = Blueprint("uploads", __name__, url_prefix="/api/uploads")


@bp.post("/presign")
def presign_upload():
    """Return ``{uploadUrl, publicUrl, key}`` for a direct-to-bucket PUT."""

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}

    try:
        ticket = issue_upload_ticket(
            filename=payload.get("filename"),
            content_type=payload.get("contentType"),
            principal=get_current_admin(),
            storage=get_media_storage(),
        )
    except UnauthorizedError:
        return jsonify(error="Unauthorized"), 401
    except InvalidInputError as exc:
        return jsonify(error=str(exc)), 400
    except UpstreamConfigurationError as exc:
        current_app.logger.error("presign failed: %s", exc)
        return jsonify(error=str(exc)), 503

    return jsonify(ticket.to_dict())
