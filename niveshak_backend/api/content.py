"""Public content listings and admin bulk-replace endpoints."""

from __future__ import annotations

import uuid
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from niveshak_backend.api.deps import (
    get_entity_repository,
    get_public_media_base,
)
from niveshak_backend.services.entities import EntityType, get_entity_type
from niveshak_backend.services.media import resolve_media_url
from niveshak_backend.services.repository import (
    EntityRecord,
    RepositoryError,
    entity_columns,
)

bp = Blueprint("content", __name__, url_prefix="/api")

_MEDIA_COLUMNS = ("storage_provider", "media_key")


def camelize(name: str) -> str:
    head, *tail = name.split("_")
    return head + "".join(part.capitalize() for part in tail)


def serialize_public(
    entity_type: EntityType, record: EntityRecord, public_base: str
) -> dict[str, Any]:
    """Shape a stored row for the public site, resolving its image URL."""

    data = {
        camelize(key): value
        for key, value in record.items()
        if key not in _MEDIA_COLUMNS
    }
    image_field = entity_type.primary_image_field
    data[camelize(image_field)] = resolve_media_url(
        record.get(image_field),
        record.get("media_key"),
        record.get("storage_provider"),
        public_base=public_base,
    )
    return data


def parse_admin_payload(
    entity_type: EntityType, items: Any
) -> list[EntityRecord]:
    """Validate an admin list payload and convert it to stored rows."""

    if not isinstance(items, list):
        raise ValueError("expected a JSON list")

    allowed = {camelize(column): column for column in entity_columns(entity_type)}
    records: list[EntityRecord] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"item {index} is not an object")
        unknown = sorted(set(item) - set(allowed))
        if unknown:
            raise ValueError(
                f"item {index} has unknown fields: {', '.join(unknown)}"
            )
        record = {allowed[key]: value for key, value in item.items()}
        if not record.get("id"):
            record["id"] = uuid.uuid4().hex
        records.append(record)
    return records


def _lookup_entity_type(name: str):
    try:
        return get_entity_type(name), None
    except KeyError:
        return None, (jsonify(error=f"unknown content type {name!r}"), 404)


@bp.get("/content/<entity_name>")
def list_content(entity_name: str):
    """Return every row of a content type with display-ready image URLs."""

    entity_type, error = _lookup_entity_type(entity_name)
    if error:
        return error

    try:
        repository = get_entity_repository()
    except RuntimeError as exc:
        return jsonify(error=str(exc)), 503

    try:
        records = repository.load_all(entity_type)
    except RepositoryError as exc:
        return jsonify(error=str(exc)), 500

    if entity_type.name == "notices":
        records.sort(key=lambda record: record.get("date") or "", reverse=True)

    public_base = get_public_media_base()
    return jsonify(
        items=[
            serialize_public(entity_type, record, public_base)
            for record in records
        ]
    )


@bp.get("/admin/content/<entity_name>")
def list_content_for_admin(entity_name: str):
    """Return stored rows verbatim, media columns included."""

    entity_type, error = _lookup_entity_type(entity_name)
    if error:
        return error

    try:
        repository = get_entity_repository()
    except RuntimeError as exc:
        return jsonify(error=str(exc)), 503

    try:
        records = repository.load_all(entity_type)
    except RepositoryError as exc:
        return jsonify(error=str(exc)), 500

    return jsonify(
        items=[
            {camelize(key): value for key, value in record.items()}
            for record in records
        ]
    )


@bp.put("/admin/content/<entity_name>")
def replace_content(entity_name: str):
    """Replace the full list of a content type with the request body."""

    entity_type, error = _lookup_entity_type(entity_name)
    if error:
        return error

    try:
        records = parse_admin_payload(
            entity_type, request.get_json(silent=True)
        )
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    try:
        repository = get_entity_repository()
    except RuntimeError as exc:
        return jsonify(error=str(exc)), 503

    try:
        repository.replace_all(entity_type, records)
    except ValueError as exc:
        return jsonify(error=str(exc)), 400
    except RepositoryError as exc:
        current_app.logger.error("content save failed: %s", exc)
        return jsonify(error=str(exc)), 500

    return jsonify(saved=len(records))
