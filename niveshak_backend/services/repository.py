"""Bulk load/replace access to admin-managed content tables."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from niveshak_backend.services.entities import EntityType

logger = logging.getLogger(__name__)

EntityRecord = dict[str, Any]

# Columns maintained by the repository rather than by callers.
_INTERNAL_COLUMNS = frozenset({"position"})


class RepositoryError(RuntimeError):
    """Raised when the content store cannot be read or written."""


class RepositoryReadFailed(RepositoryError):
    """Loading every row of a type failed."""


class RepositoryWriteFailed(RepositoryError):
    """Replacing every row of a type failed; nothing was committed."""


class EntityRepository(Protocol):
    def load_all(self, entity_type: EntityType) -> list[EntityRecord]: ...

    def replace_all(
        self, entity_type: EntityType, records: list[EntityRecord]
    ) -> None: ...


def entity_columns(entity_type: EntityType) -> list[str]:
    """Return the caller-visible column names for ``entity_type``."""

    return [
        column.key
        for column in entity_type.model.__table__.columns
        if column.key not in _INTERNAL_COLUMNS
    ]


class SqlEntityRepository:
    """SQLAlchemy-backed store where each type is replaced as a whole list.

    ``replace_all`` runs as a single transaction that upserts the supplied rows
    and prunes the ones that disappeared, so readers never see an empty table.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def load_all(self, entity_type: EntityType) -> list[EntityRecord]:
        model = entity_type.model
        columns = entity_columns(entity_type)
        try:
            with self._session_factory() as session:
                rows = (
                    session.execute(
                        select(model).order_by(model.position, model.id)
                    )
                    .scalars()
                    .all()
                )
                return [
                    {column: getattr(row, column) for column in columns}
                    for row in rows
                ]
        except SQLAlchemyError as exc:
            logger.exception(
                "failed to load entities", extra={"entity_type": entity_type.name}
            )
            raise RepositoryReadFailed(
                f"failed to load {entity_type.name}"
            ) from exc

    def replace_all(
        self, entity_type: EntityType, records: list[EntityRecord]
    ) -> None:
        model = entity_type.model
        columns = set(entity_columns(entity_type))
        ids = [str(record["id"]) for record in records]
        if len(set(ids)) != len(ids):
            raise ValueError(f"duplicate ids in {entity_type.name} replacement")

        session = self._session_factory()
        try:
            with session.begin():
                prune = delete(model)
                if ids:
                    prune = prune.where(model.id.not_in(ids))
                session.execute(prune)
                for position, record in enumerate(records):
                    values = {
                        key: value
                        for key, value in record.items()
                        if key in columns
                    }
                    values["id"] = str(record["id"])
                    session.merge(model(position=position, **values))
        except SQLAlchemyError as exc:
            logger.exception(
                "failed to replace entities",
                extra={"entity_type": entity_type.name, "count": len(records)},
            )
            raise RepositoryWriteFailed(
                f"failed to save {entity_type.name}"
            ) from exc
        finally:
            session.close()

        logger.info(
            "replaced entities",
            extra={"entity_type": entity_type.name, "count": len(records)},
        )
