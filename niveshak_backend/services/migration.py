"""Move inline (data URI) images out of the database into managed storage."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable

from niveshak_backend.config import (
    DEFAULT_MAX_CONCURRENT_UPLOADS,
    DEFAULT_MAX_INLINE_IMAGE_BYTES,
)
from niveshak_backend.services.auth_tokens import AdminPrincipal
from niveshak_backend.services.entities import (
    ENTITY_TYPES,
    MIGRATION_ORDER,
    EntityType,
)
from niveshak_backend.services.media import (
    InlineImageError,
    decode_inline_image,
    is_inline_image,
)
from niveshak_backend.services.presign import (
    UnauthorizedError,
    UploadError,
    UpstreamConfigurationError,
)
from niveshak_backend.services.repository import (
    EntityRecord,
    EntityRepository,
    RepositoryError,
)
from niveshak_backend.services.storage import R2MediaStorage
from niveshak_backend.services.uploads import LocalPresignIssuer, UploadClient

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]

EXIT_OK = 0
EXIT_WITH_ERRORS = 1
EXIT_ABORTED = 2

_PIPELINE_ERRORS = (UnauthorizedError, UpstreamConfigurationError)


@dataclass(slots=True)
class MigrationSettings:
    """Configuration knobs for a migration pass."""

    max_concurrent_uploads: int = DEFAULT_MAX_CONCURRENT_UPLOADS
    max_inline_bytes: int | None = DEFAULT_MAX_INLINE_IMAGE_BYTES


@dataclass(frozen=True, slots=True)
class MigrationError:
    """A single asset or type that could not be migrated."""

    entity_type: str
    entity_id: str | None
    message: str

    def to_dict(self) -> dict[str, str | None]:
        return {
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "message": self.message,
        }

    def __str__(self) -> str:
        target = self.entity_id if self.entity_id is not None else "*"
        return f"{self.entity_type}/{target}: {self.message}"


@dataclass(slots=True)
class MigrationRun:
    """In-memory bookkeeping for one invocation; never persisted."""

    moved_by_type: dict[str, int] = field(default_factory=dict)
    errors: list[MigrationError] = field(default_factory=list)
    progress: int = 0
    cancelled: bool = False
    aborted: bool = False
    abort_reason: str | None = None

    @property
    def total_moved(self) -> int:
        return sum(self.moved_by_type.values())

    @property
    def exit_code(self) -> int:
        if self.aborted:
            return EXIT_ABORTED
        if self.errors:
            return EXIT_WITH_ERRORS
        return EXIT_OK

    def summary(self) -> str:
        message = f"Migration complete. Moved {self.total_moved} files to R2."
        if self.aborted:
            message = (
                f"Migration aborted after moving {self.total_moved} files: "
                f"{self.abort_reason}"
            )
        elif self.cancelled:
            message = f"Migration cancelled. Moved {self.total_moved} files to R2."
        if self.errors:
            message += (
                f" {len(self.errors)} asset(s) were skipped; re-run to retry."
            )
        return message

    def to_dict(self) -> dict[str, object]:
        return {
            "moved": self.total_moved,
            "movedByType": dict(self.moved_by_type),
            "errors": [error.to_dict() for error in self.errors],
            "progress": self.progress,
            "cancelled": self.cancelled,
            "aborted": self.aborted,
            "message": self.summary(),
            "ok": self.exit_code == EXIT_OK,
        }


class MigrationAbortedError(RuntimeError):
    """An unexpected failure stopped the run; ``run`` holds the partial summary."""

    def __init__(self, run: MigrationRun) -> None:
        super().__init__(run.summary())
        self.run = run


@dataclass(slots=True)
class _EntityOutcome:
    record: EntityRecord
    moved: int = 0
    errors: list[MigrationError] = field(default_factory=list)


class MediaMigrator:
    """Scan every migratable type and relocate inline images.

    Types are processed one after another. Within a type, uploads run
    concurrently and the type is written back only after every attempt has
    settled, and only if something actually changed.
    """

    def __init__(
        self,
        repository: EntityRepository,
        upload_client: UploadClient,
        *,
        settings: MigrationSettings | None = None,
        entity_types: Iterable[EntityType] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._repository = repository
        self._upload_client = upload_client
        self._settings = settings or MigrationSettings()
        self._entity_types = list(
            entity_types
            if entity_types is not None
            else (ENTITY_TYPES[name] for name in MIGRATION_ORDER)
        )
        self._clock = clock

    def run(
        self,
        *,
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> MigrationRun:
        migration_run = MigrationRun()
        report = progress or _log_progress
        total_types = len(self._entity_types)
        report(0, "Starting media migration...")

        try:
            for index, entity_type in enumerate(self._entity_types, start=1):
                if cancel_event is not None and cancel_event.is_set():
                    migration_run.cancelled = True
                    logger.info(
                        "migration cancelled before %s", entity_type.name
                    )
                    break

                report(
                    migration_run.progress,
                    f"Migrating {entity_type.label}...",
                )
                self._migrate_type(entity_type, migration_run, cancel_event)
                migration_run.progress = (
                    index * 100 // total_types if total_types else 100
                )
                report(
                    migration_run.progress,
                    f"Finished {entity_type.label}.",
                )
            else:
                migration_run.progress = 100
        except Exception as exc:  # noqa: BLE001 - surfaced via MigrationAbortedError
            logger.exception("media migration aborted")
            migration_run.aborted = True
            migration_run.abort_reason = str(exc) or type(exc).__name__
            raise MigrationAbortedError(migration_run) from exc

        if cancel_event is not None and cancel_event.is_set():
            migration_run.cancelled = True

        logger.info(
            "media migration finished",
            extra={
                "moved": migration_run.total_moved,
                "errors": len(migration_run.errors),
                "cancelled": migration_run.cancelled,
            },
        )
        report(migration_run.progress, migration_run.summary())
        return migration_run

    def _migrate_type(
        self,
        entity_type: EntityType,
        migration_run: MigrationRun,
        cancel_event: threading.Event | None,
    ) -> None:
        migration_run.moved_by_type[entity_type.name] = 0

        try:
            records = self._repository.load_all(entity_type)
        except RepositoryError as exc:
            logger.error("could not load %s: %s", entity_type.name, exc)
            migration_run.errors.append(
                MigrationError(entity_type.name, None, str(exc))
            )
            return

        workers = max(1, self._settings.max_concurrent_uploads)
        with ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix=f"migrate-{entity_type.path_prefix}",
        ) as executor:
            futures = [
                executor.submit(
                    self._migrate_entity,
                    entity_type,
                    record,
                    cancel_event,
                )
                for record in records
            ]
            # Collected in submission order so the write keeps row order.
            outcomes = [future.result() for future in futures]

        moved = 0
        for outcome in outcomes:
            moved += outcome.moved
            migration_run.errors.extend(outcome.errors)

        if moved == 0:
            logger.info("no inline images moved for %s", entity_type.name)
        else:
            try:
                self._repository.replace_all(
                    entity_type, [outcome.record for outcome in outcomes]
                )
            except RepositoryError as exc:
                logger.error("could not save %s: %s", entity_type.name, exc)
                migration_run.errors.append(
                    MigrationError(entity_type.name, None, str(exc))
                )
            else:
                migration_run.moved_by_type[entity_type.name] = moved

    def _migrate_entity(
        self,
        entity_type: EntityType,
        record: EntityRecord,
        cancel_event: threading.Event | None,
    ) -> _EntityOutcome:
        outcome = _EntityOutcome(record=record)
        entity_id = str(record.get("id"))

        for field_name in entity_type.image_fields:
            value = record.get(field_name)
            if not is_inline_image(value):
                continue
            if cancel_event is not None and cancel_event.is_set():
                break

            try:
                payload = decode_inline_image(
                    value, max_bytes=self._settings.max_inline_bytes
                )
                path_hint = (
                    f"{entity_type.path_prefix}-{entity_id}-"
                    f"{int(self._clock() * 1000)}{payload.extension}"
                )
                public_url = self._upload_client.upload(payload, path_hint)
            except (InlineImageError, UploadError) as exc:
                log = (
                    logger.error
                    if isinstance(exc, _PIPELINE_ERRORS)
                    else logger.warning
                )
                log(
                    "failed to migrate %s %s: %s",
                    entity_type.name,
                    entity_id,
                    exc,
                )
                outcome.errors.append(
                    MigrationError(entity_type.name, entity_id, str(exc))
                )
                continue

            outcome.record = {**outcome.record, field_name: public_url}
            outcome.moved += 1

        return outcome


def _log_progress(percent: int, message: str) -> None:
    logger.info("migration progress %s%%: %s", percent, message)


def init_media_migrator(
    repository: EntityRepository,
    storage: R2MediaStorage | None,
    principal: AdminPrincipal | None,
    *,
    settings: MigrationSettings | None = None,
) -> MediaMigrator:
    """Wire a migrator that presigns in-process on behalf of ``principal``."""

    issuer = LocalPresignIssuer(storage=storage, principal=principal)
    return MediaMigrator(
        repository,
        UploadClient(issuer),
        settings=settings,
    )
