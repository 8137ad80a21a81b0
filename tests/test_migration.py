import threading
import unittest
import uuid

from niveshak_backend.services.auth_tokens import AdminPrincipal
from niveshak_backend.services.entities import (
    EVENTS,
    HERO_SLIDES,
    NOTICES,
    TEAM_MEMBERS,
)
from niveshak_backend.services.migration import (
    EXIT_ABORTED,
    EXIT_OK,
    EXIT_WITH_ERRORS,
    MediaMigrator,
    MigrationAbortedError,
    MigrationSettings,
)
from niveshak_backend.services.presign import UnauthorizedError
from niveshak_backend.services.repository import (
    RepositoryReadFailed,
    RepositoryWriteFailed,
)
from niveshak_backend.services.uploads import (
    LocalPresignIssuer,
    StorageWriteFailed,
    UploadClient,
)

JPEG_URI = "data:image/jpeg;base64,/9j/4AAQ"
PNG_URI = "data:image/png;base64,iVBORw0K"
FIXED_CLOCK = 1700000000.0


class _InMemoryRepository:
    def __init__(self, data=None, fail_load=(), fail_save=()):
        self.data = {name: list(records) for name, records in (data or {}).items()}
        self.fail_load = set(fail_load)
        self.fail_save = set(fail_save)
        self.saves: list[str] = []

    def load_all(self, entity_type):
        if entity_type.name in self.fail_load:
            raise RepositoryReadFailed(f"failed to load {entity_type.name}")
        return [dict(record) for record in self.data.get(entity_type.name, [])]

    def replace_all(self, entity_type, records):
        if entity_type.name in self.fail_save:
            raise RepositoryWriteFailed(f"failed to save {entity_type.name}")
        self.saves.append(entity_type.name)
        self.data[entity_type.name] = [dict(record) for record in records]


class _RecordingUploadClient:
    def __init__(self, fail_hints=(), unauthorized_hints=()):
        self.fail_hints = tuple(fail_hints)
        self.unauthorized_hints = tuple(unauthorized_hints)
        self.hints: list[str] = []
        self._lock = threading.Lock()

    def upload(self, payload, path_hint):
        with self._lock:
            self.hints.append(path_hint)
        if path_hint.startswith(self.unauthorized_hints):
            raise UnauthorizedError()
        if path_hint.startswith(self.fail_hints):
            raise StorageWriteFailed("Failed to upload to storage", status_code=500)
        return f"https://media.niveshak.test/{path_hint}"


class _FakeStorage:
    presign_expiry_seconds = 900

    def generate_upload_url(self, *, key, content_type):
        return f"https://signed.test/{key}"

    def public_url(self, key):
        return f"https://media.niveshak.test/{key}"


class _OkHttp:
    def __init__(self):
        self.puts = []

    def put(self, url, data=None, headers=None, timeout=None):
        self.puts.append(url)

        class _Response:
            status_code = 200
            ok = True
            text = ""

        return _Response()


def _migrator(repository, upload_client, **kwargs):
    return MediaMigrator(
        repository,
        upload_client,
        settings=MigrationSettings(max_concurrent_uploads=3),
        clock=lambda: FIXED_CLOCK,
        **kwargs,
    )


class MediaMigratorTests(unittest.TestCase):
    def test_inline_team_image_moves_and_other_rows_are_kept(self):
        other = {"id": "t2", "name": "Asha", "image_url": "https://example.com/a.png"}
        repository = _InMemoryRepository(
            {
                TEAM_MEMBERS.name: [
                    {"id": "t1", "name": "Ravi", "image_url": JPEG_URI},
                    other,
                ]
            }
        )
        http = _OkHttp()
        principal = AdminPrincipal(id=uuid.uuid4(), email="admin@niveshak.test")
        client = UploadClient(
            LocalPresignIssuer(storage=_FakeStorage(), principal=principal),
            http=http,
        )

        migration_run = _migrator(repository, client).run(progress=lambda *_: None)

        team = repository.data[TEAM_MEMBERS.name]
        self.assertTrue(
            team[0]["image_url"].startswith(
                "https://media.niveshak.test/team-t1-1700000000000_"
            )
        )
        self.assertTrue(team[0]["image_url"].endswith(".jpg"))
        self.assertEqual(team[0]["name"], "Ravi")
        self.assertEqual(team[1], other)
        self.assertEqual(migration_run.moved_by_type[TEAM_MEMBERS.name], 1)
        self.assertEqual(migration_run.total_moved, 1)
        self.assertEqual(migration_run.exit_code, EXIT_OK)
        self.assertEqual(len(http.puts), 1)

    def test_external_urls_are_untouched_and_not_counted(self):
        repository = _InMemoryRepository(
            {
                HERO_SLIDES.name: [
                    {"id": "h1", "image_url": "https://example.com/photo.png"}
                ]
            }
        )
        client = _RecordingUploadClient()

        migration_run = _migrator(repository, client).run(progress=lambda *_: None)

        self.assertEqual(
            repository.data[HERO_SLIDES.name][0]["image_url"],
            "https://example.com/photo.png",
        )
        self.assertEqual(client.hints, [])
        self.assertEqual(migration_run.total_moved, 0)
        self.assertEqual(migration_run.errors, [])
        self.assertEqual(repository.saves, [])

    def test_second_run_is_a_no_op(self):
        repository = _InMemoryRepository(
            {
                EVENTS.name: [{"id": "e1", "image_url": PNG_URI}],
                NOTICES.name: [{"id": "n1", "image_url": None}],
            }
        )
        client = _RecordingUploadClient()

        first = _migrator(repository, client).run(progress=lambda *_: None)
        second = _migrator(repository, client).run(progress=lambda *_: None)

        self.assertEqual(first.total_moved, 1)
        self.assertEqual(second.total_moved, 0)
        self.assertEqual(client.hints, ["event-e1-1700000000000.png"])
        self.assertEqual(repository.saves, [EVENTS.name])

    def test_failed_upload_keeps_inline_value_and_records_error(self):
        repository = _InMemoryRepository(
            {
                NOTICES.name: [
                    {"id": "n1", "image_url": PNG_URI},
                    {"id": "n2", "image_url": JPEG_URI},
                    {"id": "n3", "image_url": "data:image/png;base64,!!!"},
                ]
            }
        )
        client = _RecordingUploadClient(fail_hints=("notice-n2-",))

        migration_run = _migrator(repository, client).run(progress=lambda *_: None)

        notices = repository.data[NOTICES.name]
        self.assertTrue(notices[0]["image_url"].startswith("https://"))
        self.assertEqual(notices[1]["image_url"], JPEG_URI)
        self.assertEqual(notices[2]["image_url"], "data:image/png;base64,!!!")
        self.assertEqual(migration_run.moved_by_type[NOTICES.name], 1)
        self.assertEqual(
            sorted(error.entity_id for error in migration_run.errors),
            ["n2", "n3"],
        )
        self.assertEqual(migration_run.exit_code, EXIT_WITH_ERRORS)
        self.assertIn("re-run", migration_run.summary())

    def test_read_failure_is_isolated_to_its_type(self):
        repository = _InMemoryRepository(
            {
                EVENTS.name: [{"id": "e1", "image_url": PNG_URI}],
                NOTICES.name: [{"id": "n1", "image_url": PNG_URI}],
            },
            fail_load=(EVENTS.name,),
        )
        client = _RecordingUploadClient()

        migration_run = _migrator(repository, client).run(progress=lambda *_: None)

        self.assertEqual(len(migration_run.errors), 1)
        self.assertEqual(migration_run.errors[0].entity_type, EVENTS.name)
        self.assertIsNone(migration_run.errors[0].entity_id)
        self.assertEqual(migration_run.moved_by_type[NOTICES.name], 1)
        self.assertTrue(
            repository.data[NOTICES.name][0]["image_url"].startswith("https://")
        )
        self.assertEqual(migration_run.exit_code, EXIT_WITH_ERRORS)

    def test_write_failure_does_not_count_moves(self):
        repository = _InMemoryRepository(
            {EVENTS.name: [{"id": "e1", "image_url": PNG_URI}]},
            fail_save=(EVENTS.name,),
        )

        migration_run = _migrator(repository, _RecordingUploadClient()).run(
            progress=lambda *_: None
        )

        self.assertEqual(migration_run.moved_by_type[EVENTS.name], 0)
        self.assertEqual(repository.data[EVENTS.name][0]["image_url"], PNG_URI)
        self.assertEqual(len(migration_run.errors), 1)

    def test_progress_is_reported_per_type(self):
        reports = []
        repository = _InMemoryRepository()

        migration_run = _migrator(repository, _RecordingUploadClient()).run(
            progress=lambda percent, message: reports.append(percent)
        )

        self.assertEqual(reports[0], 0)
        self.assertEqual(reports[-1], 100)
        self.assertEqual(sorted(set(reports)), [0, 25, 50, 75, 100])
        self.assertEqual(reports, sorted(reports))
        self.assertEqual(migration_run.progress, 100)

    def test_cancellation_stops_before_next_type(self):
        repository = _InMemoryRepository(
            {
                HERO_SLIDES.name: [{"id": "h1", "image_url": PNG_URI}],
                TEAM_MEMBERS.name: [{"id": "t1", "image_url": PNG_URI}],
            }
        )
        cancel_event = threading.Event()

        def progress(percent, message):
            if percent == 25:
                cancel_event.set()

        migration_run = _migrator(repository, _RecordingUploadClient()).run(
            progress=progress, cancel_event=cancel_event
        )

        self.assertTrue(migration_run.cancelled)
        self.assertEqual(migration_run.moved_by_type, {HERO_SLIDES.name: 1})
        self.assertEqual(
            repository.data[TEAM_MEMBERS.name][0]["image_url"], PNG_URI
        )
        self.assertIn("cancelled", migration_run.summary())

    def test_auth_failure_is_recorded_per_entity_and_later_types_run(self):
        repository = _InMemoryRepository(
            {
                HERO_SLIDES.name: [
                    {"id": "h1", "image_url": PNG_URI},
                    {"id": "h2", "image_url": PNG_URI},
                ],
                NOTICES.name: [{"id": "n1", "image_url": PNG_URI}],
            }
        )
        client = _RecordingUploadClient(unauthorized_hints=("hero-",))

        migration_run = _migrator(repository, client).run(progress=lambda *_: None)

        self.assertFalse(migration_run.aborted)
        self.assertEqual(migration_run.exit_code, EXIT_WITH_ERRORS)
        self.assertEqual(
            sorted(error.entity_id for error in migration_run.errors),
            ["h1", "h2"],
        )
        self.assertTrue(
            all(error.message == "Unauthorized" for error in migration_run.errors)
        )
        self.assertEqual(
            [row["image_url"] for row in repository.data[HERO_SLIDES.name]],
            [PNG_URI, PNG_URI],
        )
        self.assertNotIn(HERO_SLIDES.name, repository.saves)
        self.assertEqual(migration_run.moved_by_type[NOTICES.name], 1)
        self.assertTrue(
            repository.data[NOTICES.name][0]["image_url"].startswith(
                "https://media.niveshak.test/notice-n1-"
            )
        )
        self.assertIn("2 asset(s) were skipped", migration_run.summary())

    def test_unexpected_failure_aborts_with_partial_summary(self):
        repository = _InMemoryRepository(
            {
                HERO_SLIDES.name: [
                    {"id": "h1", "image_url": PNG_URI},
                    {"id": "h2", "image_url": PNG_URI},
                ],
            },
            fail_load=(TEAM_MEMBERS.name,),
        )
        original_load = repository.load_all

        def load_all(entity_type):
            if entity_type.name == EVENTS.name:
                raise KeyError("image_url")
            return original_load(entity_type)

        repository.load_all = load_all
        client = _RecordingUploadClient(fail_hints=("hero-h2-",))

        with self.assertRaises(MigrationAbortedError) as ctx:
            _migrator(repository, client).run(progress=lambda *_: None)

        migration_run = ctx.exception.run
        self.assertTrue(migration_run.aborted)
        self.assertEqual(migration_run.exit_code, EXIT_ABORTED)
        self.assertEqual(migration_run.moved_by_type[HERO_SLIDES.name], 1)
        self.assertEqual(len(migration_run.errors), 2)
        summary = migration_run.summary()
        self.assertIn("aborted after moving 1 files", summary)
        self.assertIn("2 asset(s) were skipped", summary)
        self.assertFalse(migration_run.to_dict()["ok"])

    def test_magazines_are_not_migrated_by_default(self):
        repository = _InMemoryRepository(
            {"magazines": [{"id": "m1", "cover_url": PNG_URI}]}
        )
        client = _RecordingUploadClient()

        _migrator(repository, client).run(progress=lambda *_: None)

        self.assertEqual(client.hints, [])
        self.assertEqual(repository.data["magazines"][0]["cover_url"], PNG_URI)


if __name__ == "__main__":
    unittest.main()
