import re
import unittest
import uuid
from concurrent.futures import ThreadPoolExecutor

from niveshak_backend.services.auth_tokens import AdminPrincipal
from niveshak_backend.services.presign import (
    InvalidInputError,
    UnauthorizedError,
    UpstreamConfigurationError,
    generate_storage_key,
    issue_upload_ticket,
)
from niveshak_backend.services.storage import (
    MediaStorageError,
    MediaStorageSettings,
    R2MediaStorage,
    load_media_storage_settings,
)


class _FakeStorage:
    presign_expiry_seconds = 900

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def generate_upload_url(self, *, key: str, content_type: str) -> str:
        self.calls.append((key, content_type))
        if self.error:
            raise self.error
        return f"https://signed.test/{key}?ct={content_type}"

    def public_url(self, key: str) -> str:
        return f"https://media.niveshak.test/{key}"


def _principal() -> AdminPrincipal:
    return AdminPrincipal(id=uuid.uuid4(), email="admin@niveshak.test")


class GenerateStorageKeyTests(unittest.TestCase):
    def test_key_keeps_sanitized_stem_and_extension(self):
        key = generate_storage_key("../Team Photo.JPG")

        self.assertRegex(key, r"^Team_Photo_\d{13}_[0-9a-f]{10}\.jpg$")

    def test_blank_name_gets_placeholder_stem(self):
        self.assertTrue(generate_storage_key("///").startswith("upload_"))

    def test_concurrent_requests_never_share_a_key(self):
        with ThreadPoolExecutor(max_workers=16) as executor:
            keys = list(
                executor.map(
                    lambda _: generate_storage_key("same.png"), range(1000)
                )
            )

        self.assertEqual(len(set(keys)), 1000)


class IssueUploadTicketTests(unittest.TestCase):
    def test_issues_ticket_for_server_generated_key(self):
        storage = _FakeStorage()

        ticket = issue_upload_ticket(
            filename="team-t1-1700000000000.jpg",
            content_type="image/jpeg",
            principal=_principal(),
            storage=storage,
        )

        self.assertTrue(ticket.key.startswith("team-t1-1700000000000_"))
        self.assertTrue(ticket.key.endswith(".jpg"))
        self.assertEqual(
            ticket.public_url, f"https://media.niveshak.test/{ticket.key}"
        )
        self.assertEqual(storage.calls, [(ticket.key, "image/jpeg")])
        self.assertEqual(
            ticket.to_dict(),
            {
                "uploadUrl": ticket.upload_url,
                "publicUrl": ticket.public_url,
                "key": ticket.key,
            },
        )

    def test_unauthenticated_caller_is_rejected_before_signing(self):
        storage = _FakeStorage()

        with self.assertRaises(UnauthorizedError):
            issue_upload_ticket(
                filename="a.png",
                content_type="image/png",
                principal=None,
                storage=storage,
            )
        self.assertEqual(storage.calls, [])

    def test_missing_filename_or_content_type_is_invalid(self):
        storage = _FakeStorage()

        for filename, content_type in (
            ("", "image/png"),
            ("a.png", ""),
            ("a.png", None),
            (None, "image/png"),
            ("a.png", 42),
        ):
            with self.subTest(filename=filename, content_type=content_type):
                with self.assertRaises(InvalidInputError) as ctx:
                    issue_upload_ticket(
                        filename=filename,
                        content_type=content_type,
                        principal=_principal(),
                        storage=storage,
                    )
                self.assertEqual(
                    str(ctx.exception), "Missing filename or contentType"
                )
        self.assertEqual(storage.calls, [])

    def test_unconfigured_storage_is_an_upstream_error(self):
        with self.assertRaises(UpstreamConfigurationError):
            issue_upload_ticket(
                filename="a.png",
                content_type="image/png",
                principal=_principal(),
                storage=None,
            )

    def test_signing_failure_is_an_upstream_error(self):
        storage = _FakeStorage(error=MediaStorageError("bad credentials"))

        with self.assertRaises(UpstreamConfigurationError):
            issue_upload_ticket(
                filename="a.png",
                content_type="image/png",
                principal=_principal(),
                storage=storage,
            )


class R2MediaStorageTests(unittest.TestCase):
    def setUp(self):
        self.settings = MediaStorageSettings(
            bucket="niveshak-media",
            public_domain="https://media.niveshak.test/",
            account_id="abc123",
            access_key_id="test-access-key",
            secret_access_key="test-secret-key",
        )

    def test_endpoint_derived_from_account_id(self):
        self.assertEqual(
            self.settings.resolved_endpoint(),
            "https://abc123.r2.cloudflarestorage.com",
        )

    def test_signs_put_url_with_expiry(self):
        storage = R2MediaStorage(self.settings)

        url = storage.generate_upload_url(
            key="team-t1_1_abc.jpg", content_type="image/jpeg"
        )

        self.assertTrue(url.startswith("https://"))
        self.assertIn("abc123.r2.cloudflarestorage.com", url)
        self.assertIn("team-t1_1_abc.jpg", url)
        self.assertIn("X-Amz-Expires=900", url)
        self.assertIsNotNone(re.search(r"X-Amz-Signature=[0-9a-f]{64}", url))
        self.assertEqual(
            storage.public_url("team-t1_1_abc.jpg"),
            "https://media.niveshak.test/team-t1_1_abc.jpg",
        )


class LoadMediaStorageSettingsTests(unittest.TestCase):
    def _environ(self, **overrides):
        environ = {
            "R2_ACCOUNT_ID": "abc123",
            "R2_ACCESS_KEY_ID": "key",
            "R2_SECRET_ACCESS_KEY": "secret",
            "R2_BUCKET_NAME": "niveshak-media",
            "R2_PUBLIC_DOMAIN": "https://media.niveshak.test",
        }
        environ.update(overrides)
        return {key: value for key, value in environ.items() if value is not None}

    def test_complete_environment_builds_settings(self):
        settings = load_media_storage_settings(
            self._environ(NIVESHAK_PRESIGN_EXPIRY_SECONDS="300")
        )

        self.assertEqual(settings.bucket, "niveshak-media")
        self.assertEqual(settings.presign_expiry_seconds, 300)
        self.assertEqual(settings.region_name, "auto")

    def test_missing_credentials_disable_storage(self):
        self.assertIsNone(
            load_media_storage_settings(self._environ(R2_SECRET_ACCESS_KEY=None))
        )
        self.assertIsNone(
            load_media_storage_settings(self._environ(R2_ACCOUNT_ID=None))
        )

    def test_invalid_expiry_uses_default(self):
        settings = load_media_storage_settings(
            self._environ(NIVESHAK_PRESIGN_EXPIRY_SECONDS="soon")
        )

        self.assertEqual(settings.presign_expiry_seconds, 900)


if __name__ == "__main__":
    unittest.main()
