import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from livewall.db import InMemoryDbClient, SubmissionStatus, UploadSource
from livewall.errors import NotFoundError, StorageError, ValidationError
from livewall.storage import InMemoryStorageClient
from livewall.submissions import PhotoFile, SubmissionService


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _photo(name: str = "photo.jpg") -> PhotoFile:
    return PhotoFile(content=b"\xff\xd8\xff", filename=name, content_type="image/jpeg")


class SubmissionServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.storage = InMemoryStorageClient()
        self.clock = FakeClock(datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc))
        self.service = SubmissionService(self.db, self.storage, clock=self.clock)

    def test_create_requires_photo_or_message(self):
        with self.assertRaises(ValidationError):
            self.service.create(None, "   ")
        with self.assertRaises(ValidationError):
            self.service.create(None, None)
        self.assertEqual(self.db.submissions, {})

    def test_create_message_only(self):
        record = self.service.create(None, "  Congrats!  ")
        self.assertEqual(record.message, "Congrats!")
        self.assertIsNone(record.photo_url)
        self.assertEqual(record.status, SubmissionStatus.PENDING)
        self.assertFalse(record.displayed)
        self.assertEqual(record.upload_source, UploadSource.PUBLIC)

    def test_create_with_photo_round_trips(self):
        record = self.service.create(
            _photo(), "hello", username=" Ana ", email="", uploaded_by="acct-1"
        )
        self.assertTrue(record.photo_url.startswith(self.storage.base_url))
        self.assertTrue(record.photo_url.endswith(".jpg"))
        self.assertEqual(self.storage.get_bytes(record.photo_url), b"\xff\xd8\xff")

        fetched = self.service.get(record.id)
        self.assertEqual(fetched.photo_url, record.photo_url)
        self.assertEqual(fetched.message, "hello")
        self.assertEqual(fetched.status, SubmissionStatus.PENDING)
        self.assertEqual(fetched.username, "Ana")
        self.assertIsNone(fetched.email)
        self.assertEqual(fetched.uploaded_by, "acct-1")

    def test_storage_failure_aborts_create(self):
        with patch.object(
            self.storage, "upload", side_effect=StorageError("bucket missing")
        ):
            with self.assertRaises(StorageError):
                self.service.create(_photo(), "hello")
        self.assertEqual(self.db.submissions, {})

    def test_create_batch_skips_failed_uploads(self):
        real_upload = self.storage.upload

        def flaky_upload(data, filename, content_type):
            if filename == "bad.png":
                raise StorageError("access denied")
            return real_upload(data, filename, content_type)

        photos = [_photo("a.jpg"), _photo("bad.png"), _photo("c.jpg")]
        with patch.object(self.storage, "upload", side_effect=flaky_upload):
            records = self.service.create_batch(photos, " set 1 ", uploaded_by="p1")

        self.assertEqual(len(records), 2)
        self.assertEqual(len(self.db.submissions), 2)
        for record in records:
            self.assertEqual(record.upload_source, UploadSource.PHOTOGRAPHER)
            self.assertEqual(record.message, "set 1")
            self.assertEqual(record.uploaded_by, "p1")

    def test_create_batch_requires_files(self):
        with self.assertRaises(ValidationError):
            self.service.create_batch([], "hi")

    def test_list_paginates_newest_first(self):
        created = [self.service.create(None, f"msg {i}") for i in range(25)]
        page = self.service.list_submissions(page=2, page_size=10)
        self.assertEqual(page.total, 25)
        self.assertEqual(page.page, 2)
        newest_first = list(reversed(created))
        self.assertEqual(
            [item.id for item in page.items], [r.id for r in newest_first[10:20]]
        )

    def test_list_filters_by_status_and_displayed(self):
        first = self.service.create(None, "one")
        second = self.service.create(None, "two")
        self.service.create(None, "three")
        self.service.transition(first.id, "approve")
        self.service.transition(second.id, "approve")
        self.service.mark_displayed(second.id)

        approved = self.service.list_submissions(status="approved")
        self.assertEqual(approved.total, 2)

        shown = self.service.list_submissions(status="APPROVED", displayed=True)
        self.assertEqual([item.id for item in shown.items], [second.id])

        hidden = self.service.list_submissions(displayed=False)
        self.assertEqual(hidden.total, 2)

    def test_list_rejects_bad_paging(self):
        with self.assertRaises(ValidationError):
            self.service.list_submissions(page=0)

    def test_past_schedule_is_activated_by_list(self):
        record = self.service.create(None, "later")
        scheduled = self.service.transition(
            record.id, "schedule", self.clock.now - timedelta(minutes=5)
        )
        self.assertEqual(scheduled.status, SubmissionStatus.SCHEDULED)

        self.service.list_submissions()
        activated = self.service.get(record.id)
        self.assertEqual(activated.status, SubmissionStatus.APPROVED)
        self.assertIsNone(activated.scheduled_for)

    def test_future_schedule_waits_for_due_time(self):
        record = self.service.create(None, "later")
        due = self.clock.now + timedelta(hours=1)
        self.service.transition(record.id, "schedule", due)

        self.service.list_submissions()
        self.assertEqual(self.service.get(record.id).status, SubmissionStatus.SCHEDULED)

        self.clock.now = due
        self.service.list_submissions()
        self.assertEqual(self.service.get(record.id).status, SubmissionStatus.APPROVED)

    def test_schedule_without_time_defaults_to_now(self):
        record = self.service.create(None, "asap")
        scheduled = self.service.transition(record.id, "schedule")
        self.assertEqual(scheduled.scheduled_for, self.clock.now)

    def test_naive_schedule_time_is_utc(self):
        record = self.service.create(None, "naive")
        scheduled = self.service.transition(
            record.id, "schedule", datetime(2026, 10, 19, 8, 30)
        )
        self.assertEqual(
            scheduled.scheduled_for, datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc)
        )

    def test_any_state_can_be_revisited(self):
        record = self.service.create(None, "x")
        self.service.transition(record.id, "schedule", self.clock.now + timedelta(days=1))
        rejected = self.service.transition(record.id, "reject")
        self.assertEqual(rejected.status, SubmissionStatus.REJECTED)
        self.assertIsNone(rejected.scheduled_for)
        approved = self.service.transition(record.id, "approve")
        self.assertEqual(approved.status, SubmissionStatus.APPROVED)

    def test_transition_errors(self):
        record = self.service.create(None, "x")
        with self.assertRaises(ValidationError):
            self.service.transition(record.id, "publish")
        with self.assertRaises(NotFoundError):
            self.service.transition("missing", "approve")
        self.assertEqual(self.service.get(record.id).status, SubmissionStatus.PENDING)

    def test_bulk_transition_ignores_unknown_ids(self):
        a = self.service.create(None, "a")
        b = self.service.create(None, "b")
        modified = self.service.bulk_transition([a.id, b.id, "nonexistent"], "approve")
        self.assertEqual(modified, 2)
        self.assertEqual(self.service.get(a.id).status, SubmissionStatus.APPROVED)
        self.assertEqual(self.service.get(b.id).status, SubmissionStatus.APPROVED)

    def test_bulk_schedule_is_due_immediately(self):
        a = self.service.create(None, "a")
        self.service.bulk_transition([a.id], "schedule")
        self.assertEqual(self.service.get(a.id).scheduled_for, self.clock.now)

    def test_bulk_transition_validates_input(self):
        with self.assertRaises(ValidationError):
            self.service.bulk_transition([], "approve")
        with self.assertRaises(ValidationError):
            self.service.bulk_transition(["a"], "delete")

    def test_mark_displayed_is_idempotent(self):
        record = self.service.create(None, "x")
        self.assertTrue(self.service.mark_displayed(record.id).displayed)
        self.assertTrue(self.service.mark_displayed(record.id).displayed)
        with self.assertRaises(NotFoundError):
            self.service.mark_displayed("missing")

    def test_delete_removes_record_and_photo(self):
        record = self.service.create(_photo(), None)
        self.service.delete(record.id)
        with self.assertRaises(NotFoundError):
            self.service.get(record.id)
        with self.assertRaises(FileNotFoundError):
            self.storage.get_bytes(record.photo_url)
        with self.assertRaises(NotFoundError):
            self.service.delete(record.id)

    def test_delete_survives_storage_failure(self):
        record = self.service.create(_photo(), None)
        with patch.object(
            self.storage, "delete", side_effect=StorageError("network down")
        ):
            with self.assertLogs("livewall.submissions", level="WARNING"):
                self.service.delete(record.id)
        with self.assertRaises(NotFoundError):
            self.service.get(record.id)


if __name__ == "__main__":
    unittest.main()
