from datetime import timedelta
import threading

from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from email_tracking.detection import OpenRequest
from email_tracking.models import (
    AttachmentDownload,
    EmailRecord,
    OpenEvent,
    TrackedAttachment,
    Unsubscribe,
    generate_event_id,
)
from email_tracking.recorders import (
    ensure_email_record,
    record_attachment_download,
    record_click,
    record_open,
    record_unsubscribe,
)


class EnsureEmailRecordTests(TestCase):
    def test_creates_record_seeded_with_now(self):
        now = timezone.now()

        record = ensure_email_record("fresh", "jane@example.com", now=now)

        self.assertEqual(record.sent_at, now)
        self.assertEqual(record.open_count, 0)
        self.assertEqual(record.click_count, 0)
        self.assertEqual(record.status, "sent")
        self.assertEqual(record.recipient_email, "jane@example.com")

    def test_existing_record_untouched(self):
        sent_at = timezone.now() - timedelta(days=1)
        EmailRecord.objects.create(id="known", sent_at=sent_at, open_count=3)

        record = ensure_email_record("known", "other@example.com")

        self.assertEqual(record.sent_at, sent_at)
        self.assertEqual(record.open_count, 3)
        self.assertEqual(EmailRecord.objects.count(), 1)


class RecordOpenTests(TestCase):
    def setUp(self):
        self.now = timezone.now()

    def test_counter_grows_by_number_of_opens(self):
        EmailRecord.objects.create(id="e1", open_count=7)

        for i in range(5):
            record_open(
                OpenRequest(email_id="e1", recipient_email=f"r{i}@example.com"),
                now=self.now + timedelta(seconds=i),
            )

        record = EmailRecord.objects.get(pk="e1")
        self.assertEqual(record.open_count, 12)
        self.assertEqual(record.last_opened_at, self.now + timedelta(seconds=4))
        self.assertEqual(OpenEvent.objects.filter(email_id="e1").count(), 5)

    def test_clicked_status_is_kept(self):
        EmailRecord.objects.create(id="e1", status="clicked")

        record_open(OpenRequest(email_id="e1"), now=self.now)

        self.assertEqual(EmailRecord.objects.get(pk="e1").status, "clicked")

    def test_event_ids_are_unique_hex(self):
        ids = {generate_event_id() for _ in range(100)}

        self.assertEqual(len(ids), 100)
        for event_id in ids:
            self.assertEqual(len(event_id), 32)
            int(event_id, 16)

    def test_anonymous_open_keeps_known_recipient(self):
        EmailRecord.objects.create(id="e1", recipient_email="jane@example.com")

        record_open(OpenRequest(email_id="e1"), now=self.now)

        self.assertEqual(EmailRecord.objects.get(pk="e1").recipient_email, "jane@example.com")


class ConcurrentOpenTests(TransactionTestCase):
    """Opens recorded from parallel requests against the same email."""

    workers = 8

    def setUp(self):
        if connection.vendor == "sqlite" and connection.is_in_memory_db():
            self.skipTest("in-memory SQLite cannot be shared between threads")

    def test_counter_grows_by_number_of_concurrent_opens(self):
        EmailRecord.objects.create(id="e1", open_count=3)
        barrier = threading.Barrier(self.workers)
        errors = []

        def open_email(i):
            try:
                barrier.wait()
                record_open(OpenRequest(email_id="e1", recipient_email=f"r{i}@example.com"))
            except Exception as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [
            threading.Thread(target=open_email, args=(i,)) for i in range(self.workers)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        record = EmailRecord.objects.get(pk="e1")
        self.assertEqual(record.open_count, 3 + self.workers)
        self.assertEqual(record.status, "opened")
        self.assertEqual(OpenEvent.objects.filter(email_id="e1").count(), self.workers)

class OtherRecorderTests(TestCase):
    def test_record_click_creates_record(self):
        record_click("c1", "https://example.com", recipient_email="jane@example.com")

        record = EmailRecord.objects.get(pk="c1")
        self.assertEqual(record.click_count, 1)
        self.assertEqual(record.recipient_email, "jane@example.com")

    def test_record_download_for_unknown_email(self):
        attachment = TrackedAttachment.objects.create(
            id="a1",
            email_id="not-synced",
            secure_token="t",
            original_file_name="a.pdf",
            tracked_file_name="a.pdf",
        )

        record_attachment_download(attachment, user_agent="Mozilla/5.0 (X11)")

        self.assertEqual(AttachmentDownload.objects.count(), 1)
        self.assertFalse(EmailRecord.objects.filter(pk="not-synced").exists())

    def test_record_unsubscribe_once(self):
        record_unsubscribe("u1", "jane@example.com")
        record_unsubscribe("u1", "jane@example.com")
        record_unsubscribe("u1", "")

        self.assertEqual(Unsubscribe.objects.filter(email_id="u1").count(), 2)
