"""
Test suite for the desktop app sync API and health check.

Tests cover:
- Reading every collection with camelCase fields
- Upserting records and attachments, inserting events only once
- Validation errors
- Health counters
"""

from datetime import timedelta

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from email_tracking.models import (
    AttachmentDownload,
    ClickEvent,
    EmailRecord,
    OpenEvent,
    TrackedAttachment,
)


class TrackingDataAPITest(APITestCase):
    """Test cases for GET /api/tracking-data."""

    def setUp(self):
        self.sent_at = timezone.now() - timedelta(hours=2)
        EmailRecord.objects.create(
            id="e1",
            sent_at=self.sent_at,
            recipient_email="jane@example.com",
            open_count=2,
        )
        OpenEvent.objects.create(
            id="o1",
            email_id="e1",
            recipient_email="jane@example.com",
            user_agent="Mozilla/5.0 (X11; Linux x86_64)",
            ip_address="203.0.113.7",
        )
        ClickEvent.objects.create(id="c1", email_id="e1", url="https://example.com")
        TrackedAttachment.objects.create(
            id="a1",
            email_id="e1",
            secure_token="tok",
            original_file_name="Quote.pdf",
            tracked_file_name="a1.pdf",
        )
        AttachmentDownload.objects.create(id="d1", attachment_id="a1")

    def test_returns_all_collections(self):
        response = self.client.get(reverse("email_tracking:tracking_data"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            set(response.data),
            {"emailTracking", "emailOpens", "emailClicks", "attachmentTracking", "attachmentDownloads"},
        )

    def test_camel_case_fields(self):
        response = self.client.get(reverse("email_tracking:tracking_data"))

        record = response.data["emailTracking"][0]
        self.assertEqual(record["id"], "e1")
        self.assertEqual(record["openCount"], 2)
        self.assertEqual(record["recipientEmail"], "jane@example.com")
        self.assertIn("sentAt", record)
        self.assertIsNone(record["lastOpenedAt"])

        open_event = response.data["emailOpens"][0]
        self.assertEqual(open_event["emailId"], "e1")
        self.assertEqual(open_event["ipAddress"], "203.0.113.7")

        self.assertEqual(response.data["emailClicks"][0]["url"], "https://example.com")
        self.assertEqual(response.data["attachmentTracking"][0]["secureToken"], "tok")
        self.assertEqual(response.data["attachmentDownloads"][0]["attachmentId"], "a1")


class SyncTrackingDataAPITest(APITestCase):
    """Test cases for POST /api/sync-tracking-data."""

    def setUp(self):
        self.url = reverse("email_tracking:sync_tracking_data")

    def test_registers_emails_from_desktop(self):
        data = {
            "emailTracking": [
                {
                    "id": "e1",
                    "sentAt": "2026-10-01T09:00:00Z",
                    "subject": "Quarterly report",
                    "recipientEmail": "jane@example.com",
                    "status": "sent",
                }
            ]
        }

        response = self.client.post(self.url, data, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"success": True})
        record = EmailRecord.objects.get(pk="e1")
        self.assertEqual(record.subject, "Quarterly report")
        self.assertEqual(record.sent_at.isoformat(), "2026-10-01T09:00:00+00:00")
        self.assertEqual(record.open_count, 0)

    def test_updates_existing_email(self):
        sent_at = timezone.now() - timedelta(days=1)
        EmailRecord.objects.create(
            id="e1", subject="Draft", sent_at=sent_at, open_count=5, status="opened"
        )

        data = {
            "emailTracking": [
                {
                    "id": "e1",
                    "subject": "Final",
                    "sentAt": timezone.now().isoformat(),
                    "openCount": 1,
                    "clickCount": 2,
                    "status": "sent",
                }
            ]
        }
        response = self.client.post(self.url, data, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        record = EmailRecord.objects.get(pk="e1")
        self.assertEqual(record.subject, "Final")
        # A stale desktop copy never lowers counters or moves the send time
        self.assertEqual(record.open_count, 5)
        self.assertEqual(record.click_count, 2)
        self.assertEqual(record.sent_at, sent_at)
        self.assertEqual(record.status, "opened")
        self.assertEqual(EmailRecord.objects.count(), 1)

    def test_events_inserted_once(self):
        data = {
            "emailOpens": [
                {
                    "id": "o1",
                    "emailId": "e1",
                    "recipientEmail": None,
                    "userAgent": "Mozilla/5.0 (X11; Linux x86_64)",
                    "ipAddress": "198.51.100.4",
                    "timestamp": "2026-10-01T09:05:00Z",
                }
            ]
        }

        self.client.post(self.url, data, format="json")
        data["emailOpens"][0]["ipAddress"] = "198.51.100.99"
        self.client.post(self.url, data, format="json")

        self.assertEqual(OpenEvent.objects.count(), 1)
        event = OpenEvent.objects.get(pk="o1")
        self.assertEqual(event.ip_address, "198.51.100.4")
        self.assertEqual(event.recipient_email, "")

    def test_attachments_and_downloads(self):
        data = {
            "attachmentTracking": [
                {
                    "id": "a1",
                    "emailId": "e1",
                    "secureToken": "tok",
                    "originalFileName": "Quote.pdf",
                    "trackedFileName": "a1.pdf",
                    "contentType": "application/pdf",
                }
            ],
            "attachmentDownloads": [
                {"id": "d1", "attachmentId": "a1", "timestamp": "2026-10-01T10:00:00Z"}
            ],
            "emailClicks": [
                {
                    "id": "c1",
                    "emailId": "e1",
                    "url": "https://example.com",
                    "timestamp": "2026-10-01T10:01:00Z",
                }
            ],
        }

        response = self.client.post(self.url, data, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(TrackedAttachment.objects.get(pk="a1").secure_token, "tok")
        self.assertTrue(AttachmentDownload.objects.filter(pk="d1").exists())
        self.assertTrue(ClickEvent.objects.filter(pk="c1").exists())

    def test_invalid_payload_rejected_without_writes(self):
        data = {
            "emailTracking": [{"id": "e1"}],
            "emailOpens": [{"id": "o1", "emailId": "e1"}],
        }

        response = self.client.post(self.url, data, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("emailOpens", response.data)
        self.assertFalse(EmailRecord.objects.exists())

    def test_negative_counter_rejected(self):
        data = {"emailTracking": [{"id": "e1", "openCount": -1}]}

        response = self.client.post(self.url, data, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_object_payload_rejected(self):
        response = self.client.post(self.url, [], format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_empty_payload_is_noop(self):
        response = self.client.post(self.url, {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(EmailRecord.objects.exists())


class HealthAPITest(APITestCase):
    """Test cases for GET /health."""

    def test_health_counts(self):
        EmailRecord.objects.create(id="e1")
        OpenEvent.objects.create(email_id="e1")

        response = self.client.get(reverse("email_tracking:health"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "ok")
        self.assertIn("timestamp", response.data)
        self.assertEqual(
            response.data["data"],
            {"emails": 1, "opens": 1, "clicks": 0, "attachments": 0, "downloads": 0},
        )
