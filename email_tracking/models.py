# email_tracking/models.py
import secrets
import logging

from django.db import models
from django.utils import timezone

logger = logging.getLogger(__name__)


def generate_event_id():
    """16 random bytes, hex encoded."""
    return secrets.token_hex(16)


class EmailRecord(models.Model):
    STATUS_CHOICES = [
        ("sent", "Sent"),
        ("opened", "Opened"),
        ("clicked", "Clicked"),
    ]

    # Opaque identifier chosen by the sending system and embedded in tracking URLs
    id = models.CharField(primary_key=True, max_length=255)
    sent_at = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="sent")
    subject = models.CharField(max_length=998, blank=True)
    recipient_email = models.CharField(max_length=320, blank=True)

    open_count = models.PositiveIntegerField(default=0)
    click_count = models.PositiveIntegerField(default=0)
    attachment_downloads = models.PositiveIntegerField(default=0)
    attachment_opens = models.PositiveIntegerField(default=0)

    last_opened_at = models.DateTimeField(null=True, blank=True)
    last_clicked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-sent_at"]
        verbose_name = "Email Record"
        verbose_name_plural = "Email Records"
        indexes = [
            models.Index(fields=["sent_at"], name="email_record_sent_at_idx"),
            models.Index(fields=["recipient_email"], name="email_record_recipient_idx"),
        ]

    def save(self, *args, **kwargs):
        try:
            super().save(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error saving EmailRecord {self.id}: {str(e)}")
            raise

    def __str__(self):
        return f"{self.id} ({self.status})"


class OpenEvent(models.Model):
    id = models.CharField(
        primary_key=True, max_length=64, default=generate_event_id, editable=False
    )
    # Not enforced at the database level: an event may reference an email the
    # desktop app has not synced yet.
    email = models.ForeignKey(
        EmailRecord,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="opens",
    )
    recipient_email = models.CharField(max_length=320, blank=True)
    user_agent = models.TextField(blank=True)
    ip_address = models.CharField(max_length=64, blank=True)
    timestamp = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ["-timestamp"]
        indexes = [
            models.Index(
                fields=["email", "recipient_email", "timestamp"],
                name="open_event_dedup_idx",
            ),
            models.Index(fields=["timestamp"], name="open_event_timestamp_idx"),
        ]

    def __str__(self):
        return f"Open {self.email_id} by {self.recipient_email or 'unknown'}"


class ClickEvent(models.Model):
    id = models.CharField(
        primary_key=True, max_length=64, default=generate_event_id, editable=False
    )
    email = models.ForeignKey(
        EmailRecord,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="clicks",
    )
    url = models.TextField()
    recipient_email = models.CharField(max_length=320, blank=True)
    user_agent = models.TextField(blank=True)
    ip_address = models.CharField(max_length=64, blank=True)
    timestamp = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["email", "timestamp"], name="click_event_email_idx"),
        ]

    def __str__(self):
        return f"Click {self.url} in {self.email_id}"


class TrackedAttachment(models.Model):
    id = models.CharField(primary_key=True, max_length=255)
    email = models.ForeignKey(
        EmailRecord,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="attachments",
    )
    secure_token = models.CharField(max_length=255)
    original_file_name = models.CharField(max_length=255)
    tracked_file_name = models.CharField(max_length=255)
    content_type = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return f"{self.original_file_name} ({self.email_id})"


class AttachmentDownload(models.Model):
    id = models.CharField(
        primary_key=True, max_length=64, default=generate_event_id, editable=False
    )
    attachment = models.ForeignKey(
        TrackedAttachment,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="downloads",
    )
    recipient_email = models.CharField(max_length=320, blank=True)
    user_agent = models.TextField(blank=True)
    ip_address = models.CharField(max_length=64, blank=True)
    timestamp = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ["-timestamp"]

    def __str__(self):
        return f"Download {self.attachment_id}"


class Unsubscribe(models.Model):
    email = models.ForeignKey(
        EmailRecord,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="unsubscribes",
    )
    recipient_email = models.CharField(max_length=320, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        unique_together = ["email", "recipient_email"]

    def __str__(self):
        return f"{self.recipient_email or 'unknown'} from {self.email_id}"
