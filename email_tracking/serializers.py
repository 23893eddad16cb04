"""
DRF serializers for the desktop app sync API.

The desktop app speaks camelCase JSON, so every field is mapped onto the
snake_case model attribute with ``source``. Writes are upserts keyed on the
``id`` the desktop app generated.
"""

from django.db import models, transaction
from django.db.models import F
from django.db.models.functions import Greatest
from rest_framework import serializers
from .models import (
    AttachmentDownload,
    ClickEvent,
    EmailRecord,
    OpenEvent,
    TrackedAttachment,
)


class UpsertListSerializer(serializers.ListSerializer):
    """Save every item, keyed on its ``id``."""

    def save(self, **kwargs):
        return [self.child.upsert(dict(item, **kwargs)) for item in self.validated_data]


class UpsertModelSerializer(serializers.ModelSerializer):
    """
    ModelSerializer whose ``upsert`` either updates or inserts by ``id``.

    ``insert_only`` serializers never touch rows that already exist, which is
    what we want for immutable events.
    """

    id = serializers.CharField(max_length=255)
    insert_only = False

    class Meta:
        list_serializer_class = UpsertListSerializer

    def upsert(self, validated_data):
        model = self.Meta.model
        pk = validated_data.pop("id")
        if self.insert_only:
            instance, _ = model.objects.get_or_create(pk=pk, defaults=validated_data)
            return instance
        instance, _ = model.objects.update_or_create(pk=pk, defaults=validated_data)
        return instance


class EmailRecordSerializer(UpsertModelSerializer):
    sentAt = serializers.DateTimeField(source="sent_at", required=False)
    subject = serializers.CharField(required=False, allow_blank=True)
    recipientEmail = serializers.CharField(
        source="recipient_email", required=False, allow_blank=True
    )
    openCount = serializers.IntegerField(source="open_count", min_value=0, required=False)
    clickCount = serializers.IntegerField(source="click_count", min_value=0, required=False)
    attachmentDownloads = serializers.IntegerField(
        source="attachment_downloads", min_value=0, required=False
    )
    attachmentOpens = serializers.IntegerField(
        source="attachment_opens", min_value=0, required=False
    )
    lastOpenedAt = serializers.DateTimeField(
        source="last_opened_at", required=False, allow_null=True
    )
    lastClickedAt = serializers.DateTimeField(
        source="last_clicked_at", required=False, allow_null=True
    )

    class Meta(UpsertModelSerializer.Meta):
        model = EmailRecord
        fields = [
            "id",
            "sentAt",
            "status",
            "subject",
            "recipientEmail",
            "openCount",
            "clickCount",
            "attachmentDownloads",
            "attachmentOpens",
            "lastOpenedAt",
            "lastClickedAt",
        ]
        extra_kwargs = {"status": {"required": False}}

    COUNTERS = ("open_count", "click_count", "attachment_downloads", "attachment_opens")
    STATUS_RANK = {"sent": 0, "opened": 1, "clicked": 2}

    def upsert(self, validated_data):
        """
        Create the record, or merge the desktop copy into the existing row.

        The tracking endpoints own the counters, so a stale copy can raise them
        but never lower them. ``sent_at`` is fixed once the record exists and
        ``status`` only moves forward.
        """
        pk = validated_data.pop("id")
        with transaction.atomic():
            instance, created = EmailRecord.objects.select_for_update().get_or_create(
                pk=pk, defaults=validated_data
            )
            if created:
                return instance

            validated_data.pop("sent_at", None)
            updates = {
                field: Greatest(
                    F(field),
                    validated_data.pop(field),
                    output_field=models.PositiveIntegerField(),
                )
                for field in self.COUNTERS
                if field in validated_data
            }

            new_status = validated_data.pop("status", None)
            if new_status and self.STATUS_RANK[new_status] > self.STATUS_RANK[instance.status]:
                updates["status"] = new_status

            for field in ("last_opened_at", "last_clicked_at"):
                value = validated_data.pop(field, None)
                current = getattr(instance, field)
                if value is not None and (current is None or value > current):
                    updates[field] = value

            updates.update(validated_data)
            if updates:
                EmailRecord.objects.filter(pk=pk).update(**updates)
                instance.refresh_from_db()
        return instance


class EventSerializer(UpsertModelSerializer):
    """Common fields of open, click and download events."""

    insert_only = True

    recipientEmail = serializers.CharField(
        source="recipient_email", required=False, allow_blank=True, allow_null=True
    )
    userAgent = serializers.CharField(
        source="user_agent", required=False, allow_blank=True
    )
    ipAddress = serializers.CharField(
        source="ip_address", required=False, allow_blank=True
    )
    timestamp = serializers.DateTimeField()

    def validate_recipientEmail(self, value):
        # Older desktop builds send null when the recipient is unknown
        return value or ""


class OpenEventSerializer(EventSerializer):
    emailId = serializers.CharField(source="email_id", max_length=255)

    class Meta(EventSerializer.Meta):
        model = OpenEvent
        fields = ["id", "emailId", "recipientEmail", "userAgent", "ipAddress", "timestamp"]


class ClickEventSerializer(EventSerializer):
    emailId = serializers.CharField(source="email_id", max_length=255)
    url = serializers.CharField(allow_blank=True)

    class Meta(EventSerializer.Meta):
        model = ClickEvent
        fields = [
            "id",
            "emailId",
            "url",
            "recipientEmail",
            "userAgent",
            "ipAddress",
            "timestamp",
        ]


class TrackedAttachmentSerializer(UpsertModelSerializer):
    emailId = serializers.CharField(source="email_id", max_length=255)
    secureToken = serializers.CharField(source="secure_token", max_length=255)
    originalFileName = serializers.CharField(source="original_file_name", max_length=255)
    trackedFileName = serializers.CharField(source="tracked_file_name", max_length=255)
    contentType = serializers.CharField(
        source="content_type", max_length=255, required=False, allow_blank=True
    )

    class Meta(UpsertModelSerializer.Meta):
        model = TrackedAttachment
        fields = [
            "id",
            "emailId",
            "secureToken",
            "originalFileName",
            "trackedFileName",
            "contentType",
        ]


class AttachmentDownloadSerializer(EventSerializer):
    attachmentId = serializers.CharField(source="attachment_id", max_length=255)

    class Meta(EventSerializer.Meta):
        model = AttachmentDownload
        fields = [
            "id",
            "attachmentId",
            "recipientEmail",
            "userAgent",
            "ipAddress",
            "timestamp",
        ]


# Payload key -> serializer, in dependency order
SYNC_SERIALIZERS = [
    ("emailTracking", EmailRecordSerializer),
    ("emailOpens", OpenEventSerializer),
    ("emailClicks", ClickEventSerializer),
    ("attachmentTracking", TrackedAttachmentSerializer),
    ("attachmentDownloads", AttachmentDownloadSerializer),
]
