from django.contrib import admin
from .models import (
    AttachmentDownload,
    ClickEvent,
    EmailRecord,
    OpenEvent,
    TrackedAttachment,
    Unsubscribe,
)


@admin.register(EmailRecord)
class EmailRecordAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "recipient_email",
        "status",
        "sent_at",
        "open_count",
        "click_count",
        "attachment_downloads",
        "last_opened_at",
    )
    list_filter = ("status",)
    search_fields = ("id", "recipient_email", "subject")
    # Counters only move through the tracking endpoints
    readonly_fields = (
        "open_count",
        "click_count",
        "attachment_downloads",
        "attachment_opens",
        "last_opened_at",
        "last_clicked_at",
    )


@admin.register(OpenEvent)
class OpenEventAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "email_id",
        "recipient_email",
        "ip_address",
        "user_agent",
        "timestamp",
    )
    search_fields = ("email__id", "recipient_email", "ip_address")
    date_hierarchy = "timestamp"


@admin.register(ClickEvent)
class ClickEventAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "email_id",
        "url",
        "recipient_email",
        "timestamp",
    )
    search_fields = ("email__id", "url", "recipient_email")


@admin.register(TrackedAttachment)
class TrackedAttachmentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "email_id",
        "original_file_name",
        "content_type",
    )


@admin.register(AttachmentDownload)
class AttachmentDownloadAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "attachment_id",
        "ip_address",
        "timestamp",
    )


@admin.register(Unsubscribe)
class UnsubscribeAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "email_id",
        "recipient_email",
        "created_at",
    )
