# email_tracking/recorders.py
"""
Bookkeeping for accepted tracking events.

Counters are incremented with ``F()`` expressions so concurrent requests for
the same email never lose an update. Email records are created on first
sight when the sending system did not register them beforehand.
"""
from django.db import transaction
from django.db.models import Case, F, Value, When
from django.utils import timezone
import logging

from .models import (
    AttachmentDownload,
    ClickEvent,
    EmailRecord,
    OpenEvent,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


def ensure_email_record(email_id, recipient_email="", now=None):
    """Get or create the EmailRecord, seeding ``sent_at`` with ``now``."""
    record, created = EmailRecord.objects.get_or_create(
        id=email_id,
        defaults={
            "sent_at": now or timezone.now(),
            "recipient_email": recipient_email or "",
        },
    )
    if created:
        logger.info(f"Email record created on first sight: {email_id}")
    return record


def _recipient_update(recipient_email):
    # Last writer wins, but an anonymous hit never erases a known recipient
    return {"recipient_email": recipient_email} if recipient_email else {}


def record_open(open_request, now=None):
    """
    Store an accepted open and bump the email's counters.

    Args:
        open_request: OpenRequest accepted by ``detection.classify``
        now: Event time (defaults to the current time)

    Returns:
        OpenEvent: The stored event
    """
    now = now or timezone.now()
    with transaction.atomic():
        ensure_email_record(open_request.email_id, open_request.recipient_email, now)
        event = OpenEvent.objects.create(
            email_id=open_request.email_id,
            recipient_email=open_request.recipient_email,
            user_agent=open_request.user_agent,
            ip_address=open_request.ip_address,
            timestamp=now,
        )
        EmailRecord.objects.filter(pk=open_request.email_id).update(
            open_count=F("open_count") + 1,
            last_opened_at=now,
            status=Case(
                When(status="sent", then=Value("opened")),
                default=F("status"),
            ),
            **_recipient_update(open_request.recipient_email),
        )

    logger.info(
        f"Email opened: {open_request.email_id} by {open_request.recipient_email}"
    )
    return event


def record_click(email_id, url, recipient_email="", user_agent="", ip_address="", now=None):
    """Store a link click and bump ``click_count``."""
    now = now or timezone.now()
    with transaction.atomic():
        ensure_email_record(email_id, recipient_email, now)
        event = ClickEvent.objects.create(
            email_id=email_id,
            url=url,
            recipient_email=recipient_email,
            user_agent=user_agent,
            ip_address=ip_address,
            timestamp=now,
        )
        EmailRecord.objects.filter(pk=email_id).update(
            click_count=F("click_count") + 1,
            last_clicked_at=now,
            status=Value("clicked"),
            **_recipient_update(recipient_email),
        )

    logger.info(f"Link clicked: {url} in email {email_id} by {recipient_email}")
    return event


def record_attachment_download(attachment, recipient_email="", user_agent="", ip_address="", now=None):
    """Store an attachment download and bump the owning email's counter."""
    now = now or timezone.now()
    with transaction.atomic():
        download = AttachmentDownload.objects.create(
            attachment_id=attachment.pk,
            recipient_email=recipient_email,
            user_agent=user_agent,
            ip_address=ip_address,
            timestamp=now,
        )
        # Downloads only count against emails that are known
        EmailRecord.objects.filter(pk=attachment.email_id).update(
            attachment_downloads=F("attachment_downloads") + 1,
        )

    logger.info(f"Attachment download: {attachment.pk}")
    return download


def record_unsubscribe(email_id, recipient_email=""):
    unsubscribe, created = Unsubscribe.objects.get_or_create(
        email_id=email_id,
        recipient_email=recipient_email or "",
    )
    if created:
        logger.info(f"Unsubscribe request: {email_id} for {recipient_email}")
    return unsubscribe
