# email_tracking/views.py
from urllib.parse import unquote
import logging

from django.conf import settings
from django.core.exceptions import DisallowedRedirect
from django.db import transaction
from django.http import FileResponse, HttpResponseBadRequest, HttpResponseNotFound, HttpResponseRedirect
from django.shortcuts import render
from django.utils import timezone
from django.views.decorators.http import require_GET
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .detection import (
    OpenRequest,
    TrackingPolicy,
    classify,
    get_sent_at,
    is_too_soon_after_send,
)
from .models import AttachmentDownload, ClickEvent, EmailRecord, OpenEvent, TrackedAttachment
from .recorders import (
    record_attachment_download,
    record_click,
    record_open,
    record_unsubscribe,
)
from .serializers import SYNC_SERIALIZERS
from .utils import get_client_ip, get_user_agent, pixel_response

logger = logging.getLogger(__name__)


def _sent_too_recently(email_id, now):
    return is_too_soon_after_send(
        get_sent_at(email_id), now, TrackingPolicy.from_settings()
    )


@require_GET
def track_open(request, email_id):
    """Tracking pixel. The response never depends on whether the open counted."""
    open_request = OpenRequest(
        email_id=email_id,
        recipient_email=request.GET.get("r", ""),
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request),
    )
    now = timezone.now()

    try:
        decision = classify(open_request, now=now)
        if decision.accept:
            record_open(open_request, now=now)
        else:
            logger.info(
                f"Open ignored for {email_id} ({decision.reason}): "
                f"ua={open_request.user_agent!r} ip={open_request.ip_address!r}"
            )
    except Exception:
        logger.exception(f"Error tracking open for {email_id}")

    return pixel_response()


@require_GET
def track_click(request, email_id):
    """Record a link click and redirect to the original URL."""
    url = request.GET.get("url", "")
    recipient_email = request.GET.get("r", "")
    if not url:
        return HttpResponseBadRequest("Invalid URL")

    target = unquote(url)
    try:
        response = HttpResponseRedirect(target)
    except DisallowedRedirect:
        logger.warning(f"Refused redirect to {target!r} from email {email_id}")
        return HttpResponseBadRequest("Invalid URL")

    now = timezone.now()
    try:
        if _sent_too_recently(email_id, now):
            logger.info(f"Instant click ignored for {email_id} - likely scanner")
        else:
            record_click(
                email_id,
                target,
                recipient_email=recipient_email,
                user_agent=get_user_agent(request),
                ip_address=get_client_ip(request),
                now=now,
            )
    except Exception:
        logger.exception(f"Error tracking click for {email_id}")

    return response


@require_GET
def track_attachment(request, attachment_id):
    """Serve a tracked attachment, recording the download."""
    token = request.GET.get("token", "")
    try:
        attachment = TrackedAttachment.objects.filter(
            pk=attachment_id, secure_token=token
        ).first()
    except Exception:
        logger.exception(f"Error looking up attachment {attachment_id}")
        attachment = None
    if attachment is None:
        return HttpResponseNotFound("Attachment not found or invalid token")

    now = timezone.now()
    try:
        if _sent_too_recently(attachment.email_id, now):
            logger.info(f"Instant download ignored for {attachment_id} - likely scanner")
        else:
            record_attachment_download(
                attachment,
                recipient_email=request.GET.get("r", ""),
                user_agent=get_user_agent(request),
                ip_address=get_client_ip(request),
                now=now,
            )
    except Exception:
        logger.exception(f"Error tracking attachment download {attachment_id}")

    attachments_dir = settings.ATTACHMENTS_DIR.resolve()
    file_path = (attachments_dir / attachment.tracked_file_name).resolve()
    if attachments_dir not in file_path.parents or not file_path.is_file():
        return HttpResponseNotFound("File not found")

    return FileResponse(
        open(file_path, "rb"),
        as_attachment=True,
        filename=attachment.original_file_name,
        content_type=attachment.content_type or "application/octet-stream",
    )


@require_GET
def unsubscribe(request, email_id):
    recipient_email = request.GET.get("r", "")
    try:
        record_unsubscribe(email_id, recipient_email)
    except Exception:
        logger.exception(f"Error recording unsubscribe for {email_id}")

    context = {
        "recipient_email": recipient_email,
        "date": timezone.now(),
    }
    return render(request, "email_tracking/unsubscribe.html", context)


@require_GET
def privacy(request):
    return render(request, "email_tracking/privacy.html")


class TrackingDataView(APIView):
    """Everything the desktop app needs to rebuild its tracking views."""

    def get(self, request):
        querysets = {
            "emailTracking": EmailRecord.objects.all(),
            "emailOpens": OpenEvent.objects.all(),
            "emailClicks": ClickEvent.objects.all(),
            "attachmentTracking": TrackedAttachment.objects.all(),
            "attachmentDownloads": AttachmentDownload.objects.all(),
        }
        data = {
            key: serializer_class(querysets[key], many=True).data
            for key, serializer_class in SYNC_SERIALIZERS
        }
        return Response(data)


class SyncTrackingDataView(APIView):
    """
    Upsert the desktop app's copy of the tracking data.

    Collections missing from the payload are left untouched. Email records and
    attachments are updated in place; events are only inserted when their id
    is new, so replaying a sync never duplicates them.
    """

    def post(self, request):
        if not isinstance(request.data, dict):
            return Response(
                {"error": "Expected an object of collections"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        valid_serializers = []
        errors = {}
        for key, serializer_class in SYNC_SERIALIZERS:
            if key not in request.data:
                continue
            serializer = serializer_class(data=request.data[key], many=True)
            if serializer.is_valid():
                valid_serializers.append(serializer)
            else:
                errors[key] = serializer.errors

        if errors:
            return Response(errors, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            for serializer in valid_serializers:
                serializer.save()

        logger.info(
            "Tracking data synced: "
            + ", ".join(f"{s.child.Meta.model.__name__}={len(s.validated_data)}" for s in valid_serializers)
        )
        return Response({"success": True})


class HealthView(APIView):
    def get(self, request):
        return Response({
            "status": "ok",
            "timestamp": timezone.now().isoformat(),
            "data": {
                "emails": EmailRecord.objects.count(),
                "opens": OpenEvent.objects.count(),
                "clicks": ClickEvent.objects.count(),
                "attachments": TrackedAttachment.objects.count(),
                "downloads": AttachmentDownload.objects.count(),
            },
        })
