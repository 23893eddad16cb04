# email_tracking/utils.py
import base64

from django.conf import settings
from django.http import HttpResponse

# 1x1 transparent GIF (42 bytes)
TRANSPARENT_GIF = base64.b64decode(
    "R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7"
)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def pixel_response():
    """The same bytes and headers for every pixel request, counted or not."""
    response = HttpResponse(TRANSPARENT_GIF, content_type="image/gif")
    response["Content-Length"] = str(len(TRANSPARENT_GIF))
    for header, value in NO_CACHE_HEADERS.items():
        response[header] = value
    return response


def get_client_ip(request):
    """
    Resolve the client address of a request.

    Behind a reverse proxy the first ``X-Forwarded-For`` entry is the
    recipient; ``REMOTE_ADDR`` would be the proxy itself.
    """
    if settings.EMAIL_TRACKING.get("TRUST_PROXY"):
        forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR", "")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR") or ""


def get_user_agent(request):
    return request.META.get("HTTP_USER_AGENT", "")
