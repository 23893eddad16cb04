# email_tracking/urls.py
from django.conf import settings
from django.urls import path, re_path
from django.views.static import serve
from . import views

app_name = "email_tracking"

# No trailing slashes: these URLs are embedded in emails already sent.
urlpatterns = [
    # Ids are opaque: empty ids and ids containing slashes still get the pixel
    re_path(r"^track/open/(?P<email_id>.*)$", views.track_open, name="track_open"),
    path("track/click/<str:email_id>", views.track_click, name="track_click"),
    path(
        "track/attachment/<str:attachment_id>",
        views.track_attachment,
        name="track_attachment",
    ),
    path("track/unsubscribe/<str:email_id>", views.unsubscribe, name="unsubscribe"),
    path("privacy", views.privacy, name="privacy"),
    path("health", views.HealthView.as_view(), name="health"),
    # Desktop app sync
    path("api/tracking-data", views.TrackingDataView.as_view(), name="tracking_data"),
    path(
        "api/sync-tracking-data",
        views.SyncTrackingDataView.as_view(),
        name="sync_tracking_data",
    ),
    re_path(
        r"^attachments/(?P<path>.+)$",
        serve,
        {"document_root": settings.ATTACHMENTS_DIR},
        name="attachments",
    ),
]
