"""
URL configuration for mailtrack project.

Tracking routes are mounted at the root because their paths are baked into
emails that have already been sent.
"""

from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    # Django admin
    path("admin/", admin.site.urls),
    # Tracking, pages and desktop sync API
    path("", include("email_tracking.urls", namespace="email_tracking")),
]
