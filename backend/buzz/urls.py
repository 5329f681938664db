from django.conf import settings
from django.contrib import admin
from django.urls import include, path

from core.events_api import events_stream
from core.health import healthz

api_patterns = [
    path("healthz", healthz),
    path("events/stream/", events_stream, name="events_stream"),
    path("users/", include("users.urls")),
    path("bookings/", include("bookings.urls", namespace="bookings")),
    path("payments/", include("payments.urls")),
    path("rankings/", include("rankings.urls")),
    path("reviews/", include("reviews.urls")),
]

urlpatterns = [path("api/", include(api_patterns))]

if settings.ENABLE_DJANGO_ADMIN:
    urlpatterns.insert(0, path("admin/", admin.site.urls))
