from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api import ReviewViewSet, rating_summary

router = DefaultRouter()
router.register("", ReviewViewSet, basename="review")

urlpatterns = [
    path("summary/<int:user_id>/", rating_summary, name="review-summary"),
    path("", include(router.urls)),
]
