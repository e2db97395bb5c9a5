"""URL routing for bookable resources."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import ResourceViewSet

router = DefaultRouter()
router.register(r"", ResourceViewSet, basename="resource")

urlpatterns = [
    path("", include(router.urls)),
]
