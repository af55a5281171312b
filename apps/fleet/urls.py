"""URL routing for the fleet catalog."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import ReservableUnitViewSet

router = DefaultRouter()
router.register(r"units", ReservableUnitViewSet, basename="unit")

urlpatterns = [
    path("", include(router.urls)),
]
