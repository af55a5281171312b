"""FilterSet definitions for reservation listing."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Reservation


class ReservationFilterSet(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Reservation.Status.choices)
    unit = django_filters.NumberFilter(field_name="unit_id", lookup_expr="exact")
    starts_after = django_filters.DateFilter(field_name="start_date", lookup_expr="gte")
    starts_before = django_filters.DateFilter(field_name="start_date", lookup_expr="lt")

    class Meta:
        model = Reservation
        fields = ["status", "unit"]
