"""FilterSet definitions for the fleet catalog."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import ReservableUnit


class ReservableUnitFilterSet(django_filters.FilterSet):
    kind = django_filters.ChoiceFilter(choices=ReservableUnit.Kind.choices)
    min_guests = django_filters.NumberFilter(field_name="max_guests", lookup_expr="gte")

    class Meta:
        model = ReservableUnit
        fields = ["kind"]
