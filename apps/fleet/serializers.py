"""Serializers for the fleet catalog."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Cabin, ReservableUnit


class CabinSerializer(serializers.ModelSerializer):
    rateDelta = serializers.DecimalField(source="rate_delta", max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Cabin
        fields = ["id", "name", "capacity", "rateDelta"]
        read_only_fields = fields


class ReservableUnitSerializer(serializers.ModelSerializer):
    baseRate = serializers.DecimalField(source="base_rate", max_digits=10, decimal_places=2, read_only=True)
    durationDays = serializers.IntegerField(source="duration_days", read_only=True, allow_null=True)
    maxGuests = serializers.IntegerField(source="max_guests", read_only=True)

    class Meta:
        model = ReservableUnit
        fields = ["id", "kind", "name", "slug", "baseRate", "durationDays", "maxGuests"]
        read_only_fields = fields


class ReservableUnitDetailSerializer(ReservableUnitSerializer):
    cabins = serializers.SerializerMethodField()

    class Meta(ReservableUnitSerializer.Meta):
        fields = ReservableUnitSerializer.Meta.fields + ["description", "cabins"]
        read_only_fields = fields

    def get_cabins(self, obj: ReservableUnit):  # type: ignore
        active = [cabin for cabin in obj.cabins.all() if cabin.is_active]
        return CabinSerializer(active, many=True).data


class CalendarQuerySerializer(serializers.Serializer):
    month = serializers.IntegerField(min_value=1, max_value=12)
    year = serializers.IntegerField(min_value=2000, max_value=2100)


class CalendarDaySerializer(serializers.Serializer):
    """One day of a unit's month calendar."""

    date = serializers.DateField()
    isAvailable = serializers.BooleanField(source="is_available")
    reservedCount = serializers.IntegerField(source="reserved_count")
    capacity = serializers.IntegerField()
