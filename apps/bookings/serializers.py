"""Serializers for the booking API.

Request and response bodies use camelCase keys; each field maps onto the
snake_case attribute it reads or fills through ``source``.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .application.command_handlers import (
    CancelReservationCommand,
    CreateReservationCommand,
    ModifyReservationCommand,
)
from .domain.entities import AvailabilityQuery, AvailabilityResult, BookingRejection
from .models import Reservation, ReservationGuest


def _cabin_tuple(cabin_ids):
    return tuple(cabin_ids) if cabin_ids is not None else None


class AvailabilityRequestSerializer(serializers.Serializer):
    """Body of an availability check."""

    unitId = serializers.IntegerField(source="unit_id")
    startDate = serializers.DateField(source="start_date")
    endDate = serializers.DateField(source="end_date")
    guests = serializers.IntegerField()
    excludeReservationId = serializers.IntegerField(
        source="exclude_reservation_id",
        required=False,
        allow_null=True,
    )
    cabinIds = serializers.ListField(
        child=serializers.IntegerField(),
        source="cabin_ids",
        required=False,
        allow_null=True,
    )
    includeAlternatives = serializers.BooleanField(
        source="include_alternatives",
        required=False,
        default=False,
    )

    def to_query(self) -> AvailabilityQuery:
        data = self.validated_data
        return AvailabilityQuery(
            unit_id=data["unit_id"],
            start_date=data["start_date"],
            end_date=data["end_date"],
            guests=data["guests"],
            exclude_reservation_id=data.get("exclude_reservation_id"),
            cabin_ids=_cabin_tuple(data.get("cabin_ids")),
        )


class DateRangeSerializer(serializers.Serializer):
    startDate = serializers.DateField(source="start_date")
    endDate = serializers.DateField(source="end_date")


class AvailabilityResultSerializer(serializers.Serializer):
    """Read-only rendering of an AvailabilityResult."""

    isAvailable = serializers.BooleanField(source="is_available")
    totalPrice = serializers.DecimalField(source="total_price", max_digits=12, decimal_places=2)
    basePrice = serializers.DecimalField(source="base_price", max_digits=12, decimal_places=2)
    pricePerGuest = serializers.DecimalField(source="price_per_guest", max_digits=12, decimal_places=2)
    durationDays = serializers.IntegerField(source="duration_days")
    code = serializers.SerializerMethodField()
    reason = serializers.CharField()
    requiredDuration = serializers.IntegerField(source="required_duration", allow_null=True)
    cabins = serializers.ListField(child=serializers.IntegerField(), source="cabin_ids")
    alternatives = DateRangeSerializer(many=True)

    def get_code(self, result: AvailabilityResult):  # type: ignore
        return result.code.value if result.code else None


class BookingRejectionSerializer(serializers.Serializer):
    code = serializers.SerializerMethodField()
    reason = serializers.CharField()
    requiredDuration = serializers.IntegerField(source="required_duration", allow_null=True)
    concurrent = serializers.BooleanField()

    def get_code(self, rejection: BookingRejection):  # type: ignore
        return rejection.code.value


class ReservationGuestSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReservationGuest
        fields = ["name", "email", "phone", "age", "nationality"]


class ReservationCreateSerializer(serializers.Serializer):
    """Body of a booking commit."""

    unitId = serializers.IntegerField(source="unit_id")
    startDate = serializers.DateField(source="start_date")
    endDate = serializers.DateField(source="end_date")
    guests = serializers.IntegerField()
    cabinIds = serializers.ListField(
        child=serializers.IntegerField(),
        source="cabin_ids",
        required=False,
        allow_null=True,
    )
    guestName = serializers.CharField(source="guest_name", max_length=255, required=False, allow_blank=True)
    guestEmail = serializers.EmailField(source="guest_email", required=False, allow_blank=True)
    guestPhone = serializers.CharField(source="guest_phone", max_length=32, required=False, allow_blank=True)
    specialRequests = serializers.CharField(source="special_requests", required=False, allow_blank=True)
    guestDetails = ReservationGuestSerializer(source="guest_details", many=True, required=False)

    def to_command(self, user=None) -> CreateReservationCommand:
        data = self.validated_data
        return CreateReservationCommand(
            unit_id=data["unit_id"],
            start_date=data["start_date"],
            end_date=data["end_date"],
            guests=data["guests"],
            cabin_ids=_cabin_tuple(data.get("cabin_ids")),
            user_id=getattr(user, "pk", None),
            guest_name=data.get("guest_name", ""),
            guest_email=data.get("guest_email", ""),
            guest_phone=data.get("guest_phone", ""),
            special_requests=data.get("special_requests", ""),
            guest_details=tuple(dict(detail) for detail in data.get("guest_details", [])),
        )


class ReservationModifySerializer(serializers.Serializer):
    startDate = serializers.DateField(source="start_date", required=False)
    endDate = serializers.DateField(source="end_date", required=False)
    guests = serializers.IntegerField(required=False)
    cabinIds = serializers.ListField(
        child=serializers.IntegerField(),
        source="cabin_ids",
        required=False,
        allow_null=True,
    )

    def to_command(self, reservation_id: int) -> ModifyReservationCommand:
        data = self.validated_data
        return ModifyReservationCommand(
            reservation_id=reservation_id,
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            guests=data.get("guests"),
            cabin_ids=_cabin_tuple(data.get("cabin_ids")),
        )


class ReservationCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")

    def to_command(self, reservation_id: int) -> CancelReservationCommand:
        return CancelReservationCommand(
            reservation_id=reservation_id,
            reason=self.validated_data.get("reason", ""),
        )


class ReservationSerializer(serializers.ModelSerializer):
    """Detailed reservation record."""

    bookingReference = serializers.ReadOnlyField(source="booking_reference")
    unitId = serializers.ReadOnlyField(source="unit_id")
    unitName = serializers.ReadOnlyField(source="unit.name")
    cabins = serializers.SerializerMethodField()
    startDate = serializers.DateField(source="start_date", read_only=True)
    endDate = serializers.DateField(source="end_date", read_only=True)
    basePrice = serializers.DecimalField(source="base_price", max_digits=12, decimal_places=2, read_only=True)
    totalPrice = serializers.DecimalField(source="total_price", max_digits=12, decimal_places=2, read_only=True)
    pricePerGuest = serializers.DecimalField(
        source="price_per_guest", max_digits=12, decimal_places=2, read_only=True
    )
    guestName = serializers.ReadOnlyField(source="guest_name")
    guestEmail = serializers.ReadOnlyField(source="guest_email")
    guestPhone = serializers.ReadOnlyField(source="guest_phone")
    specialRequests = serializers.ReadOnlyField(source="special_requests")
    guestDetails = ReservationGuestSerializer(source="guest_details", many=True, read_only=True)
    confirmedAt = serializers.DateTimeField(source="confirmed_at", read_only=True)
    cancelledAt = serializers.DateTimeField(source="cancelled_at", read_only=True)
    cancellationReason = serializers.ReadOnlyField(source="cancellation_reason")
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Reservation
        fields = [
            "id",
            "bookingReference",
            "unitId",
            "unitName",
            "cabins",
            "startDate",
            "endDate",
            "guests",
            "status",
            "basePrice",
            "totalPrice",
            "pricePerGuest",
            "guestName",
            "guestEmail",
            "guestPhone",
            "specialRequests",
            "guestDetails",
            "confirmedAt",
            "cancelledAt",
            "cancellationReason",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields

    def get_cabins(self, obj: Reservation):  # type: ignore
        return obj.cabin_ids()
