"""Admin registration for reservations."""

from __future__ import annotations

from django.contrib import admin

from .models import Reservation, ReservationGuest, ReservationNight


class ReservationGuestInline(admin.TabularInline):
    model = ReservationGuest
    extra = 0


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = (
        "booking_reference",
        "unit",
        "user",
        "status",
        "start_date",
        "end_date",
        "guests",
        "total_price",
        "created_at",
    )
    list_filter = ("status", "unit__kind", "start_date")
    search_fields = ("booking_reference", "unit__name", "guest_name", "guest_email")
    inlines = [ReservationGuestInline]
    # Status changes go through the command handlers so night claims stay in sync
    readonly_fields = (
        "booking_reference",
        "status",
        "base_price",
        "total_price",
        "price_per_guest",
        "confirmed_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    )


@admin.register(ReservationNight)
class ReservationNightAdmin(admin.ModelAdmin):
    list_display = ("unit", "slot", "night", "reservation")
    list_filter = ("unit",)
    date_hierarchy = "night"

    def has_add_permission(self, request):  # type: ignore
        return False

    def has_change_permission(self, request, obj=None):  # type: ignore
        return False
