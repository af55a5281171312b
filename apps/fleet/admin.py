"""Admin registration for the fleet catalog."""

from __future__ import annotations

from django.contrib import admin

from .models import Cabin, ReservableUnit


class CabinInline(admin.TabularInline):
    model = Cabin
    extra = 0


@admin.register(ReservableUnit)
class ReservableUnitAdmin(admin.ModelAdmin):
    list_display = ("name", "kind", "base_rate", "duration_days", "max_guests", "is_active")
    list_filter = ("kind", "is_active")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [CabinInline]


@admin.register(Cabin)
class CabinAdmin(admin.ModelAdmin):
    list_display = ("name", "unit", "capacity", "rate_delta", "is_active")
    list_filter = ("unit", "is_active")
    search_fields = ("name", "unit__name")
