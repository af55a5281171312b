"""Tests for seasonal pricing of packages and vessels."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from apps.bookings.domain.entities import CabinSnapshot, UnitKind, UnitSnapshot
from apps.bookings.domain.pricing import (
    DurationMismatch,
    compute_price,
    round_currency,
    seasonal_multiplier,
)


def package(base_rate: str = "1000", duration_days: int = 5) -> UnitSnapshot:
    return UnitSnapshot(
        id=1,
        kind=UnitKind.PACKAGE,
        base_rate=Decimal(base_rate),
        max_guests=10,
        duration_days=duration_days,
    )


def vessel(base_rate: str = "500") -> UnitSnapshot:
    return UnitSnapshot(id=2, kind=UnitKind.VESSEL, base_rate=Decimal(base_rate), max_guests=12)


class SeasonalMultiplierTests(SimpleTestCase):
    def test_peak_months(self) -> None:
        for month in (12, 1, 2):
            self.assertEqual(seasonal_multiplier(date(2027, month, 10)), Decimal("1.20"))

    def test_low_months(self) -> None:
        for month in (6, 7, 8):
            self.assertEqual(seasonal_multiplier(date(2027, month, 10)), Decimal("0.90"))

    def test_shoulder_months_are_regular(self) -> None:
        for month in (3, 4, 5, 9, 10, 11):
            self.assertEqual(seasonal_multiplier(date(2027, month, 10)), Decimal("1.00"))

    def test_rounding_is_half_up(self) -> None:
        self.assertEqual(round_currency(Decimal("2.5")), Decimal("3"))
        self.assertEqual(round_currency(Decimal("1798.49")), Decimal("1798"))


class PackagePricingTests(SimpleTestCase):
    def test_december_departure_is_peak_priced(self) -> None:
        quote = compute_price(package(), date(2026, 12, 10), date(2026, 12, 15), guests=2)

        self.assertEqual(quote.total_price, Decimal("2400"))
        self.assertEqual(quote.base_price, Decimal("1000"))
        self.assertEqual(quote.price_per_guest, Decimal("1200"))
        self.assertEqual(quote.duration_days, 5)

    def test_july_departure_is_low_priced(self) -> None:
        quote = compute_price(package(), date(2027, 7, 10), date(2027, 7, 15), guests=2)
        self.assertEqual(quote.total_price, Decimal("1800"))

    def test_march_departure_is_regular_priced(self) -> None:
        quote = compute_price(package(), date(2027, 3, 10), date(2027, 3, 15), guests=2)
        self.assertEqual(quote.total_price, Decimal("2000"))

    def test_season_follows_start_month_only(self) -> None:
        # Starts in a regular month and runs into the peak season
        quote = compute_price(package(), date(2027, 11, 28), date(2027, 12, 3), guests=2)
        self.assertEqual(quote.total_price, Decimal("2000"))

    def test_duration_mismatch_reports_required_duration(self) -> None:
        with self.assertRaises(DurationMismatch) as ctx:
            compute_price(package(duration_days=5), date(2027, 3, 10), date(2027, 3, 14), guests=2)

        self.assertEqual(ctx.exception.required_duration, 5)
        self.assertEqual(ctx.exception.requested_duration, 4)

    def test_rejects_non_positive_guests(self) -> None:
        with self.assertRaises(ValueError):
            compute_price(package(), date(2027, 3, 10), date(2027, 3, 15), guests=0)


class VesselPricingTests(SimpleTestCase):
    def setUp(self) -> None:
        self.cabins = (
            CabinSnapshot(id=1, capacity=2, rate_delta=Decimal("100")),
            CabinSnapshot(id=2, capacity=2, rate_delta=Decimal("50")),
        )

    def test_per_cabin_price_adds_cabin_deltas_once(self) -> None:
        quote = compute_price(vessel(), date(2027, 3, 1), date(2027, 3, 4), guests=4, cabins=self.cabins)

        self.assertEqual(quote.base_price, Decimal("1650"))
        self.assertEqual(quote.total_price, Decimal("1650"))
        self.assertEqual(quote.price_per_guest, Decimal("413"))

    def test_per_guest_mode_multiplies_by_party_size(self) -> None:
        quote = compute_price(
            vessel(),
            date(2027, 3, 1),
            date(2027, 3, 4),
            guests=4,
            cabins=self.cabins,
            per_guest=True,
        )
        self.assertEqual(quote.total_price, Decimal("6600"))

    def test_vessel_applies_seasonal_multiplier(self) -> None:
        quote = compute_price(vessel(), date(2027, 1, 5), date(2027, 1, 7), guests=2, cabins=self.cabins[:1])
        # (500 * 2 + 100) * 1.20
        self.assertEqual(quote.total_price, Decimal("1320"))

    def test_vessel_has_no_fixed_duration(self) -> None:
        quote = compute_price(vessel(), date(2027, 4, 1), date(2027, 4, 11), guests=1)
        self.assertEqual(quote.duration_days, 10)
        self.assertEqual(quote.total_price, Decimal("5000"))
