"""Integration tests for availability and reservation API endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Reservation
from apps.bookings.services import ConflictDetector
from apps.bookings.views import ReservationViewSet
from apps.fleet.models import Cabin, ReservableUnit
from shared.infrastructure.clock import FixedClock

User = get_user_model()


class ReservationAPITests(APITestCase):
    """Covers availability, commits, conflicts and the lifecycle actions."""

    def setUp(self) -> None:
        patcher = mock.patch.object(ReservationViewSet, "clock", FixedClock(date(2026, 11, 1)))
        patcher.start()
        self.addCleanup(patcher.stop)

        self.guest = User.objects.create_user(username="guest", email="guest@example.com", password="GuestPass123")
        self.other = User.objects.create_user(username="other", email="other@example.com", password="OtherPass123")
        self.staff = User.objects.create_user(
            username="staff",
            email="staff@example.com",
            password="StaffPass123",
            is_staff=True,
        )
        self.package = ReservableUnit.objects.create(
            kind=ReservableUnit.Kind.PACKAGE,
            name="Classic Nile Journey",
            base_rate=Decimal("1000.00"),
            duration_days=5,
            max_guests=6,
        )
        self.vessel = ReservableUnit.objects.create(
            kind=ReservableUnit.Kind.VESSEL,
            name="Dahabiya Nefertari",
            base_rate=Decimal("500.00"),
            max_guests=8,
        )
        self.cabin = Cabin.objects.create(unit=self.vessel, name="Nile Suite", capacity=2)
        self.client.force_authenticate(self.guest)
        self.list_url = reverse("reservation-list")
        self.availability_url = reverse("reservation-availability")

    def _payload(self, start: date, end: date, unit=None, guests: int = 2, **extra) -> dict:
        payload = {
            "unitId": (unit or self.package).pk,
            "startDate": str(start),
            "endDate": str(end),
            "guests": guests,
        }
        payload.update(extra)
        return payload

    def _book(self, start: date, end: date, **extra):
        return self.client.post(self.list_url, self._payload(start, end, **extra), format="json")

    # ===== Availability =====

    def test_availability_returns_price(self) -> None:
        self.client.force_authenticate(None)
        response = self.client.post(
            self.availability_url,
            self._payload(date(2026, 12, 10), date(2026, 12, 15)),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["isAvailable"])
        self.assertEqual(Decimal(response.data["totalPrice"]), Decimal("2400"))
        self.assertEqual(Decimal(response.data["pricePerGuest"]), Decimal("1200"))
        self.assertEqual(response.data["durationDays"], 5)
        self.assertIsNone(response.data["code"])

    def test_availability_reports_duration_mismatch(self) -> None:
        response = self.client.post(
            self.availability_url,
            self._payload(date(2027, 3, 10), date(2027, 3, 14)),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertFalse(response.data["isAvailable"])
        self.assertEqual(response.data["code"], "DURATION_MISMATCH")
        self.assertEqual(response.data["requiredDuration"], 5)

    def test_availability_rejects_past_dates(self) -> None:
        response = self.client.post(
            self.availability_url,
            self._payload(date(2026, 10, 1), date(2026, 10, 6)),
            format="json",
        )

        self.assertFalse(response.data["isAvailable"])
        self.assertEqual(response.data["reason"], "start date in past")

    def test_availability_with_alternatives(self) -> None:
        self._book(date(2027, 3, 10), date(2027, 3, 15))

        response = self.client.post(
            self.availability_url,
            self._payload(date(2027, 3, 10), date(2027, 3, 15), includeAlternatives=True),
            format="json",
        )

        self.assertFalse(response.data["isAvailable"])
        self.assertEqual(response.data["code"], "ALREADY_BOOKED")
        self.assertEqual(len(response.data["alternatives"]), 5)
        self.assertEqual(
            response.data["alternatives"][0],
            {"startDate": "2027-03-05", "endDate": "2027-03-10"},
        )

    def test_availability_for_unknown_unit_is_404(self) -> None:
        payload = self._payload(date(2027, 3, 10), date(2027, 3, 15))
        payload["unitId"] = 999999

        response = self.client.post(self.availability_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)
        self.assertEqual(response.data["code"], "NOT_FOUND")

    def test_malformed_payload_is_400(self) -> None:
        response = self.client.post(
            self.availability_url,
            {"unitId": "abc", "startDate": "tomorrow"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "VALIDATION_ERROR")
        self.assertIn("guests", response.data["errors"])

    # ===== Commit =====

    def test_guest_can_book_package(self) -> None:
        response = self._book(
            date(2027, 3, 10),
            date(2027, 3, 15),
            guestName="Amal Hassan",
            guestEmail="amal@example.com",
            specialRequests="Vegetarian meals",
            guestDetails=[{"name": "Amal Hassan", "nationality": "EG"}],
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], "PENDING")
        self.assertEqual(Decimal(response.data["totalPrice"]), Decimal("2000"))
        self.assertEqual(response.data["guestDetails"][0]["name"], "Amal Hassan")
        reservation = Reservation.objects.get(pk=response.data["id"])
        self.assertEqual(reservation.user, self.guest)
        self.assertEqual(reservation.special_requests, "Vegetarian meals")

    def test_guest_can_book_vessel_cabin(self) -> None:
        response = self._book(date(2027, 3, 1), date(2027, 3, 4), unit=self.vessel, cabinIds=[self.cabin.pk])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["cabins"], [self.cabin.pk])

    def test_double_booking_is_409(self) -> None:
        first = self._book(date(2027, 3, 10), date(2027, 3, 15))
        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)

        second = self._book(date(2027, 3, 12), date(2027, 3, 17))

        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT, second.data)
        self.assertEqual(second.data["code"], "ALREADY_BOOKED")
        self.assertEqual(Reservation.objects.count(), 1)

    def test_lost_race_is_409(self) -> None:
        self._book(date(2027, 3, 10), date(2027, 3, 15))

        with mock.patch.object(ConflictDetector, "has_conflict", return_value=False):
            response = self._book(date(2027, 3, 10), date(2027, 3, 15))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertTrue(response.data["concurrent"])

    def test_other_rejections_are_400(self) -> None:
        response = self._book(date(2027, 3, 10), date(2027, 3, 15), guests=9)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["code"], "CAPACITY_EXCEEDED")

    def test_anonymous_cannot_book(self) -> None:
        self.client.force_authenticate(None)
        response = self._book(date(2027, 3, 10), date(2027, 3, 15))
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    # ===== Listing and lifecycle =====

    def test_guests_only_see_their_reservations(self) -> None:
        self._book(date(2027, 3, 10), date(2027, 3, 15))
        self.client.force_authenticate(self.other)
        self._book(date(2027, 4, 10), date(2027, 4, 15))

        own = self.client.get(self.list_url)
        self.client.force_authenticate(self.staff)
        everything = self.client.get(self.list_url)

        self.assertEqual(own.status_code, status.HTTP_200_OK, own.data)
        self.assertEqual(len(own.data), 1)
        self.assertEqual(len(everything.data), 2)

    def test_list_filters_by_status(self) -> None:
        booked = self._book(date(2027, 3, 10), date(2027, 3, 15))
        self._book(date(2027, 4, 10), date(2027, 4, 15))
        self.client.post(reverse("reservation-cancel", args=[booked.data["id"]]), {}, format="json")

        response = self.client.get(self.list_url, {"status": "CANCELLED"})

        self.assertEqual([row["id"] for row in response.data], [booked.data["id"]])

    def test_staff_confirms_reservation(self) -> None:
        booked = self._book(date(2027, 3, 10), date(2027, 3, 15))
        confirm_url = reverse("reservation-confirm", args=[booked.data["id"]])

        denied = self.client.post(confirm_url, {}, format="json")
        self.client.force_authenticate(self.staff)
        confirmed = self.client.post(confirm_url, {}, format="json")
        again = self.client.post(confirm_url, {}, format="json")

        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(confirmed.status_code, status.HTTP_200_OK, confirmed.data)
        self.assertEqual(confirmed.data["status"], "CONFIRMED")
        self.assertEqual(confirmed.data["totalPrice"], booked.data["totalPrice"])
        self.assertEqual(again.status_code, status.HTTP_400_BAD_REQUEST)

    def test_guest_can_cancel_and_dates_free_up(self) -> None:
        booked = self._book(date(2027, 3, 10), date(2027, 3, 15))
        cancel_url = reverse("reservation-cancel", args=[booked.data["id"]])

        response = self.client.post(cancel_url, {"reason": "Change of plans"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "CANCELLED")
        self.assertEqual(response.data["cancellationReason"], "Change of plans")
        rebook = self._book(date(2027, 3, 10), date(2027, 3, 15))
        self.assertEqual(rebook.status_code, status.HTTP_201_CREATED, rebook.data)

    def test_cannot_cancel_someone_elses_reservation(self) -> None:
        booked = self._book(date(2027, 3, 10), date(2027, 3, 15))
        self.client.force_authenticate(self.other)

        response = self.client.post(reverse("reservation-cancel", args=[booked.data["id"]]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_guest_can_modify_dates(self) -> None:
        booked = self._book(date(2027, 3, 10), date(2027, 3, 15))
        modify_url = reverse("reservation-modify", args=[booked.data["id"]])

        response = self.client.post(
            modify_url,
            {"startDate": "2027-03-12", "endDate": "2027-03-17"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["startDate"], "2027-03-12")

    def test_modify_into_booked_dates_is_409(self) -> None:
        self._book(date(2027, 3, 10), date(2027, 3, 15))
        mine = self._book(date(2027, 3, 20), date(2027, 3, 25))

        response = self.client.post(
            reverse("reservation-modify", args=[mine.data["id"]]),
            {"startDate": "2027-03-13", "endDate": "2027-03-18"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)

    def test_modifying_cancelled_reservation_is_400(self) -> None:
        booked = self._book(date(2027, 3, 10), date(2027, 3, 15))
        self.client.post(reverse("reservation-cancel", args=[booked.data["id"]]), {}, format="json")

        response = self.client.post(
            reverse("reservation-modify", args=[booked.data["id"]]),
            {"guests": 3},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["status"], "CANCELLED")
        self.assertEqual(response.data["reason"], "A CANCELLED reservation can no longer be modified")

    def test_overlong_stay_is_400(self) -> None:
        response = self._book(date(2027, 3, 1), date(2027, 9, 1), unit=self.vessel)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["code"], "VALIDATION_ERROR")
        self.assertFalse(Reservation.objects.exists())
