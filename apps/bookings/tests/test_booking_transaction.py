"""Tests for the booking write path and the reservation lifecycle."""

from __future__ import annotations

import threading
import unittest
from datetime import date
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError, connection
from django.test import TestCase, TransactionTestCase

from apps.bookings.application.command_handlers import (
    CancelReservationCommand,
    CancelReservationHandler,
    ConfirmReservationCommand,
    ConfirmReservationHandler,
    CreateReservationCommand,
    CreateReservationHandler,
    ModifyReservationCommand,
    ModifyReservationHandler,
)
from apps.bookings.domain.entities import (
    BookingRejection,
    InvalidTransition,
    ReasonCode,
    ReservationNotFound,
    ReservationNotModifiable,
    UnitNotFound,
)
from apps.bookings.domain.events import ReservationCancelled, ReservationCreated
from apps.bookings.models import Reservation, ReservationNight
from apps.bookings.services import ConflictDetector
from apps.fleet.models import Cabin, ReservableUnit
from shared.application.message_bus import event_bus
from shared.infrastructure.clock import FixedClock

TODAY = date(2026, 11, 1)


class BookingTestCase(TestCase):
    def setUp(self) -> None:
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
        self.cabin_a = Cabin.objects.create(unit=self.vessel, name="A", capacity=2)
        self.cabin_b = Cabin.objects.create(unit=self.vessel, name="B", capacity=2)
        self.clock = FixedClock(TODAY)
        self.create_handler = CreateReservationHandler(clock=self.clock)

    def _create(self, unit, start, end, guests=2, **extra):
        return self.create_handler.handle(
            CreateReservationCommand(unit_id=unit.pk, start_date=start, end_date=end, guests=guests, **extra)
        )


class BookingTransactionTests(BookingTestCase):
    def test_commit_creates_pending_reservation_with_frozen_prices(self) -> None:
        reservation = self._create(
            self.package,
            date(2026, 12, 10),
            date(2026, 12, 15),
            guest_name="Amal Hassan",
            guest_email="amal@example.com",
            guest_details=({"name": "Amal Hassan", "age": 34}, {"name": "Omar Hassan"}),
        )

        self.assertIsInstance(reservation, Reservation)
        self.assertEqual(reservation.status, Reservation.Status.PENDING)
        self.assertEqual(reservation.total_price, Decimal("2400"))
        self.assertEqual(reservation.price_per_guest, Decimal("1200"))
        self.assertTrue(reservation.booking_reference.startswith("PACKAGE-"))
        self.assertEqual(reservation.guest_details.count(), 2)
        self.assertEqual(
            ReservationNight.objects.filter(reservation=reservation, slot="unit").count(),
            5,
        )

    def test_vessel_commit_claims_each_cabin_night(self) -> None:
        reservation = self._create(self.vessel, date(2027, 3, 1), date(2027, 3, 4), guests=4)

        self.assertEqual(reservation.cabin_ids(), [self.cabin_a.pk, self.cabin_b.pk])
        self.assertTrue(reservation.booking_reference.startswith("VESSEL-"))
        self.assertEqual(ReservationNight.objects.filter(reservation=reservation).count(), 6)

    def test_created_event_is_published_after_commit(self) -> None:
        received = []
        handler = received.append
        event_bus.subscribe(ReservationCreated, handler)
        self.addCleanup(event_bus.unsubscribe, ReservationCreated, handler)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            reservation = self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))
            self.assertEqual(received, [])

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(len(received), 1)
        self.assertEqual(received[0].reservation_id, reservation.pk)
        self.assertEqual(received[0].total_price, Decimal("2000"))

    def test_failing_subscriber_does_not_stop_delivery(self) -> None:
        def broken(event):
            raise RuntimeError("mail server down")

        received = []
        event_bus.subscribe(ReservationCreated, broken)
        self.addCleanup(event_bus.unsubscribe, ReservationCreated, broken)
        event_bus.subscribe(ReservationCreated, received.append)
        self.addCleanup(event_bus.unsubscribe, ReservationCreated, received.append)

        with self.assertLogs("shared.application.message_bus", level="ERROR"):
            with self.captureOnCommitCallbacks(execute=True):
                reservation = self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))

        self.assertEqual([event.aggregate_id for event in received], [reservation.pk])

    def test_overlapping_commit_is_rejected(self) -> None:
        self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))

        outcome = self._create(self.package, date(2027, 3, 12), date(2027, 3, 17))

        self.assertIsInstance(outcome, BookingRejection)
        self.assertEqual(outcome.code, ReasonCode.ALREADY_BOOKED)
        self.assertFalse(outcome.concurrent)
        self.assertEqual(Reservation.objects.count(), 1)

    def test_back_to_back_commits_are_allowed(self) -> None:
        first = self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))
        second = self._create(self.package, date(2027, 3, 15), date(2027, 3, 20))

        self.assertIsInstance(first, Reservation)
        self.assertIsInstance(second, Reservation)

    def test_lost_race_is_reported_as_concurrent_conflict(self) -> None:
        self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))

        # The stale read sees no conflict; the night claims still collide
        with mock.patch.object(ConflictDetector, "has_conflict", return_value=False):
            outcome = self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))

        self.assertIsInstance(outcome, BookingRejection)
        self.assertEqual(outcome.code, ReasonCode.ALREADY_BOOKED)
        self.assertTrue(outcome.concurrent)
        self.assertEqual(Reservation.objects.count(), 1)

    def test_lost_cabin_race_leaves_no_partial_reservation(self) -> None:
        self._create(self.vessel, date(2027, 3, 1), date(2027, 3, 4), guests=2, cabin_ids=(self.cabin_a.pk,))

        with mock.patch.object(ConflictDetector, "busy_cabin_ids", return_value=set()):
            outcome = self._create(
                self.vessel,
                date(2027, 3, 2),
                date(2027, 3, 5),
                guests=2,
                cabin_ids=(self.cabin_a.pk,),
            )

        self.assertTrue(outcome.concurrent)
        self.assertEqual(Reservation.objects.count(), 1)
        self.assertEqual(ReservationNight.objects.count(), 3)

    def test_rejections_carry_reason_codes(self) -> None:
        mismatch = self._create(self.package, date(2027, 3, 10), date(2027, 3, 14))
        past = self._create(self.package, date(2026, 10, 1), date(2026, 10, 6))
        crowd = self._create(self.package, date(2027, 3, 10), date(2027, 3, 15), guests=7)

        self.assertEqual(mismatch.code, ReasonCode.DURATION_MISMATCH)
        self.assertEqual(mismatch.required_duration, 5)
        self.assertEqual(past.code, ReasonCode.VALIDATION_ERROR)
        self.assertEqual(crowd.code, ReasonCode.CAPACITY_EXCEEDED)
        self.assertFalse(Reservation.objects.exists())

    def test_overlong_stay_writes_nothing(self) -> None:
        outcome = self._create(self.vessel, TODAY, date(2126, 11, 1), guests=4)

        self.assertIsInstance(outcome, BookingRejection)
        self.assertEqual(outcome.code, ReasonCode.VALIDATION_ERROR)
        self.assertEqual(outcome.reason, "stay longer than 90 nights")
        self.assertFalse(Reservation.objects.exists())
        self.assertFalse(ReservationNight.objects.exists())

    def test_unknown_unit_raises(self) -> None:
        with self.assertRaises(UnitNotFound):
            self.create_handler.handle(
                CreateReservationCommand(
                    unit_id=999999,
                    start_date=date(2027, 3, 10),
                    end_date=date(2027, 3, 15),
                    guests=2,
                )
            )

    def test_storage_errors_propagate(self) -> None:
        with mock.patch.object(Reservation.objects, "create", side_effect=DatabaseError("connection lost")):
            with self.assertLogs("apps.bookings.application.command_handlers", level="ERROR"):
                with self.assertRaises(DatabaseError):
                    self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))

        self.assertFalse(Reservation.objects.exists())

    def test_confirm_keeps_price(self) -> None:
        reservation = self._create(self.package, date(2026, 12, 10), date(2026, 12, 15))

        confirmed = ConfirmReservationHandler().handle(ConfirmReservationCommand(reservation.pk))

        self.assertEqual(confirmed.status, Reservation.Status.CONFIRMED)
        self.assertIsNotNone(confirmed.confirmed_at)
        confirmed.refresh_from_db()
        self.assertEqual(confirmed.total_price, Decimal("2400"))

    def test_confirm_twice_is_invalid(self) -> None:
        reservation = self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))
        ConfirmReservationHandler().handle(ConfirmReservationCommand(reservation.pk))

        with self.assertRaises(InvalidTransition):
            ConfirmReservationHandler().handle(ConfirmReservationCommand(reservation.pk))

    def test_cancel_releases_nights(self) -> None:
        reservation = self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))
        received = []
        event_bus.subscribe(ReservationCancelled, received.append)
        self.addCleanup(event_bus.unsubscribe, ReservationCancelled, received.append)

        with self.captureOnCommitCallbacks(execute=True):
            cancelled = CancelReservationHandler().handle(
                CancelReservationCommand(reservation.pk, reason="change of plans")
            )

        self.assertEqual(cancelled.status, Reservation.Status.CANCELLED)
        self.assertEqual(cancelled.cancellation_reason, "change of plans")
        self.assertFalse(ReservationNight.objects.filter(reservation=reservation).exists())
        self.assertEqual(received[0].old_status, "PENDING")

        rebooked = self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))
        self.assertIsInstance(rebooked, Reservation)

    def test_cancelled_is_terminal(self) -> None:
        reservation = self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))
        CancelReservationHandler().handle(CancelReservationCommand(reservation.pk))

        with self.assertRaises(InvalidTransition):
            CancelReservationHandler().handle(CancelReservationCommand(reservation.pk))
        with self.assertRaises(InvalidTransition):
            ConfirmReservationHandler().handle(ConfirmReservationCommand(reservation.pk))

    def test_missing_reservation(self) -> None:
        with self.assertRaises(ReservationNotFound):
            ConfirmReservationHandler().handle(ConfirmReservationCommand(999999))


class ModifyReservationTests(BookingTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.modify_handler = ModifyReservationHandler(clock=self.clock)

    def test_modify_can_overlap_its_own_range(self) -> None:
        reservation = self._create(self.vessel, date(2027, 3, 1), date(2027, 3, 4), guests=2)

        modified = self.modify_handler.handle(
            ModifyReservationCommand(reservation.pk, start_date=date(2027, 3, 2), end_date=date(2027, 3, 6))
        )

        self.assertIsInstance(modified, Reservation)
        self.assertEqual(modified.start_date, date(2027, 3, 2))
        self.assertEqual(modified.total_price, Decimal("2000"))
        nights = set(ReservationNight.objects.filter(reservation=reservation).values_list("night", flat=True))
        self.assertEqual(min(nights), date(2027, 3, 2))
        self.assertEqual(max(nights), date(2027, 3, 5))

    def test_modify_into_taken_dates_is_rejected(self) -> None:
        self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))
        mine = self._create(self.package, date(2027, 3, 20), date(2027, 3, 25))

        outcome = self.modify_handler.handle(
            ModifyReservationCommand(mine.pk, start_date=date(2027, 3, 12), end_date=date(2027, 3, 17))
        )

        self.assertIsInstance(outcome, BookingRejection)
        self.assertEqual(outcome.code, ReasonCode.ALREADY_BOOKED)
        mine.refresh_from_db()
        self.assertEqual(mine.start_date, date(2027, 3, 20))

    def test_modify_guest_count_reprices(self) -> None:
        reservation = self._create(self.package, date(2027, 3, 10), date(2027, 3, 15), guests=2)

        modified = self.modify_handler.handle(ModifyReservationCommand(reservation.pk, guests=4))

        self.assertEqual(modified.guests, 4)
        self.assertEqual(modified.total_price, Decimal("4000"))

    def test_cancelled_reservation_cannot_be_modified(self) -> None:
        reservation = self._create(self.package, date(2027, 3, 10), date(2027, 3, 15))
        CancelReservationHandler().handle(CancelReservationCommand(reservation.pk))

        with self.assertRaises(ReservationNotModifiable) as caught:
            self.modify_handler.handle(ModifyReservationCommand(reservation.pk, guests=3))

        self.assertIsInstance(caught.exception, InvalidTransition)
        self.assertEqual(caught.exception.current.value, "CANCELLED")
        self.assertIsNone(caught.exception.target)
        self.assertIn("can no longer be modified", str(caught.exception))

    def test_stay_under_way_can_be_extended(self) -> None:
        reservation = self._create(self.vessel, TODAY, date(2026, 11, 4), guests=2)
        later = ModifyReservationHandler(clock=FixedClock(date(2026, 11, 2)))

        modified = later.handle(ModifyReservationCommand(reservation.pk, end_date=date(2026, 11, 6)))

        self.assertIsInstance(modified, Reservation)
        self.assertEqual(modified.start_date, TODAY)
        self.assertEqual(modified.end_date, date(2026, 11, 6))
        self.assertEqual(ReservationNight.objects.filter(reservation=reservation).count(), 5)

    def test_moving_start_into_the_past_is_rejected(self) -> None:
        reservation = self._create(self.vessel, TODAY, date(2026, 11, 4), guests=2)
        later = ModifyReservationHandler(clock=FixedClock(date(2026, 11, 2)))

        outcome = later.handle(
            ModifyReservationCommand(reservation.pk, start_date=TODAY, end_date=date(2026, 11, 6))
        )

        self.assertIsInstance(outcome, BookingRejection)
        self.assertEqual(outcome.code, ReasonCode.VALIDATION_ERROR)
        self.assertEqual(outcome.reason, "start date in past")


@unittest.skipUnless(connection.vendor == "postgresql", "row locks need PostgreSQL")
class ConcurrentBookingTests(TransactionTestCase):
    def setUp(self) -> None:
        self.package = ReservableUnit.objects.create(
            kind=ReservableUnit.Kind.PACKAGE,
            name="Race Departure",
            base_rate=Decimal("1000.00"),
            duration_days=5,
            max_guests=6,
        )

    def test_two_racing_commits_book_exactly_once(self) -> None:
        barrier = threading.Barrier(2)
        outcomes = []
        lock = threading.Lock()

        def book() -> None:
            handler = CreateReservationHandler(clock=FixedClock(TODAY))
            command = CreateReservationCommand(
                unit_id=self.package.pk,
                start_date=date(2027, 3, 10),
                end_date=date(2027, 3, 15),
                guests=2,
            )
            try:
                barrier.wait()
                outcome = handler.handle(command)
                with lock:
                    outcomes.append(outcome)
            finally:
                connection.close()

        threads = [threading.Thread(target=book) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        reservations = [outcome for outcome in outcomes if isinstance(outcome, Reservation)]
        rejections = [outcome for outcome in outcomes if isinstance(outcome, BookingRejection)]
        self.assertEqual(len(reservations), 1)
        self.assertEqual(len(rejections), 1)
        self.assertEqual(rejections[0].code, ReasonCode.ALREADY_BOOKED)
        self.assertEqual(Reservation.objects.count(), 1)
