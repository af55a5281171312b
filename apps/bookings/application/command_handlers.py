"""
Booking Command Handlers

These are the write-path use cases of the booking core.
They orchestrate domain operations within transactions.

Commands:
- CreateReservationCommand: Re-check availability and commit a new reservation
- ConfirmReservationCommand: Confirm a pending reservation
- CancelReservationCommand: Cancel a live reservation and free its nights
- ModifyReservationCommand: Move or resize a live reservation
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence, Tuple, Union
import logging

from django.db import DatabaseError, IntegrityError, transaction  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import DateRange
from shared.infrastructure.clock import Clock
from apps.bookings.application.queries import AvailabilityService
from apps.bookings.domain.entities import (
    AvailabilityQuery,
    BookingRejection,
    ReasonCode,
    ReservationNotFound,
    ReservationNotModifiable,
    ReservationStatus,
    UnitNotFound,
)
from apps.bookings.domain.events import (
    ReservationCancelled,
    ReservationConfirmed,
    ReservationCreated,
    ReservationModified,
)
from apps.bookings.models import Reservation, ReservationGuest
from apps.bookings.services import claim_nights, lock_reservation, lock_unit, release_nights

logger = logging.getLogger(__name__)

CONCURRENT_REASON = 'these dates were booked by someone else a moment ago'


# ===== Commands =====

@dataclass
class CreateReservationCommand:
    """
    Command to commit a new reservation

    This is the only entry point that creates reservations.
    """
    unit_id: int
    start_date: date
    end_date: date
    guests: int
    cabin_ids: Optional[Tuple[int, ...]] = None
    user_id: Optional[int] = None
    guest_name: str = ''
    guest_email: str = ''
    guest_phone: str = ''
    special_requests: str = ''
    guest_details: Sequence[dict] = field(default_factory=tuple)

    def to_query(self) -> AvailabilityQuery:
        return AvailabilityQuery(
            unit_id=self.unit_id,
            start_date=self.start_date,
            end_date=self.end_date,
            guests=self.guests,
            cabin_ids=tuple(self.cabin_ids) if self.cabin_ids is not None else None,
        )


@dataclass
class ConfirmReservationCommand:
    """Command to confirm a reservation after payment or by staff"""
    reservation_id: int


@dataclass
class CancelReservationCommand:
    reservation_id: int
    reason: str = ''


@dataclass
class ModifyReservationCommand:
    """
    Command to change dates, party size or cabins of a live reservation

    Fields left as None keep their current value; cabin_ids=None lets the
    resolver pick cabins again.
    """
    reservation_id: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    guests: Optional[int] = None
    cabin_ids: Optional[Tuple[int, ...]] = None


# ===== Command Handlers =====

class CreateReservationHandler:
    """
    Handler for CreateReservation command

    This implements the double booking prevention of the write path.

    Strategy:
    1. Start database transaction (atomic)
    2. Lock the unit row with SELECT FOR UPDATE
    3. Re-run the availability check on the locked state
    4. Insert reservation, cabins, guest rows and night claims in a savepoint
    5. The unique night-claim constraint rejects a concurrent winner's overlap
    6. Publish ReservationCreated after commit
    """

    def __init__(self, clock: Optional[Clock] = None, availability: Optional[AvailabilityService] = None):
        self.availability = availability or AvailabilityService(clock=clock)

    def handle(self, command: CreateReservationCommand) -> Union[Reservation, BookingRejection]:
        """
        Handle reservation creation

        Returns: the PENDING Reservation, or a BookingRejection

        Raises:
            UnitNotFound: if the unit does not exist or is inactive
        """
        logger.info(
            f"Creating reservation for unit {command.unit_id}, "
            f"dates {command.start_date} - {command.end_date}, guests {command.guests}"
        )

        query = command.to_query()
        early = self.availability.validate(query)
        if early is not None:
            return BookingRejection.from_result(early)

        try:
            with DjangoUnitOfWork() as uow:
                unit = lock_unit(command.unit_id)
                if unit is None:
                    raise UnitNotFound(command.unit_id)

                result = self.availability.evaluate(unit, query, lock=True)
                if not result.is_available:
                    logger.info(f"Reservation rejected for unit {unit.pk}: {result.code.value} ({result.reason})")
                    return BookingRejection.from_result(result)

                try:
                    with transaction.atomic():
                        reservation = Reservation.objects.create(
                            unit=unit,
                            user_id=command.user_id,
                            start_date=command.start_date,
                            end_date=command.end_date,
                            guests=command.guests,
                            status=Reservation.Status.PENDING,
                            base_price=result.base_price,
                            total_price=result.total_price,
                            price_per_guest=result.price_per_guest,
                            guest_name=command.guest_name,
                            guest_email=command.guest_email,
                            guest_phone=command.guest_phone,
                            special_requests=command.special_requests,
                        )
                        if result.cabin_ids:
                            reservation.cabins.set(result.cabin_ids)
                        ReservationGuest.objects.bulk_create(
                            ReservationGuest(reservation=reservation, **detail)
                            for detail in command.guest_details
                        )
                        claim_nights(reservation)
                except IntegrityError:
                    logger.warning(
                        f"Concurrent booking won the race for unit {unit.pk}, "
                        f"dates {command.start_date} - {command.end_date}"
                    )
                    return BookingRejection(
                        code=ReasonCode.ALREADY_BOOKED,
                        reason=CONCURRENT_REASON,
                        concurrent=True,
                    )

                reservation.add_event(ReservationCreated(
                    aggregate_id=reservation.pk,
                    reservation_id=reservation.pk,
                    unit_id=unit.pk,
                    dates=reservation.dates,
                    guests=reservation.guests,
                    total_price=reservation.total_price,
                    cabin_ids=tuple(result.cabin_ids),
                ))
                uow.collect_events(reservation)
        except DatabaseError:
            logger.exception(f"Storage error while creating reservation for unit {command.unit_id}")
            raise

        logger.info(
            f"Reservation created successfully: {reservation.booking_reference} "
            f"(ID: {reservation.pk}, total {reservation.total_price})"
        )
        return reservation


class ConfirmReservationHandler:
    """Handler for confirming a pending reservation"""

    def handle(self, command: ConfirmReservationCommand) -> Reservation:
        logger.info(f"Confirming reservation {command.reservation_id}")

        with DjangoUnitOfWork() as uow:
            reservation = _get_reservation(command.reservation_id)

            # FSM transition PENDING -> CONFIRMED; price stays frozen
            reservation.transition_to(ReservationStatus.CONFIRMED)
            reservation.confirmed_at = timezone.now()
            reservation.save(update_fields=["status", "confirmed_at", "updated_at"])

            reservation.add_event(ReservationConfirmed(
                aggregate_id=reservation.pk,
                reservation_id=reservation.pk,
                unit_id=reservation.unit_id,
                dates=reservation.dates,
            ))
            uow.collect_events(reservation)

        logger.info(f"Reservation {reservation.booking_reference} confirmed successfully")
        return reservation


class CancelReservationHandler:
    """Handler for cancelling a reservation"""

    def handle(self, command: CancelReservationCommand) -> Reservation:
        """Cancel reservation and release its night claims"""
        logger.info(f"Cancelling reservation {command.reservation_id}, reason: {command.reason}")

        with DjangoUnitOfWork() as uow:
            reservation = _get_reservation(command.reservation_id)

            old_status = reservation.transition_to(ReservationStatus.CANCELLED)
            reservation.cancelled_at = timezone.now()
            reservation.cancellation_reason = command.reason[:255]
            reservation.save(update_fields=["status", "cancelled_at", "cancellation_reason", "updated_at"])
            released = release_nights(reservation)

            reservation.add_event(ReservationCancelled(
                aggregate_id=reservation.pk,
                reservation_id=reservation.pk,
                unit_id=reservation.unit_id,
                reason=command.reason,
                old_status=old_status.value,
            ))
            uow.collect_events(reservation)

        logger.info(
            f"Reservation {reservation.booking_reference} cancelled successfully, "
            f"{released} nights released"
        )
        return reservation


class ModifyReservationHandler:
    """
    Handler for moving or resizing a live reservation

    The new request is checked with the reservation itself excluded, then
    re-priced, and its night claims are swapped in one savepoint.
    """

    def __init__(self, clock: Optional[Clock] = None, availability: Optional[AvailabilityService] = None):
        self.availability = availability or AvailabilityService(clock=clock)

    def handle(self, command: ModifyReservationCommand) -> Union[Reservation, BookingRejection]:
        logger.info(f"Modifying reservation {command.reservation_id}")

        try:
            with DjangoUnitOfWork() as uow:
                reservation = _get_reservation(command.reservation_id)
                if not reservation.is_live:
                    raise ReservationNotModifiable(reservation.status_value)

                query = AvailabilityQuery(
                    unit_id=reservation.unit_id,
                    start_date=command.start_date or reservation.start_date,
                    end_date=command.end_date or reservation.end_date,
                    guests=command.guests if command.guests is not None else reservation.guests,
                    exclude_reservation_id=reservation.pk,
                    cabin_ids=tuple(command.cabin_ids) if command.cabin_ids is not None else None,
                )
                early = self.availability.validate(query, check_past=command.start_date is not None)
                if early is not None:
                    return BookingRejection.from_result(early)

                unit = lock_unit(reservation.unit_id)
                if unit is None:
                    raise UnitNotFound(reservation.unit_id)

                result = self.availability.evaluate(unit, query, lock=True)
                if not result.is_available:
                    logger.info(
                        f"Modification of reservation {reservation.pk} rejected: "
                        f"{result.code.value} ({result.reason})"
                    )
                    return BookingRejection.from_result(result)

                old_dates = reservation.dates
                old_total = reservation.total_price

                try:
                    with transaction.atomic():
                        release_nights(reservation)
                        reservation.start_date = query.start_date
                        reservation.end_date = query.end_date
                        reservation.guests = query.guests
                        reservation.base_price = result.base_price
                        reservation.total_price = result.total_price
                        reservation.price_per_guest = result.price_per_guest
                        reservation.save()
                        reservation.cabins.set(result.cabin_ids)
                        claim_nights(reservation)
                except IntegrityError:
                    logger.warning(f"Concurrent booking blocked modification of reservation {reservation.pk}")
                    return BookingRejection(
                        code=ReasonCode.ALREADY_BOOKED,
                        reason=CONCURRENT_REASON,
                        concurrent=True,
                    )

                reservation.add_event(ReservationModified(
                    aggregate_id=reservation.pk,
                    reservation_id=reservation.pk,
                    unit_id=reservation.unit_id,
                    old_dates=old_dates,
                    new_dates=DateRange(query.start_date, query.end_date),
                    old_total_price=old_total,
                    new_total_price=reservation.total_price,
                ))
                uow.collect_events(reservation)
        except DatabaseError:
            logger.exception(f"Storage error while modifying reservation {command.reservation_id}")
            raise

        logger.info(f"Reservation {reservation.booking_reference} modified successfully")
        return reservation


def _get_reservation(reservation_id) -> Reservation:
    reservation = lock_reservation(reservation_id)
    if reservation is None:
        raise ReservationNotFound(reservation_id)
    return reservation
