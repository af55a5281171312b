"""API views for reservations and availability."""

from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from drf_spectacular.utils import extend_schema  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.infrastructure.clock import Clock, SystemClock

from .application.command_handlers import (
    CancelReservationHandler,
    ConfirmReservationCommand,
    ConfirmReservationHandler,
    CreateReservationHandler,
    ModifyReservationHandler,
)
from .application.queries import AvailabilityService
from .domain.entities import (
    BookingRejection,
    InvalidTransition,
    ReasonCode,
    ReservationNotFound,
    UnitNotFound,
)
from .filters import ReservationFilterSet
from .models import Reservation
from .serializers import (
    AvailabilityRequestSerializer,
    AvailabilityResultSerializer,
    BookingRejectionSerializer,
    ReservationCancelSerializer,
    ReservationCreateSerializer,
    ReservationModifySerializer,
    ReservationSerializer,
)

logger = logging.getLogger(__name__)

REJECTION_STATUS = {
    ReasonCode.ALREADY_BOOKED: status.HTTP_409_CONFLICT,
    ReasonCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def invalid_payload(serializer) -> Response:
    return Response(
        {
            "code": ReasonCode.VALIDATION_ERROR.value,
            "reason": "invalid request",
            "errors": serializer.errors,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


def rejection_response(rejection: BookingRejection) -> Response:
    return Response(
        BookingRejectionSerializer(rejection).data,
        status=REJECTION_STATUS.get(rejection.code, status.HTTP_400_BAD_REQUEST),
    )


def not_found(exc: LookupError) -> Response:
    return Response(
        {"code": ReasonCode.NOT_FOUND.value, "reason": str(exc)},
        status=status.HTTP_404_NOT_FOUND,
    )


class IsReservationOwnerOrStaff(permissions.BasePermission):
    """Guests see their own reservations, staff see all of them."""

    def has_object_permission(self, request, view, obj: Reservation):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return obj.user_id == user.id


class ReservationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Availability checks, booking commits and the reservation lifecycle."""

    queryset = Reservation.objects.select_related("unit", "user").prefetch_related("cabins", "guest_details")
    serializer_class = ReservationSerializer
    permission_classes = [permissions.IsAuthenticated, IsReservationOwnerOrStaff]
    filter_backends = [DjangoFilterBackend]
    filterset_class = ReservationFilterSet
    lookup_value_regex = r"\d+"
    clock: Clock = SystemClock()

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if not user.is_authenticated:
            return qs.none()
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        return qs.filter(user=user)

    def availability_service(self) -> AvailabilityService:
        return AvailabilityService(clock=self.clock)

    @extend_schema(request=AvailabilityRequestSerializer, responses=AvailabilityResultSerializer)
    @action(
        detail=False,
        methods=["post"],
        permission_classes=[permissions.AllowAny],
        filter_backends=[],
    )
    def availability(self, request):  # type: ignore
        serializer = AvailabilityRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)
        query = serializer.to_query()
        service = self.availability_service()
        try:
            if serializer.validated_data.get("include_alternatives"):
                result = service.check_with_alternatives(query)
            else:
                result = service.check_availability(query)
        except UnitNotFound as exc:
            return not_found(exc)
        return Response(AvailabilityResultSerializer(result).data)

    @extend_schema(request=ReservationCreateSerializer, responses={201: ReservationSerializer})
    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = ReservationCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)
        handler = CreateReservationHandler(availability=self.availability_service())
        try:
            outcome = handler.handle(serializer.to_command(user=request.user))
        except UnitNotFound as exc:
            return not_found(exc)
        if isinstance(outcome, BookingRejection):
            return rejection_response(outcome)
        reservation = self.get_queryset().get(pk=outcome.pk)
        read_serializer = ReservationSerializer(reservation, context=self.get_serializer_context())
        return Response(read_serializer.data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses=ReservationSerializer)
    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAdminUser])
    def confirm(self, request, pk=None):  # type: ignore
        reservation: Reservation = self.get_object()  # type: ignore
        try:
            reservation = ConfirmReservationHandler().handle(ConfirmReservationCommand(reservation.pk))
        except ReservationNotFound as exc:
            return not_found(exc)
        except InvalidTransition as exc:
            return self._invalid_transition(exc)
        return Response(ReservationSerializer(reservation, context=self.get_serializer_context()).data)

    @extend_schema(request=ReservationCancelSerializer, responses=ReservationSerializer)
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        reservation: Reservation = self.get_object()  # type: ignore
        serializer = ReservationCancelSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)
        try:
            reservation = CancelReservationHandler().handle(serializer.to_command(reservation.pk))
        except ReservationNotFound as exc:
            return not_found(exc)
        except InvalidTransition as exc:
            return self._invalid_transition(exc)
        return Response(ReservationSerializer(reservation, context=self.get_serializer_context()).data)

    @extend_schema(request=ReservationModifySerializer, responses=ReservationSerializer)
    @action(detail=True, methods=["post"])
    def modify(self, request, pk=None):  # type: ignore
        reservation: Reservation = self.get_object()  # type: ignore
        serializer = ReservationModifySerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_payload(serializer)
        handler = ModifyReservationHandler(availability=self.availability_service())
        try:
            outcome = handler.handle(serializer.to_command(reservation.pk))
        except (ReservationNotFound, UnitNotFound) as exc:
            return not_found(exc)
        except InvalidTransition as exc:
            return self._invalid_transition(exc)
        if isinstance(outcome, BookingRejection):
            return rejection_response(outcome)
        reservation = self.get_queryset().get(pk=outcome.pk)
        return Response(ReservationSerializer(reservation, context=self.get_serializer_context()).data)

    def _invalid_transition(self, exc: InvalidTransition) -> Response:
        logger.info(f"Rejected status change: {exc}")
        return Response(
            {
                "code": ReasonCode.VALIDATION_ERROR.value,
                "reason": str(exc),
                "status": exc.current.value,
            },
            status=status.HTTP_400_BAD_REQUEST,
        )
