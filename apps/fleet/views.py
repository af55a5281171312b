"""Fleet catalog API views."""

from __future__ import annotations

from dataclasses import asdict

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from drf_spectacular.utils import OpenApiParameter, extend_schema  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.application.queries import AvailabilityService
from apps.bookings.domain.entities import ReasonCode, UnitNotFound
from shared.infrastructure.clock import Clock, SystemClock

from .filters import ReservableUnitFilterSet
from .models import ReservableUnit
from .serializers import (
    CalendarDaySerializer,
    CalendarQuerySerializer,
    ReservableUnitDetailSerializer,
    ReservableUnitSerializer,
)


class ReservableUnitViewSet(viewsets.ReadOnlyModelViewSet):
    """Public catalog of active vessels and packages."""

    queryset = ReservableUnit.objects.active().prefetch_related("cabins")
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_class = ReservableUnitFilterSet
    lookup_value_regex = r"\d+"
    clock: Clock = SystemClock()

    def get_serializer_class(self):  # type: ignore
        if self.action == "retrieve":
            return ReservableUnitDetailSerializer
        return ReservableUnitSerializer

    @extend_schema(
        parameters=[
            OpenApiParameter("month", int, required=True),
            OpenApiParameter("year", int, required=True),
        ],
        responses=CalendarDaySerializer(many=True),
    )
    @action(detail=True, methods=["get"], filter_backends=[])
    def calendar(self, request, pk=None):  # type: ignore
        params = CalendarQuerySerializer(data=request.query_params)
        if not params.is_valid():
            return Response(
                {"code": ReasonCode.VALIDATION_ERROR.value, "errors": params.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )
        service = AvailabilityService(clock=self.clock)
        try:
            days = service.get_calendar(
                pk,
                month=params.validated_data["month"],
                year=params.validated_data["year"],
            )
        except UnitNotFound as exc:
            return Response(
                {"code": ReasonCode.NOT_FOUND.value, "reason": str(exc)},
                status=status.HTTP_404_NOT_FOUND,
            )
        rows = [{"date": day, **asdict(info)} for day, info in sorted(days.items())]
        return Response(CalendarDaySerializer(rows, many=True).data)
