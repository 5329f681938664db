"""API viewsets and permissions for bookings."""

from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from payments.stripe_api import StripeConfigurationError, StripeTransientError
from rankings.services import pilot_rank

from . import lifecycle, queries
from .domain import (
    ActorRole,
    BookingConflict,
    BookingLifecycleError,
    BookingNotFound,
    FundsNotCaptured,
    NotPermitted,
    role_for_user,
)
from .filters import BookingFilter
from .models import Booking
from .serializers import (
    BookingCreateSerializer,
    BookingSerializer,
    RatingSerializer,
    TipSerializer,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (BookingNotFound, status.HTTP_404_NOT_FOUND),
    (FundsNotCaptured, status.HTTP_402_PAYMENT_REQUIRED),
    (NotPermitted, status.HTTP_403_FORBIDDEN),
    (BookingConflict, status.HTTP_409_CONFLICT),
)
PAYMENTS_UNAVAILABLE_MESSAGE = "Payments are temporarily unavailable. Please try again."
IDEMPOTENCY_HEADER = "Idempotency-Key"


def lifecycle_error_response(exc: BookingLifecycleError) -> Response:
    """Render an engine rejection as ``{"detail", "code"}``."""
    http_status = status.HTTP_400_BAD_REQUEST
    for error_class, mapped in ERROR_STATUS:
        if isinstance(exc, error_class):
            http_status = mapped
            break
    return Response({"detail": str(exc), "code": exc.code}, status=http_status)


def _parse_float(value: str | None, name: str) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number.")


class IsBookingParticipant(permissions.BasePermission):
    """Allow access to the booking's parties; pilots may also view open bookings."""

    def has_permission(self, request, view) -> bool:
        return True

    def has_object_permission(self, request, view, obj: Booking) -> bool:
        user = request.user
        if role_for_user(obj, getattr(user, "id", None)) is not None:
            return True
        return obj.status == Booking.Status.AVAILABLE and user.is_pilot()


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Booking creation, listing and lifecycle transitions."""

    serializer_class = BookingSerializer
    permission_classes = (permissions.IsAuthenticated, IsBookingParticipant)
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = BookingFilter
    ordering_fields = ["created_at", "scheduled_date", "payment_amount"]

    def get_queryset(self):
        """Restrict listings to bookings the user is party to."""
        user = self.request.user
        if not user.is_authenticated:
            return Booking.objects.none()
        return queries.participant_bookings(user).select_related("customer", "pilot")

    def get_object(self):
        obj = queries.get_booking(self.kwargs["pk"])
        self.check_object_permissions(self.request, obj)
        return obj

    def handle_exception(self, exc):
        if isinstance(exc, BookingLifecycleError):
            return lifecycle_error_response(exc)
        if isinstance(exc, (StripeTransientError, StripeConfigurationError)):
            logger.warning("bookings: payment gateway unavailable: %s", exc)
            return Response(
                {"detail": PAYMENTS_UNAVAILABLE_MESSAGE, "code": "payments_unavailable"},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return super().handle_exception(exc)

    def _actor_role(self, booking: Booking) -> ActorRole:
        role = role_for_user(booking, self.request.user.id)
        if role is None:
            raise NotPermitted("You are not a party to this booking.", booking_id=booking.pk)
        return role

    def _booking_response(self, booking_id, http_status=status.HTTP_200_OK) -> Response:
        booking = queries.get_booking(booking_id)
        return Response(self.get_serializer(booking).data, status=http_status)

    def create(self, request, *args, **kwargs):
        """
        Capture payment and open a new booking for pilots to accept.

        Clients send an ``Idempotency-Key`` header so a retried request returns
        the booking the first attempt created without charging again.
        """
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        request_key = (request.headers.get(IDEMPOTENCY_HEADER) or "").strip()[:255]
        booking = lifecycle.create_booking(
            customer=request.user, request_key=request_key, **serializer.validated_data
        )
        return self._booking_response(booking.pk, http_status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path="available")
    def available(self, request, *args, **kwargs):
        """Open bookings, optionally near a point; pilots only see ones they qualify for."""
        params = request.query_params
        try:
            latitude = _parse_float(params.get("lat"), "lat")
            longitude = _parse_float(params.get("lng"), "lng")
            radius_km = _parse_float(params.get("radius_km"), "radius_km")
        except ValueError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        if radius_km is not None and radius_km <= 0:
            return Response(
                {"detail": "radius_km must be greater than zero."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        rank = pilot_rank(request.user.id) if request.user.is_pilot() else None
        bookings = queries.available_bookings(
            specialization=params.get("specialization") or None,
            latitude=latitude,
            longitude=longitude,
            radius_km=radius_km,
            pilot_rank=rank,
        )
        return Response(self.get_serializer(bookings, many=True).data)

    @action(detail=False, methods=["get"], url_path="my")
    def my_bookings(self, request, *args, **kwargs):
        """The user's bookings as pilot or customer (defaults to their account type)."""
        role_param = request.query_params.get("role") or request.user.user_type
        try:
            role = ActorRole(role_param)
        except ValueError:
            return Response(
                {"detail": "role must be 'pilot' or 'customer'."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        qs = self.filter_queryset(queries.bookings_for_party(request.user, role))
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=False, methods=["get"], url_path="completed-count")
    def completed_count(self, request, *args, **kwargs):
        role_param = request.query_params.get("role") or request.user.user_type
        try:
            role = ActorRole(role_param)
        except ValueError:
            return Response(
                {"detail": "role must be 'pilot' or 'customer'."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(
            {"role": role.value, "completed": queries.completed_bookings_count(request.user, role)}
        )

    @action(detail=True, methods=["post"], url_path="accept")
    def accept(self, request, *args, **kwargs):
        """
        Take an available booking (pilots only).

        Any pilot may try; the engine reports taken or closed bookings as
        ``already_assigned`` or ``already_terminal``.
        """
        booking = queries.get_booking(self.kwargs["pk"])
        if not request.user.is_pilot():
            raise NotPermitted("Only pilots can accept bookings.", booking_id=booking.pk)
        lifecycle.accept(booking.pk, request.user.id, pilot_rank(request.user.id))
        return self._booking_response(booking.pk)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, *args, **kwargs):
        booking = self.get_object()
        role = self._actor_role(booking)
        lifecycle.cancel(booking.pk, role)
        return self._booking_response(booking.pk)

    @action(detail=True, methods=["post"], url_path="complete")
    def complete(self, request, *args, **kwargs):
        """Confirm the flight is done from the caller's side."""
        booking = self.get_object()
        role = self._actor_role(booking)
        lifecycle.mark_complete(booking.pk, role)
        return self._booking_response(booking.pk)

    @action(detail=True, methods=["post"], url_path="rate")
    def rate(self, request, *args, **kwargs):
        booking = self.get_object()
        role = self._actor_role(booking)
        serializer = RatingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lifecycle.submit_rating(
            booking.pk,
            role,
            serializer.validated_data["score"],
            serializer.validated_data["comment"],
        )
        return self._booking_response(booking.pk)

    @action(detail=True, methods=["post"], url_path="tip")
    def tip(self, request, *args, **kwargs):
        booking = self.get_object()
        role = self._actor_role(booking)
        serializer = TipSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lifecycle.add_tip(
            booking.pk,
            serializer.validated_data["amount"],
            role,
        )
        return self._booking_response(booking.pk)
