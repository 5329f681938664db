"""Domain rules for the booking lifecycle: actor roles, errors and guards."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum

from rankings.tiers import MAX_TIER

from .models import Booking

MONEY_QUANTIZE = Decimal("0.01")
HOURS_QUANTIZE = Decimal("0.01")
MIN_RATING = 0
MAX_RATING = 5


class ActorRole(str, Enum):
    """Which side of the booking is acting."""

    PILOT = "pilot"
    CUSTOMER = "customer"

    @property
    def counterpart(self) -> "ActorRole":
        return ActorRole.CUSTOMER if self is ActorRole.PILOT else ActorRole.PILOT

    @property
    def completed_flag(self) -> str:
        return f"{self.value}_completed"

    @property
    def rated_flag(self) -> str:
        return f"{self.value}_rated"


class BookingLifecycleError(Exception):
    """Base class for rejected lifecycle operations. Nothing was written."""

    code = "booking_error"
    default_message = "The booking operation was rejected."

    def __init__(self, message: str | None = None, *, booking_id=None):
        self.booking_id = booking_id
        super().__init__(message or self.default_message)


class BookingNotFound(BookingLifecycleError):
    code = "booking_not_found"
    default_message = "Booking not found."


class InvalidBookingTerms(BookingLifecycleError):
    code = "invalid_terms"
    default_message = "Booking terms are invalid."


class FundsNotCaptured(BookingLifecycleError):
    code = "funds_not_captured"
    default_message = "Payment could not be captured; the booking was not created."


class RankTooLow(BookingLifecycleError):
    code = "rank_too_low"
    default_message = "Pilot rank is below the booking's required minimum."


class AlreadyAssigned(BookingLifecycleError):
    code = "already_assigned"
    default_message = "Booking has already been accepted by another pilot."


class AlreadyTerminal(BookingLifecycleError):
    code = "already_terminal"
    default_message = "Booking is already completed or cancelled."


class NotAccepted(BookingLifecycleError):
    code = "not_accepted"
    default_message = "Booking has not been accepted by a pilot yet."


class NotCompleted(BookingLifecycleError):
    code = "not_completed"
    default_message = "Booking has not been completed by both parties."


class AlreadyRated(BookingLifecycleError):
    code = "already_rated"
    default_message = "You have already rated this booking."


class TipAlreadySet(BookingLifecycleError):
    code = "tip_already_set"
    default_message = "A tip has already been added to this booking."


class InvalidRating(BookingLifecycleError):
    code = "invalid_rating"
    default_message = f"Rating must be a whole number between {MIN_RATING} and {MAX_RATING}."


class InvalidTip(BookingLifecycleError):
    code = "invalid_tip"
    default_message = "Tip amount must be greater than zero."


class NotPermitted(BookingLifecycleError):
    code = "not_permitted"
    default_message = "This action is not available to you."


class BookingConflict(BookingLifecycleError):
    code = "booking_conflict"
    default_message = "Booking changed concurrently; please refresh and retry."


def to_money(value, field_name: str) -> Decimal:
    """Parse a currency amount, rounding to cents."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidBookingTerms(f"{field_name} must be a decimal amount.") from exc
    if not amount.is_finite():
        raise InvalidBookingTerms(f"{field_name} must be a decimal amount.")
    return amount.quantize(MONEY_QUANTIZE)


def validate_booking_terms(
    *,
    payment_amount,
    estimated_flight_hours,
    required_minimum_rank: int,
) -> tuple[Decimal, Decimal, int]:
    """Validate and normalize the commercial terms of a new booking."""
    amount = to_money(payment_amount, "payment_amount")
    if amount <= 0:
        raise InvalidBookingTerms("payment_amount must be greater than zero.")

    try:
        hours = Decimal(str(estimated_flight_hours)).quantize(HOURS_QUANTIZE)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidBookingTerms("estimated_flight_hours must be a number.") from exc
    if hours <= 0:
        raise InvalidBookingTerms("estimated_flight_hours must be greater than zero.")

    try:
        rank = int(required_minimum_rank)
    except (TypeError, ValueError) as exc:
        raise InvalidBookingTerms("required_minimum_rank must be an integer.") from exc
    if rank < 0 or rank > MAX_TIER:
        raise InvalidBookingTerms(f"required_minimum_rank must be between 0 and {MAX_TIER}.")

    return amount, hours, rank


def assert_rank_sufficient(booking: Booking, pilot_rank: int) -> None:
    """Ensure the accepting pilot meets the booking's minimum rank."""
    if int(pilot_rank) < booking.required_minimum_rank:
        raise RankTooLow(
            f"Pilot rank {pilot_rank} is below the required minimum "
            f"{booking.required_minimum_rank}.",
            booking_id=booking.pk,
        )


def validate_rating(score) -> int:
    """Return the score as an int within [MIN_RATING, MAX_RATING]."""
    if isinstance(score, bool):
        raise InvalidRating()
    try:
        value = int(score)
    except (TypeError, ValueError) as exc:
        raise InvalidRating() from exc
    if value != score or value < MIN_RATING or value > MAX_RATING:
        raise InvalidRating()
    return value


def validate_tip(amount) -> Decimal:
    try:
        tip = to_money(amount, "tip_amount")
    except InvalidBookingTerms as exc:
        raise InvalidTip() from exc
    if tip <= 0:
        raise InvalidTip()
    return tip


def role_for_user(booking: Booking, user_id: int | None) -> ActorRole | None:
    """Return the role the given user plays on the booking, if any."""
    if user_id is None:
        return None
    if booking.pilot_id is not None and booking.pilot_id == user_id:
        return ActorRole.PILOT
    if booking.customer_id == user_id:
        return ActorRole.CUSTOMER
    # A pilot released by cancellation still sees the booking as its pilot.
    if booking.former_pilot_id is not None and booking.former_pilot_id == user_id:
        return ActorRole.PILOT
    return None


def counterparty_id(booking: Booking, role: ActorRole) -> int | None:
    """Return the user id on the other side of the booking from ``role``."""
    if role is ActorRole.PILOT:
        return booking.customer_id
    return booking.pilot_id or booking.former_pilot_id

