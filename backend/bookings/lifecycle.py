"""
Booking lifecycle engine.

Every operation changes the booking through one predicate-guarded write on the
ledger store. The store's ``applied`` flag decides the outcome; snapshots read
before or after a write are only used to explain a write that did not apply.
Side effects (settlement, stats, ratings, events) run after the winning write
and never undo it.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.redis import push_event, push_events
from payments.ledger import log_transaction
from payments.models import Transaction
from payments.stripe_api import (
    StripeConfigurationError,
    StripePaymentError,
    StripeTransientError,
    capture_booking_payment,
    void_booking_payment,
)

from . import settlement
from .domain import (
    ActorRole,
    AlreadyAssigned,
    AlreadyRated,
    AlreadyTerminal,
    BookingConflict,
    BookingNotFound,
    FundsNotCaptured,
    InvalidBookingTerms,
    NotAccepted,
    NotCompleted,
    NotPermitted,
    TipAlreadySet,
    assert_rank_sufficient,
    counterparty_id,
    validate_booking_terms,
    validate_rating,
    validate_tip,
)
from .models import Booking
from .store import LedgerStore, get_ledger_store

logger = logging.getLogger(__name__)

BOOKING_DETAIL_FIELDS = frozenset(
    {
        "location_lat",
        "location_lng",
        "location_name",
        "scheduled_date",
        "end_date",
        "specialization",
        "description",
    }
)
CREATE_REQUEST_NAMESPACE = uuid.UUID("6f1c2a9e-4b7d-5e3a-9c1f-2d8b7a6e5c40")
REVIEW_ROLE_BY_ACTOR = {
    ActorRole.PILOT: "pilot_to_customer",
    ActorRole.CUSTOMER: "customer_to_pilot",
}


def _max_attempts() -> int:
    return max(1, int(getattr(settings, "BOOKING_MAX_MARK_COMPLETE_ATTEMPTS", 4)))


def _event_payload(booking: Booking, **extra: Any) -> dict[str, Any]:
    payload = {"booking_id": str(booking.pk), "status": booking.status}
    payload.update(extra)
    return payload


def booking_id_for_request(customer_id: int, request_key: str = "") -> uuid.UUID:
    """Random id, or a stable one for ``(customer, request_key)`` when a key is given."""
    if not request_key:
        return uuid.uuid4()
    return uuid.uuid5(CREATE_REQUEST_NAMESPACE, f"{int(customer_id)}:{request_key}")


def _find_booking(store: LedgerStore, booking_id) -> Booking | None:
    try:
        return store.get(booking_id)
    except BookingNotFound:
        return None


def create_booking(
    *,
    customer,
    payment_amount,
    estimated_flight_hours,
    required_minimum_rank: int = 0,
    payment_method_id: str = "",
    request_key: str = "",
    store: LedgerStore | None = None,
    **details: Any,
) -> Booking:
    """
    Capture the customer's payment and persist a new available booking.

    No booking exists unless its funds were captured: a failed capture raises
    ``FundsNotCaptured`` and a failed insert voids the capture before the
    error propagates.

    With a ``request_key`` the booking id is derived from the customer and the
    key, so a retried request reuses the capture token and returns the booking
    the first attempt created instead of charging again.
    """
    unknown = set(details) - BOOKING_DETAIL_FIELDS
    if unknown:
        raise InvalidBookingTerms(f"Unknown booking fields: {', '.join(sorted(unknown))}.")
    amount, hours, rank = validate_booking_terms(
        payment_amount=payment_amount,
        estimated_flight_hours=estimated_flight_hours,
        required_minimum_rank=required_minimum_rank,
    )
    store = store or get_ledger_store()
    booking_id = booking_id_for_request(customer.id, request_key)
    if request_key:
        existing = _find_booking(store, booking_id)
        if existing is not None:
            logger.info(
                "bookings: create retry for booking %s returned the existing row",
                booking_id,
                extra={"booking_id": str(booking_id), "customer_id": customer.id},
            )
            return existing
    currency = getattr(settings, "BOOKING_CURRENCY", "usd") or "usd"

    try:
        captured = capture_booking_payment(
            booking_id=str(booking_id),
            amount=amount,
            currency=currency,
            payment_method_id=payment_method_id,
            customer_id=getattr(customer, "stripe_customer_id", ""),
            idempotency_key=settlement.idempotency_token(booking_id, settlement.PURPOSE_CAPTURE),
        )
    except (StripePaymentError, StripeConfigurationError) as exc:
        logger.warning(
            "bookings: capture failed for new booking %s: %s",
            booking_id,
            exc,
            extra={"booking_id": str(booking_id), "customer_id": customer.id},
        )
        raise FundsNotCaptured(str(exc) or None, booking_id=booking_id) from exc

    booking = Booking(
        id=booking_id,
        customer=customer,
        payment_amount=amount,
        currency=currency,
        estimated_flight_hours=hours,
        required_minimum_rank=rank,
        payment_intent_id=captured.payment_intent_id,
        charge_id=captured.charge_id,
        **details,
    )
    try:
        with transaction.atomic():
            store.insert(booking)
            log_transaction(
                user_id=customer.id,
                booking_id=booking_id,
                kind=Transaction.Kind.BOOKING_CHARGE,
                amount=amount,
                currency=currency,
                stripe_id=captured.payment_intent_id,
            )
    except Exception:
        # A concurrent request with the same key stored the booking first and
        # shares this capture, so there is nothing to void.
        existing = _find_booking(store, booking_id) if request_key else None
        if existing is not None:
            return existing
        logger.error(
            "bookings: persisting booking %s failed after capture; voiding payment",
            booking_id,
            extra={"booking_id": str(booking_id)},
            exc_info=True,
        )
        try:
            void_booking_payment(
                payment_intent_id=captured.payment_intent_id,
                idempotency_key=settlement.idempotency_token(
                    booking_id, settlement.PURPOSE_VOID
                ),
            )
        except (StripeConfigurationError, StripePaymentError, StripeTransientError):
            logger.exception(
                "bookings: could not void capture %s for unsaved booking %s",
                captured.payment_intent_id,
                booking_id,
            )
        raise

    logger.info(
        "bookings: booking %s created by customer %s",
        booking_id,
        customer.id,
        extra={"booking_id": str(booking_id), "payment_intent_id": captured.payment_intent_id},
    )
    return booking


def accept(booking_id, pilot_id: int, pilot_rank: int, *, store: LedgerStore | None = None) -> str:
    """Assign an available booking to a pilot. Returns the resulting status."""
    store = store or get_ledger_store()
    booking = store.get(booking_id)
    if booking.customer_id == pilot_id:
        raise NotPermitted("You cannot accept your own booking.", booking_id=booking.pk)
    if booking.status == Booking.Status.ACCEPTED and booking.pilot_id == pilot_id:
        return booking.status
    if booking.is_terminal():
        raise AlreadyTerminal(booking_id=booking.pk)
    if booking.pilot_id is not None:
        raise AlreadyAssigned(booking_id=booking.pk)
    assert_rank_sufficient(booking, pilot_rank)

    result = store.conditional_update(
        booking.pk,
        {"status": Booking.Status.AVAILABLE, "pilot_id__isnull": True},
        {
            "status": Booking.Status.ACCEPTED,
            "pilot_id": pilot_id,
            "accepted_at": timezone.now(),
        },
    )
    current = result.current
    if result.applied:
        logger.info(
            "bookings: booking %s accepted by pilot %s",
            current.pk,
            pilot_id,
            extra={"booking_id": str(current.pk), "pilot_id": pilot_id},
        )
        push_event(
            current.customer_id,
            "booking:accepted",
            _event_payload(current, pilot_id=pilot_id),
        )
        return current.status

    if current.status == Booking.Status.ACCEPTED and current.pilot_id == pilot_id:
        return current.status
    if current.is_terminal():
        raise AlreadyTerminal(booking_id=current.pk)
    raise AlreadyAssigned(booking_id=current.pk)


def cancel(
    booking_id,
    actor_role: ActorRole | str | None = None,
    *,
    store: LedgerStore | None = None,
) -> str:
    """
    Cancel a booking that is still available or accepted.

    The write is guarded on the status and pilot that were observed, so a
    completion or acceptance that commits first makes this call re-evaluate
    rather than overwrite it.
    """
    store = store or get_ledger_store()
    role = ActorRole(actor_role) if actor_role else None
    cancelled_by = role.value if role else Booking.CancelledBy.SYSTEM

    for _ in range(_max_attempts()):
        booking = store.get(booking_id)
        if booking.is_terminal():
            raise AlreadyTerminal(booking_id=booking.pk)

        result = store.conditional_update(
            booking.pk,
            {"status": booking.status, "pilot_id": booking.pilot_id},
            {
                "status": Booking.Status.CANCELLED,
                "pilot_id": None,
                "former_pilot_id": booking.pilot_id,
                "cancelled_by": cancelled_by,
                "cancelled_at": timezone.now(),
            },
        )
        if not result.applied:
            continue

        current = result.current
        logger.info(
            "bookings: booking %s cancelled by %s",
            current.pk,
            cancelled_by,
            extra={"booking_id": str(current.pk), "former_pilot_id": current.former_pilot_id},
        )
        try:
            settlement.void_payment(current.pk, store=store)
        except Exception:
            logger.error(
                "bookings: void after cancellation failed for booking %s",
                current.pk,
                extra={"booking_id": str(current.pk)},
                exc_info=True,
            )

        if role is None:
            recipients = [current.customer_id, current.former_pilot_id]
        else:
            recipients = [counterparty_id(current, role)]
        push_events(
            recipients,
            "booking:cancelled",
            _event_payload(current, cancelled_by=cancelled_by),
        )
        return current.status

    raise BookingConflict(booking_id=booking_id)


def mark_complete(
    booking_id,
    actor_role: ActorRole | str,
    *,
    store: LedgerStore | None = None,
) -> str:
    """
    Record that one party considers the flight done. Returns the resulting status.

    The first write only applies for the confirmer who finds the other flag
    already set, and it moves the booking to completed; that caller alone
    triggers settlement. The second write records a first confirmation. If
    neither applies the other party changed the row in between and the pair
    is retried.
    """
    store = store or get_ledger_store()
    role = ActorRole(actor_role)
    mine = role.completed_flag
    theirs = role.counterpart.completed_flag

    for _ in range(_max_attempts()):
        result = store.conditional_update(
            booking_id,
            {"status": Booking.Status.ACCEPTED, mine: False, theirs: True},
            {mine: True, "status": Booking.Status.COMPLETED, "completed_at": timezone.now()},
        )
        if result.applied:
            _on_completed(result.current, store)
            return result.current.status

        result = store.conditional_update(
            booking_id,
            {"status": Booking.Status.ACCEPTED, mine: False, theirs: False},
            {mine: True},
        )
        current = result.current
        if result.applied:
            push_event(
                counterparty_id(current, role),
                "booking:completion_confirmed",
                _event_payload(current, confirmed_by=role.value),
            )
            return current.status

        if current.status == Booking.Status.CANCELLED:
            raise AlreadyTerminal(booking_id=current.pk)
        if current.status == Booking.Status.AVAILABLE:
            raise NotAccepted(booking_id=current.pk)
        if getattr(current, mine):
            return current.status

    raise BookingConflict(booking_id=booking_id)


def _on_completed(booking: Booking, store: LedgerStore) -> None:
    logger.info(
        "bookings: booking %s completed",
        booking.pk,
        extra={"booking_id": str(booking.pk), "pilot_id": booking.pilot_id},
    )
    try:
        settlement.settle_completion(booking.pk, store=store)
    except Exception:
        logger.error(
            "bookings: settlement after completion failed for booking %s",
            booking.pk,
            extra={"booking_id": str(booking.pk)},
            exc_info=True,
        )
    dispatch_completion_stats(booking)
    push_events(
        [booking.customer_id, booking.pilot_id],
        "booking:completed",
        _event_payload(booking),
    )


def dispatch_completion_stats(booking: Booking) -> None:
    """Queue the pilot stats update for a completed booking."""
    from rankings.tasks import record_completion

    try:
        record_completion.delay(
            booking.pilot_id,
            str(booking.estimated_flight_hours),
            str(booking.pk),
        )
    except Exception:
        logger.info(
            "bookings: could not queue record_completion for booking %s",
            booking.pk,
            extra={"booking_id": str(booking.pk)},
            exc_info=True,
        )


def submit_rating(
    booking_id,
    actor_role: ActorRole | str,
    score,
    comment: str = "",
    *,
    store: LedgerStore | None = None,
) -> Booking:
    """Rate the other party of a completed booking, once per side."""
    store = store or get_ledger_store()
    role = ActorRole(actor_role)
    score = validate_rating(score)

    result = store.conditional_update(
        booking_id,
        {"status": Booking.Status.COMPLETED, role.rated_flag: False},
        {role.rated_flag: True},
    )
    current = result.current
    if not result.applied:
        if current.status != Booking.Status.COMPLETED:
            raise NotCompleted(booking_id=current.pk)
        raise AlreadyRated(booking_id=current.pk)

    from reviews.tasks import record_rating

    author_id = current.pilot_id if role is ActorRole.PILOT else current.customer_id
    try:
        record_rating.delay(
            str(current.pk),
            author_id,
            counterparty_id(current, role),
            REVIEW_ROLE_BY_ACTOR[role],
            score,
            comment or "",
        )
    except Exception:
        logger.info(
            "bookings: could not queue record_rating for booking %s",
            current.pk,
            extra={"booking_id": str(current.pk), "role": role.value},
            exc_info=True,
        )
    return current


def add_tip(
    booking_id,
    amount,
    actor_role: ActorRole | str = ActorRole.CUSTOMER,
    *,
    store: LedgerStore | None = None,
) -> Booking:
    """Record a one-time tip on a completed booking and pay it out to the pilot."""
    store = store or get_ledger_store()
    if ActorRole(actor_role) is not ActorRole.CUSTOMER:
        raise NotPermitted("Only the customer can add a tip.", booking_id=booking_id)
    tip: Decimal = validate_tip(amount)

    result = store.conditional_update(
        booking_id,
        {"status": Booking.Status.COMPLETED, "tip_amount__isnull": True},
        {"tip_amount": tip},
    )
    current = result.current
    if not result.applied:
        if current.status != Booking.Status.COMPLETED:
            raise NotCompleted(booking_id=current.pk)
        raise TipAlreadySet(booking_id=current.pk)

    try:
        settlement.settle_tip(current.pk, store=store)
    except Exception:
        logger.error(
            "bookings: tip settlement failed for booking %s",
            current.pk,
            extra={"booking_id": str(current.pk)},
            exc_info=True,
        )
    push_event(current.pilot_id, "booking:tip_added", _event_payload(current, tip_amount=str(tip)))
    return store.get(current.pk)
