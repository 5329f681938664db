"""
Money movements that follow lifecycle transitions.

Each movement is keyed by a deterministic idempotency token so a retry reaches
the same Stripe object, and is recorded on the booking with a compare-and-set
from ``False`` to ``True``; only the caller whose write applies logs it in the
transaction ledger.
"""

from __future__ import annotations

import logging

from django.utils import timezone

from payments.ledger import log_transaction
from payments.models import Transaction
from payments.stripe_api import (
    StripeConfigurationError,
    StripePaymentError,
    StripeTransientError,
    create_pilot_transfer,
    void_booking_payment,
)

from .models import Booking
from .store import LedgerStore, get_ledger_store

logger = logging.getLogger(__name__)

PURPOSE_CAPTURE = "capture"
PURPOSE_COMPLETION = "completion"
PURPOSE_TIP = "tip"
PURPOSE_VOID = "void"
GATEWAY_ERRORS = (StripeConfigurationError, StripePaymentError, StripeTransientError)


def idempotency_token(booking_id, purpose: str) -> str:
    return f"booking:{booking_id}:{purpose}"


def _log_gateway_failure(booking: Booking, purpose: str, exc: Exception) -> None:
    logger.warning(
        "settlement: %s for booking %s failed: %s",
        purpose,
        booking.pk,
        exc,
        extra={"booking_id": str(booking.pk), "purpose": purpose},
        exc_info=True,
    )


def settle_completion(booking_id, *, store: LedgerStore | None = None) -> bool:
    """
    Pay the booking amount out to the pilot once the booking is completed.

    Returns True when the booking is settled after the call. Gateway failures
    leave it completed-but-unsettled for the reconciler.
    """
    store = store or get_ledger_store()
    booking = store.get(booking_id)
    if booking.status != Booking.Status.COMPLETED:
        return False
    if booking.settled:
        return True

    try:
        transfer_id = create_pilot_transfer(
            booking_id=str(booking.pk),
            pilot_id=booking.pilot_id,
            amount=booking.payment_amount,
            currency=booking.currency,
            idempotency_key=idempotency_token(booking.pk, PURPOSE_COMPLETION),
            purpose=PURPOSE_COMPLETION,
            source_transaction=booking.charge_id,
        )
    except GATEWAY_ERRORS as exc:
        _log_gateway_failure(booking, PURPOSE_COMPLETION, exc)
        return False

    result = store.conditional_update(
        booking.pk,
        {"status": Booking.Status.COMPLETED, "settled": False},
        {"settled": True, "transfer_id": transfer_id, "settled_at": timezone.now()},
    )
    if result.applied:
        log_transaction(
            user_id=booking.pilot_id,
            booking_id=booking.pk,
            kind=Transaction.Kind.PILOT_PAYOUT,
            amount=booking.payment_amount,
            currency=booking.currency,
            stripe_id=transfer_id,
        )
        logger.info(
            "settlement: booking %s paid out to pilot %s",
            booking.pk,
            booking.pilot_id,
            extra={"booking_id": str(booking.pk), "transfer_id": transfer_id},
        )
    return result.current.settled


def settle_tip(booking_id, *, store: LedgerStore | None = None) -> bool:
    """Pay a recorded tip out to the pilot; funded from the platform balance."""
    store = store or get_ledger_store()
    booking = store.get(booking_id)
    if booking.status != Booking.Status.COMPLETED or booking.tip_amount is None:
        return False
    if booking.tip_settled:
        return True

    try:
        transfer_id = create_pilot_transfer(
            booking_id=str(booking.pk),
            pilot_id=booking.pilot_id,
            amount=booking.tip_amount,
            currency=booking.currency,
            idempotency_key=idempotency_token(booking.pk, PURPOSE_TIP),
            purpose=PURPOSE_TIP,
        )
    except GATEWAY_ERRORS as exc:
        _log_gateway_failure(booking, PURPOSE_TIP, exc)
        return False

    result = store.conditional_update(
        booking.pk,
        {"status": Booking.Status.COMPLETED, "tip_settled": False},
        {
            "tip_settled": True,
            "tip_transfer_id": transfer_id,
            "tip_settled_at": timezone.now(),
        },
    )
    if result.applied:
        log_transaction(
            user_id=booking.pilot_id,
            booking_id=booking.pk,
            kind=Transaction.Kind.TIP_PAYOUT,
            amount=booking.tip_amount,
            currency=booking.currency,
            stripe_id=transfer_id,
        )
    return result.current.tip_settled


def void_payment(booking_id, *, store: LedgerStore | None = None) -> bool:
    """Release the customer's captured funds for a cancelled booking."""
    store = store or get_ledger_store()
    booking = store.get(booking_id)
    if booking.status != Booking.Status.CANCELLED:
        return False
    if booking.payment_voided:
        return True

    try:
        stripe_id = void_booking_payment(
            payment_intent_id=booking.payment_intent_id,
            idempotency_key=idempotency_token(booking.pk, PURPOSE_VOID),
        )
    except GATEWAY_ERRORS as exc:
        _log_gateway_failure(booking, PURPOSE_VOID, exc)
        return False

    result = store.conditional_update(
        booking.pk,
        {"status": Booking.Status.CANCELLED, "payment_voided": False},
        {"payment_voided": True, "voided_at": timezone.now()},
    )
    if result.applied:
        log_transaction(
            user_id=booking.customer_id,
            booking_id=booking.pk,
            kind=Transaction.Kind.REFUND,
            amount=booking.payment_amount,
            currency=booking.currency,
            stripe_id=stripe_id or None,
        )
    return result.current.payment_voided
