"""Stripe payment helpers for booking escrow, pilot transfers and voids."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import stripe
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from payments.models import PilotPayoutAccount

logger = logging.getLogger(__name__)
AUTOMATIC_PAYMENT_METHODS_CONFIG = {"enabled": True, "allow_redirects": "never"}
CANCELABLE_INTENT_STATUSES = (
    "requires_capture",
    "requires_payment_method",
    "requires_confirmation",
    "requires_action",
    "processing",
)
User = get_user_model()


class StripeConfigurationError(Exception):
    """Stripe is not configured correctly in the environment."""


class StripeTransientError(Exception):
    """Temporary Stripe/API issue that should be retried."""


class StripePaymentError(Exception):
    """Permanent payment failure for a booking charge or transfer."""


class PayoutAccountNotReady(StripePaymentError):
    """The pilot has no Connect account able to receive transfers yet."""


@dataclass(frozen=True)
class CapturedPayment:
    payment_intent_id: str
    charge_id: str


def _get_stripe_api_key() -> str:
    """Return the configured Stripe API key or raise if missing."""
    api_key = getattr(settings, "STRIPE_SECRET_KEY", "")
    if not api_key:
        raise StripeConfigurationError("Stripe secret key not configured.")
    return api_key


def _to_cents(amount: Decimal) -> int:
    """Convert Decimal dollars to integer cents, rounding to the nearest cent."""
    cents = (Decimal(amount) * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


def _env_label() -> str:
    return getattr(settings, "STRIPE_ENV", "dev") or "dev"


def _handle_stripe_error(exc: stripe.error.StripeError) -> None:
    """Map Stripe SDK errors onto internal exception types."""
    if isinstance(exc, stripe.error.CardError):
        message = exc.user_message or "Your card was declined."
        raise StripePaymentError(message) from exc
    if isinstance(
        exc,
        (
            stripe.error.RateLimitError,
            stripe.error.APIConnectionError,
            stripe.error.APIError,
        ),
    ):
        raise StripeTransientError("Temporary Stripe error, please retry.") from exc
    if isinstance(exc, (stripe.error.AuthenticationError, stripe.error.PermissionError)):
        raise StripeConfigurationError("Stripe credentials are invalid or unauthorized.") from exc
    if isinstance(exc, stripe.error.InvalidRequestError):
        raise StripePaymentError(exc.user_message or "Invalid payment request.") from exc
    raise StripePaymentError(exc.user_message or "Stripe payment failure.") from exc


def _object_value(payload: Any, field: str, default: Any = None) -> Any:
    """Safely fetch a field from a Stripe object or dict payload."""
    if isinstance(payload, dict):
        return payload.get(field, default)
    return getattr(payload, field, default)


def _listify(value: Any) -> list[Any]:
    """Convert requirement entries into a JSON-serializable list."""
    if value in (None, "", ()):
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set)):
        return list(value)
    return [value]


def capture_booking_payment(
    *,
    booking_id: str,
    amount: Decimal,
    currency: str,
    payment_method_id: str,
    customer_id: str = "",
    idempotency_key: str,
) -> CapturedPayment:
    """
    Charge the customer for a booking up front and hold the funds on the platform.

    The PaymentIntent is confirmed immediately with automatic capture; anything
    other than a ``succeeded`` intent is treated as a failed capture.
    """
    if amount <= Decimal("0"):
        raise StripePaymentError("Booking amount must be greater than zero.")

    stripe.api_key = _get_stripe_api_key()
    try:
        intent = stripe.PaymentIntent.create(
            amount=_to_cents(amount),
            currency=currency,
            automatic_payment_methods={**AUTOMATIC_PAYMENT_METHODS_CONFIG},
            customer=(customer_id or "").strip() or None,
            payment_method=payment_method_id or None,
            confirm=bool(payment_method_id),
            off_session=False,
            capture_method="automatic",
            metadata={
                "kind": "booking_charge",
                "booking_id": str(booking_id),
                "env": _env_label(),
            },
            transfer_group=f"booking:{booking_id}",
            idempotency_key=idempotency_key,
        )
    except stripe.error.StripeError as exc:
        _handle_stripe_error(exc)

    intent_id = _object_value(intent, "id", "") or ""
    intent_status = _object_value(intent, "status", "") or ""
    if intent_status != "succeeded":
        logger.warning(
            "Booking charge %s not captured (status=%s).",
            intent_id,
            intent_status,
            extra={"booking_id": str(booking_id), "payment_intent_id": intent_id},
        )
        raise StripePaymentError("Payment was not completed.")

    charge_id = _object_value(intent, "latest_charge", "") or ""
    if not isinstance(charge_id, str):
        charge_id = _object_value(charge_id, "id", "") or ""
    return CapturedPayment(payment_intent_id=intent_id, charge_id=charge_id)


def create_pilot_transfer(
    *,
    booking_id: str,
    pilot_id: int,
    amount: Decimal,
    currency: str,
    idempotency_key: str,
    purpose: str,
    source_transaction: str = "",
) -> str:
    """
    Transfer funds for a booking to the pilot's Connect account.

    ``idempotency_key`` makes repeated calls for the same booking/purpose
    resolve to the same Stripe transfer. Returns the transfer id.
    """
    payout_account = PilotPayoutAccount.objects.filter(user_id=pilot_id).first()
    if payout_account is None:
        raise PayoutAccountNotReady("Pilot has not connected a payout account.")
    if not payout_account.can_receive_transfers:
        logger.warning(
            "Pilot transfer skipped; missing Stripe account or payouts disabled.",
            extra={
                "booking_id": str(booking_id),
                "pilot_id": pilot_id,
                "stripe_account_id": payout_account.stripe_account_id,
            },
        )
        raise PayoutAccountNotReady("Pilot payout account cannot receive transfers yet.")

    stripe.api_key = _get_stripe_api_key()
    params: dict[str, Any] = {
        "amount": _to_cents(amount),
        "currency": currency,
        "destination": payout_account.stripe_account_id,
        "description": f"Pilot {purpose} payout for booking {booking_id}",
        "metadata": {
            "kind": f"pilot_{purpose}",
            "booking_id": str(booking_id),
            "env": _env_label(),
        },
        "transfer_group": f"booking:{booking_id}",
        "idempotency_key": idempotency_key,
    }
    if source_transaction:
        params["source_transaction"] = source_transaction

    try:
        transfer = stripe.Transfer.create(**params)
    except stripe.error.StripeError as exc:
        _handle_stripe_error(exc)

    transfer_id = _object_value(transfer, "id", None)
    if not transfer_id:
        raise StripePaymentError("Stripe did not return a transfer id.")
    return transfer_id


def void_booking_payment(*, payment_intent_id: str, idempotency_key: str) -> str:
    """
    Release the customer's funds for a cancelled booking.

    Uncaptured intents are cancelled; captured ones are refunded in full. A
    PaymentIntent Stripe no longer knows about is treated as already released.
    Returns the Stripe id of the refund or cancelled intent.
    """
    if not payment_intent_id:
        return ""

    stripe.api_key = _get_stripe_api_key()
    try:
        intent = stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.error.InvalidRequestError as exc:
        if getattr(exc, "code", "") == "resource_missing":
            logger.info(
                "Stripe PaymentIntent %s missing; treating as released.",
                payment_intent_id,
            )
            return payment_intent_id
        _handle_stripe_error(exc)
    except stripe.error.StripeError as exc:
        _handle_stripe_error(exc)

    intent_status = _object_value(intent, "status", "") or ""
    if intent_status == "canceled":
        return payment_intent_id

    if intent_status in CANCELABLE_INTENT_STATUSES:
        try:
            canceled = stripe.PaymentIntent.cancel(
                payment_intent_id,
                idempotency_key=idempotency_key,
            )
        except stripe.error.InvalidRequestError as exc:
            if getattr(exc, "code", "") == "resource_missing":
                logger.info("Stripe PaymentIntent %s already released.", payment_intent_id)
                return payment_intent_id
            _handle_stripe_error(exc)
        except stripe.error.StripeError as exc:
            _handle_stripe_error(exc)
        return _object_value(canceled, "id", "") or payment_intent_id

    try:
        refund = stripe.Refund.create(
            payment_intent=payment_intent_id,
            reason="requested_by_customer",
            metadata={"kind": "booking_void", "env": _env_label()},
            idempotency_key=idempotency_key,
        )
    except stripe.error.StripeError as exc:
        _handle_stripe_error(exc)
    return _object_value(refund, "id", "") or payment_intent_id


def _serialize_account_requirements(account_data: Any) -> dict[str, Any]:
    requirements = _object_value(account_data, "requirements", {}) or {}

    def _req_value(field: str, default: Any) -> Any:
        if isinstance(requirements, dict):
            return requirements.get(field, default) or default
        return getattr(requirements, field, default) or default

    return {
        "currently_due": _listify(_req_value("currently_due", [])),
        "eventually_due": _listify(_req_value("eventually_due", [])),
        "past_due": _listify(_req_value("past_due", [])),
        "disabled_reason": _req_value("disabled_reason", ""),
    }


def _sync_payout_account_from_stripe(
    payout_account: PilotPayoutAccount,
    account_data: Any,
) -> PilotPayoutAccount:
    """Update persisted payout account fields from a Stripe account payload."""
    account_id = _object_value(account_data, "id", payout_account.stripe_account_id)
    if account_id:
        payout_account.stripe_account_id = account_id
    charges_enabled = bool(_object_value(account_data, "charges_enabled", False))
    payouts_enabled = bool(_object_value(account_data, "payouts_enabled", False))
    requirements_due = _serialize_account_requirements(account_data)

    payout_account.charges_enabled = charges_enabled
    payout_account.payouts_enabled = payouts_enabled
    payout_account.requirements_due = requirements_due
    payout_account.is_fully_onboarded = bool(
        charges_enabled and payouts_enabled and not requirements_due.get("disabled_reason")
    )
    payout_account.last_synced_at = timezone.now()
    payout_account.save()
    return payout_account


def _sanitize_business_url(raw_url: str) -> str:
    cleaned = (raw_url or "").strip()
    if not cleaned:
        return "https://example.com"
    if not cleaned.startswith(("http://", "https://")):
        cleaned = f"https://{cleaned}"
    return cleaned


def ensure_connect_account(user: User) -> PilotPayoutAccount:
    """Ensure the pilot has a Stripe Connect Express account and sync it locally."""
    stripe.api_key = _get_stripe_api_key()

    try:
        payout_account = user.payout_account
        existing_account_id = payout_account.stripe_account_id or ""
    except PilotPayoutAccount.DoesNotExist:
        payout_account = None
        existing_account_id = ""

    account_data: Any | None = None
    if existing_account_id:
        try:
            account_data = stripe.Account.retrieve(existing_account_id)
        except stripe.error.InvalidRequestError as exc:
            if getattr(exc, "code", "") == "resource_missing":
                logger.info(
                    "Stripe Connect account %s missing for user %s; recreating.",
                    existing_account_id,
                    user.id,
                )
            else:
                _handle_stripe_error(exc)
        except stripe.error.StripeError as exc:
            _handle_stripe_error(exc)

    if account_data is None:
        business_url = getattr(settings, "CONNECT_BUSINESS_URL", "") or getattr(
            settings, "FRONTEND_ORIGIN", ""
        )
        individual: dict[str, str] = {}
        if user.first_name:
            individual["first_name"] = user.first_name
        if user.last_name:
            individual["last_name"] = user.last_name
        if user.email:
            individual["email"] = user.email
        account_params: dict[str, Any] = {
            "type": "express",
            "country": getattr(settings, "CONNECT_COUNTRY", "") or "US",
            "capabilities": {"transfers": {"requested": True}},
            "business_type": "individual",
            "business_profile": {
                "name": getattr(settings, "CONNECT_BUSINESS_NAME", "") or "Buzz",
                "product_description": "Drone flight services",
                "url": _sanitize_business_url(business_url),
                "mcc": getattr(settings, "CONNECT_BUSINESS_MCC", "") or "7399",
            },
            "metadata": {"user_id": str(user.id), "role": "pilot"},
        }
        if individual:
            account_params["individual"] = individual
        try:
            account_data = stripe.Account.create(**account_params)
        except stripe.error.StripeError as exc:
            _handle_stripe_error(exc)

    if payout_account is None:
        payout_account = PilotPayoutAccount(
            user=user,
            stripe_account_id=_object_value(account_data, "id", ""),
        )

    return _sync_payout_account_from_stripe(payout_account, account_data)


def create_connect_onboarding_link(user: User) -> str:
    """Create a Stripe Connect onboarding link for the pilot."""
    payout_account = ensure_connect_account(user)
    stripe.api_key = _get_stripe_api_key()

    base_origin = (getattr(settings, "FRONTEND_ORIGIN", "") or "").rstrip("/")
    try:
        link = stripe.AccountLink.create(
            account=payout_account.stripe_account_id,
            type="account_onboarding",
            refresh_url=f"{base_origin}/pilot/payouts?onboarding=refresh",
            return_url=f"{base_origin}/pilot/payouts?onboarding=return",
            collect="eventually_due",
        )
    except stripe.error.StripeError as exc:
        _handle_stripe_error(exc)

    link_url = _object_value(link, "url", None)
    if not link_url:
        raise StripeConfigurationError("Stripe did not return an onboarding link.")
    return link_url
