from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from listings_app.models import ContactPurchase, Notification, PaymentRequest, Property
from listings_app.services import mpesa
from listings_app.validators import normalise_amount, normalise_msisdn, verify_callback_token

logger = logging.getLogger(__name__)

# a success callback may still land after the expiry job gave up on it
SETTLEABLE_STATUSES = (
    PaymentRequest.Status.INITIATED,
    PaymentRequest.Status.AWAITING_CALLBACK,
    PaymentRequest.Status.EXPIRED,
)
FAILABLE_STATUSES = (
    PaymentRequest.Status.INITIATED,
    PaymentRequest.Status.AWAITING_CALLBACK,
)


def unlock_fee() -> Decimal:
    return Decimal(str(getattr(settings, "CONTACT_UNLOCK_FEE", 200)))


def has_unlocked(user, prop) -> bool:
    if not user or not user.is_authenticated:
        return False
    return ContactPurchase.objects.filter(
        user=user,
        property=prop,
        payment_status=ContactPurchase.STATUS_COMPLETED,
    ).exists()


def callback_timeout() -> timedelta:
    return timedelta(minutes=int(getattr(settings, "MPESA_CALLBACK_TIMEOUT_MINUTES", 30)))


def pending_unlock(user, prop) -> Optional[PaymentRequest]:
    """The user's in-flight STK push for `prop`, if one is still within the callback window."""
    cutoff = timezone.now() - callback_timeout()
    return (
        PaymentRequest.objects
        .filter(
            user=user,
            property=prop,
            status__in=FAILABLE_STATUSES,
            created_at__gte=cutoff,
        )
        .order_by("-created_at")
        .first()
    )


def _as_json(details):
    if details is None or isinstance(details, (dict, list)):
        return details
    return {"raw": str(details)}


def start_payment(*, user, phone, amount, prop: Optional[Property] = None):
    """
    Create a PaymentRequest and send the STK push for it.

    Returns (payment_request, gateway_payload). Raises django ValidationError
    for bad input and MpesaError for gateway or configuration failures; the
    request row records the failure either way.
    """
    config = mpesa.load_config()
    phone = normalise_msisdn(phone)
    amount = normalise_amount(amount)

    payment = PaymentRequest.objects.create(
        user=user,
        property=prop,
        phone=phone,
        amount=amount,
    )
    callback_url = mpesa.build_callback_url(
        config["callback_url"],
        reference=payment.reference,
        secret=config["callback_secret"],
    )
    logger.info(
        "Initiating STK push %s for user=%s property=%s amount=%s",
        payment.reference, user.pk, getattr(prop, "pk", None), amount,
    )

    try:
        payload = mpesa.stk_push(phone=phone, amount=amount, callback_url=callback_url, config=config)
    except mpesa.MpesaError as exc:
        payment.status = PaymentRequest.Status.FAILED
        payment.result_desc = exc.message[:255]
        payment.gateway_response = _as_json(exc.details)
        payment.save(update_fields=["status", "result_desc", "gateway_response", "updated_at"])
        logger.warning("STK push %s failed: %s", payment.reference, exc.message)
        raise

    payment.status = PaymentRequest.Status.AWAITING_CALLBACK
    payment.merchant_request_id = str(payload.get("MerchantRequestID") or "")
    payment.checkout_request_id = str(payload.get("CheckoutRequestID") or "")
    payment.gateway_response = payload
    payment.save(update_fields=[
        "status", "merchant_request_id", "checkout_request_id", "gateway_response", "updated_at",
    ])
    return payment, payload


def handle_callback(*, reference, token, payload) -> Optional[PaymentRequest]:
    """
    Apply one gateway callback.

    Raises django ValidationError when the token does not match `reference`.
    Everything else (unknown reference, malformed body, duplicates) is logged
    and returns without error so the gateway always gets an acknowledgement.
    """
    verify_callback_token(
        secret=getattr(settings, "MPESA_CALLBACK_SECRET", ""),
        reference=reference,
        token=token,
    )

    try:
        ref = uuid.UUID(str(reference))
    except ValueError:
        logger.warning("M-Pesa callback with malformed reference %r", reference)
        return None

    payment = PaymentRequest.objects.filter(reference=ref).first()
    if payment is None:
        logger.warning("M-Pesa callback for unknown reference %s", ref)
        return None

    parsed = mpesa.parse_callback(payload)
    if parsed["result_code"] is None:
        logger.warning("M-Pesa callback %s has no ResultCode; ignored", ref)
        PaymentRequest.objects.filter(pk=payment.pk).update(callback_payload=_as_json(payload))
        return payment

    checkout_id = parsed["checkout_request_id"]
    if checkout_id and payment.checkout_request_id and checkout_id != payment.checkout_request_id:
        logger.warning(
            "M-Pesa callback %s CheckoutRequestID mismatch (%s != %s); ignored",
            ref, checkout_id, payment.checkout_request_id,
        )
        return payment

    if parsed["result_code"] == 0:
        _settle(payment, parsed, payload)
    else:
        _fail(payment, parsed, payload)

    payment.refresh_from_db()
    return payment


def _settle(payment: PaymentRequest, parsed: dict, payload) -> None:
    now = timezone.now()
    with transaction.atomic():
        updated = (
            PaymentRequest.objects
            .filter(pk=payment.pk, status__in=SETTLEABLE_STATUSES)
            .update(
                status=PaymentRequest.Status.SETTLED,
                result_code=0,
                result_desc=parsed["result_desc"][:255],
                callback_payload=_as_json(payload),
                settled_at=now,
                updated_at=now,
            )
        )
        if updated != 1:
            logger.info("M-Pesa callback %s already applied; ignored", payment.reference)
            return

        logger.info("Payment %s settled (receipt %s)", payment.reference, parsed["receipt"])
        if not payment.property_id:
            return

        purchase = _record_purchase(
            user=payment.user,
            prop_id=payment.property_id,
            amount=payment.amount,
            phone=parsed["phone"],
            payment=payment,
        )
        if purchase is not None:
            Notification.objects.create(
                user=payment.user,
                type="payment_completed",
                property_id=payment.property_id,
                title="Contact unlocked",
                body="Your payment was received. The landlord's contact details are now visible.",
            )


def _record_purchase(*, user, prop_id, amount, phone, payment=None) -> Optional[ContactPurchase]:
    """Insert the completed purchase, or return None if one already exists."""
    try:
        with transaction.atomic():
            return ContactPurchase.objects.create(
                user=user,
                property_id=prop_id,
                amount=amount,
                payment_status=ContactPurchase.STATUS_COMPLETED,
                phone=phone,
                payment_request=payment,
            )
    except IntegrityError:
        logger.info("User %s already holds a purchase for property %s", user.pk, prop_id)
        return None


def _fail(payment: PaymentRequest, parsed: dict, payload) -> None:
    updated = (
        PaymentRequest.objects
        .filter(pk=payment.pk, status__in=FAILABLE_STATUSES)
        .update(
            status=PaymentRequest.Status.FAILED,
            result_code=parsed["result_code"],
            result_desc=parsed["result_desc"][:255],
            callback_payload=_as_json(payload),
            updated_at=timezone.now(),
        )
    )
    if updated != 1:
        logger.info("M-Pesa failure callback %s already applied; ignored", payment.reference)
        return

    logger.info(
        "Payment %s failed: ResultCode=%s %s",
        payment.reference, parsed["result_code"], parsed["result_desc"],
    )
    Notification.objects.create(
        user=payment.user,
        type="payment_failed",
        property_id=payment.property_id,
        title="Payment not completed",
        body=parsed["result_desc"] or "Your M-Pesa payment did not go through.",
    )


def simulate_purchase(*, user, prop: Property) -> Optional[ContactPurchase]:
    """Record a completed purchase without touching the gateway (sandbox/demo only)."""
    purchase = _record_purchase(user=user, prop_id=prop.pk, amount=unlock_fee(), phone=None)
    if purchase is not None:
        logger.info("Simulated contact purchase for user=%s property=%s", user.pk, prop.pk)
    return purchase


def expire_stale_payment_requests(now=None) -> int:
    """Mark requests still awaiting a callback after the timeout as expired."""
    now = now or timezone.now()
    timeout = callback_timeout()
    cutoff = now - timeout

    expired = (
        PaymentRequest.objects
        .filter(status=PaymentRequest.Status.AWAITING_CALLBACK, created_at__lt=cutoff)
        .update(status=PaymentRequest.Status.EXPIRED, updated_at=now)
    )
    if expired:
        logger.info("Expired %s payment request(s) older than %s", expired, timeout)
    return expired
