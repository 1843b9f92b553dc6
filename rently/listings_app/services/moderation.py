from __future__ import annotations

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q, Sum

from listings_app.models import AuditLog, ContactPurchase, Notification, Property, UserProfile

logger = logging.getLogger(__name__)


def _audit(actor, action: str, prop: Property, ip=None, **extra) -> None:
    AuditLog.objects.create(
        user=actor,
        action=action,
        ip_address=ip,
        extra_data={"property_id": prop.pk, **extra},
    )


def _queue_decision_email(prop: Property, decision: str) -> None:
    from listings_app.tasks import task_send_listing_decision_email

    transaction.on_commit(lambda: task_send_listing_decision_email.delay(prop.pk, decision))


def approve_listing(prop: Property, *, actor, ip=None) -> Property:
    """Publish the listing and mark it verified in one write."""
    with transaction.atomic():
        prop.status = Property.Status.AVAILABLE
        prop.verified = True
        prop.rejection_reason = None
        prop.save(update_fields=["status", "verified", "rejection_reason", "updated_at"])

        _audit(actor, "property.approve", prop, ip)
        Notification.objects.create(
            user_id=prop.landlord_id,
            type="listing_approved",
            property=prop,
            title="Listing approved",
            body=f"'{prop.title}' is now live on Rently.",
        )
        _queue_decision_email(prop, "approved")

    logger.info("Property %s approved by %s", prop.pk, getattr(actor, "pk", None))
    return prop


def reject_listing(prop: Property, *, reason, actor, ip=None) -> Property:
    """Reject with a reason the landlord will see; `verified` is left as it was."""
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Please provide a reason for rejection.")

    with transaction.atomic():
        prop.status = Property.Status.REJECTED
        prop.rejection_reason = reason
        prop.save(update_fields=["status", "rejection_reason", "updated_at"])

        _audit(actor, "property.reject", prop, ip, reason=reason)
        Notification.objects.create(
            user_id=prop.landlord_id,
            type="listing_rejected",
            property=prop,
            title="Listing rejected",
            body=f"'{prop.title}' was not approved: {reason}",
        )
        _queue_decision_email(prop, "rejected")

    logger.info("Property %s rejected by %s", prop.pk, getattr(actor, "pk", None))
    return prop


def set_verified(prop: Property, *, verified: bool, actor, ip=None) -> Property:
    with transaction.atomic():
        prop.verified = bool(verified)
        prop.save(update_fields=["verified", "updated_at"])
        _audit(actor, "property.verify", prop, ip, verified=prop.verified)
    return prop


def platform_stats() -> dict:
    props = Property.objects.aggregate(
        total=Count("id"),
        pending=Count("id", filter=Q(status=Property.Status.PENDING_APPROVAL)),
    )
    revenue = ContactPurchase.objects.filter(
        payment_status=ContactPurchase.STATUS_COMPLETED,
    ).aggregate(total=Sum("amount"))["total"]

    return {
        "total_properties": props["total"],
        "total_users": UserProfile.objects.count(),
        "total_revenue": revenue or Decimal("0.00"),
        "pending_approvals": props["pending"],
    }
