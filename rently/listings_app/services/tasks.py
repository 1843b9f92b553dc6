from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import send_mail

from listings_app.models import Property
from listings_app.notifications.email_templates import listing_decision_email_html

logger = logging.getLogger(__name__)

DECISION_SUBJECTS = {
    "approved": "Your Rently listing is live",
    "rejected": "Your Rently listing needs changes",
}


def send_listing_decision_email(property_id: int, decision: str) -> int:
    """
    E-mail the landlord the outcome of moderation for one listing.
    Returns 1 if sent, 0 otherwise.
    """
    subject = DECISION_SUBJECTS.get(decision)
    if subject is None:
        logger.warning("Unknown listing decision %r for property %s", decision, property_id)
        return 0

    prop = Property.objects.select_related("landlord").filter(pk=property_id).first()
    if prop is None:
        return 0

    to_email = getattr(prop.landlord, "email", "") or ""
    if not to_email:
        return 0

    if decision == "approved":
        body = f"Good news: '{prop.title}' has been approved and is now visible to tenants."
    else:
        body = (
            f"'{prop.title}' was not approved.\n\n"
            f"Reason: {prop.rejection_reason or 'not given'}\n\n"
            f"Edit the listing and it will be sent for review again."
        )

    from_email = getattr(settings, "DEFAULT_FROM_EMAIL", "no-reply@rently.co.ke")
    sent = send_mail(
        subject,
        body,
        from_email,
        [to_email],
        html_message=listing_decision_email_html(
            decision=decision,
            subject=subject,
            body=body,
            listing_title=prop.title,
            reason=prop.rejection_reason if decision == "rejected" else None,
        ),
    )
    logger.info("Listing decision e-mail (%s) for property %s sent=%s", decision, property_id, sent)
    return int(bool(sent))
