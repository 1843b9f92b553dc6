from celery import shared_task

from listings_app.services.payments import expire_stale_payment_requests
from listings_app.services.tasks import send_listing_decision_email


@shared_task(name="listings_app.send_listing_decision_email")
def task_send_listing_decision_email(property_id: int, decision: str) -> int:
    return send_listing_decision_email(property_id, decision)


@shared_task(name="listings_app.expire_stale_payment_requests")
def task_expire_stale_payment_requests() -> int:
    """Beat job: give up on STK pushes whose callback never arrived."""
    return expire_stale_payment_requests()
