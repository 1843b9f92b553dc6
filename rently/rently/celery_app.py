# rently/celery_app.py
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "rently.settings")

app = Celery("rently")

# Read CELERY_* settings from Django settings.py (namespace)
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks.py in installed apps
app.autodiscover_tasks()

app.conf.beat_schedule = {
    # STK pushes whose callback never arrived
    "expire-stale-payment-requests": {
        "task": "listings_app.expire_stale_payment_requests",
        "schedule": crontab(minute="*/15"),
    },
}
