# rently/settings_test.py
import os
import tempfile

from .settings import *  # noqa

# Make tests predictable
DEBUG = True

# Faster hashing for tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# In-memory email + cache
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "throttle-cache",
    }
}

# Media to a tmp dir (so photo tests don't touch real media)
MEDIA_ROOT = os.path.join(tempfile.gettempdir(), "test_media_rently")
os.makedirs(MEDIA_ROOT, exist_ok=True)

# DRF: make throttles generous so they don't trip unrelated tests.
# (Tests that *expect* throttling use override_settings to set narrow rates.)
REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_RATES": {
        "user": "10000/hour",
        "anon": "10000/hour",
        "register": "10000/hour",
        "payments": "10000/hour",
        "mpesa-callback": "10000/hour",
    },
    "TEST_REQUEST_DEFAULT_FORMAT": "json",
}

# M-Pesa: dummy sandbox credentials; tests fake the HTTP calls
MPESA_CONSUMER_KEY = "test-consumer-key"
MPESA_CONSUMER_SECRET = "test-consumer-secret"
MPESA_SHORTCODE = "174379"
MPESA_PASSKEY = "test-passkey"
MPESA_CALLBACK_URL = "https://testserver/api/mpesa/callback/"
MPESA_CALLBACK_SECRET = "test-callback-secret"
MPESA_BASE_URL = "https://sandbox.safaricom.co.ke"
MPESA_TIMEOUT_SECONDS = 5
MPESA_CALLBACK_TIMEOUT_MINUTES = 30
MPESA_SIMULATE_PAYMENTS = False
CONTACT_UNLOCK_FEE = 200

FRONTEND_BASE_URL = "http://testserver"

# ---- Celery: run tasks eagerly in tests; no external broker needed ----
CELERY_BROKER_URL = "redis://localhost:6379/0"
CELERY_RESULT_BACKEND = "redis://localhost:6379/1"
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

LOGGING["loggers"]["listings_app"]["level"] = "DEBUG"  # noqa: F405
