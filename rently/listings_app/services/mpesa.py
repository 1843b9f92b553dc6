"""
Thin client for the Safaricom Daraja (M-Pesa) STK push API.

Only the two calls the unlock flow needs live here: the OAuth token and
the STK push itself. Nothing is retried; a failed call surfaces as
MpesaError carrying whatever the gateway sent back.
"""
from __future__ import annotations

import base64
import logging
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests
from django.conf import settings
from django.utils import timezone

from listings_app.validators import sign_callback_reference

logger = logging.getLogger(__name__)

SANDBOX_BASE_URL = "https://sandbox.safaricom.co.ke"
TOKEN_PATH = "/oauth/v1/generate?grant_type=client_credentials"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"

TRANSACTION_TYPE = "CustomerPayBillOnline"
ACCOUNT_REFERENCE = "Rently Property Payment"
TRANSACTION_DESC = "Access landlord contact"

REQUIRED_SETTINGS = (
    "MPESA_CONSUMER_KEY",
    "MPESA_CONSUMER_SECRET",
    "MPESA_SHORTCODE",
    "MPESA_PASSKEY",
    "MPESA_CALLBACK_URL",
    "MPESA_CALLBACK_SECRET",
)

# callback items that may carry the payer's number, first match wins
PHONE_ITEM_NAMES = ("PhoneNumber", "phoneNumber", "Phone", "MSISDN")


class MpesaError(Exception):
    """A gateway call failed. `details` holds the raw upstream payload, if any."""

    def __init__(self, message: str, *, details=None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.status_code = status_code


class MpesaConfigurationError(MpesaError):
    pass


def load_config() -> dict:
    """
    Read gateway settings at request time.
    Raises MpesaConfigurationError naming every missing value.
    """
    missing = [name for name in REQUIRED_SETTINGS if not getattr(settings, name, "")]
    if missing:
        raise MpesaConfigurationError(
            f"M-Pesa is not configured: missing {', '.join(missing)}."
        )

    return {
        "consumer_key": settings.MPESA_CONSUMER_KEY,
        "consumer_secret": settings.MPESA_CONSUMER_SECRET,
        "shortcode": str(settings.MPESA_SHORTCODE),
        "passkey": settings.MPESA_PASSKEY,
        "callback_url": settings.MPESA_CALLBACK_URL,
        "callback_secret": settings.MPESA_CALLBACK_SECRET,
        "base_url": (getattr(settings, "MPESA_BASE_URL", "") or SANDBOX_BASE_URL).rstrip("/"),
        "timeout": float(getattr(settings, "MPESA_TIMEOUT_SECONDS", 30)),
    }


def gateway_timestamp(now=None) -> str:
    """YYYYMMDDHHMMSS in the project's local time zone (Africa/Nairobi)."""
    return timezone.localtime(now or timezone.now()).strftime("%Y%m%d%H%M%S")


def stk_password(shortcode: str, passkey: str, timestamp: str) -> str:
    raw = f"{shortcode}{passkey}{timestamp}".encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def build_callback_url(base_url: str, *, reference, secret: str) -> str:
    """Append our correlation reference and its HMAC token to the callback URL."""
    parts = urlsplit(base_url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query = [(k, v) for k, v in query if k not in ("ref", "token")]
    query += [
        ("ref", str(reference)),
        ("token", sign_callback_reference(secret=secret, reference=str(reference))),
    ]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def _payload(response):
    try:
        return response.json()
    except ValueError:
        return response.text


def fetch_access_token(config: dict) -> str:
    credentials = f"{config['consumer_key']}:{config['consumer_secret']}".encode("utf-8")
    auth = base64.b64encode(credentials).decode("ascii")

    try:
        response = requests.get(
            f"{config['base_url']}{TOKEN_PATH}",
            headers={"Authorization": f"Basic {auth}"},
            timeout=config["timeout"],
        )
    except requests.RequestException as exc:
        logger.warning("M-Pesa token request failed: %s", exc)
        raise MpesaError("Could not reach M-Pesa to obtain an access token.") from exc

    payload = _payload(response)
    token = payload.get("access_token") if isinstance(payload, dict) else None
    if not response.ok or not token:
        logger.warning("M-Pesa token request rejected (HTTP %s)", response.status_code)
        raise MpesaError(
            "Failed to obtain M-Pesa access token.",
            details=payload,
            status_code=response.status_code,
        )
    return token


def stk_push(*, phone: str, amount, callback_url: str, config: Optional[dict] = None, now=None) -> dict:
    """
    Send one STK push prompt to `phone`.

    Returns the gateway's acceptance payload (MerchantRequestID,
    CheckoutRequestID, ResponseCode, ...). Raises MpesaError otherwise.
    """
    config = config or load_config()
    token = fetch_access_token(config)
    timestamp = gateway_timestamp(now)

    body = {
        "BusinessShortCode": config["shortcode"],
        "Password": stk_password(config["shortcode"], config["passkey"], timestamp),
        "Timestamp": timestamp,
        "TransactionType": TRANSACTION_TYPE,
        "Amount": int(amount),
        "PartyA": phone,
        "PartyB": config["shortcode"],
        "PhoneNumber": phone,
        "CallBackURL": callback_url,
        "AccountReference": ACCOUNT_REFERENCE,
        "TransactionDesc": TRANSACTION_DESC,
    }

    try:
        response = requests.post(
            f"{config['base_url']}{STK_PUSH_PATH}",
            json=body,
            headers={"Authorization": f"Bearer {token}"},
            timeout=config["timeout"],
        )
    except requests.RequestException as exc:
        logger.warning("M-Pesa STK push request failed: %s", exc)
        raise MpesaError("Could not reach M-Pesa to send the payment prompt.") from exc

    payload = _payload(response)
    if not response.ok:
        logger.warning("M-Pesa STK push rejected (HTTP %s)", response.status_code)
        raise MpesaError(
            "M-Pesa STK push request failed.",
            details=payload,
            status_code=response.status_code,
        )
    if not isinstance(payload, dict):
        raise MpesaError("Unexpected response from M-Pesa.", details=payload, status_code=response.status_code)

    # Daraja can answer 200 with a non-zero ResponseCode
    code = payload.get("ResponseCode")
    if code is not None and str(code) != "0":
        logger.warning("M-Pesa STK push not accepted: ResponseCode=%s", code)
        raise MpesaError(
            payload.get("ResponseDescription") or "M-Pesa did not accept the payment request.",
            details=payload,
            status_code=response.status_code,
        )
    return payload


def parse_callback(payload) -> dict:
    """
    Pull the fields we care about out of an stkCallback body.

    Never raises: anything missing comes back as None so that malformed
    deliveries can still be acknowledged.
    """
    body = payload.get("Body") if isinstance(payload, dict) else None
    callback = body.get("stkCallback") if isinstance(body, dict) else None
    if not isinstance(callback, dict):
        callback = {}

    try:
        result_code = int(callback.get("ResultCode"))
    except (TypeError, ValueError):
        result_code = None

    metadata = callback.get("CallbackMetadata")
    items = metadata.get("Item") if isinstance(metadata, dict) else None
    if not isinstance(items, list):
        items = []

    phone = None
    for item in items:
        if isinstance(item, dict) and item.get("Name") in PHONE_ITEM_NAMES:
            value = item.get("Value")
            phone = str(value) if value not in (None, "") else None
            break

    receipt = None
    for item in items:
        if isinstance(item, dict) and item.get("Name") == "MpesaReceiptNumber":
            receipt = item.get("Value")
            break

    return {
        "result_code": result_code,
        "result_desc": str(callback.get("ResultDesc") or ""),
        "merchant_request_id": callback.get("MerchantRequestID") or "",
        "checkout_request_id": callback.get("CheckoutRequestID") or "",
        "phone": phone,
        "receipt": receipt,
    }
