import hashlib
import hmac
import html
import re
from decimal import Decimal, InvalidOperation

import bleach
from django.core.exceptions import ValidationError


# ------------- Gateway callback authentication -------------

def sign_callback_reference(*, secret: str, reference: str) -> str:
    """HMAC-SHA256 hex digest binding a payment reference to our shared secret."""
    return hmac.new(secret.encode("utf-8"), str(reference).encode("utf-8"), hashlib.sha256).hexdigest()


def verify_callback_token(*, secret: str, reference: str, token: str) -> None:
    """
    Raise ValidationError unless `token` is the HMAC we issued for `reference`.
    Callbacks carry no signature of their own, so the token travels in the
    callback URL we hand to the gateway.
    """
    if not secret:
        raise ValidationError("Callback secret is not configured.")
    if not reference or not token:
        raise ValidationError("Missing callback reference or token.")
    expected = sign_callback_reference(secret=secret, reference=reference)
    if not hmac.compare_digest(expected, str(token)):
        raise ValidationError("Callback token mismatch.")


# ------------- Phone numbers -------------

KENYAN_MSISDN_RE = re.compile(r"^254(7|1)\d{8}$")


def normalise_msisdn(value) -> str:
    """
    Normalise a Kenyan mobile number to the 2547XXXXXXXX form the gateway expects.
    Accepts 07XXXXXXXX, 7XXXXXXXX, +2547XXXXXXXX and 2547XXXXXXXX (also 01…/2541…).
    """
    raw = re.sub(r"[\s\-()]", "", str(value or ""))
    if raw.startswith("+"):
        raw = raw[1:]
    if not raw.isdigit():
        raise ValidationError("Enter a valid phone number.")
    if raw.startswith("0") and len(raw) == 10:
        raw = "254" + raw[1:]
    elif len(raw) == 9 and raw[0] in "71":
        raw = "254" + raw
    if not KENYAN_MSISDN_RE.match(raw):
        raise ValidationError("Enter a valid Kenyan mobile number, e.g. 2547XXXXXXXX.")
    return raw


# ------------- Listing fields -------------

def validate_price(value, *, min_val: float = 0.0, max_val: float = 1_000_000_000.0) -> Decimal:
    """Ensure price is a Decimal within range."""
    try:
        dec = Decimal(str(value).strip())
    except (InvalidOperation, TypeError):
        raise ValidationError("Enter a valid price.")
    if not dec.is_finite():
        raise ValidationError("Enter a valid price.")
    if dec < Decimal(str(min_val)) or dec > Decimal(str(max_val)):
        raise ValidationError(f"Price must be between {min_val:g} and {max_val:g}.")
    return dec.quantize(Decimal("0.01"))


def normalise_price(value) -> Decimal:
    """Coerce price-like strings (e.g. 'KSh 45,000') to Decimal('45000.00')."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Price is required.")
    if isinstance(value, (int, float, Decimal)):
        return validate_price(value)
    cleaned = str(value).strip().replace(",", "")
    cleaned = re.sub(r"[^\d.]", "", cleaned)
    return validate_price(cleaned)


def normalise_amount(value) -> Decimal:
    """Payment amounts are whole shillings greater than zero."""
    try:
        dec = Decimal(str(value).strip())
    except (InvalidOperation, TypeError):
        raise ValidationError("Amount must be a number.")
    if not dec.is_finite() or dec <= 0:
        raise ValidationError("Amount must be greater than 0.")
    if dec != dec.to_integral_value():
        raise ValidationError("Amount must be a whole number of shillings.")
    return dec.quantize(Decimal("1"))


def sanitize_search_text(text: str, *, max_len: int = 200) -> str:
    """Trim, collapse whitespace and drop control characters from free-text search."""
    text = (text or "").strip()
    text = re.sub(r"[\x00-\x1f\x7f]", "", text)
    text = re.sub(r"\s+", " ", text)
    return text[:max_len]


DESCRIPTION_TAGS = ["b", "strong", "i", "em", "ul", "ol", "li", "br", "p"]


def sanitize_html_description(value, *, max_len: int = 5000) -> str:
    """Keep a small set of formatting tags, strip everything else."""
    if not value or not isinstance(value, str):
        raise ValidationError("Description is required.")
    cleaned = bleach.clean(value, tags=DESCRIPTION_TAGS, attributes={}, strip=True).strip()
    text_only = bleach.clean(cleaned, tags=[], strip=True).strip()
    if not text_only:
        raise ValidationError("Description is required.")
    if len(cleaned) > max_len:
        raise ValidationError(f"Description must be no more than {max_len} characters.")
    return cleaned


def validate_listing_title(value, *, max_len: int = 200) -> str:
    # bleach escapes the text it keeps; titles are stored as plain text
    title = html.unescape(bleach.clean(str(value or ""), tags=[], strip=True))
    title = re.sub(r"\s+", " ", title).strip()
    if not title:
        raise ValidationError("Title is required.")
    if len(title) > max_len:
        raise ValidationError(f"Title must be no more than {max_len} characters.")
    return title
