import base64
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from listings_app.services.mpesa import gateway_timestamp, parse_callback, stk_password
from listings_app.validators import (
    normalise_amount,
    normalise_msisdn,
    normalise_price,
    parse_price_bracket,
    price_in_bracket,
    sanitize_html_description,
    sanitize_search_text,
    sign_callback_reference,
    validate_listing_title,
    verify_callback_token,
)


@pytest.mark.parametrize("raw", ["0712345678", "712345678", "+254712345678", "254712345678", "0712 345-678"])
def test_msisdn_forms_normalise(raw):
    assert normalise_msisdn(raw) == "254712345678"


def test_msisdn_accepts_01_prefix():
    assert normalise_msisdn("0110123456") == "254110123456"


@pytest.mark.parametrize("raw", ["", None, "abc", "12345", "0812345678", "2547123456789"])
def test_bad_msisdn_is_rejected(raw):
    with pytest.raises(ValidationError):
        normalise_msisdn(raw)


@pytest.mark.parametrize("raw,expected", [
    ("KSh 45,000", Decimal("45000.00")),
    ("45000", Decimal("45000.00")),
    (1250.5, Decimal("1250.50")),
])
def test_price_normalisation(raw, expected):
    assert normalise_price(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", None, "free"])
def test_price_required(raw):
    with pytest.raises(ValidationError):
        normalise_price(raw)


@pytest.mark.parametrize("token,bounds", [
    ("", None),
    ("all", None),
    ("0-50000", (Decimal("0"), Decimal("50000"))),
    ("500000", (Decimal("500000"), None)),
    ("500000-0", (Decimal("500000"), None)),
])
def test_price_bracket_parsing(token, bounds):
    assert parse_price_bracket(token) == bounds


@pytest.mark.parametrize("token", ["cheap", "100-50", "-5", "nan", "snan", "inf", "1-nan", "0-Infinity"])
def test_bad_price_bracket(token):
    with pytest.raises(ValidationError):
        parse_price_bracket(token)


def test_bracket_bounds_are_inclusive():
    bounds = parse_price_bracket("50000-100000")
    assert price_in_bracket("50000", bounds)
    assert price_in_bracket("100000", bounds)
    assert not price_in_bracket("100000.01", bounds)
    assert price_in_bracket("999999999", parse_price_bracket("500000"))


@pytest.mark.parametrize("raw", [0, -1, "1.5", "x", None])
def test_amount_must_be_positive_whole_shillings(raw):
    with pytest.raises(ValidationError):
        normalise_amount(raw)


def test_amount_accepts_numeric_strings():
    assert normalise_amount(" 200 ") == Decimal("200")


def test_callback_token_round_trip_and_mismatch():
    token = sign_callback_reference(secret="s3cret", reference="abc")
    verify_callback_token(secret="s3cret", reference="abc", token=token)

    with pytest.raises(ValidationError):
        verify_callback_token(secret="s3cret", reference="abd", token=token)
    with pytest.raises(ValidationError):
        verify_callback_token(secret="", reference="abc", token=token)


def test_description_keeps_basic_formatting_only():
    cleaned = sanitize_html_description('<p>Nice <b>flat</b><script>alert(1)</script><a href="x">link</a></p>')
    assert "<script>" not in cleaned
    assert "<a" not in cleaned
    assert "<b>flat</b>" in cleaned


@pytest.mark.parametrize("raw", ["", "<p>  </p>", None])
def test_description_cannot_be_empty(raw):
    with pytest.raises(ValidationError):
        sanitize_html_description(raw)


def test_title_is_plain_text():
    assert validate_listing_title("  <i>Sunny</i>   studio ") == "Sunny studio"
    assert validate_listing_title("Flat & Garden <2BR>") == "Flat & Garden <2BR>"
    assert validate_listing_title("Bed &amp; breakfast") == "Bed & breakfast"
    with pytest.raises(ValidationError):
        validate_listing_title("<b></b>")


def test_search_text_is_tidied():
    assert sanitize_search_text("  two   bed \x00 flat ") == "two bed flat"


def test_stk_password_and_nairobi_timestamp():
    ts = gateway_timestamp(datetime(2024, 1, 31, 21, 30, 5, tzinfo=dt_timezone.utc))
    assert ts == "20240201003005"
    assert base64.b64decode(stk_password("174379", "key", ts)) == b"174379key20240201003005"


def test_parse_callback_tolerates_garbage():
    for junk in (None, [], "x", {}, {"Body": None}, {"Body": {"stkCallback": {"ResultCode": "nope"}}}):
        parsed = parse_callback(junk)
        assert parsed["result_code"] is None
        assert parsed["phone"] is None


def test_parse_callback_reads_metadata():
    parsed = parse_callback({
        "Body": {"stkCallback": {
            "CheckoutRequestID": "ws_CO_1",
            "ResultCode": "0",
            "ResultDesc": "ok",
            "CallbackMetadata": {"Item": [
                {"Name": "MpesaReceiptNumber", "Value": "NLJ7RT61SV"},
                {"Name": "Phone", "Value": 254712345678},
            ]},
        }}
    })
    assert parsed["result_code"] == 0
    assert parsed["checkout_request_id"] == "ws_CO_1"
    assert parsed["receipt"] == "NLJ7RT61SV"
    assert parsed["phone"] == "254712345678"
