import base64
from urllib.parse import parse_qs, urlsplit

import pytest
from rest_framework.test import APIClient

from listings_app.models import PaymentRequest
from listings_app.validators import sign_callback_reference

pytestmark = pytest.mark.django_db

URL = "/api/mpesa/stkpush/"


@pytest.mark.parametrize("body", [{"amount": 200}, {"phone": "0712345678"}, {"phone": "", "amount": ""}])
def test_missing_phone_or_amount_is_400(tenant_client, daraja, body):
    res = tenant_client.post(URL, body, format="json")
    assert res.status_code == 400
    assert res.data == {"error": "Phone number and amount are required."}
    assert daraja.token_calls == []
    assert not PaymentRequest.objects.exists()


@pytest.mark.parametrize("amount", [0, -50, "abc", "10.5"])
def test_bad_amount_is_400(tenant_client, daraja, amount):
    res = tenant_client.post(URL, {"phone": "0712345678", "amount": amount}, format="json")
    assert res.status_code == 400
    assert "error" in res.data
    assert daraja.push_calls == []


def test_bad_phone_is_400(tenant_client, daraja):
    res = tenant_client.post(URL, {"phone": "12345", "amount": 200}, format="json")
    assert res.status_code == 400
    assert "number" in res.data["error"]


def test_missing_configuration_is_500_at_request_time(tenant_client, daraja, settings):
    settings.MPESA_PASSKEY = ""
    res = tenant_client.post(URL, {"phone": "0712345678", "amount": 200}, format="json")

    assert res.status_code == 500
    assert "MPESA_PASSKEY" in res.data["error"]
    assert daraja.token_calls == []
    assert not PaymentRequest.objects.exists()


def test_token_response_without_access_token_is_500_with_details(tenant_client, daraja, fake_response):
    daraja.token_response = fake_response(400, {"errorCode": "400.008.01", "errorMessage": "Invalid Authentication"})

    res = tenant_client.post(URL, {"phone": "0712345678", "amount": 200}, format="json")
    assert res.status_code == 500
    assert res.data["error"] == "Failed to obtain M-Pesa access token."
    assert res.data["details"]["errorMessage"] == "Invalid Authentication"
    assert daraja.push_calls == []

    pr = PaymentRequest.objects.get()
    assert pr.status == PaymentRequest.Status.FAILED


def test_push_rejected_by_gateway_is_500_with_raw_payload(tenant_client, daraja, fake_response):
    daraja.push_response = fake_response(
        500, {"requestId": "x", "errorCode": "500.001.1001", "errorMessage": "Wrong credentials"}
    )

    res = tenant_client.post(URL, {"phone": "0712345678", "amount": 200}, format="json")
    assert res.status_code == 500
    assert res.data["details"]["errorCode"] == "500.001.1001"
    assert len(daraja.push_calls) == 1  # not retried

    pr = PaymentRequest.objects.get()
    assert pr.status == PaymentRequest.Status.FAILED
    assert pr.gateway_response["errorCode"] == "500.001.1001"


def test_non_json_error_body_is_passed_through(tenant_client, daraja, fake_response):
    daraja.push_response = fake_response(502, None, text="Bad Gateway")
    res = tenant_client.post(URL, {"phone": "0712345678", "amount": 200}, format="json")
    assert res.status_code == 500
    assert res.data["details"] == "Bad Gateway"


def test_network_error_is_500_without_details(tenant_client, daraja, network_down):
    daraja.push_response = network_down
    res = tenant_client.post(URL, {"phone": "0712345678", "amount": 200}, format="json")
    assert res.status_code == 500
    assert "error" in res.data
    assert "details" not in res.data


def test_successful_push_sends_daraja_contract_and_awaits_callback(tenant, tenant_client, daraja, settings):
    res = tenant_client.post(URL, {"phone": "+254 712 345 678", "amount": "200"}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["CheckoutRequestID"] == "ws_CO_191220191020363925"
    assert res.data["status"] == "awaiting_callback"

    pr = PaymentRequest.objects.get(reference=res.data["reference"])
    assert pr.user == tenant
    assert pr.phone == "254712345678"
    assert pr.status == PaymentRequest.Status.AWAITING_CALLBACK
    assert pr.checkout_request_id == "ws_CO_191220191020363925"
    assert pr.merchant_request_id == "29115-34620561-1"

    token_call = daraja.token_calls[0]
    assert token_call["url"].endswith("/oauth/v1/generate?grant_type=client_credentials")
    expected_basic = base64.b64encode(b"test-consumer-key:test-consumer-secret").decode()
    assert token_call["headers"]["Authorization"] == f"Basic {expected_basic}"

    push = daraja.push_calls[0]
    assert push["url"] == "https://sandbox.safaricom.co.ke/mpesa/stkpush/v1/processrequest"
    assert push["headers"]["Authorization"] == "Bearer tok-123"
    body = push["json"]
    assert body["BusinessShortCode"] == "174379"
    assert body["PartyB"] == "174379"
    assert body["TransactionType"] == "CustomerPayBillOnline"
    assert body["Amount"] == 200
    assert body["PartyA"] == body["PhoneNumber"] == "254712345678"
    assert body["AccountReference"] == "Rently Property Payment"
    assert body["TransactionDesc"] == "Access landlord contact"
    assert len(body["Timestamp"]) == 14 and body["Timestamp"].isdigit()
    assert base64.b64decode(body["Password"]).decode() == f"174379test-passkey{body['Timestamp']}"

    query = parse_qs(urlsplit(body["CallBackURL"]).query)
    assert query["ref"] == [str(pr.reference)]
    assert query["token"] == [
        sign_callback_reference(secret=settings.MPESA_CALLBACK_SECRET, reference=str(pr.reference))
    ]


def test_push_for_unknown_property_is_400(tenant_client, daraja):
    res = tenant_client.post(URL, {"phone": "0712345678", "amount": 200, "property": 424242}, format="json")
    assert res.status_code == 400
    assert daraja.token_calls == []


@pytest.mark.parametrize("property_id", ["abc", "1.5", ["1"], {"id": 1}])
def test_push_with_malformed_property_id_is_400(tenant_client, daraja, property_id):
    body = {"phone": "0712345678", "amount": 200, "property": property_id}
    res = tenant_client.post(URL, body, format="json")
    assert res.status_code == 400
    assert res.data == {"error": "Property not found or not available."}
    assert daraja.token_calls == []
    assert not PaymentRequest.objects.exists()


def test_anonymous_cannot_start_a_payment(daraja):
    res = APIClient().post(URL, {"phone": "0712345678", "amount": 200}, format="json")
    assert res.status_code in (401, 403)
    assert not PaymentRequest.objects.exists()
