import pytest
import requests

from listings_app.services import mpesa


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


ACCEPTED = {
    "MerchantRequestID": "29115-34620561-1",
    "CheckoutRequestID": "ws_CO_191220191020363925",
    "ResponseCode": "0",
    "ResponseDescription": "Success. Request accepted for processing",
    "CustomerMessage": "Success. Request accepted for processing",
}


class FakeDaraja:
    """
    Stands in for requests.get/post inside the gateway client.

    Set `token_response` / `push_response` (FakeResponse or an exception
    instance to raise) before exercising the endpoint.
    """

    def __init__(self):
        self.token_response = FakeResponse(200, {"access_token": "tok-123", "expires_in": "3599"})
        self.push_response = FakeResponse(200, dict(ACCEPTED))
        self.token_calls = []
        self.push_calls = []

    def get(self, url, headers=None, timeout=None):
        self.token_calls.append({"url": url, "headers": headers, "timeout": timeout})
        if isinstance(self.token_response, Exception):
            raise self.token_response
        return self.token_response

    def post(self, url, json=None, headers=None, timeout=None):
        self.push_calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if isinstance(self.push_response, Exception):
            raise self.push_response
        return self.push_response


@pytest.fixture
def daraja(monkeypatch):
    fake = FakeDaraja()
    monkeypatch.setattr(mpesa.requests, "get", fake.get)
    monkeypatch.setattr(mpesa.requests, "post", fake.post)
    return fake


@pytest.fixture
def network_down():
    return requests.ConnectionError("connection refused")


@pytest.fixture
def fake_response():
    return FakeResponse
