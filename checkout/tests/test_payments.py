import json
from decimal import Decimal

import httpx
import pytest
from checkout.payments import PaymentGatewayError, PaystackGateway, to_minor_units


def _gateway(handler):
    return PaystackGateway(
        secret_key="sk_test_123", base_url="https://paystack.test", timeout=5, transport=httpx.MockTransport(handler)
    )


def test_to_minor_units_rounds_half_up():
    assert to_minor_units(Decimal("2870.00")) == 287000
    assert to_minor_units(Decimal("0.125")) == 13
    assert to_minor_units("19.99") == 1999


def test_initialize_payment_sends_minor_units_and_bearer_token():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "status": True,
                "message": "Authorization URL created",
                "data": {"authorization_url": "https://checkout.paystack.com/abc", "access_code": "abc", "reference": "R1"},
            },
        )

    session = _gateway(handler).initialize_payment(
        email="ama@example.com",
        amount_minor_units=287000,
        reference="R1",
        callback_url="https://shop.test/checkout/callback",
        metadata={"reference": "R1"},
    )

    assert seen["auth"] == "Bearer sk_test_123"
    assert seen["path"] == "/transaction/initialize"
    assert seen["body"]["amount"] == 287000
    assert seen["body"]["currency"] == "GHS"
    assert seen["body"]["metadata"] == {"reference": "R1"}
    assert session.authorization_url == "https://checkout.paystack.com/abc"
    assert session.access_code == "abc"


def test_verify_payment_parses_transaction():
    def handler(request):
        assert request.url.path == "/transaction/verify/R1"
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {
                    "status": "success",
                    "reference": "R1",
                    "amount": 287000,
                    "currency": "GHS",
                    "metadata": {"user_id": 7},
                },
            },
        )

    verification = _gateway(handler).verify_payment("R1")

    assert verification.is_successful
    assert verification.amount_minor_units == 287000
    assert verification.metadata == {"user_id": 7}


def test_abandoned_payment_is_not_successful():
    def handler(request):
        return httpx.Response(200, json={"status": True, "data": {"status": "abandoned", "metadata": ""}})

    verification = _gateway(handler).verify_payment("R2")
    assert not verification.is_successful
    assert verification.metadata == {}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="upstream error"),
        httpx.Response(200, json={"status": False, "message": "Invalid key"}),
        httpx.Response(200, text="not json"),
    ],
)
def test_gateway_failures_raise_payment_gateway_error(response):
    with pytest.raises(PaymentGatewayError):
        _gateway(lambda request: response).verify_payment("R3")


def test_network_errors_raise_payment_gateway_error():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(PaymentGatewayError):
        _gateway(handler).initialize_payment(
            email="a@b.c", amount_minor_units=100, reference="R4", callback_url="https://shop.test/cb"
        )
