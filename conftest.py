import pytest
from checkout.payments import PaymentGatewayError, PaymentSession, PaymentVerification
from django.core.cache import cache


@pytest.fixture(autouse=True)
def _clear_cache():
    # Throttle counters live in the cache
    cache.clear()
    yield
    cache.clear()


class FakeGateway:
    """In-memory stand-in for the Paystack client that records every call."""

    def __init__(self):
        self.initialized = {}
        self.verify_calls = []
        self.statuses = {}
        self.fail_initialize = False
        self.fail_verify = False

    def initialize_payment(self, *, email, amount_minor_units, reference, callback_url, metadata=None, currency=None):
        if self.fail_initialize:
            raise PaymentGatewayError("gateway down")
        self.initialized[reference] = {
            "email": email,
            "amount": amount_minor_units,
            "callback_url": callback_url,
            "metadata": dict(metadata or {}),
        }
        return PaymentSession(
            reference=reference,
            authorization_url=f"https://checkout.paystack.test/{reference}",
            access_code=f"ac_{reference[-6:]}",
        )

    def verify_payment(self, reference):
        self.verify_calls.append(reference)
        if self.fail_verify:
            raise PaymentGatewayError("gateway timeout")
        init = self.initialized.get(reference, {})
        status = self.statuses.get(reference, "success")
        raw = {"status": status, "reference": reference, "amount": init.get("amount", 0), "currency": "GHS"}
        return PaymentVerification(
            status=status,
            reference=reference,
            amount_minor_units=init.get("amount", 0),
            currency="GHS",
            metadata=init.get("metadata", {}),
            raw=raw,
        )


@pytest.fixture
def fake_gateway(monkeypatch):
    gateway = FakeGateway()
    monkeypatch.setattr("checkout.services.get_payment_gateway", lambda: gateway)
    monkeypatch.setattr("checkout.settlement.get_payment_gateway", lambda: gateway)
    return gateway
