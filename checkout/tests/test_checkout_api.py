from decimal import Decimal

import pytest
from cart.models import CartItem
from cart.tests.factories import CartFactory, CartItemFactory, GuestCartFactory, UserFactory
from catalog.tests.factories import PreOrderProductFactory, ProductFactory
from checkout.models import PaymentTransaction
from coupons.tests.factories import CouponFactory
from django.conf import settings
from orders.models import Order
from rest_framework.test import APIClient

from .factories import DeliveryOptionFactory, ShippingOptionFactory

CHECKOUT_BODY = {
    "customer": {"name": "Ama Mensah", "email": "ama@example.com", "phone": "+233201234567"},
    "address": {"street": "12 Oxford St", "city": "Accra", "region": "Greater Accra"},
}


@pytest.fixture
def guest_cart():
    DeliveryOptionFactory(price=Decimal("20.00"))
    ShippingOptionFactory(price=Decimal("400.00"))
    cart = GuestCartFactory(session_id="guest-123")
    CartItemFactory(cart=cart, product=ProductFactory(base_price=Decimal("250.00")), quantity=2)
    CartItemFactory(cart=cart, product=PreOrderProductFactory(base_price=Decimal("2000.00")))
    return cart


@pytest.fixture
def guest_client():
    client = APIClient()
    client.credentials(HTTP_X_SESSION_ID="guest-123")
    return client


@pytest.mark.django_db
def test_list_delivery_options_by_kind():
    standard = DeliveryOptionFactory(name="Express")
    DeliveryOptionFactory(name="Retired", is_active=False)
    air = ShippingOptionFactory()

    resp = APIClient().get("/api/v1/checkout/delivery-options/?kind=pre_order")
    assert resp.status_code == 200
    assert [o["id"] for o in resp.json()] == [air.id]

    names = [o["name"] for o in APIClient().get("/api/v1/checkout/delivery-options/").json()]
    assert standard.name in names and "Retired" not in names


@pytest.mark.django_db
def test_preview_prices_each_draft(guest_cart, guest_client):
    CouponFactory(code="TENOFF")

    resp = guest_client.post("/api/v1/checkout/preview/", {**CHECKOUT_BODY, "coupon_code": "TENOFF"}, format="json")

    assert resp.status_code == 200
    body = resp.json()
    assert body["has_mixed_cart"] is True
    assert [d["total"] for d in body["drafts"]] == ["470.00", "2400.00"]
    assert body["total"] == "2870.00"
    assert Order.objects.count() == 0


@pytest.mark.django_db
def test_cash_checkout_is_idempotent(guest_cart, guest_client):
    headers = {"HTTP_IDEMPOTENCY_KEY": "cash-1"}

    first = guest_client.post("/api/v1/checkout/cash/", CHECKOUT_BODY, format="json", **headers)
    again = guest_client.post("/api/v1/checkout/cash/", CHECKOUT_BODY, format="json", **headers)

    assert first.status_code == 201
    body = first.json()
    assert [o["is_pre_order"] for o in body["orders"]] == [False, True]
    assert body["orders"][0]["payment_method"] == "cash_on_delivery"
    assert body["warning"] is None
    assert again.status_code == 201
    assert again.json() == body
    assert Order.objects.count() == 2
    assert guest_client.get("/api/v1/cart/").json()["items"] == []


@pytest.mark.django_db
def test_cash_checkout_rejects_bad_coupon(guest_cart, guest_client):
    resp = guest_client.post("/api/v1/checkout/cash/", {**CHECKOUT_BODY, "coupon_code": "NOPE"}, format="json")

    assert resp.status_code == 400
    assert resp.json() == {"detail": "Invalid coupon code", "code": "not_found"}
    assert Order.objects.count() == 0


@pytest.mark.django_db
def test_cash_checkout_with_empty_cart():
    DeliveryOptionFactory()
    client = APIClient()
    client.force_authenticate(user=CartFactory().user)

    resp = client.post("/api/v1/checkout/cash/", CHECKOUT_BODY, format="json")

    assert resp.status_code == 400
    assert resp.json()["code"] == "empty_cart"


@pytest.mark.django_db
def test_checkout_validates_contact_details(guest_cart, guest_client):
    resp = guest_client.post(
        "/api/v1/checkout/cash/", {**CHECKOUT_BODY, "customer": {"name": "A", "email": "nope"}}, format="json"
    )
    assert resp.status_code == 400
    assert "customer" in resp.json()


@pytest.mark.django_db
def test_card_checkout_then_callback(fake_gateway, guest_cart, guest_client):
    resp = guest_client.post("/api/v1/checkout/card/", {**CHECKOUT_BODY, "payment_method": "card"}, format="json")

    assert resp.status_code == 201
    redirect = resp.json()
    assert redirect["amount_minor_units"] == 292000
    assert Order.objects.count() == 0

    callback = guest_client.get(f"/api/v1/checkout/callback/?trxref={redirect['reference']}")
    assert callback.status_code == 200
    body = callback.json()
    assert body["replayed"] is False
    assert [o["total"] for o in body["orders"]] == ["520.00", "2400.00"]
    assert all(o["payment_status"] == "paid" for o in body["orders"])

    replay = guest_client.get(f"/api/v1/checkout/callback/?reference={redirect['reference']}")
    assert replay.status_code == 200
    assert replay.json()["replayed"] is True
    assert Order.objects.count() == 2
    assert PaymentTransaction.objects.get(reference=redirect["reference"]).status == "success"


@pytest.mark.django_db
def test_callback_reports_unverified_payment(fake_gateway, guest_cart, guest_client):
    reference = guest_client.post("/api/v1/checkout/card/", CHECKOUT_BODY, format="json").json()["reference"]
    fake_gateway.statuses[reference] = "abandoned"

    resp = guest_client.get(f"/api/v1/checkout/callback/?reference={reference}")

    assert resp.status_code == 402
    assert resp.json()["code"] == "payment_verification_failed"
    assert resp.json()["reference"] == reference
    assert guest_client.get("/api/v1/cart/").json()["items"] != []


@pytest.mark.django_db
def test_callback_requires_reference():
    resp = APIClient().get("/api/v1/checkout/callback/")
    assert resp.status_code == 400


@pytest.mark.django_db
def test_authenticated_card_checkout_links_user(fake_gateway):
    DeliveryOptionFactory()
    user = UserFactory()
    cart = CartFactory(user=user)
    CartItemFactory(cart=cart, product=ProductFactory(base_price=Decimal("100.00")))
    client = APIClient()
    client.force_authenticate(user=user)

    reference = client.post("/api/v1/checkout/card/", CHECKOUT_BODY, format="json").json()["reference"]
    resp = client.get(f"/api/v1/checkout/callback/?reference={reference}")

    assert resp.status_code == 200
    assert Order.objects.get().user_id == user.id
    assert client.get("/api/v1/orders/").json()["count"] == 1


def _browser_for(client):
    """A client carrying only the session cookie, as after the gateway redirect."""

    browser = APIClient()
    browser.cookies[settings.SESSION_COOKIE_NAME] = client.cookies[settings.SESSION_COOKIE_NAME].value
    return browser


@pytest.mark.django_db
def test_gateway_redirect_without_session_header_empties_guest_cart(fake_gateway, guest_cart, guest_client):
    reference = guest_client.post("/api/v1/checkout/card/", CHECKOUT_BODY, format="json").json()["reference"]

    resp = _browser_for(guest_client).get(f"/api/v1/checkout/callback/?reference={reference}")

    assert resp.status_code == 200
    body = resp.json()
    assert body["redacted"] is False
    assert body["orders"][0]["contact_email"] == "ama@example.com"
    assert not CartItem.objects.filter(cart=guest_cart).exists()


@pytest.mark.django_db
def test_callback_replay_by_stranger_hides_contact_details(fake_gateway, guest_cart, guest_client):
    reference = guest_client.post("/api/v1/checkout/card/", CHECKOUT_BODY, format="json").json()["reference"]
    assert guest_client.get(f"/api/v1/checkout/callback/?reference={reference}").status_code == 200

    resp = APIClient().get(f"/api/v1/checkout/callback/?reference={reference}")

    assert resp.status_code == 200
    body = resp.json()
    assert body["replayed"] is True
    assert body["redacted"] is True
    assert [set(o) for o in body["orders"]] == [{"number", "status", "payment_status", "is_pre_order"}] * 2
    assert "ama@example.com" not in resp.content.decode()
    assert "Oxford" not in resp.content.decode()

    owner_replay = guest_client.get(f"/api/v1/checkout/callback/?reference={reference}").json()
    assert owner_replay["redacted"] is False
    assert owner_replay["orders"][0]["contact_phone"] == "+233201234567"
