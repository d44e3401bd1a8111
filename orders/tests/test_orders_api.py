from datetime import timedelta
from decimal import Decimal

import pytest
from cart.tests.factories import UserFactory
from catalog.models import Product
from catalog.tests.factories import ProductFactory
from django.core.management import call_command
from django.utils import timezone
from orders.models import IdempotencyKey, Order
from rest_framework.test import APIClient

from .factories import OrderFactory, OrderItemFactory


@pytest.fixture
def user_client():
    user = UserFactory()
    client = APIClient()
    client.force_authenticate(user=user)
    return user, client


@pytest.mark.django_db
def test_orders_require_authentication():
    assert APIClient().get("/api/v1/orders/").status_code == 403


@pytest.mark.django_db
def test_order_list_only_shows_own_orders_with_filters(user_client):
    user, client = user_client
    pending = OrderFactory(user=user)
    pre_order = OrderFactory(user=user, is_pre_order=True, status=Order.STATUS_PROCESSING)
    OrderFactory()

    ids = [o["id"] for o in client.get("/api/v1/orders/").json()["results"]]
    assert ids == [pre_order.id, pending.id]

    resp = client.get("/api/v1/orders/?status=processing")
    assert [o["id"] for o in resp.json()["results"]] == [pre_order.id]
    resp = client.get(f"/api/v1/orders/?number={pending.number}")
    assert [o["id"] for o in resp.json()["results"]] == [pending.id]
    resp = client.get("/api/v1/orders/?is_pre_order=true")
    assert [o["id"] for o in resp.json()["results"]] == [pre_order.id]


@pytest.mark.django_db
def test_order_detail_returns_stored_snapshot(user_client):
    user, client = user_client
    order = OrderFactory(user=user, discount=Decimal("120.00"), total=Decimal("895.00"), coupon_code="WELCOME10")
    OrderItemFactory(order=order, product_name="Laptop Pro 14", unit_price=Decimal("500.00"), quantity=2)

    body = client.get(f"/api/v1/orders/{order.id}/").json()

    assert body["number"] == order.number
    assert body["total"] == "895.00"
    assert body["discount"] == "120.00"
    assert body["items"][0]["product_name"] == "Laptop Pro 14"
    assert body["items"][0]["subtotal"] == "1000.00"


@pytest.mark.django_db
def test_order_detail_of_another_user_is_not_found(user_client):
    _, client = user_client
    assert client.get(f"/api/v1/orders/{OrderFactory().id}/").status_code == 404


@pytest.mark.django_db
def test_cancel_order_is_idempotent(user_client):
    user, client = user_client
    product = ProductFactory(stock_quantity=3)
    order = OrderFactory(user=user)
    OrderItemFactory(order=order, product=product, quantity=2)
    headers = {"HTTP_IDEMPOTENCY_KEY": "cancel-1"}

    first = client.post(f"/api/v1/orders/{order.id}/cancel/", **headers)
    again = client.post(f"/api/v1/orders/{order.id}/cancel/", **headers)

    assert first.status_code == 200
    assert first.json()["status"] == "cancelled"
    assert again.json() == first.json()
    assert Product.objects.get(id=product.id).stock_quantity == 5


@pytest.mark.django_db
def test_cancel_delivered_order_is_rejected(user_client):
    user, client = user_client
    order = OrderFactory(user=user, status=Order.STATUS_DELIVERED)

    resp = client.post(f"/api/v1/orders/{order.id}/cancel/")

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Only pending or processing orders can be cancelled."


@pytest.mark.django_db
def test_guest_tracks_order_by_number_and_email():
    order = OrderFactory(user=None, contact_email="guest@example.com")
    client = APIClient()

    resp = client.get(f"/api/v1/orders/track/?number={order.number.lower()}&email=GUEST@example.com")
    assert resp.status_code == 200
    assert resp.json()["number"] == order.number
    assert "contact_email" not in resp.json()

    resp = client.get(f"/api/v1/orders/track/?number={order.number}&email=someone@example.com")
    assert resp.status_code == 404


@pytest.mark.django_db
def test_cleanup_idempotency_command_removes_expired_keys():
    now = timezone.now()
    IdempotencyKey.objects.create(key="old", scope="anon", path="/x", method="POST", expires_at=now - timedelta(hours=1))
    IdempotencyKey.objects.create(key="new", scope="anon", path="/x", method="POST", expires_at=now + timedelta(hours=1))

    call_command("cleanup_idempotency", "--dry-run")
    assert IdempotencyKey.objects.count() == 2

    call_command("cleanup_idempotency")
    assert list(IdempotencyKey.objects.values_list("key", flat=True)) == ["new"]
