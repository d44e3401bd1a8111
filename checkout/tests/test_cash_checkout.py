from datetime import date
from decimal import Decimal

import pytest
from cart.models import CartItem
from cart.selectors import build_cart_snapshot
from cart.tests.factories import CartFactory, CartItemFactory, GuestCartFactory
from catalog.models import Product
from catalog.tests.factories import PreOrderProductFactory, ProductFactory
from checkout.errors import OrderCreationFailed
from checkout.services import prepare_checkout, submit_cash_order
from common.choices import PaymentMethod, PaymentStatus
from coupons.models import Coupon, CouponUsage
from coupons.services import CouponBelowMinimumAmount
from coupons.tests.factories import CouponFactory
from django.core import mail
from orders.models import Order

from .factories import DeliveryOptionFactory, ShippingOptionFactory, customer_identity, delivery_address


@pytest.fixture
def options():
    return {
        "delivery": DeliveryOptionFactory(price=Decimal("20.00")),
        "shipping": ShippingOptionFactory(price=Decimal("400.00"), estimated_days_max=14),
    }


@pytest.fixture
def mixed_cart():
    cart = CartFactory()
    CartItemFactory(cart=cart, product=ProductFactory(base_price=Decimal("250.00"), stock_quantity=5), quantity=2)
    CartItemFactory(cart=cart, product=PreOrderProductFactory(base_price=Decimal("2000.00")))
    return cart


def _prepare(cart, **kwargs):
    params = {
        "snapshot": build_cart_snapshot(cart=cart),
        "user": cart.user,
        "customer": customer_identity(),
        "address": delivery_address(),
        "payment_method": PaymentMethod.CASH_ON_DELIVERY,
        "today": date(2025, 1, 1),
    }
    params.update(kwargs)
    return prepare_checkout(**params)


@pytest.mark.django_db
def test_mixed_cart_cash_checkout_creates_two_orders(options, mixed_cart, django_capture_on_commit_callbacks):
    CouponFactory(code="TENOFF", discount_value=Decimal("10.00"))
    regular_product = mixed_cart.items.get(is_pre_order=False).product

    drafts = _prepare(mixed_cart, coupon_code="tenoff", notes="Gate code 1234")
    with django_capture_on_commit_callbacks(execute=True):
        result = submit_cash_order(drafts=drafts, user=mixed_cart.user, cart=mixed_cart)

    regular, pre_order = sorted(result.orders, key=lambda o: o.is_pre_order)
    assert result.warning is None
    assert (regular.subtotal, regular.delivery_fee, regular.discount, regular.total) == (
        Decimal("500.00"),
        Decimal("20.00"),
        Decimal("50.00"),
        Decimal("470.00"),
    )
    assert pre_order.total == Decimal("2400.00")
    assert pre_order.estimated_arrival_date == date(2025, 1, 15)
    assert regular.number == f"ORD-{regular.id:06d}"
    assert regular.payment_status == PaymentStatus.PENDING
    assert regular.status == Order.STATUS_PENDING
    assert regular.coupon_code == "TENOFF" and pre_order.coupon_code == ""
    assert regular.notes.endswith("[Regular Items Order]")

    # Stock only moves for regular items; the coupon is consumed once
    assert Product.objects.get(id=regular_product.id).stock_quantity == 3
    assert Coupon.objects.get(code="TENOFF").used_count == 1
    assert CouponUsage.objects.get().order_id == regular.id
    assert not CartItem.objects.filter(cart=mixed_cart).exists()
    assert {m.to[0] for m in mail.outbox} == {"ama@example.com"}
    assert len(mail.outbox) == 2


@pytest.mark.django_db
def test_item_snapshots_survive_catalog_edits(options):
    cart = GuestCartFactory()
    product = ProductFactory(title="Laptop Pro 14", base_price=Decimal("1000.00"))
    CartItemFactory(cart=cart, product=product, unit_price=Decimal("1200.00"))

    result = submit_cash_order(drafts=_prepare(cart, user=None), user=None, cart=cart)
    Product.objects.filter(id=product.id).update(title="Renamed", base_price=Decimal("1.00"))

    (order,) = result.orders
    item = order.items.get()
    assert order.user is None
    assert order.contact_email == "ama@example.com"
    assert (item.product_name, item.unit_price, item.subtotal) == ("Laptop Pro 14", Decimal("1200.00"), Decimal("1200.00"))


@pytest.mark.django_db
def test_failed_regular_draft_keeps_pre_order(options, mixed_cart):
    drafts = _prepare(mixed_cart)
    # Stock sold elsewhere between pricing and submission
    Product.objects.filter(is_pre_order=False).update(stock_quantity=1)

    result = submit_cash_order(drafts=drafts, user=mixed_cart.user, cart=mixed_cart)

    (order,) = result.orders
    assert order.is_pre_order
    assert [f.code for f in result.failures] == ["insufficient_stock"]
    assert "regular" in result.warning.message
    assert Order.objects.count() == 1
    assert Product.objects.get(is_pre_order=False).stock_quantity == 1


@pytest.mark.django_db
def test_all_drafts_failing_raises_and_keeps_cart(options):
    cart = GuestCartFactory()
    CartItemFactory(cart=cart, product=ProductFactory(stock_quantity=1), quantity=1)
    drafts = _prepare(cart, user=None)
    Product.objects.all().delete()

    with pytest.raises(OrderCreationFailed) as exc:
        submit_cash_order(drafts=drafts, user=None, cart=cart)

    assert exc.value.status_code == 400
    assert exc.value.failures[0].code == "product_unavailable"
    assert Order.objects.count() == 0


@pytest.mark.django_db
def test_invalid_coupon_blocks_checkout(options, mixed_cart):
    CouponFactory(code="BIG", minimum_amount=Decimal("1000.00"))
    with pytest.raises(CouponBelowMinimumAmount):
        _prepare(mixed_cart, coupon_code="BIG")
