from datetime import timedelta
from decimal import Decimal

import pytest
from cart.tests.factories import UserFactory
from coupons.models import Coupon, CouponUsage
from coupons.services import (
    CouponBelowMinimumAmount,
    CouponGlobalUsageLimitReached,
    CouponInactive,
    CouponNotFound,
    CouponOutsideValidityWindow,
    CouponPerUserLimitReached,
    compute_discount,
    record_coupon_usage,
    validate_coupon,
)
from django.utils import timezone
from orders.tests.factories import OrderFactory

from .factories import CouponFactory, FixedAmountCouponFactory, FreeShippingCouponFactory


@pytest.mark.django_db
def test_percentage_discount_respects_maximum():
    coupon = CouponFactory(discount_value=Decimal("50.00"), maximum_discount=Decimal("100.00"))
    assert compute_discount(coupon, subtotal=Decimal("1200.00")) == Decimal("100.00")

    uncapped = CouponFactory(discount_value=Decimal("10.00"))
    assert compute_discount(uncapped, subtotal=Decimal("1200.00")) == Decimal("120.00")


@pytest.mark.django_db
def test_fixed_discount_never_exceeds_subtotal():
    coupon = FixedAmountCouponFactory(discount_value=Decimal("50.00"))
    assert compute_discount(coupon, subtotal=Decimal("30.00")) == Decimal("30.00")
    assert compute_discount(coupon, subtotal=Decimal("300.00")) == Decimal("50.00")


@pytest.mark.django_db
def test_free_shipping_discount_equals_delivery_fee():
    coupon = FreeShippingCouponFactory()
    assert compute_discount(coupon, subtotal=Decimal("300.00"), delivery_fee=Decimal("15.00")) == Decimal("15.00")
    assert compute_discount(coupon, subtotal=Decimal("300.00")) == Decimal("0.00")


@pytest.mark.django_db
def test_code_is_stored_uppercase_and_matched_case_insensitively():
    coupon = CouponFactory(code=" welcome10 ")
    assert coupon.code == "WELCOME10"

    result = validate_coupon(code="Welcome10", cart_subtotal=Decimal("1000.00"))
    assert result.coupon_id == coupon.id
    assert result.discount_amount == Decimal("100.00")


@pytest.mark.django_db
def test_unknown_code_is_rejected(caplog):
    with pytest.raises(CouponNotFound) as exc:
        validate_coupon(code="NOPE", cart_subtotal=Decimal("100.00"))
    assert exc.value.kind == "not_found"
    assert any(getattr(r, "event", None) == "coupon.validation_failed" for r in caplog.records)


@pytest.mark.django_db
def test_inactive_coupon_is_rejected():
    CouponFactory(code="OFF", is_active=False)
    with pytest.raises(CouponInactive):
        validate_coupon(code="OFF", cart_subtotal=Decimal("100.00"))


@pytest.mark.django_db
def test_validity_window_is_enforced():
    now = timezone.now()
    CouponFactory(code="LATER", valid_from=now + timedelta(days=1))
    CouponFactory(code="GONE", valid_from=now - timedelta(days=10), valid_until=now - timedelta(days=1))

    with pytest.raises(CouponOutsideValidityWindow) as not_yet:
        validate_coupon(code="LATER", cart_subtotal=Decimal("100.00"), now=now)
    assert "not yet" in not_yet.value.message
    with pytest.raises(CouponOutsideValidityWindow) as expired:
        validate_coupon(code="GONE", cart_subtotal=Decimal("100.00"), now=now)
    assert "expired" in expired.value.message


@pytest.mark.django_db
def test_minimum_amount_is_enforced():
    CouponFactory(code="BIG", minimum_amount=Decimal("500.00"))
    with pytest.raises(CouponBelowMinimumAmount) as exc:
        validate_coupon(code="BIG", cart_subtotal=Decimal("499.99"))
    assert exc.value.message == "Minimum order amount of GHS 500.00 required"

    assert validate_coupon(code="BIG", cart_subtotal=Decimal("500.00")).discount_amount == Decimal("50.00")


@pytest.mark.django_db
def test_global_usage_limit_reached_after_redemptions():
    coupon = CouponFactory(code="TWICE", usage_limit=2, per_user_limit=10)
    for _ in range(2):
        validate_coupon(code="TWICE", cart_subtotal=Decimal("100.00"))
        order = OrderFactory(user=None)
        record_coupon_usage(coupon_id=coupon.id, user=None, order=order, discount_amount=Decimal("10.00"))

    coupon.refresh_from_db()
    assert coupon.used_count == 2
    with pytest.raises(CouponGlobalUsageLimitReached):
        validate_coupon(code="TWICE", cart_subtotal=Decimal("100.00"))


@pytest.mark.django_db
def test_per_user_limit_applies_to_authenticated_users_only():
    user = UserFactory()
    coupon = CouponFactory(code="ONCE", per_user_limit=1)
    order = OrderFactory(user=user)
    record_coupon_usage(coupon_id=coupon.id, user=user, order=order, discount_amount=Decimal("10.00"))

    with pytest.raises(CouponPerUserLimitReached):
        validate_coupon(code="ONCE", cart_subtotal=Decimal("100.00"), user=user)
    # A different customer (or a guest) can still use it
    assert validate_coupon(code="ONCE", cart_subtotal=Decimal("100.00"), user=UserFactory())
    assert validate_coupon(code="ONCE", cart_subtotal=Decimal("100.00"), user=None)


@pytest.mark.django_db
def test_validation_does_not_consume_usage():
    coupon = CouponFactory(code="PEEK", usage_limit=1)
    for _ in range(3):
        validate_coupon(code="PEEK", cart_subtotal=Decimal("100.00"))
    coupon.refresh_from_db()
    assert coupon.used_count == 0
    assert not CouponUsage.objects.exists()


@pytest.mark.django_db
def test_record_usage_snapshots_discount_and_order_total():
    user = UserFactory()
    coupon = CouponFactory()
    order = OrderFactory(user=user, total=Decimal("1095.00"))

    usage = record_coupon_usage(coupon_id=coupon.id, user=user, order=order, discount_amount=Decimal("120"))

    assert usage.discount_amount == Decimal("120.00")
    assert usage.order_total == Decimal("1095.00")
    assert usage.user_id == user.id
    assert Coupon.objects.get(id=coupon.id).used_count == 1


@pytest.mark.django_db
def test_redemption_past_the_limit_never_raises_used_count(caplog):
    # Two checkouts validated while one slot was left; the first took it
    coupon = CouponFactory(code="LAST", usage_limit=1, per_user_limit=10)
    Coupon.objects.filter(id=coupon.id).update(used_count=1)
    order = OrderFactory(user=None)

    with caplog.at_level("WARNING", logger="ventech.coupons"):
        usage = record_coupon_usage(coupon_id=coupon.id, user=None, order=order, discount_amount=Decimal("10.00"))

    assert Coupon.objects.get(id=coupon.id).used_count == 1
    assert usage.order_id == order.id
    assert any(r.getMessage() == "coupon.usage_limit_exceeded" for r in caplog.records)
