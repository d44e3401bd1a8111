from decimal import Decimal

import factory
from coupons.models import Coupon
from factory.django import DjangoModelFactory


class CouponFactory(DjangoModelFactory):
    class Meta:
        model = Coupon

    code = factory.Sequence(lambda n: f"SAVE{n}")
    name = factory.LazyAttribute(lambda o: f"Coupon {o.code}")
    discount_type = Coupon.TYPE_PERCENTAGE
    discount_value = Decimal("10.00")
    minimum_amount = Decimal("0.00")
    maximum_discount = None
    usage_limit = None
    per_user_limit = 1
    is_active = True


class FixedAmountCouponFactory(CouponFactory):
    discount_type = Coupon.TYPE_FIXED_AMOUNT
    discount_value = Decimal("50.00")


class FreeShippingCouponFactory(CouponFactory):
    discount_type = Coupon.TYPE_FREE_SHIPPING
    discount_value = Decimal("0.00")
