"""Coupon models.

A coupon code grants a percentage, fixed-amount or free-shipping discount.
Redemptions are recorded as `CouponUsage` rows when an order is created; the
counter on the coupon tracks the global usage limit.
"""

from decimal import Decimal

from common.choices import DiscountType
from django.conf import settings
from django.db import models
from django.utils import timezone


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Coupon(TimeStampedModel):
    TYPE_PERCENTAGE = DiscountType.PERCENTAGE
    TYPE_FIXED_AMOUNT = DiscountType.FIXED_AMOUNT
    TYPE_FREE_SHIPPING = DiscountType.FREE_SHIPPING

    code = models.CharField(max_length=40, unique=True)
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    discount_type = models.CharField(max_length=16, choices=DiscountType.choices, default=DiscountType.PERCENTAGE)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    minimum_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    maximum_discount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    per_user_limit = models.PositiveIntegerField(default=1)
    used_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    valid_from = models.DateTimeField(default=timezone.now)
    valid_until = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(name="coupon_discount_value_non_negative", condition=models.Q(discount_value__gte=0)),
            models.CheckConstraint(name="coupon_minimum_amount_non_negative", condition=models.Q(minimum_amount__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.code

    def save(self, *args, **kwargs):
        # Codes are stored uppercased and compared case-insensitively
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)


class CouponUsage(models.Model):
    """One redemption of a coupon by an order."""

    coupon = models.ForeignKey(Coupon, related_name="usages", on_delete=models.CASCADE)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, related_name="coupon_usages", null=True, blank=True, on_delete=models.SET_NULL
    )
    order = models.ForeignKey("orders.Order", related_name="coupon_usages", on_delete=models.CASCADE)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    order_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["coupon", "user"], name="couponusage_coupon_user_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CouponUsage#{self.id} coupon={self.coupon_id} order={self.order_id}"
