"""Coupon evaluation and redemption.

`validate_coupon` is read-only: it checks a code against a subtotal and
returns the discount it would grant. Usage slots are consumed only by
`record_coupon_usage`, which the order materializer calls once per order.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from .models import Coupon, CouponUsage

logger = logging.getLogger("ventech.coupons")

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


class CouponError(Exception):
    """Base class for coupon validation failures."""

    kind = "invalid"
    default_message = "Invalid coupon code"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class CouponNotFound(CouponError):
    kind = "not_found"
    default_message = "Invalid coupon code"


class CouponInactive(CouponError):
    kind = "inactive"
    default_message = "This coupon is no longer active"


class CouponOutsideValidityWindow(CouponError):
    kind = "outside_window"
    default_message = "This coupon is not valid at this time"


class CouponBelowMinimumAmount(CouponError):
    kind = "below_minimum"
    default_message = "Order does not meet the coupon's minimum amount"


class CouponGlobalUsageLimitReached(CouponError):
    kind = "usage_limit_reached"
    default_message = "This coupon has reached its usage limit"


class CouponPerUserLimitReached(CouponError):
    kind = "per_user_limit_reached"
    default_message = "You have already used this coupon the maximum number of times"


@dataclass(frozen=True)
class CouponResult:
    coupon_id: int
    code: str
    name: str
    discount_type: str
    discount_amount: Decimal


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_discount(coupon: Coupon, *, subtotal, delivery_fee=ZERO) -> Decimal:
    """Return the discount `coupon` grants on `subtotal`, never above what it applies to."""

    subtotal = Decimal(subtotal)
    if coupon.discount_type == Coupon.TYPE_PERCENTAGE:
        amount = subtotal * Decimal(coupon.discount_value) / Decimal("100")
        if coupon.maximum_discount is not None:
            amount = min(amount, Decimal(coupon.maximum_discount))
    elif coupon.discount_type == Coupon.TYPE_FIXED_AMOUNT:
        amount = min(Decimal(coupon.discount_value), subtotal)
    else:
        amount = Decimal(delivery_fee)
    return _money(max(amount, ZERO))


def _fail(exc: CouponError, *, code: str, user=None) -> CouponError:
    logger.info(
        "coupon.validation_failed",
        extra={
            "event": "coupon.validation_failed",
            "code": code,
            "reason": exc.kind,
            "user_id": getattr(user, "id", None),
        },
    )
    return exc


def get_coupon_by_code(code: str) -> Optional[Coupon]:
    """Case-insensitive lookup of a coupon by code."""

    code = (code or "").strip()
    if not code:
        return None
    return Coupon.objects.filter(code__iexact=code).first()


def validate_coupon(*, code: str, cart_subtotal, user=None, delivery_fee=ZERO, now=None) -> CouponResult:
    """Check `code` against the subtotal it would apply to.

    Raises a `CouponError` subclass describing the first failed rule. The
    per-user limit is only enforced for authenticated users.
    """

    now = now or timezone.now()
    coupon = get_coupon_by_code(code)
    if coupon is None:
        raise _fail(CouponNotFound(), code=code, user=user)
    if not coupon.is_active:
        raise _fail(CouponInactive(), code=code, user=user)
    if coupon.valid_from and now < coupon.valid_from:
        raise _fail(CouponOutsideValidityWindow("This coupon is not yet valid"), code=code, user=user)
    if coupon.valid_until and now > coupon.valid_until:
        raise _fail(CouponOutsideValidityWindow("This coupon has expired"), code=code, user=user)
    if Decimal(cart_subtotal) < coupon.minimum_amount:
        currency = getattr(settings, "CURRENCY", "GHS")
        raise _fail(
            CouponBelowMinimumAmount(f"Minimum order amount of {currency} {coupon.minimum_amount} required"),
            code=code,
            user=user,
        )
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise _fail(CouponGlobalUsageLimitReached(), code=code, user=user)
    if user is not None and getattr(user, "is_authenticated", False):
        used = CouponUsage.objects.filter(coupon=coupon, user=user).count()
        if used >= coupon.per_user_limit:
            raise _fail(CouponPerUserLimitReached(), code=code, user=user)

    return CouponResult(
        coupon_id=coupon.id,
        code=coupon.code,
        name=coupon.name,
        discount_type=coupon.discount_type,
        discount_amount=compute_discount(coupon, subtotal=cart_subtotal, delivery_fee=delivery_fee),
    )


@transaction.atomic
def record_coupon_usage(*, coupon_id: int, user, order, discount_amount) -> CouponUsage:
    """Consume one usage slot for `order` and write the redemption row.

    The slot is taken only while `used_count` is below `usage_limit`. A
    redemption that raced past the limit is still recorded for the order and
    logged for follow-up.
    """

    consumed = (
        Coupon.objects.filter(id=coupon_id)
        .filter(Q(usage_limit__isnull=True) | Q(used_count__lt=F("usage_limit")))
        .update(used_count=F("used_count") + 1, updated_at=timezone.now())
    )
    if not consumed:
        logger.warning(
            "coupon.usage_limit_exceeded",
            extra={"event": "coupon.usage_limit_exceeded", "coupon_id": coupon_id, "order_id": order.id},
        )
    usage = CouponUsage.objects.create(
        coupon_id=coupon_id,
        user=user if getattr(user, "is_authenticated", False) else None,
        order=order,
        discount_amount=_money(discount_amount),
        order_total=order.total,
    )
    logger.info(
        "coupon.redeemed",
        extra={
            "event": "coupon.redeemed",
            "coupon_id": coupon_id,
            "order_id": order.id,
            "user_id": usage.user_id,
            "discount_amount": str(usage.discount_amount),
        },
    )
    return usage
