"""Checkout orchestration: build drafts from a cart and dispatch on payment method.

Cash-on-delivery drafts become orders immediately. Card payments stage the
drafts, record a `PaymentTransaction` and hand the customer to the gateway;
orders are created later by `checkout.settlement.settle_payment`.
"""

import logging
import string
import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from cart.aggregation import CartSnapshot
from cart.services import clear_cart
from common.choices import PaymentMethod
from coupons.services import CouponResult, validate_coupon
from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone
from django.utils.crypto import get_random_string
from orders.services import OrderError, create_order

from .drafts import (
    KIND_PRE_ORDER,
    KIND_REGULAR,
    PRE_ORDER_NOTE_SUFFIX,
    REGULAR_NOTE_SUFFIX,
    CustomerIdentity,
    DeliveryAddress,
    DeliveryChoice,
    DraftSet,
    build_drafts,
    delivery_fee_for,
)
from .errors import DraftFailure, InvalidCheckout, OrderCreationFailed, PartialOrderFailure, PaymentInitializationFailed
from .models import DeliveryOption, PaymentTransaction
from .payments import PaymentGatewayError, get_payment_gateway, to_minor_units

logger = logging.getLogger("ventech.checkout")

GATEWAY_PAYMENT_METHODS = (PaymentMethod.PAYSTACK, PaymentMethod.CARD, PaymentMethod.MOBILE_MONEY)


@dataclass(frozen=True)
class CheckoutResult:
    orders: Tuple
    failures: Tuple[DraftFailure, ...] = ()
    reference: str = ""
    replayed: bool = False
    redacted: bool = False

    @property
    def warning(self) -> Optional[PartialOrderFailure]:
        if not self.failures:
            return None
        return PartialOrderFailure(failures=self.failures)


@dataclass(frozen=True)
class PaymentRedirect:
    reference: str
    authorization_url: str
    access_code: str
    amount_minor_units: int


def generate_payment_reference() -> str:
    """Return a fresh `<PREFIX>_<ms timestamp>_<random>` payment reference."""

    prefix = getattr(settings, "PAYMENT_REFERENCE_PREFIX", "VENTECH")
    suffix = get_random_string(9, allowed_chars=string.ascii_lowercase + string.digits)
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def active_delivery_options(kind: Optional[str] = None):
    qs = DeliveryOption.objects.filter(is_active=True)
    if kind:
        qs = qs.filter(kind=kind)
    return qs.order_by("kind", "sort_order", "id")


def resolve_delivery_choice(*, kind: str, option_id: Optional[int]) -> Optional[DeliveryChoice]:
    """Load the chosen option of `kind`, defaulting to the first active one."""

    if option_id:
        option = active_delivery_options(kind).filter(id=option_id).first()
        if option is None:
            raise InvalidCheckout("The selected delivery option is not available.")
    else:
        option = active_delivery_options(kind).first()
    if option is None:
        return None
    return DeliveryChoice.from_option(option)


def owner_kind(snapshot: CartSnapshot) -> str:
    """The draft that carries the coupon: regular items when present."""

    return KIND_REGULAR if snapshot.regular_lines else KIND_PRE_ORDER


def owner_delivery_fee(snapshot: CartSnapshot, *, delivery_choice, pre_order_choice) -> Decimal:
    kind = owner_kind(snapshot)
    choice = delivery_choice if kind == KIND_REGULAR else pre_order_choice
    if choice is None:
        return Decimal("0.00")
    return delivery_fee_for(kind=kind, option_price=choice.price, subtotal=snapshot.discountable_subtotal)


def prepare_checkout(
    *,
    snapshot: CartSnapshot,
    user=None,
    customer: CustomerIdentity,
    address: DeliveryAddress,
    payment_method: str,
    delivery_option_id: Optional[int] = None,
    pre_order_shipping_option_id: Optional[int] = None,
    coupon_code: str = "",
    notes: str = "",
    today: Optional[date] = None,
) -> DraftSet:
    """Price the cart into drafts.

    Raises `InvalidCheckout` for unusable input and a `CouponError` when a
    supplied coupon code does not apply.
    """

    delivery_choice = None
    pre_order_choice = None
    if snapshot.regular_lines:
        delivery_choice = resolve_delivery_choice(kind=DeliveryOption.KIND_STANDARD, option_id=delivery_option_id)
    if snapshot.pre_order_lines:
        pre_order_choice = resolve_delivery_choice(
            kind=DeliveryOption.KIND_PRE_ORDER, option_id=pre_order_shipping_option_id
        )

    coupon: Optional[CouponResult] = None
    if coupon_code and not snapshot.is_empty:
        coupon = validate_coupon(
            code=coupon_code,
            cart_subtotal=snapshot.discountable_subtotal,
            user=user,
            delivery_fee=owner_delivery_fee(snapshot, delivery_choice=delivery_choice, pre_order_choice=pre_order_choice),
        )

    draft_set = build_drafts(
        cart=snapshot,
        delivery_option=delivery_choice,
        pre_order_shipping_option=pre_order_choice,
        coupon=coupon,
        customer=customer,
        address=address,
        notes=notes,
        payment_method=payment_method,
        today=today,
    )
    logger.info(
        "checkout.drafts_built",
        extra={
            "event": "checkout.drafts_built",
            "user_id": getattr(user, "id", None),
            "drafts": [d.kind for d in draft_set.drafts],
            "has_mixed_cart": draft_set.has_mixed_cart,
            "total": str(draft_set.total),
            "coupon": coupon.code if coupon else None,
        },
    )
    return draft_set


def materialize_drafts(drafts, *, user=None) -> Tuple[Tuple, Tuple[DraftFailure, ...]]:
    """Create one order per draft; each draft succeeds or fails on its own."""

    orders = []
    failures = []
    for draft in drafts:
        try:
            orders.append(create_order(draft, user=user))
        except OrderError as exc:
            failures.append(DraftFailure(kind=draft.kind, code=exc.code, detail=exc.message))
        except DatabaseError:
            logger.exception(
                "checkout.order_persist_failed",
                extra={"event": "checkout.order_persist_failed", "kind": draft.kind, "reference": draft.payment_reference},
            )
            failures.append(
                DraftFailure(kind=draft.kind, code="order_creation_failed", detail="We could not save this order.")
            )
    return tuple(orders), tuple(failures)


def log_partial_failure(result: CheckoutResult) -> None:
    if not result.failures:
        return
    logger.warning(
        "checkout.partial_failure",
        extra={
            "event": "checkout.partial_failure",
            "reference": result.reference,
            "orders": [o.id for o in result.orders],
            "failures": [f.as_dict() for f in result.failures],
        },
    )


def submit_cash_order(*, drafts: DraftSet, user=None, cart=None) -> CheckoutResult:
    """Create cash-on-delivery orders immediately."""

    orders, failures = materialize_drafts(drafts.drafts, user=user)
    if not orders:
        raise OrderCreationFailed(failures, payment_captured=False)
    if cart is not None:
        clear_cart(cart=cart)
    result = CheckoutResult(orders=orders, failures=failures)
    log_partial_failure(result)
    return result


def _base_notes(drafts: DraftSet) -> str:
    notes = drafts.drafts[0].notes if drafts.drafts else ""
    for suffix in (REGULAR_NOTE_SUFFIX, PRE_ORDER_NOTE_SUFFIX):
        notes = notes.replace(suffix, "")
    return notes.strip()


def build_recovery_metadata(drafts: DraftSet, *, reference: str, user=None) -> dict:
    """Non-monetary data the gateway echoes back, for rebuilding lost drafts."""

    first = drafts.drafts[0]
    delivery_ids = {d.kind: d.delivery.option_id for d in drafts.drafts}
    return {
        "reference": reference,
        "user_id": getattr(user, "id", None) if getattr(user, "is_authenticated", False) else None,
        "payment_method": first.payment_method,
        "customer": {"name": first.customer.name, "email": first.customer.email, "phone": first.customer.phone},
        "address": first.address.as_dict(),
        "notes": _base_notes(drafts),
        "coupon_code": next((d.coupon_code for d in drafts.drafts if d.coupon_code), ""),
        "delivery_option_id": delivery_ids.get(KIND_REGULAR),
        "pre_order_shipping_option_id": delivery_ids.get(KIND_PRE_ORDER),
        "items": [
            {
                "product_id": item.product_id,
                "quantity": item.quantity,
                "selections": dict(item.selections),
                "is_pre_order": draft.is_pre_order,
            }
            for draft in drafts.drafts
            for item in draft.items
        ],
    }


def submit_card_payment(
    *,
    drafts: DraftSet,
    staging,
    email: str,
    callback_url: Optional[str] = None,
    gateway=None,
    user=None,
    cart=None,
) -> PaymentRedirect:
    """Stage the drafts and open a gateway session for their combined total.

    No order is created here. `cart` is remembered on the transaction so
    settlement can empty it without the caller's session header.
    """

    gateway = gateway or get_payment_gateway()
    reference = generate_payment_reference()
    drafts = drafts.with_reference(reference)
    staging.stage(reference=reference, drafts=drafts.drafts)

    amount_minor_units = to_minor_units(drafts.total)
    transaction_record = PaymentTransaction.objects.create(
        reference=reference,
        user=user if getattr(user, "is_authenticated", False) else None,
        email=email,
        cart=cart,
        amount_minor_units=amount_minor_units,
        currency=settings.CURRENCY,
    )
    try:
        session = gateway.initialize_payment(
            email=email,
            amount_minor_units=amount_minor_units,
            reference=reference,
            callback_url=callback_url or settings.PAYMENT_CALLBACK_URL,
            metadata=build_recovery_metadata(drafts, reference=reference, user=user),
        )
    except PaymentGatewayError as exc:
        transaction_record.status = PaymentTransaction.STATUS_FAILED
        transaction_record.gateway_response = {"error": str(exc)}
        transaction_record.save(update_fields=["status", "gateway_response", "updated_at"])
        raise PaymentInitializationFailed(reference=reference)

    logger.info(
        "checkout.payment_initialized",
        extra={
            "event": "checkout.payment_initialized",
            "reference": reference,
            "user_id": transaction_record.user_id,
            "drafts": [d.kind for d in drafts.drafts],
            "amount_minor_units": amount_minor_units,
        },
    )
    return PaymentRedirect(
        reference=reference,
        authorization_url=session.authorization_url,
        access_code=session.access_code,
        amount_minor_units=amount_minor_units,
    )


def link_payment_reference(*, reference: str, order, verification=None) -> PaymentTransaction:
    """Attach the verified payment to the first order created for it; safe to repeat."""

    record, _ = PaymentTransaction.objects.get_or_create(
        reference=reference,
        defaults={
            "email": order.contact_email,
            "amount_minor_units": getattr(verification, "amount_minor_units", 0),
            "currency": getattr(verification, "currency", "") or settings.CURRENCY,
            "user": order.user,
        },
    )
    fields = []
    if record.order_id is None:
        record.order = order
        fields.append("order")
    if record.status != PaymentTransaction.STATUS_SUCCESS:
        record.status = PaymentTransaction.STATUS_SUCCESS
        record.verified_at = timezone.now()
        fields += ["status", "verified_at"]
    if verification is not None and not record.gateway_response:
        record.gateway_response = dict(verification.raw)
        fields.append("gateway_response")
    if fields:
        record.save(update_fields=fields + ["updated_at"])
    return record
