"""Payment settlement: turn a verified gateway payment into orders.

Verification always happens first. Drafts come from staging; when staging is
gone they are rebuilt from catalog prices using only the non-monetary fields
the gateway echoed back. Amounts in gateway metadata are never used.

The callback is public and the reference travels in redirect URLs, so full
order details go back only to the caller that owns the payment: the session
that staged or settled it, or the signed-in customer the orders belong to.
Anyone else gets the order numbers and statuses.
"""

import dataclasses
import logging
from typing import Mapping, Optional, Tuple

from cart.aggregation import CartLine, CartSnapshot
from cart.models import Cart
from cart.services import clear_cart
from catalog.models import Product
from catalog.pricing import VariantSelectionError
from catalog.selectors import resolve_product_price
from coupons.services import CouponResult, compute_discount, get_coupon_by_code
from django.contrib.auth import get_user_model
from orders.selectors import orders_for_reference
from orders.services import ProductUnavailable

from .drafts import KIND_PRE_ORDER, KIND_REGULAR, CustomerIdentity, DeliveryAddress, build_drafts, reprice_draft
from .errors import (
    CheckoutDataMissing,
    CheckoutError,
    DraftFailure,
    OrderCreationFailed,
    PaymentVerificationFailed,
)
from .models import DeliveryOption, PaymentTransaction
from .payments import PaymentGatewayError, get_payment_gateway
from .services import (
    CheckoutResult,
    link_payment_reference,
    log_partial_failure,
    materialize_drafts,
    owner_delivery_fee,
    owner_kind,
    resolve_delivery_choice,
)

logger = logging.getLogger("ventech.checkout")


def _record_failed_verification(reference: str, payload: Mapping) -> None:
    PaymentTransaction.objects.filter(reference=reference).exclude(status=PaymentTransaction.STATUS_SUCCESS).update(
        status=PaymentTransaction.STATUS_FAILED, gateway_response=dict(payload)
    )


def _verify(gateway, reference: str):
    try:
        verification = gateway.verify_payment(reference)
    except PaymentGatewayError as exc:
        logger.warning(
            "checkout.payment_verification_failed",
            extra={"event": "checkout.payment_verification_failed", "reference": reference, "error": str(exc)},
        )
        raise PaymentVerificationFailed(reference=reference)
    if not verification.is_successful:
        logger.warning(
            "checkout.payment_verification_failed",
            extra={
                "event": "checkout.payment_verification_failed",
                "reference": reference,
                "status": verification.status,
            },
        )
        _record_failed_verification(reference, verification.raw)
        raise PaymentVerificationFailed(reference=reference)
    return verification


def _is_authenticated(user) -> bool:
    return bool(getattr(user, "is_authenticated", False))


def _settling_user(user, metadata: Mapping, *, holds_staging: bool):
    """The customer who paid: the id echoed by the gateway, else the staging session's user."""

    user_id = metadata.get("user_id")
    if user_id:
        if _is_authenticated(user) and str(user.id) == str(user_id):
            return user
        return get_user_model().objects.filter(id=user_id).first()
    if holds_staging and _is_authenticated(user):
        return user
    return None


def _caller_owns(orders, *, staging, reference: str, user) -> bool:
    if staging.reference == reference or staging.has_settled(reference):
        return True
    if _is_authenticated(user):
        return any(order.user_id == user.id for order in orders)
    return False


def _forget_staging(staging, reference: str) -> None:
    if staging.reference == reference:
        staging.clear()
    staging.remember_settled(reference)


def _paying_cart(reference: str) -> Optional[Cart]:
    record = PaymentTransaction.objects.filter(reference=reference).select_related("cart").first()
    if record is None or record.cart is None or record.cart.status != Cart.STATUS_ACTIVE:
        return None
    return record.cart


def _parse_items(entries) -> Optional[list]:
    """Return `(product_id, quantity, entry)` per echoed item, or None when unreadable."""

    try:
        return [(int(entry["product_id"]), max(1, int(entry.get("quantity") or 1)), entry) for entry in entries]
    except (AttributeError, KeyError, TypeError, ValueError):
        return None


def _drafts_from_metadata(metadata: Mapping, reference: str) -> Tuple[Tuple, Tuple[DraftFailure, ...]]:
    """Rebuild drafts from echoed identifiers, pricing everything from the catalog.

    A subset with a product that no longer exists (or whose options no longer
    price) fails as a whole with `ProductUnavailable`.
    """

    entries = metadata.get("items") or []
    if not entries:
        return (), ()

    items = _parse_items(entries)
    if items is None:
        logger.error(
            "checkout.metadata_unusable",
            extra={"event": "checkout.metadata_unusable", "reference": reference, "error": "unreadable items"},
        )
        return (), ()
    products = Product.objects.in_bulk({product_id for product_id, _, _ in items})

    lines = []
    failed_kinds = set()
    for product_id, quantity, entry in items:
        kind = KIND_PRE_ORDER if entry.get("is_pre_order") else KIND_REGULAR
        product = products.get(product_id)
        if product is None:
            failed_kinds.add(kind)
            continue
        try:
            price = resolve_product_price(product=product, selections=entry.get("selections") or {})
        except VariantSelectionError:
            failed_kinds.add(kind)
            continue
        lines.append(
            CartLine(
                product_id=product.id,
                name=product.title,
                thumbnail=product.thumbnail,
                quantity=quantity,
                unit_price=price.unit_price,
                is_pre_order=kind == KIND_PRE_ORDER,
                selections={str(v.attribute_id): v.option_id for v in price.variants},
                variant_labels=tuple(v.as_dict() for v in price.variants),
            )
        )

    failures = tuple(
        DraftFailure(kind=kind, code=ProductUnavailable.code, detail=ProductUnavailable().message)
        for kind in (KIND_REGULAR, KIND_PRE_ORDER)
        if kind in failed_kinds
    )
    wanted_owner = KIND_REGULAR if any(not entry.get("is_pre_order") for _, _, entry in items) else KIND_PRE_ORDER
    snapshot = CartSnapshot(
        lines=tuple(line for line in lines if (KIND_PRE_ORDER if line.is_pre_order else KIND_REGULAR) not in failed_kinds)
    )
    if snapshot.is_empty:
        return (), failures

    try:
        delivery_choice = None
        pre_order_choice = None
        if snapshot.regular_lines:
            delivery_choice = resolve_delivery_choice(
                kind=DeliveryOption.KIND_STANDARD, option_id=metadata.get("delivery_option_id")
            )
        if snapshot.pre_order_lines:
            pre_order_choice = resolve_delivery_choice(
                kind=DeliveryOption.KIND_PRE_ORDER, option_id=metadata.get("pre_order_shipping_option_id")
            )

        coupon = None
        coupon_model = get_coupon_by_code(metadata.get("coupon_code") or "")
        if coupon_model is not None and owner_kind(snapshot) == wanted_owner:
            coupon = CouponResult(
                coupon_id=coupon_model.id,
                code=coupon_model.code,
                name=coupon_model.name,
                discount_type=coupon_model.discount_type,
                discount_amount=compute_discount(
                    coupon_model,
                    subtotal=snapshot.discountable_subtotal,
                    delivery_fee=owner_delivery_fee(
                        snapshot, delivery_choice=delivery_choice, pre_order_choice=pre_order_choice
                    ),
                ),
            )

        customer = metadata.get("customer") or {}
        address = metadata.get("address") or {}
        draft_set = build_drafts(
            cart=snapshot,
            delivery_option=delivery_choice,
            pre_order_shipping_option=pre_order_choice,
            coupon=coupon,
            customer=CustomerIdentity(
                name=customer.get("name") or "", email=customer.get("email") or "", phone=customer.get("phone") or ""
            ),
            address=DeliveryAddress(**address),
            notes=metadata.get("notes") or "",
            payment_method=metadata.get("payment_method") or "paystack",
            payment_reference=reference,
        )
    except (CheckoutError, TypeError) as exc:
        logger.error(
            "checkout.metadata_unusable",
            extra={"event": "checkout.metadata_unusable", "reference": reference, "error": str(exc)},
        )
        return (), failures
    return draft_set.drafts, failures


def settle_payment(*, reference: str, staging, user=None, cart=None, gateway=None) -> CheckoutResult:
    """Verify `reference` and create its orders exactly once.

    Raises `PaymentVerificationFailed` (staging kept), `CheckoutDataMissing`
    when nothing can be rebuilt, or `OrderCreationFailed` when every draft
    fails after the payment was captured. The result is `redacted` when the
    caller does not own the payment.
    """

    gateway = gateway or get_payment_gateway()
    verification = _verify(gateway, reference)
    metadata = verification.metadata or {}

    existing = tuple(orders_for_reference(reference))
    if existing:
        owns = _caller_owns(existing, staging=staging, reference=reference, user=user)
        if owns:
            _forget_staging(staging, reference)
            if cart is not None:
                clear_cart(cart=cart)
        logger.info(
            "checkout.settled",
            extra={
                "event": "checkout.settled",
                "reference": reference,
                "orders": [o.id for o in existing],
                "replayed": True,
                "redacted": not owns,
            },
        )
        return CheckoutResult(orders=existing, reference=reference, replayed=True, redacted=not owns)

    holds_staging = staging.reference == reference
    failures: Tuple[DraftFailure, ...] = ()
    drafts: Optional[Tuple] = staging.load(reference)
    if drafts is None:
        logger.warning(
            "checkout.staging_lost",
            extra={"event": "checkout.staging_lost", "reference": reference, "has_metadata": bool(metadata)},
        )
        drafts, failures = _drafts_from_metadata(metadata, reference)
        if not drafts and not failures:
            logger.error(
                "checkout.settlement_failed",
                extra={"event": "checkout.settlement_failed", "reference": reference, "reason": "checkout_data_missing"},
            )
            raise CheckoutDataMissing(reference=reference)

    drafts = tuple(reprice_draft(dataclasses.replace(d, payment_reference=reference)) for d in drafts)
    orders, more_failures = materialize_drafts(
        drafts, user=_settling_user(user, metadata, holds_staging=holds_staging)
    )
    failures = failures + more_failures

    if not orders:
        logger.error(
            "checkout.settlement_failed",
            extra={
                "event": "checkout.settlement_failed",
                "reference": reference,
                "reason": "order_creation_failed",
                "failures": [f.as_dict() for f in failures],
            },
        )
        raise OrderCreationFailed(failures, payment_captured=True, reference=reference)

    link_payment_reference(reference=reference, order=orders[0], verification=verification)
    owns = _caller_owns(orders, staging=staging, reference=reference, user=user)
    if owns:
        _forget_staging(staging, reference)
    paying_cart = _paying_cart(reference) or (cart if owns else None)
    if paying_cart is not None:
        clear_cart(cart=paying_cart)

    result = CheckoutResult(orders=orders, failures=failures, reference=reference, redacted=not owns)
    log_partial_failure(result)
    logger.info(
        "checkout.settled",
        extra={
            "event": "checkout.settled",
            "reference": reference,
            "orders": [o.id for o in orders],
            "replayed": False,
            "redacted": not owns,
        },
    )
    return result
