import hashlib
import json
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional, Tuple

from catalog.models import Product
from catalog.services import StockError, decrement_stock, restore_stock
from common.choices import PaymentMethod, PaymentStatus
from coupons.services import record_coupon_usage
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from .emails import send_order_confirmation_email
from .models import IdempotencyKey, Order, OrderItem

logger = logging.getLogger("ventech.orders")


class OrderError(Exception):
    """Base class for failures while materializing an order."""

    code = "order_error"
    default_message = "Unable to create your order."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ProductUnavailable(OrderError):
    """One or more products in the draft no longer exist."""

    code = "product_unavailable"
    default_message = (
        "Some products in your order are no longer available. Please remove them from your cart and try again."
    )

    def __init__(self, product_ids: Iterable[int] = ()):
        self.product_ids = tuple(product_ids)
        super().__init__()


class InsufficientStock(OrderError):
    code = "insufficient_stock"

    def __init__(self, product_id: int, product_name: str = ""):
        self.product_id = product_id
        name = product_name or f"product {product_id}"
        super().__init__(f"Not enough stock left for {name}. Please reduce the quantity and try again.")


class OrderTotalOutOfBounds(OrderError):
    code = "order_total_out_of_bounds"
    default_message = "The order total is outside the accepted range. Please contact support."


class OrderStateError(OrderError):
    code = "invalid_order_state"
    default_message = "Unable to update order."


def _payment_status_for(method: str) -> str:
    if method == PaymentMethod.CASH_ON_DELIVERY:
        return PaymentStatus.PENDING
    # Gateway orders are only materialized after verification
    return PaymentStatus.PAID


def _find_settled(settlement_key: Optional[str]) -> Optional[Order]:
    if not settlement_key:
        return None
    return Order.objects.filter(settlement_key=settlement_key).first()


def create_order(draft, *, user=None) -> Order:
    """Persist one checkout draft as an order with line-item snapshots.

    Runs in its own transaction: a failure rolls back only this draft. When
    the draft carries a payment reference, an order already created for the
    same settlement key is returned instead of a duplicate.
    """

    existing = _find_settled(draft.settlement_key)
    if existing is not None:
        logger.info(
            "order.duplicate_suppressed",
            extra={"event": "order.duplicate_suppressed", "order_id": existing.id, "settlement_key": draft.settlement_key},
        )
        return existing

    owner = user if getattr(user, "is_authenticated", False) else None
    try:
        with transaction.atomic():
            order = _materialize(draft, user=owner)
    except IntegrityError:
        existing = _find_settled(draft.settlement_key)
        if existing is None:
            raise
        logger.info(
            "order.duplicate_suppressed",
            extra={"event": "order.duplicate_suppressed", "order_id": existing.id, "settlement_key": draft.settlement_key},
        )
        return existing

    logger.info(
        "order.created",
        extra={
            "event": "order.created",
            "order_id": order.id,
            "number": order.number,
            "user_id": order.user_id,
            "kind": draft.kind,
            "total": str(order.total),
            "payment_method": order.payment_method,
            "payment_reference": order.payment_reference,
        },
    )
    return order


def _materialize(draft, *, user) -> Order:
    product_ids = {item.product_id for item in draft.items}
    products = Product.objects.in_bulk(product_ids)
    missing = sorted(product_ids - set(products))
    if missing:
        raise ProductUnavailable(missing)

    ceiling = Decimal(str(settings.ORDER_TOTAL_CEILING))
    if draft.total < 0 or draft.total > ceiling:
        logger.error(
            "order.total_out_of_bounds",
            extra={"event": "order.total_out_of_bounds", "total": str(draft.total), "ceiling": str(ceiling)},
        )
        raise OrderTotalOutOfBounds()

    order = Order.objects.create(
        user=user,
        payment_method=draft.payment_method,
        payment_status=_payment_status_for(draft.payment_method),
        subtotal=draft.subtotal,
        delivery_fee=draft.delivery_fee,
        tax=draft.tax,
        discount=draft.discount,
        total=draft.total,
        coupon_id=draft.coupon_id,
        coupon_code=draft.coupon_code,
        delivery_option_code=draft.delivery.code,
        delivery_option_name=draft.delivery.name,
        shipping_address=draft.address.as_dict(),
        customer_name=draft.customer.name,
        contact_email=draft.customer.email,
        contact_phone=draft.customer.phone,
        notes=draft.notes,
        is_pre_order=draft.is_pre_order,
        estimated_arrival_date=draft.estimated_arrival_date,
        payment_reference=draft.payment_reference,
        settlement_key=draft.settlement_key,
    )
    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                product=products[item.product_id],
                product_name=item.name,
                product_image=item.thumbnail,
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
                selected_variants=list(item.variant_labels),
            )
            for item in draft.items
        ]
    )

    if not draft.is_pre_order:
        for item in draft.items:
            try:
                decrement_stock(product_id=item.product_id, quantity=item.quantity)
            except StockError:
                raise InsufficientStock(item.product_id, item.name)

    if draft.owns_coupon:
        record_coupon_usage(coupon_id=draft.coupon_id, user=user, order=order, discount_amount=draft.discount)

    order.number = f"ORD-{int(order.id):06d}"
    order.save(update_fields=["number"])
    order_id = order.id
    transaction.on_commit(lambda: send_order_confirmation_email(order_id))
    return order


def cancel_order(order: Order) -> Order:
    """Cancel a pending or processing order and return regular items to stock.

    Returns the updated order.
    """

    if order.status == Order.STATUS_CANCELLED:
        return order
    if order.status not in Order.CANCELLABLE_STATUSES:
        raise OrderStateError("Only pending or processing orders can be cancelled.")
    prev = order.status
    with transaction.atomic():
        if not order.is_pre_order:
            for item in order.items.filter(product__isnull=False):
                restore_stock(product_id=item.product_id, quantity=int(item.quantity))
        order.status = Order.STATUS_CANCELLED
        order.save(update_fields=["status", "updated_at"])
    logger.info(
        "order_status_changed",
        extra={
            "event": "order_status_changed",
            "order_id": order.id,
            "user_id": order.user_id,
            "status_from": prev,
            "status_to": order.status,
        },
    )
    return order


def with_idempotency(
    *,
    key: str,
    user,
    path: str,
    method: str,
    handler: Callable[[], Tuple[dict, int]],
    request_hash: Optional[str] = None,
) -> Tuple[dict, int]:
    """Run handler idempotently and persist its response for the given key and scope.

    - Scope is derived from the caller: for authenticated users, "user:<id>"; otherwise "anon".
    - If a record exists and the stored `request_hash` differs from the provided one, returns 409.
    - If a record exists but response is not yet stored, returns 409 to indicate in-progress.
    """

    user_id = getattr(user, "id", None) if getattr(user, "is_authenticated", False) else None
    scope = f"user:{user_id}" if user_id else "anon"
    method = str(method).upper()
    path = str(path)
    ttl_hours = int(getattr(settings, "IDEMPOTENCY_KEY_TTL_HOURS", 24))

    try:
        with transaction.atomic():
            idem = IdempotencyKey.objects.create(
                key=key,
                user=user if user_id else None,
                scope=scope,
                path=path,
                method=method,
                request_hash=request_hash,
                expires_at=timezone.now() + timedelta(hours=ttl_hours),
            )
    except IntegrityError:
        idem = IdempotencyKey.objects.get(key=key, scope=scope, path=path, method=method)
        if idem.request_hash and request_hash and idem.request_hash != request_hash:
            return {"detail": "Idempotency key reused with different request payload"}, 409
        if idem.response_json is not None and idem.response_code is not None:
            return idem.response_json, int(idem.response_code)
        return {"detail": "Request in progress"}, 409

    body, code = handler()
    IdempotencyKey.objects.filter(id=idem.id).update(response_json=_json_safe(body), response_code=code)
    return body, code


def _json_safe(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def compute_request_hash(data) -> Optional[str]:
    """Compute a canonical SHA256 hash of the request body.

    Uses sorted keys JSON representation to stabilize the hash across equivalent payloads.
    Returns None when data is falsy.
    """
    if not data:
        return None
    payload = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
